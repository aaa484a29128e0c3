"""
Munich Weekly Backend — Image Dimension Service
================================================

What:  Determines pixel width/height of submission images for the masonry
       layout when the database has no stored dimensions.
How:   1. TTL cache (per URL)
       2. Local file under /uploads → Pillow reads the header
       3. Remote http(s) URL → httpx streams the first bytes into a
          Pillow ImageFile.Parser until the size is known
       Failures return None; the caller falls back to 800×600.

Remote fetches are retried with tenacity on transport errors only. An
HTTP error status or an unparseable body is final.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from cachetools import TTLCache
from PIL import Image, ImageFile, UnidentifiedImageError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from munich_weekly.config import settings
from munich_weekly.exceptions import MunichWeeklyError
from munich_weekly.services.storage_service import StorageService, storage_service

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 600

# Enough for the header of any JPEG/PNG we expect; Range hint for the server
REMOTE_HEADER_BYTES = 64 * 1024


@dataclass(frozen=True)
class ImageDimensions:
    width: int
    height: int

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


DEFAULT_DIMENSIONS = ImageDimensions(DEFAULT_WIDTH, DEFAULT_HEIGHT)


def read_dimensions(content: bytes) -> Optional[ImageDimensions]:
    """Pixel size from image bytes, or None when Pillow cannot identify them."""
    try:
        with Image.open(io.BytesIO(content)) as img:
            width, height = img.size
    except (UnidentifiedImageError, OSError) as e:
        logger.warning("Could not read image dimensions: %s", str(e))
        return None
    if width <= 0 or height <= 0:
        return None
    return ImageDimensions(width, height)


class ImageDimensionService:
    def __init__(
        self,
        storage: Optional[StorageService] = None,
        cache_ttl: Optional[int] = None,
    ):
        self.storage = storage or storage_service
        self._cache: TTLCache = TTLCache(
            maxsize=2048, ttl=cache_ttl or settings.dimension_cache_ttl
        )

    def clear_cache(self) -> None:
        self._cache.clear()

    async def get_dimensions(self, image_url: Optional[str]) -> Optional[ImageDimensions]:
        """
        Resolve dimensions for an image URL.

        Returns None when the URL is empty or the image cannot be read; only
        successful lookups are cached.
        """
        if not image_url:
            return None

        cached = self._cache.get(image_url)
        if cached is not None:
            return cached

        dims: Optional[ImageDimensions] = None
        key = self.storage.key_from_url(image_url)
        if key is not None:
            dims = await self._read_local(key)
        elif image_url.startswith(("http://", "https://")):
            dims = await self._read_remote(image_url)
        else:
            logger.debug("Unsupported image URL for dimension lookup: %s", image_url)

        if dims is not None:
            self._cache[image_url] = dims
        return dims

    async def _read_local(self, key: str) -> Optional[ImageDimensions]:
        try:
            content = await self.storage.read(key)
        except MunichWeeklyError as e:
            logger.warning("Local image %s unavailable: %s", key, e.message)
            return None
        return read_dimensions(content)

    async def _read_remote(self, url: str) -> Optional[ImageDimensions]:
        try:
            return await self._fetch_remote_with_retry(url)
        except httpx.HTTPError as e:
            logger.warning("Remote dimension fetch failed for %s: %s", url, str(e))
            return None

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _fetch_remote_with_retry(self, url: str) -> Optional[ImageDimensions]:
        parser = ImageFile.Parser()
        received = 0
        headers = {"Range": f"bytes=0-{REMOTE_HEADER_BYTES - 1}"}

        async with httpx.AsyncClient(
            timeout=settings.dimension_fetch_timeout, follow_redirects=True
        ) as client:
            async with client.stream("GET", url, headers=headers) as response:
                response.raise_for_status()
                async for chunk in response.aiter_bytes():
                    try:
                        parser.feed(chunk)
                    except (OSError, SyntaxError) as e:
                        logger.warning("Unparseable image data from %s: %s", url, str(e))
                        return None
                    if parser.image is not None:
                        width, height = parser.image.size
                        return ImageDimensions(width, height)
                    received += len(chunk)
                    if received >= REMOTE_HEADER_BYTES:
                        break

        logger.warning("Image header for %s not found in first %d bytes", url, received)
        return None


image_dimension_service = ImageDimensionService()
