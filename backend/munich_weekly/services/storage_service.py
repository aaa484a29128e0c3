"""
Munich Weekly Backend — File Storage Service
=============================================

What:  Validates uploaded images and keeps them on local disk under
       settings.storage_root, addressed by a relative key.
Who:   Submission uploads, gallery covers, promotion images, the
       selected-submissions ZIP export and GET /uploads/{path}.

Key layout (public URL = uploads_url_prefix + "/" + key):
    issues/{issueId}/submissions/{submissionId}.{ext}
    issues/{issueId}/cover/{uuid}.{ext}
    promotion/{configId}/{uuid}.{ext}

Validation order, cheapest first:
    1. Extension   (no bytes read)
    2. Size        (Content-Length header, then actual length)
    3. MIME type   (libmagic on the header bytes; catches renamed files)

Every key is resolved against the storage root and rejected if it escapes
it, so a crafted URL or path parameter cannot reach outside the root.
"""

import logging
import uuid
from pathlib import Path
from typing import Iterable, Optional

import aiofiles
import aiofiles.os
import magic

from munich_weekly.config import settings
from munich_weekly.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png"}

ALLOWED_MIME_TYPES = {"image/jpeg", "image/png"}

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


class StorageService:
    """
    Local-disk storage addressed by relative keys.

    All writes and reads go through aiofiles so a slow disk never blocks
    the event loop.
    """

    def __init__(self, storage_root: Optional[str] = None, url_prefix: Optional[str] = None):
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        self.url_prefix = (url_prefix or settings.uploads_url_prefix).rstrip("/")
        logger.info("StorageService initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(
        self,
        filename: Optional[str],
        allowed: Iterable[str] = ALLOWED_EXTENSIONS,
        message: Optional[str] = None,
    ) -> str:
        """Return the lowercased extension (with dot) or raise ValidationError."""
        allowed = set(allowed)
        ext = Path(filename or "").suffix.lower()
        if ext not in allowed:
            raise ValidationError(
                message=message or (
                    f"File type '{ext or 'none'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(allowed))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(allowed)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Reject empty files and files above settings.max_file_size.

        Content-Length is checked first since some clients send it; the
        actual byte count is checked regardless because headers can lie.
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty.", field="file")

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="file",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_mime_type(
        self,
        content: bytes,
        allowed: Optional[Iterable[str]] = ALLOWED_MIME_TYPES,
    ) -> str:
        """
        Detect the real type from the header bytes.

        allowed=None accepts any image/* type (promotion images).
        """
        try:
            mime_type = magic.from_buffer(content[:4096], mime=True)
        except magic.MagicException as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if allowed is None:
            accepted = mime_type.startswith("image/")
        else:
            accepted = mime_type in set(allowed)

        if not accepted:
            raise ValidationError(
                message=f"File content type '{mime_type}' is not supported. The file must be a valid image.",
                field="file",
                context={"detected_mime": mime_type},
            )
        return mime_type

    def validate_image(
        self,
        filename: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
        extension_message: Optional[str] = None,
    ) -> str:
        """Extension, size and MIME check for JPG/PNG uploads. Returns the extension."""
        ext = self.validate_extension(filename, message=extension_message)
        self.validate_size(content_length, len(content))
        self.validate_mime_type(content)
        return ext

    # ── Keys and URLs ─────────────────────────────────────────────────────

    @staticmethod
    def submission_key(issue_id: int, submission_id: int, extension: str) -> str:
        return f"issues/{issue_id}/submissions/{submission_id}{extension}"

    @staticmethod
    def cover_key(issue_id: int, extension: str) -> str:
        return f"issues/{issue_id}/cover/{uuid.uuid4().hex}{extension}"

    @staticmethod
    def promotion_key(config_id: int, extension: str) -> str:
        return f"promotion/{config_id}/{uuid.uuid4().hex}{extension}"

    def url_for(self, key: str) -> str:
        return f"{self.url_prefix}/{key.lstrip('/')}"

    def key_from_url(self, url: Optional[str]) -> Optional[str]:
        """Relative key for a URL this service issued; None for foreign URLs."""
        if not url:
            return None
        prefix = self.url_prefix + "/"
        if not url.startswith(prefix):
            return None
        return url[len(prefix):]

    def resolve(self, key: str) -> Path:
        """Absolute path for a key. Raises ValidationError if it leaves the root."""
        candidate = (self.storage_root / key).resolve()
        if candidate != self.storage_root and self.storage_root not in candidate.parents:
            raise ValidationError(message="Invalid file path", field="path", context={"path": key})
        return candidate

    @staticmethod
    def content_type_for(key: str) -> str:
        return CONTENT_TYPES.get(Path(key).suffix.lower(), "application/octet-stream")

    # ── I/O ───────────────────────────────────────────────────────────────

    async def store(self, key: str, content: bytes) -> str:
        """Write content under key (overwriting) and return its public URL."""
        path = self.resolve(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"key": key, "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", key, len(content))
        return self.url_for(key)

    async def read(self, key: str) -> bytes:
        path = self.resolve(key)
        if not path.is_file():
            raise NotFoundError(resource="file", resource_id=key)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except OSError as e:
            logger.error("Failed to read file %s: %s", key, str(e))
            raise FileStorageError(message="Failed to read stored file.", context={"key": key})

    async def exists(self, key: str) -> bool:
        return self.resolve(key).is_file()

    async def delete(self, key: str) -> bool:
        """Remove a stored file. Returns False when it was already gone."""
        path = self.resolve(key)
        if not path.exists():
            logger.debug("Delete: file already gone: %s", key)
            return False
        try:
            await aiofiles.os.remove(path)
        except OSError as e:
            raise FileStorageError(
                message="Failed to delete stored file.",
                context={"key": key, "os_error": str(e)},
            )
        logger.info("Deleted file: %s", key)
        return True

    async def delete_url(self, url: Optional[str]) -> bool:
        """Delete the file behind a URL we issued. Foreign URLs are left alone."""
        key = self.key_from_url(url)
        if key is None:
            return False
        return await self.delete(key)


storage_service = StorageService()
