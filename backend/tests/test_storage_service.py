"""
Munich Weekly Backend — Storage & Image Dimension Tests
========================================================

What we test:
    ✅ Extension, size and MIME validation (libmagic on real image bytes)
    ✅ Key layout and URL ↔ key mapping
    ✅ Path traversal is rejected
    ✅ store / read / delete round trip on a temporary root
    ✅ Pillow dimension reads, local lookup through storage, cache
"""

from unittest.mock import AsyncMock, patch

import pytest

from munich_weekly.exceptions import NotFoundError, ValidationError
from munich_weekly.services.image_dimension_service import (
    ImageDimensionService,
    ImageDimensions,
    read_dimensions,
)
from munich_weekly.services.storage_service import StorageService


@pytest.fixture
def storage(temp_storage):
    return StorageService(storage_root=temp_storage, url_prefix="/uploads")


class TestValidation:
    # ── Extension ─────────────────────────────────────────────────────────

    @pytest.mark.parametrize("filename", ["photo.jpg", "photo.JPEG", "photo.png"])
    def test_allowed_extensions(self, storage, filename):
        assert storage.validate_extension(filename) in {".jpg", ".jpeg", ".png"}

    @pytest.mark.parametrize("filename", ["animation.gif", "document.pdf", "noextension", None])
    def test_rejected_extensions(self, storage, filename):
        with pytest.raises(ValidationError, match="not supported"):
            storage.validate_extension(filename)

    def test_custom_extension_message(self, storage):
        with pytest.raises(ValidationError, match="Only JPG, JPEG, and PNG files are allowed"):
            storage.validate_extension("cover.bmp", message="Only JPG, JPEG, and PNG files are allowed")

    def test_custom_allowed_set(self, storage):
        assert storage.validate_extension("banner.webp", allowed=(".webp", ".gif")) == ".webp"

    # ── Size ──────────────────────────────────────────────────────────────

    def test_empty_file_rejected(self, storage):
        with pytest.raises(ValidationError, match="empty"):
            storage.validate_size(0, 0)

    def test_reported_size_over_limit_rejected(self, storage):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            storage.validate_size(50 * 1024 * 1024, 10)

    def test_actual_size_over_limit_rejected(self, storage):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            storage.validate_size(None, 10 * 1024 * 1024 + 1)

    def test_size_within_limit(self, storage):
        storage.validate_size(1000, 1000)

    # ── MIME ──────────────────────────────────────────────────────────────

    def test_png_content_accepted(self, storage, sample_image_bytes):
        assert storage.validate_mime_type(sample_image_bytes) == "image/png"

    def test_jpeg_content_accepted(self, storage, make_image_bytes):
        assert storage.validate_mime_type(make_image_bytes(40, 30, "JPEG")) == "image/jpeg"

    def test_text_renamed_as_image_rejected(self, storage):
        with pytest.raises(ValidationError, match="not supported"):
            storage.validate_mime_type(b"just some text pretending to be a photo")

    def test_any_image_type_when_unrestricted(self, storage, make_image_bytes):
        assert storage.validate_mime_type(make_image_bytes(10, 10, "GIF"), allowed=None) == "image/gif"

    def test_gif_rejected_for_default_types(self, storage, make_image_bytes):
        with pytest.raises(ValidationError):
            storage.validate_mime_type(make_image_bytes(10, 10, "GIF"))

    def test_validate_image_returns_extension(self, storage, sample_image_bytes):
        ext = storage.validate_image("shot.PNG", sample_image_bytes, len(sample_image_bytes))
        assert ext == ".png"


class TestKeysAndPaths:
    def test_submission_key(self):
        assert StorageService.submission_key(5, 42, ".jpg") == "issues/5/submissions/42.jpg"

    def test_cover_and_promotion_keys_are_unique(self):
        assert StorageService.cover_key(1, ".png") != StorageService.cover_key(1, ".png")
        assert StorageService.promotion_key(3, ".png").startswith("promotion/3/")

    def test_url_round_trip(self, storage):
        url = storage.url_for("issues/1/submissions/2.png")
        assert url == "/uploads/issues/1/submissions/2.png"
        assert storage.key_from_url(url) == "issues/1/submissions/2.png"

    def test_foreign_url_has_no_key(self, storage):
        assert storage.key_from_url("https://cdn.example.com/x.jpg") is None
        assert storage.key_from_url(None) is None

    @pytest.mark.parametrize("key", ["../secret.txt", "issues/../../etc/passwd"])
    def test_traversal_rejected(self, storage, key):
        with pytest.raises(ValidationError, match="Invalid file path"):
            storage.resolve(key)

    def test_content_type_for(self):
        assert StorageService.content_type_for("a/b.JPG") == "image/jpeg"
        assert StorageService.content_type_for("a/b.bin") == "application/octet-stream"


class TestStorageIO:
    @pytest.mark.asyncio
    async def test_store_read_delete(self, storage, sample_image_bytes):
        key = "issues/1/submissions/7.png"
        url = await storage.store(key, sample_image_bytes)

        assert url == "/uploads/issues/1/submissions/7.png"
        assert await storage.exists(key)
        assert await storage.read(key) == sample_image_bytes

        assert await storage.delete_url(url) is True
        assert not await storage.exists(key)
        assert await storage.delete(key) is False

    @pytest.mark.asyncio
    async def test_read_missing_file(self, storage):
        with pytest.raises(NotFoundError):
            await storage.read("issues/1/submissions/404.png")

    @pytest.mark.asyncio
    async def test_delete_foreign_url_is_noop(self, storage):
        assert await storage.delete_url("https://cdn.example.com/x.jpg") is False


class TestImageDimensions:
    def test_read_dimensions(self, make_image_bytes):
        assert read_dimensions(make_image_bytes(1920, 1080)) == ImageDimensions(1920, 1080)

    def test_read_dimensions_garbage(self):
        assert read_dimensions(b"definitely not an image") is None

    @pytest.mark.asyncio
    async def test_local_lookup_through_storage(self, storage, make_image_bytes):
        url = await storage.store("issues/2/submissions/1.png", make_image_bytes(300, 600))
        service = ImageDimensionService(storage=storage, cache_ttl=60)

        dims = await service.get_dimensions(url)

        assert dims == ImageDimensions(300, 600)
        assert dims.aspect_ratio == pytest.approx(0.5)

    @pytest.mark.asyncio
    async def test_missing_local_file_gives_none(self, storage):
        service = ImageDimensionService(storage=storage, cache_ttl=60)
        assert await service.get_dimensions("/uploads/issues/9/submissions/9.png") is None

    @pytest.mark.asyncio
    async def test_empty_and_unsupported_urls(self, storage):
        service = ImageDimensionService(storage=storage, cache_ttl=60)
        assert await service.get_dimensions(None) is None
        assert await service.get_dimensions("ftp://example.com/a.jpg") is None

    @pytest.mark.asyncio
    async def test_remote_lookup_is_cached(self, storage):
        service = ImageDimensionService(storage=storage, cache_ttl=60)
        with patch.object(
            service, "_fetch_remote_with_retry", new=AsyncMock(return_value=ImageDimensions(1600, 900))
        ) as fetch:
            first = await service.get_dimensions("https://cdn.example.com/a.jpg")
            second = await service.get_dimensions("https://cdn.example.com/a.jpg")

        assert first == second == ImageDimensions(1600, 900)
        fetch.assert_awaited_once()
