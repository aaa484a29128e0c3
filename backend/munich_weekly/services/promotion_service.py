"""
Munich Weekly Backend — Promotion Service
==========================================

What:  The optional promotion page: a navigation entry plus an ordered
       set of images at /promotion/{pageUrl} on the frontend.
Who:   /api/promotion routes.

The admin screen edits a single config ("the first one"): PUT
/admin/config updates it when it exists and creates it otherwise.
page_url is unique across configs.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.database import utcnow
from munich_weekly.exceptions import (
    ConflictError,
    DatabaseError,
    FileStorageError,
    NotFoundError,
    ValidationError,
)
from munich_weekly.models.promotion import PromotionConfig, PromotionImage
from munich_weekly.schemas.common import UploadResponse
from munich_weekly.schemas.promotion import (
    PromotionConfigRequest,
    PromotionConfigResponse,
    PromotionImageCreateRequest,
    PromotionImageResponse,
    PromotionPageResponse,
)
from munich_weekly.services.image_dimension_service import read_dimensions
from munich_weekly.services.storage_service import storage_service

logger = logging.getLogger(__name__)


class PromotionService:
    # ── Helpers ───────────────────────────────────────────────────────────

    async def _first_config(self, db: AsyncSession, enabled_only: bool = False) -> Optional[PromotionConfig]:
        stmt = select(PromotionConfig)
        if enabled_only:
            stmt = stmt.where(PromotionConfig.is_enabled.is_(True))
        result = await db.execute(stmt.order_by(PromotionConfig.id.asc()).limit(1))
        return result.scalars().first()

    async def _get_config_entity(self, db: AsyncSession, config_id: int) -> PromotionConfig:
        config = await db.get(PromotionConfig, config_id)
        if config is None:
            raise NotFoundError(resource="Promotion config", resource_id=config_id)
        return config

    async def _get_image_entity(self, db: AsyncSession, image_id: int) -> PromotionImage:
        image = await db.get(PromotionImage, image_id)
        if image is None:
            raise NotFoundError(resource="Promotion image", resource_id=image_id)
        return image

    async def _images(self, db: AsyncSession, config_id: int) -> List[PromotionImage]:
        result = await db.execute(
            select(PromotionImage)
            .where(PromotionImage.promotion_config_id == config_id)
            .order_by(PromotionImage.display_order.asc(), PromotionImage.id.asc())
        )
        return list(result.scalars().all())

    async def _page_url_taken(
        self, db: AsyncSession, page_url: str, exclude_id: Optional[int] = None
    ) -> bool:
        stmt = select(func.count(PromotionConfig.id)).where(PromotionConfig.page_url == page_url)
        if exclude_id is not None:
            stmt = stmt.where(PromotionConfig.id != exclude_id)
        result = await db.execute(stmt)
        return int(result.scalar_one()) > 0

    async def _delete_file_logged(self, image_url: Optional[str]) -> None:
        try:
            await storage_service.delete_url(image_url)
        except (FileStorageError, ValidationError) as e:
            logger.warning("Failed to delete promotion file %s: %s", image_url, e.message)

    # ── Public ────────────────────────────────────────────────────────────

    async def enabled_config(self, db: AsyncSession) -> Optional[PromotionConfigResponse]:
        config = await self._first_config(db, enabled_only=True)
        return PromotionConfigResponse.model_validate(config) if config is not None else None

    async def page(self, db: AsyncSession, page_url: str) -> PromotionPageResponse:
        result = await db.execute(select(PromotionConfig).where(PromotionConfig.page_url == page_url))
        config = result.scalars().first()
        if config is None or not config.is_enabled:
            raise NotFoundError(
                resource="Promotion page",
                message=f"Promotion page '{page_url}' was not found",
                context={"page_url": page_url},
            )
        images = await self._images(db, config.id)
        return PromotionPageResponse(
            config=PromotionConfigResponse.model_validate(config),
            images=[PromotionImageResponse.model_validate(i) for i in images],
        )

    # ── Admin: configs ────────────────────────────────────────────────────

    async def list_configs(self, db: AsyncSession) -> List[PromotionConfigResponse]:
        result = await db.execute(select(PromotionConfig).order_by(PromotionConfig.id.asc()))
        return [PromotionConfigResponse.model_validate(c) for c in result.scalars().all()]

    async def get_config(self, db: AsyncSession, config_id: int) -> PromotionConfigResponse:
        return PromotionConfigResponse.model_validate(await self._get_config_entity(db, config_id))

    async def current_config(self, db: AsyncSession) -> PromotionConfigResponse:
        """The first config, or an unsaved disabled default for the admin form."""
        config = await self._first_config(db)
        if config is None:
            return PromotionConfigResponse()
        return PromotionConfigResponse.model_validate(config)

    async def upsert_config(
        self, db: AsyncSession, request: PromotionConfigRequest
    ) -> PromotionConfigResponse:
        """
        Create the first config or update it in place.

        Raises:
            ValidationError: page URL or navigation title blank after trimming
            ConflictError:   page URL already used by another config
        """
        page_url = request.page_url.strip()
        nav_title = request.nav_title.strip()
        if not page_url:
            raise ValidationError(message="Page URL cannot be blank", field="pageUrl")
        if not nav_title:
            raise ValidationError(message="Navigation title cannot be blank", field="navTitle")

        config = await self._first_config(db)

        exclude_id = config.id if config is not None else None
        if await self._page_url_taken(db, page_url, exclude_id=exclude_id):
            raise ConflictError(message="Page URL already exists", context={"page_url": page_url})

        now = utcnow()
        if config is None:
            config = PromotionConfig(created_at=now)
            db.add(config)

        config.is_enabled = request.is_enabled
        config.nav_title = nav_title
        config.page_url = page_url
        config.description = request.description
        config.updated_at = now

        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to save promotion config: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "upsert_promotion_config"})

        logger.info("Promotion config %d saved (enabled=%s, url=%s)", config.id, config.is_enabled, page_url)
        return PromotionConfigResponse.model_validate(config)

    async def delete_config(self, db: AsyncSession, config_id: int) -> None:
        """Delete image files (failures logged), then image rows, then the config."""
        config = await self._get_config_entity(db, config_id)
        images = await self._images(db, config_id)

        for image in images:
            await self._delete_file_logged(image.image_url)

        await db.execute(delete(PromotionImage).where(PromotionImage.promotion_config_id == config_id))
        await db.delete(config)
        await db.flush()
        logger.info("Promotion config %d deleted with %d images", config_id, len(images))

    # ── Admin: images ─────────────────────────────────────────────────────

    async def list_images(self, db: AsyncSession, config_id: int) -> List[PromotionImageResponse]:
        await self._get_config_entity(db, config_id)
        return [PromotionImageResponse.model_validate(i) for i in await self._images(db, config_id)]

    async def add_image(
        self, db: AsyncSession, request: PromotionImageCreateRequest
    ) -> PromotionImageResponse:
        config = await self._get_config_entity(db, request.promotion_config_id)

        display_order = request.display_order
        if display_order is None:
            result = await db.execute(
                select(func.max(PromotionImage.display_order)).where(
                    PromotionImage.promotion_config_id == config.id
                )
            )
            current_max = result.scalar_one()
            display_order = (current_max or 0) + 1

        image = PromotionImage(
            promotion_config_id=config.id,
            image_title=request.image_title,
            image_description=request.image_description,
            display_order=display_order,
        )
        db.add(image)
        await db.flush()
        logger.info("Promotion image %d added to config %d at %d", image.id, config.id, display_order)
        return PromotionImageResponse.model_validate(image)

    async def upload_image(
        self,
        db: AsyncSession,
        image_id: int,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
    ) -> UploadResponse:
        image = await self._get_image_entity(db, image_id)

        if not content_type or not content_type.startswith("image/"):
            raise ValidationError(message="File must be an image", field="file", context={"content_type": content_type})
        storage_service.validate_size(content_length, len(content))
        storage_service.validate_mime_type(content, allowed=None)

        ext = storage_service.validate_extension(
            filename, allowed=(".jpg", ".jpeg", ".png", ".gif", ".webp")
        )
        url = await storage_service.store(storage_service.promotion_key(image.promotion_config_id, ext), content)

        previous_url = image.image_url
        image.image_url = url
        dims = read_dimensions(content)
        if dims is None:
            image.set_image_dimensions(None, None)
        else:
            image.set_image_dimensions(dims.width, dims.height)
        await db.flush()

        if previous_url and previous_url != url:
            await self._delete_file_logged(previous_url)

        logger.info("Promotion image %d uploaded: %s", image_id, url)
        return UploadResponse(success=True, url=url, message="Image uploaded successfully")

    async def delete_image(self, db: AsyncSession, image_id: int) -> None:
        image = await self._get_image_entity(db, image_id)
        url = image.image_url
        await db.delete(image)
        await db.flush()
        await self._delete_file_logged(url)
        logger.info("Promotion image %d deleted", image_id)


promotion_service = PromotionService()
