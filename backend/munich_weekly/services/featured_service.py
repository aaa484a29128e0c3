"""
Munich Weekly Backend — Featured Carousel Service
==================================================

What:  Homepage carousel configuration: which submissions are featured,
       in what order, and how fast the carousel advances.
How:   A GalleryFeaturedConfig stores two parallel JSON lists,
       submission_ids and display_order. At most one config is active;
       saving an active config deactivates every other one.

Featured submissions are resolved at read time, so a submission deleted
after it was featured simply drops out of the carousel.
"""

import logging
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.database import utcnow
from munich_weekly.exceptions import DatabaseError, NotFoundError, ValidationError
from munich_weekly.models.gallery import DEFAULT_FEATURED_TITLE, GalleryFeaturedConfig
from munich_weekly.models.submission import Submission
from munich_weekly.models.user import User
from munich_weekly.schemas.gallery import (
    FeaturedConfigRequest,
    FeaturedConfigResponse,
    FeaturedStatsResponse,
    FeaturedSubmissionsResponse,
    GallerySubmissionView,
    OrderedSubmission,
)

logger = logging.getLogger(__name__)


class FeaturedService:
    async def _active_config(self, db: AsyncSession) -> Optional[GalleryFeaturedConfig]:
        result = await db.execute(
            select(GalleryFeaturedConfig)
            .where(GalleryFeaturedConfig.is_active.is_(True))
            .order_by(GalleryFeaturedConfig.updated_at.desc(), GalleryFeaturedConfig.id.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def _validate_submission_ids(self, db: AsyncSession, submission_ids: List[int]) -> None:
        if not submission_ids:
            return
        result = await db.execute(select(Submission.id).where(Submission.id.in_(submission_ids)))
        existing = set(result.scalars().all())
        missing = [sid for sid in submission_ids if sid not in existing]
        if missing:
            raise ValidationError(
                message=f"The following submission IDs do not exist: {missing}",
                field="submissionIds",
                context={"missing": missing},
            )

    async def _deactivate_others(self, db: AsyncSession, keep_id: Optional[int]) -> None:
        stmt = update(GalleryFeaturedConfig).where(GalleryFeaturedConfig.is_active.is_(True))
        if keep_id is not None:
            stmt = stmt.where(GalleryFeaturedConfig.id != keep_id)
        await db.execute(
            stmt.values(is_active=False, updated_at=utcnow()).execution_options(
                synchronize_session="fetch"
            )
        )

    # ── Public reads ──────────────────────────────────────────────────────

    async def featured_submissions(self, db: AsyncSession) -> FeaturedSubmissionsResponse:
        config = await self._active_config(db)
        if config is None or not config.submission_ids:
            return FeaturedSubmissionsResponse()

        result = await db.execute(select(Submission).where(Submission.id.in_(config.submission_ids)))
        by_id = {s.id: s for s in result.scalars().all()}

        entries = []
        orders = config.display_order or []
        for index, submission_id in enumerate(config.submission_ids):
            submission = by_id.get(submission_id)
            if submission is None:
                logger.warning("Featured submission %d no longer exists", submission_id)
                continue
            order = orders[index] if index < len(orders) else index + 1
            entries.append((order, index, submission))
        entries.sort(key=lambda entry: (entry[0], entry[1]))

        return FeaturedSubmissionsResponse(
            submissions=[
                OrderedSubmission(display_order=order, submission=GallerySubmissionView.model_validate(s))
                for order, _, s in entries
            ],
            autoplay_interval=config.autoplay_interval,
            config_id=config.id,
        )

    async def active_config(self, db: AsyncSession) -> Optional[FeaturedConfigResponse]:
        config = await self._active_config(db)
        return FeaturedConfigResponse.model_validate(config) if config is not None else None

    async def stats(self, db: AsyncSession) -> FeaturedStatsResponse:
        config = await self._active_config(db)
        total = await db.execute(select(func.count(GalleryFeaturedConfig.id)))
        return FeaturedStatsResponse(
            total_featured_submissions=config.featured_count if config is not None else 0,
            has_active_config=config is not None,
            total_configs=int(total.scalar_one()),
        )

    async def preview_submission(self, db: AsyncSession, submission_id: int) -> GallerySubmissionView:
        submission = await db.get(Submission, submission_id)
        if submission is None:
            raise NotFoundError(resource="Submission", resource_id=submission_id)
        return GallerySubmissionView.model_validate(submission)

    async def is_featured(self, db: AsyncSession, submission_id: int) -> bool:
        config = await self._active_config(db)
        return config is not None and config.contains_submission(submission_id)

    # ── Admin ─────────────────────────────────────────────────────────────

    async def list_configs(self, db: AsyncSession) -> List[FeaturedConfigResponse]:
        result = await db.execute(
            select(GalleryFeaturedConfig).order_by(
                GalleryFeaturedConfig.updated_at.desc(), GalleryFeaturedConfig.id.desc()
            )
        )
        return [FeaturedConfigResponse.model_validate(c) for c in result.scalars().all()]

    async def save_config(
        self, db: AsyncSession, admin: User, request: FeaturedConfigRequest
    ) -> FeaturedConfigResponse:
        """Create, or update when request.id is set. Saving as active deactivates the rest."""
        if len(request.submission_ids) != len(request.display_order):
            raise ValidationError(
                message="Submission IDs and Display Order arrays have inconsistent lengths",
                context={
                    "submission_ids": len(request.submission_ids),
                    "display_order": len(request.display_order),
                },
            )
        await self._validate_submission_ids(db, request.submission_ids)

        now = utcnow()
        try:
            if request.id is not None:
                config = await db.get(GalleryFeaturedConfig, request.id)
                if config is None:
                    raise NotFoundError(resource="Featured config", resource_id=request.id)
            else:
                config = GalleryFeaturedConfig(created_by_user_id=admin.id, created_at=now)
                db.add(config)

            config.submission_ids = list(request.submission_ids)
            config.display_order = list(request.display_order)
            config.autoplay_interval = request.autoplay_interval
            config.is_active = request.is_active
            config.config_title = request.config_title or DEFAULT_FEATURED_TITLE
            config.config_description = request.config_description
            config.updated_at = now
            await db.flush()

            if config.is_active:
                await self._deactivate_others(db, keep_id=config.id)
                await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to save featured config: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "save_featured_config"})

        logger.info(
            "Featured config %d saved: %d submissions, active=%s",
            config.id, config.featured_count, config.is_active,
        )
        return FeaturedConfigResponse.model_validate(config)

    async def delete_config(self, db: AsyncSession, config_id: int) -> None:
        config = await db.get(GalleryFeaturedConfig, config_id)
        if config is None:
            raise NotFoundError(resource="Featured config", resource_id=config_id)
        await db.delete(config)
        await db.flush()
        logger.info("Featured config %d deleted", config_id)


featured_service = FeaturedService()
