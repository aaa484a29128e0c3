"""
Munich Weekly Backend — Gallery Issue Service (public reads)
=============================================================

What:  Read side of the curated issue gallery: published configs, their
       ordered submissions and aggregate stats.
Who:   /api/gallery routes; GalleryAdminService reuses the builders.

A config's submissions are its GallerySubmissionOrder rows sorted by
display_order. Only orders whose submission is still `selected` are
shown; an order left behind by a later status change is skipped.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.exceptions import NotFoundError
from munich_weekly.models.gallery import GalleryIssueConfig, GallerySubmissionOrder
from munich_weekly.schemas.gallery import (
    GalleryConfigDetail,
    GalleryConfigSummary,
    GalleryStatsResponse,
    GallerySubmissionView,
    OrderedSubmission,
)

logger = logging.getLogger(__name__)


async def count_orders_for(db: AsyncSession, config_ids: Iterable[int]) -> Dict[int, int]:
    ids = list(config_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(GallerySubmissionOrder.gallery_config_id, func.count(GallerySubmissionOrder.id))
        .where(GallerySubmissionOrder.gallery_config_id.in_(ids))
        .group_by(GallerySubmissionOrder.gallery_config_id)
    )
    counts = {cid: 0 for cid in ids}
    for config_id, count in result.all():
        counts[config_id] = int(count)
    return counts


async def load_orders(db: AsyncSession, config_id: int) -> List[GallerySubmissionOrder]:
    result = await db.execute(
        select(GallerySubmissionOrder)
        .where(GallerySubmissionOrder.gallery_config_id == config_id)
        .order_by(GallerySubmissionOrder.display_order.asc(), GallerySubmissionOrder.id.asc())
    )
    return list(result.scalars().all())


def to_ordered_submissions(orders: Iterable[GallerySubmissionOrder]) -> List[OrderedSubmission]:
    return [
        OrderedSubmission(
            display_order=order.display_order,
            submission=GallerySubmissionView.model_validate(order.submission),
        )
        for order in orders
        if order.is_submission_valid()
    ]


def to_summary(config: GalleryIssueConfig, submission_count: int) -> GalleryConfigSummary:
    summary = GalleryConfigSummary.model_validate(config)
    return summary.model_copy(update={"submission_count": submission_count})


async def to_detail(db: AsyncSession, config: GalleryIssueConfig) -> GalleryConfigDetail:
    orders = await load_orders(db, config.id)
    submissions = to_ordered_submissions(orders)
    summary = GalleryConfigSummary.model_validate(config)
    return GalleryConfigDetail(
        **summary.model_dump(exclude={"submission_count"}),
        submission_count=len(submissions),
        submissions=submissions,
    )


class GalleryIssueService:
    async def find_config(self, db: AsyncSession, issue_id: int) -> Optional[GalleryIssueConfig]:
        result = await db.execute(
            select(GalleryIssueConfig).where(GalleryIssueConfig.issue_id == issue_id)
        )
        return result.scalars().first()

    async def get_config_entity(self, db: AsyncSession, issue_id: int) -> GalleryIssueConfig:
        config = await self.find_config(db, issue_id)
        if config is None:
            raise NotFoundError(
                resource="Gallery config",
                message=f"Gallery config for issue '{issue_id}' was not found",
                context={"issue_id": issue_id},
            )
        return config

    async def list_published(self, db: AsyncSession) -> List[GalleryConfigSummary]:
        """Published configs in display order, each with its submission count."""
        result = await db.execute(
            select(GalleryIssueConfig)
            .where(GalleryIssueConfig.is_published.is_(True))
            .order_by(GalleryIssueConfig.display_order.asc(), GalleryIssueConfig.id.asc())
        )
        configs = list(result.scalars().all())
        counts = await count_orders_for(db, [c.id for c in configs])
        return [to_summary(c, counts.get(c.id, 0)) for c in configs]

    async def get_published_detail(self, db: AsyncSession, issue_id: int) -> GalleryConfigDetail:
        """
        Public detail of one gallery issue with its ordered submissions.

        Raises:
            NotFoundError: no config for the issue, or config unpublished
        """
        config = await self.find_config(db, issue_id)
        if config is None or not config.is_published:
            raise NotFoundError(
                resource="Gallery issue",
                message=f"Published gallery for issue '{issue_id}' was not found",
                context={"issue_id": issue_id},
            )
        return await to_detail(db, config)

    async def get_ordered_submissions(self, db: AsyncSession, issue_id: int) -> List[OrderedSubmission]:
        """Admin view: works for unpublished configs too."""
        config = await self.get_config_entity(db, issue_id)
        return to_ordered_submissions(await load_orders(db, config.id))

    async def stats(self, db: AsyncSession) -> GalleryStatsResponse:
        """Counts cover published configs only."""
        published = await db.execute(
            select(func.count(GalleryIssueConfig.id)).where(GalleryIssueConfig.is_published.is_(True))
        )
        submissions = await db.execute(
            select(func.count(GallerySubmissionOrder.id))
            .join(GalleryIssueConfig, GalleryIssueConfig.id == GallerySubmissionOrder.gallery_config_id)
            .where(GalleryIssueConfig.is_published.is_(True))
        )
        return GalleryStatsResponse(
            total_published_issues=int(published.scalar_one()),
            total_submissions=int(submissions.scalar_one()),
        )


gallery_issue_service = GalleryIssueService()
