"""
Munich Weekly Backend — Gallery Admin Service
==============================================

What:  Curating issue galleries: creating configs, editing them,
       reconciling submission orders and uploading cover images.
Who:   /api/gallery/admin routes (admin only).

Config positioning:
    New configs are placed by issue id, newer issues first. The new
    config takes position 1 + (number of configs with a higher issue id);
    every config already at or after that position moves down by one.

Order reconciliation (PUT .../order, or PUT with submissionOrders):
    request entries are keyed by submission id
    existing order, still requested   → display_order updated
    new submission                    → validated (selected, same issue), inserted
    existing order, not requested     → deleted
    display orders must be >= 1 and unique within the request
"""

import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.database import utcnow
from munich_weekly.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError
from munich_weekly.models.gallery import (
    GalleryIssueConfig,
    GallerySubmissionOrder,
    default_config_title,
)
from munich_weekly.models.issue import Issue
from munich_weekly.models.submission import STATUS_SELECTED, Submission
from munich_weekly.models.user import User
from munich_weekly.schemas.common import UploadResponse
from munich_weekly.schemas.gallery import (
    GalleryConfigCreateRequest,
    GalleryConfigDetail,
    GalleryConfigSummary,
    GalleryConfigUpdateRequest,
    SubmissionOrderItem,
)
from munich_weekly.schemas.issue import IssueResponse
from munich_weekly.schemas.submission import SubmissionResponse
from munich_weekly.services.gallery_issue_service import (
    count_orders_for,
    gallery_issue_service,
    load_orders,
    to_detail,
    to_summary,
)
from munich_weekly.services.issue_service import issue_service
from munich_weekly.services.storage_service import storage_service
from munich_weekly.services.submission_service import submission_service, to_submission_response

logger = logging.getLogger(__name__)

COVER_EXTENSION_MESSAGE = "Only JPG, JPEG, and PNG files are allowed"


def validate_order_items(items: Sequence[SubmissionOrderItem]) -> None:
    """Display orders must be positive and unique; submissions may appear once."""
    seen_orders = set()
    seen_submissions = set()
    for item in items:
        if item.display_order < 1:
            raise ValidationError(
                message=f"Display order must be at least 1: {item.display_order}",
                field="displayOrder",
                context={"submission_id": item.submission_id},
            )
        if item.display_order in seen_orders:
            raise ValidationError(
                message=f"Duplicate display order: {item.display_order}",
                field="displayOrder",
            )
        if item.submission_id in seen_submissions:
            raise ValidationError(
                message=f"Duplicate submission in order list: {item.submission_id}",
                field="submissionId",
            )
        seen_orders.add(item.display_order)
        seen_submissions.add(item.submission_id)


class GalleryAdminService:
    # ── Helpers ───────────────────────────────────────────────────────────

    async def _validated_submission(
        self, db: AsyncSession, config: GalleryIssueConfig, submission_id: int
    ) -> Submission:
        submission = await db.get(Submission, submission_id)
        if submission is None:
            raise NotFoundError(resource="Submission", resource_id=submission_id)
        if submission.status != STATUS_SELECTED:
            raise ValidationError(
                message=f"Submission must have 'selected' status: {submission_id}",
                context={"submission_id": submission_id, "status": submission.status},
            )
        if submission.issue_id != config.issue_id:
            raise ValidationError(
                message=f"Submission does not belong to the configured issue: {submission_id}",
                context={"submission_id": submission_id, "issue_id": config.issue_id},
            )
        return submission

    async def _next_position(self, db: AsyncSession, issue_id: int) -> int:
        """Position for a new config and shift the configs at or after it."""
        newer = await db.execute(
            select(func.count(GalleryIssueConfig.id)).where(GalleryIssueConfig.issue_id > issue_id)
        )
        position = int(newer.scalar_one()) + 1
        await db.execute(
            update(GalleryIssueConfig)
            .where(GalleryIssueConfig.display_order >= position)
            .values(display_order=GalleryIssueConfig.display_order + 1, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        return position

    async def reconcile_orders(
        self, db: AsyncSession, config: GalleryIssueConfig, items: Sequence[SubmissionOrderItem]
    ) -> None:
        validate_order_items(items)

        existing: Dict[int, GallerySubmissionOrder] = {
            order.submission_id: order for order in await load_orders(db, config.id)
        }
        requested = {item.submission_id for item in items}

        # removals first so that freed display orders can be reused
        for submission_id, order in list(existing.items()):
            if submission_id not in requested:
                await db.delete(order)
                del existing[submission_id]
        await db.flush()

        now = utcnow()
        for item in items:
            order = existing.get(item.submission_id)
            if order is not None:
                if order.display_order != item.display_order:
                    order.display_order = item.display_order
                    order.updated_at = now
                continue
            submission = await self._validated_submission(db, config, item.submission_id)
            db.add(
                GallerySubmissionOrder(
                    gallery_config_id=config.id,
                    submission=submission,
                    display_order=item.display_order,
                )
            )

        config.updated_at = now
        await db.flush()
        logger.info("Reconciled %d orders for gallery config %d", len(items), config.id)

    # ── Queries ───────────────────────────────────────────────────────────

    async def list_configs(self, db: AsyncSession) -> List[GalleryConfigSummary]:
        result = await db.execute(
            select(GalleryIssueConfig).order_by(
                GalleryIssueConfig.display_order.asc(), GalleryIssueConfig.id.asc()
            )
        )
        configs = list(result.scalars().all())
        counts = await count_orders_for(db, [c.id for c in configs])
        return [to_summary(c, counts.get(c.id, 0)) for c in configs]

    async def get_config(self, db: AsyncSession, issue_id: int) -> GalleryConfigDetail:
        config = await gallery_issue_service.get_config_entity(db, issue_id)
        return await to_detail(db, config)

    async def selected_not_configured(self, db: AsyncSession, issue_id: int) -> List[SubmissionResponse]:
        """Selected submissions of an issue that are not yet ordered in its config, oldest first."""
        await issue_service.get_issue_entity(db, issue_id)
        selected = await submission_service.list_selected_entities(db, issue_id)
        config = await gallery_issue_service.find_config(db, issue_id)
        ordered_ids = set()
        if config is not None:
            ordered_ids = {order.submission_id for order in await load_orders(db, config.id)}
        return [to_submission_response(s) for s in selected if s.id not in ordered_ids]

    async def available_issues(self, db: AsyncSession) -> List[IssueResponse]:
        """Issues without a gallery config, newest submission window first."""
        configured = select(GalleryIssueConfig.issue_id)
        result = await db.execute(
            select(Issue)
            .where(Issue.id.not_in(configured))
            .order_by(Issue.submission_start.desc(), Issue.id.desc())
        )
        return [IssueResponse.model_validate(issue) for issue in result.scalars().all()]

    # ── Mutations ─────────────────────────────────────────────────────────

    async def create_config(
        self, db: AsyncSession, admin: User, request: GalleryConfigCreateRequest
    ) -> GalleryConfigDetail:
        issue = await issue_service.get_issue_entity(db, request.issue_id)
        if await gallery_issue_service.find_config(db, issue.id) is not None:
            raise ConflictError(
                message=f"Gallery config already exists for issue: {issue.id}",
                context={"issue_id": issue.id},
            )
        if request.submission_orders is not None:
            validate_order_items(request.submission_orders)

        try:
            position = await self._next_position(db, issue.id)
            config = GalleryIssueConfig(
                issue=issue,
                cover_image_url=request.cover_image_url,
                is_published=request.is_published,
                display_order=position,
                config_title=request.config_title or default_config_title(issue.title),
                config_description=request.config_description,
                created_by_user_id=admin.id,
            )
            db.add(config)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to create gallery config for issue %d: %s", issue.id, str(e), exc_info=True)
            raise DatabaseError(context={"operation": "create_gallery_config", "issue_id": issue.id})

        if request.submission_orders is not None:
            await self.reconcile_orders(db, config, request.submission_orders)
        else:
            selected = await submission_service.list_selected_entities(db, issue.id)
            for index, submission in enumerate(selected, start=1):
                db.add(
                    GallerySubmissionOrder(
                        gallery_config_id=config.id, submission=submission, display_order=index
                    )
                )
            await db.flush()
            logger.info("Auto-added %d selected submissions to config %d", len(selected), config.id)

        logger.info("Gallery config %d created for issue %d at position %d", config.id, issue.id, position)
        return await to_detail(db, config)

    async def update_config(
        self, db: AsyncSession, issue_id: int, request: GalleryConfigUpdateRequest
    ) -> GalleryConfigDetail:
        config = await gallery_issue_service.get_config_entity(db, issue_id)
        changes = request.model_dump(exclude_unset=True, exclude={"submission_orders"})

        if "cover_image_url" in changes:
            config.cover_image_url = changes["cover_image_url"]
        if changes.get("is_published") is not None:
            config.is_published = changes["is_published"]
        if "config_title" in changes:
            config.config_title = changes["config_title"] or default_config_title(config.issue.title)
        if "config_description" in changes:
            config.config_description = changes["config_description"]
        config.updated_at = utcnow()
        await db.flush()

        if request.submission_orders is not None:
            await self.reconcile_orders(db, config, request.submission_orders)

        logger.info("Gallery config for issue %d updated: %s", issue_id, sorted(changes))
        return await to_detail(db, config)

    async def update_orders(
        self, db: AsyncSession, issue_id: int, items: Sequence[SubmissionOrderItem]
    ) -> GalleryConfigDetail:
        config = await gallery_issue_service.get_config_entity(db, issue_id)
        await self.reconcile_orders(db, config, items)
        return await to_detail(db, config)

    async def delete_config(self, db: AsyncSession, issue_id: int) -> None:
        config = await gallery_issue_service.get_config_entity(db, issue_id)
        await db.execute(
            delete(GallerySubmissionOrder).where(GallerySubmissionOrder.gallery_config_id == config.id)
        )
        await db.delete(config)
        await db.flush()
        logger.info("Gallery config for issue %d deleted", issue_id)

    async def upload_cover(
        self,
        db: AsyncSession,
        issue_id: int,
        filename: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
    ) -> UploadResponse:
        config = await gallery_issue_service.get_config_entity(db, issue_id)
        ext = storage_service.validate_image(
            filename, content, content_length, extension_message=COVER_EXTENSION_MESSAGE
        )
        url = await storage_service.store(storage_service.cover_key(issue_id, ext), content)
        config.cover_image_url = url
        config.updated_at = utcnow()
        await db.flush()
        logger.info("Cover uploaded for gallery issue %d: %s", issue_id, url)
        return UploadResponse(success=True, url=url, message="Cover image uploaded successfully")


gallery_admin_service = GalleryAdminService()
