"""
Munich Weekly Backend — Submission Service
===========================================

What:  Submission lifecycle: create → upload image → review → (delete).
Who:   /api/submissions routes, UserService (account deletion).

Lifecycle:
    POST /api/submissions              → pending row, no image yet
    POST /api/submissions/{id}/upload  → file stored, image_url + dimensions set
    PATCH approve | reject | select    → status + reviewed_at
    DELETE                             → votes, gallery orders, row, file

Every change to an issue's public set or to image dimensions invalidates
the cached masonry order of that issue.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.config import settings
from munich_weekly.database import utcnow
from munich_weekly.exceptions import (
    DatabaseError,
    FileStorageError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from munich_weekly.models.gallery import GallerySubmissionOrder
from munich_weekly.models.submission import (
    PUBLIC_STATUSES,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    STATUS_SELECTED,
    Submission,
)
from munich_weekly.models.user import User
from munich_weekly.schemas.common import UploadResponse
from munich_weekly.schemas.submission import (
    SubmissionCreateRequest,
    SubmissionCreateResponse,
    SubmissionResponse,
)
from munich_weekly.services.image_dimension_service import read_dimensions
from munich_weekly.services.issue_service import issue_service
from munich_weekly.services.masonry_order_service import masonry_order_service
from munich_weekly.services.storage_service import storage_service
from munich_weekly.services.vote_service import count_votes_for, vote_service

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 200


def to_submission_response(submission: Submission, vote_count: Optional[int] = None) -> SubmissionResponse:
    response = SubmissionResponse.model_validate(submission)
    if vote_count is not None:
        response = response.model_copy(update={"vote_count": vote_count})
    return response


class SubmissionService:
    async def get_submission_entity(self, db: AsyncSession, submission_id: int) -> Submission:
        submission = await db.get(Submission, submission_id)
        if submission is None:
            raise NotFoundError(resource="Submission", resource_id=submission_id)
        return submission

    @staticmethod
    def _ensure_owner_or_admin(submission: Submission, user: User, message: str) -> None:
        if submission.user_id != user.id and not user.is_admin:
            raise PermissionDeniedError(
                message=message, context={"submission_id": submission.id, "user_id": user.id}
            )

    # ── Create & upload ───────────────────────────────────────────────────

    async def create_submission(
        self, db: AsyncSession, user: User, request: SubmissionCreateRequest
    ) -> SubmissionCreateResponse:
        """
        Register a pending submission for an open issue.

        Raises:
            NotFoundError:   issue does not exist
            ValidationError: outside the submission window, quota reached,
                             description too long
        """
        issue = await issue_service.get_issue_entity(db, request.issue_id)

        if not issue.is_submission_open():
            raise ValidationError(
                message="Not in valid date range", context={"issue_id": issue.id}
            )

        existing = await db.execute(
            select(func.count(Submission.id)).where(
                Submission.user_id == user.id, Submission.issue_id == issue.id
            )
        )
        limit = settings.max_submissions_per_issue
        if existing.scalar_one() >= limit:
            raise ValidationError(
                message=f"You can only submit a maximum of {limit} images per issue.",
                context={"issue_id": issue.id, "limit": limit},
            )

        if request.description and len(request.description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                message=f"Description must be {MAX_DESCRIPTION_LENGTH} characters or less",
                field="description",
            )

        submission = Submission(
            user=user,
            issue=issue,
            description=request.description,
            is_cover=request.is_cover,
            status=STATUS_PENDING,
        )
        try:
            db.add(submission)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to create submission: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "create_submission"})

        logger.info("Submission %d created by user %d for issue %d", submission.id, user.id, issue.id)
        return SubmissionCreateResponse(
            submission_id=submission.id,
            upload_url=f"/api/submissions/{submission.id}/upload",
        )

    async def upload_image(
        self,
        db: AsyncSession,
        user: User,
        submission_id: int,
        filename: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
    ) -> UploadResponse:
        """
        Validate and store the image of a submission.

        Dimensions are read with Pillow; an unreadable header leaves them
        empty and the upload still succeeds.
        """
        submission = await self.get_submission_entity(db, submission_id)
        self._ensure_owner_or_admin(submission, user, "Not authorized to upload for this submission")

        ext = storage_service.validate_image(filename, content, content_length)
        key = storage_service.submission_key(submission.issue_id, submission.id, ext)

        previous_url = submission.image_url
        url = await storage_service.store(key, content)
        if previous_url and previous_url != url:
            await self._delete_file_logged(previous_url)

        dims = read_dimensions(content)
        if dims is None:
            logger.warning("Submission %d stored without dimensions", submission.id)
            submission.set_image_dimensions(None, None)
        else:
            submission.set_image_dimensions(dims.width, dims.height)

        submission.image_url = url
        await db.flush()
        masonry_order_service.invalidate(submission.issue_id)

        return UploadResponse(success=True, url=url, message="Image uploaded successfully")

    # ── Listings ──────────────────────────────────────────────────────────

    async def _responses_with_counts(
        self, db: AsyncSession, submissions: List[Submission], public_only_counts: bool = False
    ) -> List[SubmissionResponse]:
        counts: Dict[int, int] = await count_votes_for(db, [s.id for s in submissions])
        responses = []
        for submission in submissions:
            if public_only_counts and not submission.is_public():
                responses.append(to_submission_response(submission))
            else:
                responses.append(to_submission_response(submission, counts.get(submission.id, 0)))
        return responses

    async def list_public(self, db: AsyncSession, issue_id: int) -> List[SubmissionResponse]:
        """Approved and selected submissions of an issue, with vote counts."""
        result = await db.execute(
            select(Submission)
            .where(Submission.issue_id == issue_id, Submission.status.in_(PUBLIC_STATUSES))
            .order_by(Submission.submitted_at.asc(), Submission.id.asc())
        )
        return await self._responses_with_counts(db, list(result.scalars().all()))

    async def list_mine(
        self, db: AsyncSession, user: User, issue_id: Optional[int] = None
    ) -> List[SubmissionResponse]:
        stmt = select(Submission).where(Submission.user_id == user.id)
        if issue_id is not None:
            stmt = stmt.where(Submission.issue_id == issue_id)
        result = await db.execute(stmt.order_by(Submission.submitted_at.desc(), Submission.id.desc()))
        return await self._responses_with_counts(db, list(result.scalars().all()), public_only_counts=True)

    async def list_all(self, db: AsyncSession, issue_id: Optional[int] = None) -> List[SubmissionResponse]:
        stmt = select(Submission)
        if issue_id is not None:
            stmt = stmt.where(Submission.issue_id == issue_id)
        result = await db.execute(stmt.order_by(Submission.submitted_at.desc(), Submission.id.desc()))
        return await self._responses_with_counts(db, list(result.scalars().all()))

    async def list_selected_entities(self, db: AsyncSession, issue_id: int) -> List[Submission]:
        result = await db.execute(
            select(Submission)
            .where(Submission.issue_id == issue_id, Submission.status == STATUS_SELECTED)
            .order_by(Submission.submitted_at.asc(), Submission.id.asc())
        )
        return list(result.scalars().all())

    # ── Review ────────────────────────────────────────────────────────────

    async def _review(self, db: AsyncSession, submission_id: int, status: str) -> SubmissionResponse:
        submission = await self.get_submission_entity(db, submission_id)
        submission.status = status
        submission.reviewed_at = utcnow()
        await db.flush()
        masonry_order_service.invalidate(submission.issue_id)
        logger.info("Submission %d marked %s", submission_id, status)
        return to_submission_response(submission)

    async def approve(self, db: AsyncSession, submission_id: int) -> SubmissionResponse:
        return await self._review(db, submission_id, STATUS_APPROVED)

    async def reject(self, db: AsyncSession, submission_id: int) -> SubmissionResponse:
        return await self._review(db, submission_id, STATUS_REJECTED)

    async def mark_selected(self, db: AsyncSession, submission_id: int) -> SubmissionResponse:
        return await self._review(db, submission_id, STATUS_SELECTED)

    # ── Delete ────────────────────────────────────────────────────────────

    async def _delete_file_logged(self, image_url: Optional[str]) -> None:
        """Remove a stored image; failures are logged and do not fail the request."""
        try:
            await storage_service.delete_url(image_url)
        except (FileStorageError, ValidationError) as e:
            logger.warning("Failed to delete image file %s: %s", image_url, e.message)

    async def delete_entities(self, db: AsyncSession, submissions: List[Submission]) -> None:
        """Delete submissions with their votes and gallery orders, then their files."""
        if not submissions:
            return
        ids = [s.id for s in submissions]
        urls = [s.image_url for s in submissions]
        issue_ids = {s.issue_id for s in submissions}

        try:
            await vote_service.delete_votes_for_submissions(db, ids)
            await db.execute(
                delete(GallerySubmissionOrder).where(GallerySubmissionOrder.submission_id.in_(ids))
            )
            for submission in submissions:
                await db.delete(submission)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete submissions %s: %s", ids, str(e), exc_info=True)
            raise DatabaseError(context={"operation": "delete_submissions", "ids": ids})

        for url in urls:
            await self._delete_file_logged(url)
        for issue_id in issue_ids:
            masonry_order_service.invalidate(issue_id)

    async def delete_submission(self, db: AsyncSession, user: User, submission_id: int) -> None:
        submission = await self.get_submission_entity(db, submission_id)
        self._ensure_owner_or_admin(submission, user, "Not authorized to delete this submission")
        await self.delete_entities(db, [submission])
        logger.info("Submission %d deleted by user %d", submission_id, user.id)


submission_service = SubmissionService()
