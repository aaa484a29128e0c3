"""
Munich Weekly Backend — Issue Service
======================================

What:  CRUD for issues (weekly themes) and the window-ordering rules.
Who:   /api/issues routes; other services use get_issue_entity() to load
       an issue or answer 404.

Window rules (checked on create and on update against the merged values):
    submission_start < submission_end
    voting_start     < voting_end
    voting_start    >= submission_start
"""

import logging
from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.database import as_utc
from munich_weekly.exceptions import DatabaseError, NotFoundError, ValidationError
from munich_weekly.models.issue import Issue
from munich_weekly.schemas.issue import IssueCreateRequest, IssueResponse, IssueUpdateRequest

logger = logging.getLogger(__name__)

WINDOW_FIELDS = ("submission_start", "submission_end", "voting_start", "voting_end")


def validate_issue_windows(
    submission_start: datetime,
    submission_end: datetime,
    voting_start: datetime,
    voting_end: datetime,
) -> None:
    """Raise ValidationError for the first violated window rule."""
    submission_start = as_utc(submission_start)
    submission_end = as_utc(submission_end)
    voting_start = as_utc(voting_start)
    voting_end = as_utc(voting_end)

    if submission_start >= submission_end:
        raise ValidationError(
            message="Submission start must be before submission end.", field="submissionStart"
        )
    if voting_start >= voting_end:
        raise ValidationError(message="Voting start must be before voting end.", field="votingStart")
    if voting_start < submission_start:
        raise ValidationError(message="Voting must start after submission start.", field="votingStart")


class IssueService:
    async def get_issue_entity(self, db: AsyncSession, issue_id: int) -> Issue:
        issue = await db.get(Issue, issue_id)
        if issue is None:
            raise NotFoundError(resource="Issue", resource_id=issue_id)
        return issue

    async def get_issue(self, db: AsyncSession, issue_id: int) -> IssueResponse:
        return IssueResponse.model_validate(await self.get_issue_entity(db, issue_id))

    async def list_issues(self, db: AsyncSession) -> List[IssueResponse]:
        """All issues, newest submission window first."""
        result = await db.execute(
            select(Issue).order_by(Issue.submission_start.desc(), Issue.id.desc())
        )
        return [IssueResponse.model_validate(issue) for issue in result.scalars().all()]

    async def create_issue(self, db: AsyncSession, request: IssueCreateRequest) -> IssueResponse:
        validate_issue_windows(
            request.submission_start,
            request.submission_end,
            request.voting_start,
            request.voting_end,
        )

        issue = Issue(
            title=request.title,
            description=request.description,
            submission_start=as_utc(request.submission_start),
            submission_end=as_utc(request.submission_end),
            voting_start=as_utc(request.voting_start),
            voting_end=as_utc(request.voting_end),
        )
        try:
            db.add(issue)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to create issue: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "create_issue"})

        logger.info("Issue created: id=%d title=%r", issue.id, issue.title)
        return IssueResponse.model_validate(issue)

    async def update_issue(
        self, db: AsyncSession, issue_id: int, request: IssueUpdateRequest
    ) -> IssueResponse:
        """
        Apply the provided fields, then re-check the windows on the merged result.

        A window field sent as null keeps the stored value; the four windows
        are required columns.

        Raises:
            NotFoundError:   issue does not exist
            ValidationError: merged windows violate the ordering rules
        """
        issue = await self.get_issue_entity(db, issue_id)
        changes = request.model_dump(exclude_unset=True)

        merged = {}
        for name in WINDOW_FIELDS:
            value = changes.get(name)
            merged[name] = as_utc(value if value is not None else getattr(issue, name))
        validate_issue_windows(**merged)

        if changes.get("title") is not None:
            issue.title = changes["title"]
        if "description" in changes:
            issue.description = changes["description"]
        for name, value in merged.items():
            setattr(issue, name, value)

        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to update issue %d: %s", issue_id, str(e), exc_info=True)
            raise DatabaseError(context={"operation": "update_issue", "issue_id": issue_id})

        logger.info("Issue updated: id=%d fields=%s", issue_id, sorted(changes))
        return IssueResponse.model_validate(issue)


issue_service = IssueService()
