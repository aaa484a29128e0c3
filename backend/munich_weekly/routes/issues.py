"""
Munich Weekly Backend — Issue Routes
=====================================

GET  /api/issues        public list, newest submission window first
GET  /api/issues/{id}   public detail
POST /api/issues        admin create
PUT  /api/issues/{id}   admin partial update
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.database import get_db_session
from munich_weekly.dependencies import require_admin
from munich_weekly.models.user import User
from munich_weekly.schemas.common import ErrorResponse
from munich_weekly.schemas.issue import IssueCreateRequest, IssueResponse, IssueUpdateRequest
from munich_weekly.services.issue_service import issue_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/issues", tags=["Issues"])


@router.get("", response_model=List[IssueResponse], summary="List all issues")
async def list_issues(db: AsyncSession = Depends(get_db_session)) -> List[IssueResponse]:
    return await issue_service.list_issues(db)


@router.get(
    "/{issue_id}",
    response_model=IssueResponse,
    responses={404: {"description": "Issue not found", "model": ErrorResponse}},
    summary="Get one issue",
)
async def get_issue(issue_id: int, db: AsyncSession = Depends(get_db_session)) -> IssueResponse:
    return await issue_service.get_issue(db, issue_id)


@router.post(
    "",
    status_code=201,
    response_model=IssueResponse,
    responses={
        400: {"description": "Submission/voting windows are inconsistent", "model": ErrorResponse},
        401: {"description": "Not logged in", "model": ErrorResponse},
        403: {"description": "Not an admin", "model": ErrorResponse},
    },
    summary="Create an issue",
)
async def create_issue(
    request: IssueCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> IssueResponse:
    return await issue_service.create_issue(db, request)


@router.put(
    "/{issue_id}",
    response_model=IssueResponse,
    responses={
        400: {"description": "Submission/voting windows are inconsistent", "model": ErrorResponse},
        404: {"description": "Issue not found", "model": ErrorResponse},
    },
    summary="Update an issue",
    description="Only the provided fields change; window rules are re-checked on the merged values.",
)
async def update_issue(
    issue_id: int,
    request: IssueUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> IssueResponse:
    return await issue_service.update_issue(db, issue_id, request)
