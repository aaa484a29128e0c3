"""
Munich Weekly Backend — Gallery Routes
=======================================

Public reads of the curated issue gallery and the homepage featured
carousel, plus the admin endpoints that edit the carousel.

Issue gallery:
    GET /api/gallery/issues
    GET /api/gallery/issues/stats
    GET /api/gallery/issues/{issueId}
    GET /api/gallery/issues/{issueId}/submissions

Featured carousel:
    GET    /api/gallery/featured
    GET    /api/gallery/featured/config
    GET    /api/gallery/featured/configs          (admin)
    POST   /api/gallery/featured/config           (admin)
    DELETE /api/gallery/featured/config/{id}      (admin)
    GET    /api/gallery/stats
    GET    /api/gallery/submissions/{id}/preview
    GET    /api/gallery/submissions/{id}/featured-status
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.database import get_db_session
from munich_weekly.dependencies import require_admin
from munich_weekly.models.user import User
from munich_weekly.schemas.common import ErrorResponse
from munich_weekly.schemas.gallery import (
    FeaturedConfigEnvelope,
    FeaturedConfigRequest,
    FeaturedConfigResponse,
    FeaturedStatsResponse,
    FeaturedStatusResponse,
    FeaturedSubmissionsResponse,
    GalleryConfigDetail,
    GalleryConfigSummary,
    GalleryStatsResponse,
    GallerySubmissionView,
    OrderedSubmission,
)
from munich_weekly.services.featured_service import featured_service
from munich_weekly.services.gallery_issue_service import gallery_issue_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/gallery", tags=["Gallery"])


# ── Issue gallery ─────────────────────────────────────────────────────────

@router.get("/issues", response_model=List[GalleryConfigSummary], summary="Published gallery issues")
async def list_gallery_issues(db: AsyncSession = Depends(get_db_session)) -> List[GalleryConfigSummary]:
    return await gallery_issue_service.list_published(db)


@router.get("/issues/stats", response_model=GalleryStatsResponse, summary="Gallery totals")
async def gallery_issue_stats(db: AsyncSession = Depends(get_db_session)) -> GalleryStatsResponse:
    return await gallery_issue_service.stats(db)


@router.get(
    "/issues/{issue_id}",
    response_model=GalleryConfigDetail,
    responses={404: {"description": "No published gallery for this issue", "model": ErrorResponse}},
    summary="Published gallery of one issue",
)
async def get_gallery_issue(issue_id: int, db: AsyncSession = Depends(get_db_session)) -> GalleryConfigDetail:
    return await gallery_issue_service.get_published_detail(db, issue_id)


@router.get(
    "/issues/{issue_id}/submissions",
    response_model=List[OrderedSubmission],
    responses={404: {"description": "No gallery config for this issue", "model": ErrorResponse}},
    summary="Ordered submissions of an issue gallery",
)
async def get_gallery_issue_submissions(
    issue_id: int, db: AsyncSession = Depends(get_db_session)
) -> List[OrderedSubmission]:
    return await gallery_issue_service.get_ordered_submissions(db, issue_id)


# ── Featured carousel ─────────────────────────────────────────────────────

@router.get("/featured", response_model=FeaturedSubmissionsResponse, summary="Featured submissions")
async def get_featured(db: AsyncSession = Depends(get_db_session)) -> FeaturedSubmissionsResponse:
    return await featured_service.featured_submissions(db)


@router.get("/featured/config", response_model=FeaturedConfigEnvelope, summary="Active featured config")
async def get_featured_config(db: AsyncSession = Depends(get_db_session)) -> FeaturedConfigEnvelope:
    return FeaturedConfigEnvelope(config=await featured_service.active_config(db))


@router.get(
    "/featured/configs",
    response_model=List[FeaturedConfigResponse],
    summary="All featured configs (admin)",
)
async def list_featured_configs(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> List[FeaturedConfigResponse]:
    return await featured_service.list_configs(db)


@router.post(
    "/featured/config",
    response_model=FeaturedConfigResponse,
    responses={
        400: {"description": "Inconsistent lists or unknown submissions", "model": ErrorResponse},
        404: {"description": "Config to update not found", "model": ErrorResponse},
    },
    summary="Create or update a featured config (admin)",
)
async def save_featured_config(
    request: FeaturedConfigRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> FeaturedConfigResponse:
    return await featured_service.save_config(db, admin, request)


@router.delete(
    "/featured/config/{config_id}",
    status_code=204,
    responses={404: {"description": "Config not found", "model": ErrorResponse}},
    summary="Delete a featured config (admin)",
)
async def delete_featured_config(
    config_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await featured_service.delete_config(db, config_id)
    return Response(status_code=204)


@router.get("/stats", response_model=FeaturedStatsResponse, summary="Featured carousel totals")
async def featured_stats(db: AsyncSession = Depends(get_db_session)) -> FeaturedStatsResponse:
    return await featured_service.stats(db)


@router.get(
    "/submissions/{submission_id}/preview",
    response_model=GallerySubmissionView,
    responses={404: {"description": "Submission not found", "model": ErrorResponse}},
    summary="Preview a submission",
)
async def preview_submission(
    submission_id: int, db: AsyncSession = Depends(get_db_session)
) -> GallerySubmissionView:
    return await featured_service.preview_submission(db, submission_id)


@router.get(
    "/submissions/{submission_id}/featured-status",
    response_model=FeaturedStatusResponse,
    summary="Is a submission in the active carousel?",
)
async def featured_status(
    submission_id: int, db: AsyncSession = Depends(get_db_session)
) -> FeaturedStatusResponse:
    return FeaturedStatusResponse(
        submission_id=submission_id,
        is_featured=await featured_service.is_featured(db, submission_id),
    )
