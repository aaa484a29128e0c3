"""
Munich Weekly Backend — Gallery Admin Routes
=============================================

Admin-only curation of issue galleries under /api/gallery/admin. The
admin dependency is applied at router level.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.database import get_db_session
from munich_weekly.dependencies import require_admin
from munich_weekly.models.user import User
from munich_weekly.schemas.common import ErrorResponse, UploadResponse
from munich_weekly.schemas.gallery import (
    GalleryConfigCreateRequest,
    GalleryConfigDetail,
    GalleryConfigSummary,
    GalleryConfigUpdateRequest,
    GalleryOrderUpdateRequest,
)
from munich_weekly.schemas.issue import IssueResponse
from munich_weekly.schemas.submission import SubmissionResponse
from munich_weekly.services.gallery_admin_service import gallery_admin_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/gallery/admin",
    tags=["Gallery Admin"],
    dependencies=[Depends(require_admin)],
    responses={
        401: {"description": "Not logged in", "model": ErrorResponse},
        403: {"description": "Not an admin", "model": ErrorResponse},
    },
)


@router.get("/configs", response_model=List[GalleryConfigSummary], summary="All gallery configs")
async def list_configs(db: AsyncSession = Depends(get_db_session)) -> List[GalleryConfigSummary]:
    return await gallery_admin_service.list_configs(db)


@router.post(
    "/configs",
    status_code=201,
    response_model=GalleryConfigDetail,
    responses={
        400: {"description": "Invalid submission orders", "model": ErrorResponse},
        404: {"description": "Issue not found", "model": ErrorResponse},
        409: {"description": "Config already exists for the issue", "model": ErrorResponse},
    },
    summary="Create a gallery config for an issue",
)
async def create_config(
    request: GalleryConfigCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> GalleryConfigDetail:
    return await gallery_admin_service.create_config(db, admin, request)


@router.get(
    "/issues/available",
    response_model=List[IssueResponse],
    summary="Issues without a gallery config",
)
async def available_issues(db: AsyncSession = Depends(get_db_session)) -> List[IssueResponse]:
    return await gallery_admin_service.available_issues(db)


@router.get(
    "/issues/{issue_id}",
    response_model=GalleryConfigDetail,
    responses={404: {"description": "No config for this issue", "model": ErrorResponse}},
    summary="Gallery config of an issue",
)
async def get_config(issue_id: int, db: AsyncSession = Depends(get_db_session)) -> GalleryConfigDetail:
    return await gallery_admin_service.get_config(db, issue_id)


@router.put(
    "/issues/{issue_id}",
    response_model=GalleryConfigDetail,
    responses={
        400: {"description": "Invalid submission orders", "model": ErrorResponse},
        404: {"description": "No config for this issue", "model": ErrorResponse},
    },
    summary="Update a gallery config",
)
async def update_config(
    issue_id: int,
    request: GalleryConfigUpdateRequest,
    db: AsyncSession = Depends(get_db_session),
) -> GalleryConfigDetail:
    return await gallery_admin_service.update_config(db, issue_id, request)


@router.delete("/issues/{issue_id}", status_code=204, summary="Delete a gallery config")
async def delete_config(issue_id: int, db: AsyncSession = Depends(get_db_session)) -> Response:
    await gallery_admin_service.delete_config(db, issue_id)
    return Response(status_code=204)


@router.put(
    "/issues/{issue_id}/order",
    response_model=GalleryConfigDetail,
    responses={400: {"description": "Invalid submission orders", "model": ErrorResponse}},
    summary="Replace the submission order of a gallery",
)
async def update_order(
    issue_id: int,
    request: GalleryOrderUpdateRequest,
    db: AsyncSession = Depends(get_db_session),
) -> GalleryConfigDetail:
    return await gallery_admin_service.update_orders(db, issue_id, request.submission_orders)


@router.get(
    "/issues/{issue_id}/selected",
    response_model=List[SubmissionResponse],
    summary="Selected submissions not yet in the gallery",
)
async def selected_submissions(
    issue_id: int, db: AsyncSession = Depends(get_db_session)
) -> List[SubmissionResponse]:
    return await gallery_admin_service.selected_not_configured(db, issue_id)


@router.post(
    "/issues/{issue_id}/cover",
    response_model=UploadResponse,
    responses={400: {"description": "Not a JPG or PNG image", "model": ErrorResponse}},
    summary="Upload a gallery cover image",
)
async def upload_cover(
    issue_id: int,
    file: UploadFile = File(..., description="JPG, JPEG or PNG cover image"),
    db: AsyncSession = Depends(get_db_session),
) -> UploadResponse:
    content = await file.read()
    try:
        return await gallery_admin_service.upload_cover(
            db, issue_id, file.filename, content, content_length=file.size
        )
    finally:
        await file.close()
