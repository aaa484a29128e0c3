"""
Munich Weekly Backend — Submission Routes
==========================================

What:  Submitting photos to an issue, uploading their image, reviewing
       them and exporting the selected ones.

Static paths (/mine, /all, /download-selected) are declared before the
/{submission_id} routes so they are not captured as ids.
"""

import io
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.database import get_db_session
from munich_weekly.dependencies import get_current_user, require_admin
from munich_weekly.models.user import User
from munich_weekly.schemas.common import ErrorResponse, UploadResponse
from munich_weekly.schemas.submission import (
    SubmissionCreateRequest,
    SubmissionCreateResponse,
    SubmissionResponse,
)
from munich_weekly.services.archive_service import archive_service
from munich_weekly.services.submission_service import submission_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/submissions", tags=["Submissions"])


@router.post(
    "",
    status_code=201,
    response_model=SubmissionCreateResponse,
    responses={
        400: {"description": "Outside the submission window or quota reached", "model": ErrorResponse},
        401: {"description": "Not logged in", "model": ErrorResponse},
        404: {"description": "Issue not found", "model": ErrorResponse},
    },
    summary="Create a submission",
    description=(
        "Registers a pending submission for the issue. The image is sent afterwards "
        "to the returned uploadUrl."
    ),
)
async def create_submission(
    request: SubmissionCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SubmissionCreateResponse:
    return await submission_service.create_submission(db, user, request)


@router.get(
    "",
    response_model=List[SubmissionResponse],
    summary="Public submissions of an issue",
    description="Approved and selected submissions with their vote counts.",
)
async def list_submissions(
    issue_id: int = Query(..., alias="issueId"),
    db: AsyncSession = Depends(get_db_session),
) -> List[SubmissionResponse]:
    return await submission_service.list_public(db, issue_id)


@router.get("/mine", response_model=List[SubmissionResponse], summary="Caller's own submissions")
async def list_my_submissions(
    issue_id: Optional[int] = Query(default=None, alias="issueId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[SubmissionResponse]:
    return await submission_service.list_mine(db, user, issue_id)


@router.get("/all", response_model=List[SubmissionResponse], summary="All submissions (admin)")
async def list_all_submissions(
    issue_id: Optional[int] = Query(default=None, alias="issueId"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> List[SubmissionResponse]:
    return await submission_service.list_all(db, issue_id)


@router.get(
    "/download-selected/{issue_id}",
    responses={
        200: {"description": "ZIP archive", "content": {"application/zip": {}}},
        204: {"description": "No selected submissions"},
        404: {"description": "Issue not found", "model": ErrorResponse},
    },
    summary="Download the selected submissions of an issue as ZIP (admin)",
)
async def download_selected(
    issue_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    archive = await archive_service.build_selected_archive(db, issue_id)
    if archive is None:
        return Response(status_code=204)

    return StreamingResponse(
        io.BytesIO(archive.content),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{archive.filename}"'},
    )


@router.post(
    "/{submission_id}/upload",
    response_model=UploadResponse,
    responses={
        400: {"description": "Invalid file type or size", "model": ErrorResponse},
        403: {"description": "Not the owner", "model": ErrorResponse},
        404: {"description": "Submission not found", "model": ErrorResponse},
    },
    summary="Upload the image of a submission",
)
async def upload_submission_image(
    submission_id: int,
    file: UploadFile = File(..., description="JPG or PNG image"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UploadResponse:
    content = await file.read()
    logger.info(
        "Upload for submission %d: filename=%s, size=%d bytes",
        submission_id, file.filename or "unknown", len(content),
    )
    try:
        return await submission_service.upload_image(
            db=db,
            user=user,
            submission_id=submission_id,
            filename=file.filename,
            content=content,
            content_length=file.size,
        )
    finally:
        await file.close()


@router.patch("/{submission_id}/approve", response_model=SubmissionResponse, summary="Approve (admin)")
async def approve_submission(
    submission_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> SubmissionResponse:
    return await submission_service.approve(db, submission_id)


@router.patch("/{submission_id}/reject", response_model=SubmissionResponse, summary="Reject (admin)")
async def reject_submission(
    submission_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> SubmissionResponse:
    return await submission_service.reject(db, submission_id)


@router.patch("/{submission_id}/select", response_model=SubmissionResponse, summary="Select (admin)")
async def select_submission(
    submission_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> SubmissionResponse:
    return await submission_service.mark_selected(db, submission_id)


@router.delete(
    "/{submission_id}",
    status_code=204,
    responses={
        403: {"description": "Not the owner", "model": ErrorResponse},
        404: {"description": "Submission not found", "model": ErrorResponse},
    },
    summary="Delete a submission",
)
async def delete_submission(
    submission_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await submission_service.delete_submission(db, user, submission_id)
    return Response(status_code=204)
