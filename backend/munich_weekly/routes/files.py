"""
Munich Weekly Backend — Stored File Route
==========================================

Serves uploaded images at GET /uploads/{path}, the URL form stored in
image_url / cover_image_url columns. StorageService.resolve() rejects
paths that escape the storage root.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import FileResponse

from munich_weekly.config import settings
from munich_weekly.exceptions import NotFoundError
from munich_weekly.schemas.common import ErrorResponse
from munich_weekly.services.storage_service import storage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix=settings.uploads_url_prefix.rstrip("/"), tags=["Files"])


@router.get(
    "/{file_path:path}",
    responses={
        200: {"description": "Image file"},
        400: {"description": "Invalid file path", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
    summary="Serve an uploaded file",
)
async def serve_file(file_path: str) -> FileResponse:
    path = storage_service.resolve(file_path)
    if not path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    return FileResponse(
        path=str(path),
        media_type=storage_service.content_type_for(file_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
