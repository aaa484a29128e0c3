"""
Munich Weekly Backend — Promotion Routes
=========================================

Public:
    GET /api/promotion/config            first enabled config, 204 if none
    GET /api/promotion/page/{pageUrl}    config + ordered images
Admin (/api/promotion/admin/...):
    configs, the single editable config, images and their uploads
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.database import get_db_session
from munich_weekly.dependencies import require_admin
from munich_weekly.models.user import User
from munich_weekly.schemas.common import ErrorResponse, UploadResponse
from munich_weekly.schemas.promotion import (
    PromotionConfigRequest,
    PromotionConfigResponse,
    PromotionImageCreateRequest,
    PromotionImageResponse,
    PromotionPageResponse,
)
from munich_weekly.services.promotion_service import promotion_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/promotion", tags=["Promotion"])


# ── Public ────────────────────────────────────────────────────────────────

@router.get(
    "/config",
    response_model=PromotionConfigResponse,
    responses={204: {"description": "No enabled promotion"}},
    summary="Enabled promotion config",
)
async def get_enabled_config(db: AsyncSession = Depends(get_db_session)):
    config = await promotion_service.enabled_config(db)
    if config is None:
        return Response(status_code=204)
    return config


@router.get(
    "/page/{page_url}",
    response_model=PromotionPageResponse,
    responses={404: {"description": "Unknown or disabled page", "model": ErrorResponse}},
    summary="Promotion page content",
)
async def get_page(page_url: str, db: AsyncSession = Depends(get_db_session)) -> PromotionPageResponse:
    return await promotion_service.page(db, page_url)


# ── Admin: configs ────────────────────────────────────────────────────────

@router.get("/admin/configs", response_model=List[PromotionConfigResponse], summary="All promotion configs")
async def list_configs(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> List[PromotionConfigResponse]:
    return await promotion_service.list_configs(db)


@router.get(
    "/admin/config/{config_id}",
    response_model=PromotionConfigResponse,
    responses={404: {"description": "Config not found", "model": ErrorResponse}},
    summary="One promotion config",
)
async def get_config(
    config_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> PromotionConfigResponse:
    return await promotion_service.get_config(db, config_id)


@router.get("/admin/config", response_model=PromotionConfigResponse, summary="Editable promotion config")
async def get_current_config(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> PromotionConfigResponse:
    return await promotion_service.current_config(db)


@router.put(
    "/admin/config",
    response_model=PromotionConfigResponse,
    responses={409: {"description": "Page URL already exists", "model": ErrorResponse}},
    summary="Create or update the promotion config",
)
async def upsert_config(
    request: PromotionConfigRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> PromotionConfigResponse:
    return await promotion_service.upsert_config(db, request)


@router.delete("/admin/config/{config_id}", status_code=204, summary="Delete a promotion config")
async def delete_config(
    config_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await promotion_service.delete_config(db, config_id)
    return Response(status_code=204)


# ── Admin: images ─────────────────────────────────────────────────────────

@router.get("/admin/images", response_model=List[PromotionImageResponse], summary="Images of a config")
async def list_images(
    config_id: int = Query(..., alias="configId"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> List[PromotionImageResponse]:
    return await promotion_service.list_images(db, config_id)


@router.post(
    "/admin/images",
    status_code=201,
    response_model=PromotionImageResponse,
    responses={404: {"description": "Config not found", "model": ErrorResponse}},
    summary="Add a promotion image record",
)
async def add_image(
    request: PromotionImageCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> PromotionImageResponse:
    return await promotion_service.add_image(db, request)


@router.post(
    "/admin/images/{image_id}/upload",
    response_model=UploadResponse,
    responses={
        400: {"description": "Not an image", "model": ErrorResponse},
        404: {"description": "Image record not found", "model": ErrorResponse},
    },
    summary="Upload the file of a promotion image",
)
async def upload_image(
    image_id: int,
    file: UploadFile = File(...),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UploadResponse:
    content = await file.read()
    try:
        return await promotion_service.upload_image(
            db, image_id, file.filename, file.content_type, content, content_length=file.size
        )
    finally:
        await file.close()


@router.delete("/admin/images/{image_id}", status_code=204, summary="Delete a promotion image")
async def delete_image(
    image_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await promotion_service.delete_image(db, image_id)
    return Response(status_code=204)
