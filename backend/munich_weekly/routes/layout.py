"""
Munich Weekly Backend — Masonry Layout Routes
==============================================

GET /api/layout/order?issueId=   precomputed 2- and 4-column orderings
GET /api/layout/health           liveness of the layout service
GET /api/layout/debug?issueId=   per-item dimensions and their source
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.database import get_db_session, utcnow
from munich_weekly.schemas.layout import (
    LayoutDebugResponse,
    LayoutHealthResponse,
    MasonryOrderResponse,
)
from munich_weekly.services.masonry_order_service import (
    describe_supported_viewports,
    masonry_order_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/layout", tags=["Layout"])


@router.get(
    "/order",
    response_model=MasonryOrderResponse,
    summary="Masonry display order for an issue",
    description=(
        "Orders the approved and selected submissions of an issue for 2- and 4-column "
        "masonry grids. Results are cached per issue; failures yield an empty ordering."
    ),
)
async def get_layout_order(
    issue_id: int = Query(..., alias="issueId"),
    db: AsyncSession = Depends(get_db_session),
) -> MasonryOrderResponse:
    return await masonry_order_service.get_ordering(db, issue_id)


@router.get("/health", response_model=LayoutHealthResponse, summary="Layout service health")
async def layout_health() -> LayoutHealthResponse:
    return LayoutHealthResponse(
        status="ok",
        service="masonry-layout",
        timestamp=utcnow(),
        supported_viewports=describe_supported_viewports(),
    )


@router.get("/debug", response_model=LayoutDebugResponse, summary="Layout inputs for an issue")
async def layout_debug(
    issue_id: int = Query(..., alias="issueId"),
    db: AsyncSession = Depends(get_db_session),
) -> LayoutDebugResponse:
    return await masonry_order_service.debug_details(db, issue_id)
