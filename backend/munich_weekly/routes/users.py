"""
Munich Weekly Backend — User Routes
====================================
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.database import get_db_session
from munich_weekly.dependencies import get_current_user, require_admin
from munich_weekly.models.user import User
from munich_weekly.schemas.common import ErrorResponse
from munich_weekly.schemas.user import (
    BanRequest,
    UserAdminResponse,
    UserProfileResponse,
    UserUpdateRequest,
)
from munich_weekly.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("", response_model=List[UserAdminResponse], summary="All users (admin)")
async def list_users(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserAdminResponse]:
    return await user_service.list_users(db)


@router.get("/me", response_model=UserProfileResponse, summary="Caller's profile")
async def get_me(user: User = Depends(get_current_user)) -> UserProfileResponse:
    return user_service.get_profile(user)


@router.patch("/me", response_model=UserProfileResponse, summary="Update caller's profile")
async def update_me(
    request: UserUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserProfileResponse:
    return await user_service.update_profile(db, user, request)


@router.delete("/me", status_code=204, summary="Delete caller's account and content")
async def delete_me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await user_service.delete_account(db, user)
    return Response(status_code=204)


@router.patch(
    "/{user_id}/ban",
    response_model=UserAdminResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Ban or unban a user (admin)",
)
async def set_ban(
    user_id: int,
    request: BanRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserAdminResponse:
    return await user_service.set_banned(db, user_id, request.banned)
