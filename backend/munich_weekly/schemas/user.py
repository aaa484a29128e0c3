"""
Munich Weekly Backend — User Schemas
=====================================
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from munich_weekly.schemas.common import CamelModel


class UserSummary(CamelModel):
    """Public author info embedded in submissions."""
    id: int
    nickname: str
    avatar_url: Optional[str] = None


class UserProfileResponse(CamelModel):
    id: int
    email: Optional[str] = None
    nickname: str
    avatar_url: Optional[str] = None
    role: str


class UserAdminResponse(UserProfileResponse):
    is_banned: bool
    created_at: Optional[datetime] = None


class UserUpdateRequest(CamelModel):
    nickname: Optional[str] = Field(default=None, min_length=1, max_length=100)
    avatar_url: Optional[str] = Field(default=None, max_length=500)


class BanRequest(CamelModel):
    banned: bool = True
