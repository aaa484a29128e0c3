"""
Munich Weekly Backend — Gallery Schemas
========================================

Contracts for the curated issue gallery (/api/gallery, /api/gallery/admin)
and the homepage featured carousel.

Display orders are plain ints here. Range and uniqueness rules are checked
by the gallery services so that they answer 400 with a readable message
instead of FastAPI's 422.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from munich_weekly.models.gallery import (
    DEFAULT_FEATURED_TITLE,
    MAX_AUTOPLAY_INTERVAL,
    MIN_AUTOPLAY_INTERVAL,
)
from munich_weekly.schemas.common import CamelModel
from munich_weekly.schemas.issue import IssueResponse
from munich_weekly.schemas.user import UserSummary


# ── Submissions as shown in the gallery ───────────────────────────────────

class GallerySubmissionView(CamelModel):
    id: int
    image_url: Optional[str] = None
    description: Optional[str] = None
    status: str
    submitted_at: datetime
    image_width: Optional[int] = None
    image_height: Optional[int] = None
    aspect_ratio: Optional[float] = None
    issue_id: int
    user: UserSummary


class OrderedSubmission(CamelModel):
    display_order: int
    submission: GallerySubmissionView


# ── Issue gallery configs ─────────────────────────────────────────────────

class SubmissionOrderItem(CamelModel):
    submission_id: int
    display_order: int


class GalleryConfigCreateRequest(CamelModel):
    issue_id: int
    cover_image_url: Optional[str] = Field(default=None, max_length=500)
    is_published: bool = False
    config_title: Optional[str] = Field(default=None, max_length=200)
    config_description: Optional[str] = None
    submission_orders: Optional[List[SubmissionOrderItem]] = Field(
        default=None,
        description="Explicit order; when omitted every selected submission is added in submission order",
    )


class GalleryConfigUpdateRequest(CamelModel):
    """Partial update; submission_orders, when present, replaces the whole order set."""
    cover_image_url: Optional[str] = Field(default=None, max_length=500)
    is_published: Optional[bool] = None
    config_title: Optional[str] = Field(default=None, max_length=200)
    config_description: Optional[str] = None
    submission_orders: Optional[List[SubmissionOrderItem]] = None


class GalleryOrderUpdateRequest(CamelModel):
    submission_orders: List[SubmissionOrderItem]


class GalleryConfigSummary(CamelModel):
    id: int
    issue: IssueResponse
    cover_image_url: Optional[str] = None
    is_published: bool
    display_order: int
    config_title: Optional[str] = None
    config_description: Optional[str] = None
    created_by_user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    submission_count: int = 0


class GalleryConfigDetail(GalleryConfigSummary):
    submissions: List[OrderedSubmission] = Field(default_factory=list)


class GalleryStatsResponse(CamelModel):
    total_published_issues: int
    total_submissions: int


# ── Featured carousel ─────────────────────────────────────────────────────

class FeaturedConfigRequest(CamelModel):
    id: Optional[int] = Field(default=None, description="Present to update an existing config")
    submission_ids: List[int] = Field(default_factory=list)
    display_order: List[int] = Field(default_factory=list)
    autoplay_interval: int = Field(
        default=5000, ge=MIN_AUTOPLAY_INTERVAL, le=MAX_AUTOPLAY_INTERVAL
    )
    is_active: bool = True
    config_title: Optional[str] = Field(default=DEFAULT_FEATURED_TITLE, max_length=100)
    config_description: Optional[str] = None


class FeaturedConfigResponse(CamelModel):
    id: int
    submission_ids: List[int]
    display_order: List[int]
    autoplay_interval: int
    is_active: bool
    config_title: Optional[str] = None
    config_description: Optional[str] = None
    created_by_user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FeaturedConfigEnvelope(CamelModel):
    config: Optional[FeaturedConfigResponse] = None


class FeaturedSubmissionsResponse(CamelModel):
    submissions: List[OrderedSubmission] = Field(default_factory=list)
    autoplay_interval: int = 5000
    config_id: Optional[int] = None


class FeaturedStatsResponse(CamelModel):
    total_featured_submissions: int
    has_active_config: bool
    total_configs: int


class FeaturedStatusResponse(CamelModel):
    submission_id: int
    is_featured: bool
