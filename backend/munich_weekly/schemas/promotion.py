"""
Munich Weekly Backend — Promotion Schemas
==========================================
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from munich_weekly.schemas.common import CamelModel


class PromotionConfigRequest(CamelModel):
    is_enabled: bool = False
    nav_title: str = Field(min_length=1, max_length=50)
    page_url: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)


class PromotionConfigResponse(CamelModel):
    # id is None for the unsaved default returned before the first save
    id: Optional[int] = None
    is_enabled: bool = False
    nav_title: str = ""
    page_url: str = ""
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PromotionImageCreateRequest(CamelModel):
    promotion_config_id: int
    image_title: Optional[str] = Field(default=None, max_length=200)
    image_description: Optional[str] = None
    display_order: Optional[int] = Field(default=None, ge=0)


class PromotionImageResponse(CamelModel):
    id: int
    promotion_config_id: int
    image_url: Optional[str] = None
    image_title: Optional[str] = None
    image_description: Optional[str] = None
    display_order: int
    image_width: Optional[int] = None
    image_height: Optional[int] = None
    aspect_ratio: Optional[float] = None
    created_at: Optional[datetime] = None


class PromotionPageResponse(CamelModel):
    config: PromotionConfigResponse
    images: List[PromotionImageResponse] = Field(default_factory=list)
