"""
Munich Weekly Backend — Masonry Layout Schemas
===============================================

Response contract of GET /api/layout/order:

    {
      "order": {
        "orderedIds2col": [12, 7, 9, ...],
        "orderedIds4col": [7, 12, 3, ...],
        "totalItems": 24,
        "avgAspectRatio": 1.21,
        "wideImageCount": 3
      },
      "cacheInfo": {
        "generatedAt": "2025-06-01T10:00:00Z",
        "issueId": 5,
        "fromCache": false,
        "version": "9c1e2f0a7b3d",
        "processingTimeMs": 4
      }
    }
"""

from datetime import datetime
from typing import List

from pydantic import Field

from munich_weekly.schemas.common import CamelModel

ORDER_2COL_KEY = "orderedIds2col"
ORDER_4COL_KEY = "orderedIds4col"


class MasonryOrderResult(CamelModel):
    # to_camel would give orderedIds2Col; clients read the lowercase "col"
    ordered_ids2col: List[int] = Field(default_factory=list, alias=ORDER_2COL_KEY)
    ordered_ids4col: List[int] = Field(default_factory=list, alias=ORDER_4COL_KEY)
    total_items: int = 0
    avg_aspect_ratio: float = 0.0
    wide_image_count: int = 0


class OrderCacheInfo(CamelModel):
    generated_at: datetime
    issue_id: int
    from_cache: bool = False
    version: str = Field(description="Hash of the input set; 'empty' or 'fallback' for degenerate results")
    processing_time_ms: int = 0


class MasonryOrderResponse(CamelModel):
    order: MasonryOrderResult
    cache_info: OrderCacheInfo


class LayoutHealthResponse(CamelModel):
    status: str
    service: str
    timestamp: datetime
    supported_viewports: List[str]


class LayoutDebugItem(CamelModel):
    submission_id: int
    width: int
    height: int
    aspect_ratio: float
    is_wide: bool
    dimension_source: str = Field(description="stored, fetched or default")


class LayoutDebugResponse(CamelModel):
    issue_id: int
    items: List[LayoutDebugItem]
    ordered_ids2col: List[int] = Field(alias=ORDER_2COL_KEY)
    ordered_ids4col: List[int] = Field(alias=ORDER_4COL_KEY)
