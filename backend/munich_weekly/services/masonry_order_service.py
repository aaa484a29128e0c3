"""
Munich Weekly Backend — Masonry Order Service
==============================================

What:  Computes display orders for the public submission grid so that a
       column-based masonry layout comes out balanced, for both the
       2-column (mobile) and 4-column (desktop) viewports.
How:   Greedy best-fit. At each step every remaining image is scored
       against the column (or adjacent column pair, for wide images) it
       would land in; the best-scoring image is placed next.

Rules:
    - An image is "wide" when width / height >= 16/9.
    - A wide image spans two adjacent columns when there are at least two.
    - At most MAX_WIDE_STREAK wide images are placed back to back.
    - Wide images get a mild bias (WIDE_IMAGE_BIAS) so they are not all
      pushed to the end; narrow images get a bonus right after a wide one.

Results are cached per issue in a TTLCache and invalidated by the
submission service whenever an issue's public set or dimensions change.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from cachetools import TTLCache
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.config import settings
from munich_weekly.database import as_utc, utcnow
from munich_weekly.models.submission import PUBLIC_STATUSES, WIDE_IMAGE_THRESHOLD, Submission
from munich_weekly.schemas.layout import (
    LayoutDebugItem,
    LayoutDebugResponse,
    MasonryOrderResponse,
    MasonryOrderResult,
    OrderCacheInfo,
)
from munich_weekly.services.image_dimension_service import (
    DEFAULT_DIMENSIONS,
    ImageDimensionService,
    image_dimension_service,
)

logger = logging.getLogger(__name__)

# ── Layout Constants ──────────────────────────────────────────────────────
WIDE_IMAGE_BIAS = 0.9
MAX_WIDE_STREAK = 1
MIN_NARROW_AFTER_WIDE = 2
ITEM_WIDTH = 280
NARROW_AFTER_WIDE_BONUS = 50
PANORAMIC_BONUS = 20
PANORAMIC_MIN_ASPECT = 1.5
SUPPORTED_COLUMNS = (2, 4)

VERSION_EMPTY = "empty"
VERSION_FALLBACK = "fallback"


@dataclass(frozen=True)
class LayoutItem:
    id: int
    width: int
    height: int

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def is_wide(self) -> bool:
        return self.aspect_ratio >= WIDE_IMAGE_THRESHOLD

    @property
    def display_height(self) -> float:
        return ITEM_WIDTH / self.aspect_ratio


# ══════════════════════════════════════════════════════════════════════════
# Ordering Algorithm
# ══════════════════════════════════════════════════════════════════════════

def _find_best_column(item: LayoutItem, heights: List[float]) -> int:
    """Shortest column, or for a wide item the start of the flattest adjacent pair."""
    columns = len(heights)
    if item.is_wide and columns >= 2:
        best, best_height = 0, max(heights[0], heights[1])
        for i in range(1, columns - 1):
            pair_height = max(heights[i], heights[i + 1])
            if pair_height < best_height:
                best, best_height = i, pair_height
        return best

    best = 0
    for i in range(1, columns):
        if heights[i] < heights[best]:
            best = i
    return best


def _placement_score(
    item: LayoutItem, column: int, heights: List[float], consecutive_wide: int
) -> float:
    wide = item.is_wide
    if wide and len(heights) >= 2:
        score = -max(heights[column], heights[column + 1])
    else:
        score = -heights[column]

    if wide:
        score *= WIDE_IMAGE_BIAS
        if item.aspect_ratio >= PANORAMIC_MIN_ASPECT:
            score += PANORAMIC_BONUS
    elif consecutive_wide > 0:
        score += NARROW_AFTER_WIDE_BONUS
    return score


def _place(item: LayoutItem, column: int, heights: List[float]) -> None:
    height = item.display_height
    if item.is_wide and len(heights) >= 2 and column < len(heights) - 1:
        top = max(heights[column], heights[column + 1]) + height
        heights[column] = top
        heights[column + 1] = top
    else:
        heights[column] += height


def calculate_optimal_order(items: Sequence[LayoutItem], columns: int) -> List[int]:
    """
    Return item ids in the order a `columns`-wide masonry grid should render them.

    Deterministic: ties are broken by input order.
    """
    if columns < 1:
        raise ValueError(f"columns must be positive, got {columns}")

    remaining = list(items)
    heights = [0.0] * columns
    consecutive_wide = 0
    since_last_wide = 0
    ordered: List[int] = []

    while remaining:
        best_index: Optional[int] = None
        best_column = 0
        best_score = float("-inf")

        for index, item in enumerate(remaining):
            if item.is_wide and consecutive_wide >= MAX_WIDE_STREAK:
                continue
            column = _find_best_column(item, heights)
            score = _placement_score(item, column, heights, consecutive_wide)
            if score > best_score:
                best_index, best_column, best_score = index, column, score

        if best_index is None:
            # only wide items left and the streak limit is reached
            chosen = remaining.pop(0)
            _place(chosen, _find_best_column(chosen, heights), heights)
            ordered.append(chosen.id)
            consecutive_wide = 0
            since_last_wide += 1
            continue

        chosen = remaining.pop(best_index)
        _place(chosen, best_column, heights)
        ordered.append(chosen.id)

        if chosen.is_wide:
            consecutive_wide += 1
            since_last_wide = 0
        else:
            consecutive_wide = 0
            since_last_wide += 1

    return ordered


def compute_version(submissions: Sequence[Submission]) -> str:
    """Stable hash over the (id, submitted_at) pairs of the input set."""
    if not submissions:
        return VERSION_EMPTY
    digest = hashlib.sha256()
    for submission in submissions:
        submitted = as_utc(submission.submitted_at)
        stamp = submitted.isoformat() if submitted else ""
        digest.update(f"{submission.id}:{stamp};".encode("utf-8"))
    return digest.hexdigest()[:16]


# ══════════════════════════════════════════════════════════════════════════
# Service
# ══════════════════════════════════════════════════════════════════════════

class MasonryOrderService:
    def __init__(
        self,
        dimensions: Optional[ImageDimensionService] = None,
        cache_ttl: Optional[int] = None,
    ):
        self.dimensions = dimensions or image_dimension_service
        ttl = settings.layout_cache_ttl if cache_ttl is None else cache_ttl
        # ttl 0 disables caching; TTLCache needs a positive ttl
        self._cache: Optional[TTLCache] = TTLCache(maxsize=256, ttl=ttl) if ttl > 0 else None

    def invalidate(self, issue_id: int) -> None:
        if self._cache is not None and self._cache.pop(issue_id, None) is not None:
            logger.debug("Layout cache invalidated for issue %d", issue_id)

    def clear(self) -> None:
        if self._cache is not None:
            self._cache.clear()

    async def _public_submissions(self, db: AsyncSession, issue_id: int) -> List[Submission]:
        result = await db.execute(
            select(Submission)
            .where(Submission.issue_id == issue_id, Submission.status.in_(PUBLIC_STATUSES))
            .order_by(Submission.submitted_at.asc(), Submission.id.asc())
        )
        return list(result.scalars().all())

    async def _resolve_dimensions(self, submission: Submission) -> Tuple[LayoutItem, str]:
        if submission.has_dimension_data():
            return LayoutItem(submission.id, submission.image_width, submission.image_height), "stored"

        dims = await self.dimensions.get_dimensions(submission.image_url)
        if dims is not None:
            return LayoutItem(submission.id, dims.width, dims.height), "fetched"

        return LayoutItem(submission.id, DEFAULT_DIMENSIONS.width, DEFAULT_DIMENSIONS.height), "default"

    async def _layout_items(self, submissions: Sequence[Submission]) -> List[Tuple[LayoutItem, str]]:
        return [await self._resolve_dimensions(s) for s in submissions]

    @staticmethod
    def _empty_response(issue_id: int, version: str = VERSION_EMPTY) -> MasonryOrderResponse:
        return MasonryOrderResponse(
            order=MasonryOrderResult(),
            cache_info=OrderCacheInfo(generated_at=utcnow(), issue_id=issue_id, version=version),
        )

    async def get_ordering(self, db: AsyncSession, issue_id: int) -> MasonryOrderResponse:
        """
        Ordering for the public submissions of an issue.

        Cached responses are returned with fromCache=true. If the algorithm
        itself fails, both orders fall back to submission order and the
        version is "fallback". Any other failure yields the empty response.
        """
        if self._cache is not None:
            cached = self._cache.get(issue_id)
            if cached is not None:
                logger.debug("Layout cache hit for issue %d", issue_id)
                return cached.model_copy(
                    update={"cache_info": cached.cache_info.model_copy(update={"from_cache": True})}
                )

        started = time.perf_counter()
        try:
            submissions = await self._public_submissions(db, issue_id)
            if not submissions:
                return self._empty_response(issue_id)
            resolved = await self._layout_items(submissions)
        except Exception as e:
            logger.error("Layout ordering failed for issue %d: %s", issue_id, str(e), exc_info=True)
            return self._empty_response(issue_id)

        items = [item for item, _ in resolved]
        input_order = [item.id for item in items]
        try:
            order_2col = calculate_optimal_order(items, 2)
            order_4col = calculate_optimal_order(items, 4)
            version = compute_version(submissions)
        except Exception as e:
            logger.error("Masonry algorithm failed for issue %d: %s", issue_id, str(e), exc_info=True)
            order_2col, order_4col, version = input_order, list(input_order), VERSION_FALLBACK

        aspects = [item.aspect_ratio for item in items]
        response = MasonryOrderResponse(
            order=MasonryOrderResult(
                ordered_ids2col=order_2col,
                ordered_ids4col=order_4col,
                total_items=len(items),
                avg_aspect_ratio=round(sum(aspects) / len(aspects), 6),
                wide_image_count=sum(1 for item in items if item.is_wide),
            ),
            cache_info=OrderCacheInfo(
                generated_at=utcnow(),
                issue_id=issue_id,
                from_cache=False,
                version=version,
                processing_time_ms=int((time.perf_counter() - started) * 1000),
            ),
        )

        if self._cache is not None and version != VERSION_FALLBACK:
            self._cache[issue_id] = response
        logger.info(
            "Computed masonry order for issue %d: %d items, %d wide",
            issue_id, response.order.total_items, response.order.wide_image_count,
        )
        return response

    async def debug_details(self, db: AsyncSession, issue_id: int) -> LayoutDebugResponse:
        submissions = await self._public_submissions(db, issue_id)
        resolved = await self._layout_items(submissions)
        items = [item for item, _ in resolved]
        return LayoutDebugResponse(
            issue_id=issue_id,
            items=[
                LayoutDebugItem(
                    submission_id=item.id,
                    width=item.width,
                    height=item.height,
                    aspect_ratio=round(item.aspect_ratio, 6),
                    is_wide=item.is_wide,
                    dimension_source=source,
                )
                for item, source in resolved
            ],
            ordered_ids2col=calculate_optimal_order(items, 2),
            ordered_ids4col=calculate_optimal_order(items, 4),
        )


masonry_order_service = MasonryOrderService()


def describe_supported_viewports() -> List[str]:
    return [f"{columns}col" for columns in SUPPORTED_COLUMNS]
