"""
Munich Weekly Backend — Masonry Order Tests
============================================

What we test:
    ✅ Ordering is a permutation of the input and deterministic
    ✅ Wide images are never placed back to back while narrow ones remain
    ✅ Column validation, empty and single-item inputs
    ✅ Hand-traced 2- and 4-column sequences: wide bias, wide bonus,
       pair placement, streak fallback
    ✅ Version hash stability
    ✅ Service: public-only input, cache hit/miss, invalidation, fallback,
       default dimensions when nothing is known
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from munich_weekly.models.submission import STATUS_APPROVED, STATUS_PENDING, STATUS_SELECTED
from munich_weekly.schemas.layout import LayoutDebugResponse, MasonryOrderResult
from munich_weekly.services.image_dimension_service import ImageDimensions
from munich_weekly.services.masonry_order_service import (
    VERSION_EMPTY,
    VERSION_FALLBACK,
    LayoutItem,
    MasonryOrderService,
    _place,
    _placement_score,
    calculate_optimal_order,
    compute_version,
    describe_supported_viewports,
)


def _mixed_items():
    return [
        LayoutItem(1, 1920, 1080),  # wide
        LayoutItem(2, 2400, 1000),  # wide, panoramic
        LayoutItem(3, 800, 1200),
        LayoutItem(4, 1000, 1000),
        LayoutItem(5, 1920, 800),   # wide
        LayoutItem(6, 900, 1200),
        LayoutItem(7, 1200, 900),
    ]


class TestLayoutItem:
    def test_wide_threshold_is_sixteen_by_nine(self):
        assert LayoutItem(1, 1600, 900).is_wide is True
        assert LayoutItem(2, 1599, 900).is_wide is False

    def test_display_height_scales_to_item_width(self):
        # 280px column, square image → 280px tall
        assert LayoutItem(1, 1000, 1000).display_height == pytest.approx(280.0)


class TestCalculateOptimalOrder:
    @pytest.mark.parametrize("columns", [2, 4])
    def test_returns_permutation_of_input(self, columns):
        items = _mixed_items()
        ordered = calculate_optimal_order(items, columns)
        assert sorted(ordered) == sorted(item.id for item in items)
        assert len(ordered) == len(items)

    @pytest.mark.parametrize("columns", [2, 4])
    def test_is_deterministic(self, columns):
        items = _mixed_items()
        assert calculate_optimal_order(items, columns) == calculate_optimal_order(items, columns)

    @pytest.mark.parametrize("columns", [2, 4])
    def test_no_adjacent_wide_while_narrow_remain(self, columns):
        items = _mixed_items()
        by_id = {item.id: item for item in items}
        ordered = calculate_optimal_order(items, columns)

        for i in range(len(ordered) - 1):
            if by_id[ordered[i]].is_wide and by_id[ordered[i + 1]].is_wide:
                remaining = ordered[i + 2:]
                assert all(by_id[sid].is_wide for sid in remaining)

    def test_only_wide_items_are_all_placed(self):
        items = [LayoutItem(i, 1920, 1080) for i in range(1, 5)]
        ordered = calculate_optimal_order(items, 4)
        assert sorted(ordered) == [1, 2, 3, 4]

    def test_empty_input(self):
        assert calculate_optimal_order([], 2) == []

    def test_single_item(self):
        assert calculate_optimal_order([LayoutItem(9, 800, 600)], 4) == [9]

    def test_single_column_accepts_wide_items(self):
        items = [LayoutItem(1, 1920, 1080), LayoutItem(2, 800, 600)]
        assert sorted(calculate_optimal_order(items, 1)) == [1, 2]

    def test_invalid_column_count(self):
        with pytest.raises(ValueError):
            calculate_optimal_order([LayoutItem(1, 800, 600)], 0)

    def test_equal_narrow_items_keep_input_order(self):
        items = [LayoutItem(i, 800, 800) for i in range(1, 6)]
        assert calculate_optimal_order(items, 2) == [1, 2, 3, 4, 5]


class TestExpectedSequences:
    """
    Hand-traced orderings. Display heights at the 280px item width:
    280×H narrow images are H tall, 2:1 images are 140 tall, 2.8:1 are 100.
    """

    def test_two_columns_wide_bias_beats_shorter_column(self):
        # heights after W1, N1, N2: [640, 600]
        # W2 scores -640 * 0.9 + 20 = -556, N3 scores -600
        items = [
            LayoutItem(1, 2000, 1000),  # W1
            LayoutItem(2, 280, 500),    # N1
            LayoutItem(3, 280, 460),    # N2
            LayoutItem(4, 2000, 1000),  # W2
            LayoutItem(5, 280, 300),    # N3
        ]
        assert calculate_optimal_order(items, 2) == [1, 2, 3, 4, 5]

    def test_two_columns_wide_bonus_decides(self):
        # heights after W1, N1, N2: [600, 530]
        # W2 scores -600 * 0.9 + 20 = -520 against -530; without the +20 it would lose
        items = [
            LayoutItem(1, 2000, 1000),  # W1
            LayoutItem(2, 280, 460),    # N1
            LayoutItem(3, 280, 390),    # N2
            LayoutItem(4, 2000, 1000),  # W2
            LayoutItem(5, 280, 300),    # N3
        ]
        assert calculate_optimal_order(items, 2) == [1, 2, 3, 4, 5]

    def test_two_columns_narrow_wins_when_wide_pair_is_too_tall(self):
        # heights after W1, N1: [640, 140]; every narrow beats W2 (-556)
        items = [
            LayoutItem(1, 2000, 1000),  # W1
            LayoutItem(2, 280, 500),    # N1
            LayoutItem(3, 2000, 1000),  # W2
            LayoutItem(4, 280, 200),    # N2 → [640, 340]
            LayoutItem(5, 280, 250),    # N3 → [640, 590]
        ]
        assert calculate_optimal_order(items, 2) == [1, 2, 4, 5, 3]

    def test_four_columns_pair_placement(self):
        # W1 spans columns 0-1 → [140, 140, 0, 0]
        # N1 → column 2, N2 → column 3: [140, 140, 500, 300]
        # W2 on pair 0-1 scores -140 * 0.9 + 20 = -106 against -140 for narrows
        # W2 lifts both columns to 240; N3 then lands on column 0
        items = [
            LayoutItem(1, 280, 500),    # N1
            LayoutItem(2, 2000, 1000),  # W1
            LayoutItem(3, 280, 300),    # N2
            LayoutItem(4, 280, 400),    # N3
            LayoutItem(5, 1400, 500),   # W2
            LayoutItem(6, 280, 200),    # N4
        ]
        assert calculate_optimal_order(items, 4) == [2, 1, 3, 5, 4, 6]

    def test_wide_streak_limit_falls_back_to_input_order(self):
        # after the first wide only wide items remain, so each step takes the first
        items = [LayoutItem(i, 2000, 1000) for i in range(1, 4)]
        assert calculate_optimal_order(items, 2) == [1, 2, 3]


class TestPlacementScore:
    def test_narrow_after_wide_bonus(self):
        narrow = LayoutItem(1, 280, 280)
        assert _placement_score(narrow, 0, [100.0, 200.0], consecutive_wide=1) == pytest.approx(-50.0)
        assert _placement_score(narrow, 0, [100.0, 200.0], consecutive_wide=0) == pytest.approx(-100.0)

    def test_wide_uses_pair_height_with_bias_and_bonus(self):
        wide = LayoutItem(2, 2000, 1000)
        assert _placement_score(wide, 0, [100.0, 200.0], consecutive_wide=0) == pytest.approx(-160.0)

    def test_wide_pair_placement_levels_both_columns(self):
        heights = [100.0, 200.0, 50.0]
        _place(LayoutItem(3, 2000, 1000), 0, heights)
        assert heights == pytest.approx([340.0, 340.0, 50.0])


class TestOrderPayloadKeys:
    def test_order_result_keys(self):
        payload = MasonryOrderResult(ordered_ids2col=[3, 1], ordered_ids4col=[1, 3]).model_dump(by_alias=True)

        assert payload["orderedIds2col"] == [3, 1]
        assert payload["orderedIds4col"] == [1, 3]
        assert "orderedIds2Col" not in payload

    def test_debug_response_keys(self):
        payload = LayoutDebugResponse(
            issue_id=1, items=[], ordered_ids2col=[], ordered_ids4col=[]
        ).model_dump(by_alias=True)

        assert {"orderedIds2col", "orderedIds4col"} <= set(payload)


class TestComputeVersion:
    def _submission(self, sid, stamp):
        submission = MagicMock()
        submission.id = sid
        submission.submitted_at = stamp
        return submission

    def test_empty_set(self):
        assert compute_version([]) == VERSION_EMPTY

    def test_stable_and_sixteen_hex_chars(self):
        stamp = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        subs = [self._submission(1, stamp), self._submission(2, stamp)]
        version = compute_version(subs)
        assert version == compute_version(subs)
        assert len(version) == 16
        int(version, 16)

    def test_changes_with_membership(self):
        stamp = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        one = compute_version([self._submission(1, stamp)])
        two = compute_version([self._submission(1, stamp), self._submission(2, stamp)])
        assert one != two


def test_supported_viewports():
    assert describe_supported_viewports() == ["2col", "4col"]


class TestMasonryOrderService:
    def _service(self, dims=None, ttl=300):
        dimension_service = MagicMock()
        dimension_service.get_dimensions = AsyncMock(return_value=dims)
        return MasonryOrderService(dimensions=dimension_service, cache_ttl=ttl)

    @pytest.mark.asyncio
    async def test_empty_issue(self, db_session, factory):
        issue = await factory.issue()
        response = await self._service().get_ordering(db_session, issue.id)

        assert response.order.total_items == 0
        assert response.order.ordered_ids2col == []
        assert response.cache_info.version == VERSION_EMPTY
        assert response.cache_info.from_cache is False

    @pytest.mark.asyncio
    async def test_only_public_submissions_are_ordered(self, db_session, factory):
        user = await factory.user()
        issue = await factory.issue()
        approved = await factory.submission(user, issue, STATUS_APPROVED, 1200, 800)
        selected = await factory.submission(user, issue, STATUS_SELECTED, 1920, 1080)
        await factory.submission(user, issue, STATUS_PENDING, 800, 800)

        response = await self._service().get_ordering(db_session, issue.id)

        assert sorted(response.order.ordered_ids2col) == sorted([approved.id, selected.id])
        assert sorted(response.order.ordered_ids4col) == sorted([approved.id, selected.id])
        assert response.order.total_items == 2
        assert response.order.wide_image_count == 1
        assert response.cache_info.issue_id == issue.id

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self, db_session, factory):
        user = await factory.user()
        issue = await factory.issue()
        await factory.submission(user, issue, STATUS_APPROVED, 1200, 800)
        service = self._service()

        first = await service.get_ordering(db_session, issue.id)
        second = await service.get_ordering(db_session, issue.id)

        assert first.cache_info.from_cache is False
        assert second.cache_info.from_cache is True
        assert second.order == first.order
        assert second.cache_info.version == first.cache_info.version

    @pytest.mark.asyncio
    async def test_invalidate_forces_recompute(self, db_session, factory):
        user = await factory.user()
        issue = await factory.issue()
        await factory.submission(user, issue, STATUS_APPROVED, 1200, 800)
        service = self._service()

        await service.get_ordering(db_session, issue.id)
        service.invalidate(issue.id)
        again = await service.get_ordering(db_session, issue.id)

        assert again.cache_info.from_cache is False

    @pytest.mark.asyncio
    async def test_zero_ttl_disables_cache(self, db_session, factory):
        user = await factory.user()
        issue = await factory.issue()
        await factory.submission(user, issue, STATUS_APPROVED, 1200, 800)
        service = self._service(ttl=0)

        await service.get_ordering(db_session, issue.id)
        again = await service.get_ordering(db_session, issue.id)

        assert again.cache_info.from_cache is False

    @pytest.mark.asyncio
    async def test_algorithm_failure_falls_back_to_submission_order(self, db_session, factory):
        user = await factory.user()
        issue = await factory.issue()
        first = await factory.submission(user, issue, STATUS_APPROVED, 1200, 800)
        second = await factory.submission(user, issue, STATUS_APPROVED, 800, 1200)
        service = self._service()

        with patch(
            "munich_weekly.services.masonry_order_service.calculate_optimal_order",
            side_effect=RuntimeError("boom"),
        ):
            response = await service.get_ordering(db_session, issue.id)
            again = await service.get_ordering(db_session, issue.id)

        assert response.cache_info.version == VERSION_FALLBACK
        assert response.order.ordered_ids2col == [first.id, second.id]
        assert response.order.ordered_ids4col == [first.id, second.id]
        # fallback results are not cached
        assert again.cache_info.from_cache is False

    @pytest.mark.asyncio
    async def test_missing_dimensions_are_fetched(self, db_session, factory):
        user = await factory.user()
        issue = await factory.issue()
        await factory.submission(user, issue, STATUS_APPROVED)
        service = self._service(dims=ImageDimensions(1920, 1080))

        debug = await service.debug_details(db_session, issue.id)

        assert debug.items[0].dimension_source == "fetched"
        assert debug.items[0].is_wide is True

    @pytest.mark.asyncio
    async def test_unknown_dimensions_default_to_800x600(self, db_session, factory):
        user = await factory.user()
        issue = await factory.issue()
        await factory.submission(user, issue, STATUS_APPROVED)
        service = self._service(dims=None)

        debug = await service.debug_details(db_session, issue.id)

        item = debug.items[0]
        assert (item.width, item.height) == (800, 600)
        assert item.dimension_source == "default"
