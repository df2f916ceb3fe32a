"""
Tests for scan window planning.

Covers:
- Adaptive block range tiers
- Window bounds (safe block, explicit overrides)
- Catch-up jump over an abandoned backlog
- Empty windows
"""

import pytest

from chainsync.config.constants import (
    CATCH_UP_RESUME_BLOCKS,
    MAX_BLOCK_RANGE,
    MIN_BLOCK_RANGE,
)
from chainsync.services.event_indexer.planner import (
    calculate_block_range,
    plan_scan_window,
)


class TestCalculateBlockRange:
    """Test adaptive block range."""

    @pytest.mark.parametrize(
        "blocks_behind,expected",
        [
            (50000, 2000),
            (10001, 2000),
            (10000, 1000),
            (5001, 1000),
            (5000, 500),
            (1001, 500),
            (1000, 300),
            (501, 300),
            (500, 100),
            (7, 100),
            (0, 100),
            (-3, 100),
        ],
    )
    def test_tiers(self, blocks_behind, expected):
        """Each tier applies strictly above its threshold."""
        assert calculate_block_range(blocks_behind) == expected

    def test_range_never_shrinks_as_backlog_grows(self):
        """Range is monotonic in the backlog."""
        ranges = [calculate_block_range(behind) for behind in range(0, 20001, 250)]

        assert ranges == sorted(ranges)
        assert ranges[0] == MIN_BLOCK_RANGE
        assert ranges[-1] == MAX_BLOCK_RANGE


class TestPlanScanWindow:
    """Test scan window derivation."""

    def test_caught_up_window_stops_at_safe_block(self):
        """Head 1000, watermark 990, depth 2 gives [991, 998]."""
        plan = plan_scan_window(
            current_block=1000, last_indexed_block=990, confirmation_depth=2
        )

        assert plan.safe_block == 998
        assert plan.start_block == 991
        assert plan.end_block == 998
        assert plan.blocks_behind == 7
        assert plan.block_range == 100
        assert plan.caught_up_jump is False
        assert plan.is_empty is False

    def test_backlog_window_limited_by_range(self):
        """A moderate backlog is scanned range blocks at a time."""
        plan = plan_scan_window(
            current_block=10000, last_indexed_block=1000, confirmation_depth=2
        )

        assert plan.start_block == 1001
        assert plan.blocks_behind == 8997
        assert plan.block_range == 1000
        assert plan.end_block == 2001

    def test_catch_up_jump(self):
        """Backlog older than the threshold is abandoned."""
        plan = plan_scan_window(
            current_block=500000, last_indexed_block=100, confirmation_depth=2
        )

        assert plan.caught_up_jump is True
        assert plan.start_block == 499998 - CATCH_UP_RESUME_BLOCKS
        assert plan.blocks_behind == CATCH_UP_RESUME_BLOCKS
        assert plan.block_range == 1000
        assert plan.end_block == plan.start_block + 1000

    def test_first_run_on_young_chain_starts_at_block_one(self):
        """Watermark 0 resumes at block 1 when the chain is short."""
        plan = plan_scan_window(
            current_block=600, last_indexed_block=0, confirmation_depth=2
        )

        assert plan.start_block == 1
        assert plan.caught_up_jump is False
        assert plan.end_block == 301

    def test_explicit_from_block_zero_is_kept(self):
        """An explicit start is never jumped."""
        plan = plan_scan_window(
            current_block=500000,
            last_indexed_block=0,
            confirmation_depth=2,
            from_block=0,
            to_block=50,
        )

        assert plan.start_block == 0
        assert plan.end_block == 50
        assert plan.caught_up_jump is False

    def test_negative_from_block_clamped(self):
        """Negative start becomes block 0."""
        plan = plan_scan_window(
            current_block=1000, last_indexed_block=0, confirmation_depth=2, from_block=-5
        )

        assert plan.start_block == 0

    def test_to_block_capped_by_range(self):
        """Explicit end is still bounded by start + range."""
        plan = plan_scan_window(
            current_block=1000,
            last_indexed_block=0,
            confirmation_depth=2,
            from_block=900,
            to_block=5000,
        )

        assert plan.end_block == 1000

    def test_nothing_new_is_empty(self):
        """Watermark at the safe block gives an empty window."""
        plan = plan_scan_window(
            current_block=1000, last_indexed_block=998, confirmation_depth=2
        )

        assert plan.start_block == 999
        assert plan.end_block == 998
        assert plan.is_empty is True

    def test_inverted_explicit_range_is_empty(self):
        """to_block below from_block gives an empty window."""
        plan = plan_scan_window(
            current_block=1000,
            last_indexed_block=0,
            confirmation_depth=2,
            from_block=500,
            to_block=400,
        )

        assert plan.is_empty is True
