"""
Scan Window Planner.

Derives the block window of one invocation from the chain head, the
stored watermark and the confirmation depth.
"""

from loguru import logger

from chainsync.config.constants import (
    BLOCK_RANGE_TIERS,
    CATCH_UP_RESUME_BLOCKS,
    CATCH_UP_THRESHOLD_BLOCKS,
    MIN_BLOCK_RANGE,
)

from .schemas import ScanPlan


def calculate_block_range(blocks_behind: int) -> int:
    """
    Adaptive number of blocks to scan in one call.

    The further behind, the larger the window; slower when caught up.

    Examples:
        >>> calculate_block_range(20000)
        2000
        >>> calculate_block_range(7)
        100
    """
    for threshold, block_range in BLOCK_RANGE_TIERS:
        if blocks_behind > threshold:
            return block_range
    return MIN_BLOCK_RANGE


def plan_scan_window(
    current_block: int,
    last_indexed_block: int,
    confirmation_depth: int,
    from_block: int | None = None,
    to_block: int | None = None,
) -> ScanPlan:
    """
    Plan the scan window.

    Backlog older than CATCH_UP_THRESHOLD_BLOCKS behind the safe block is
    abandoned: the start jumps to CATCH_UP_RESUME_BLOCKS behind it. This
    loses history on purpose; the gap auditor covers the skipped range.

    Args:
        current_block: Chain head height
        last_indexed_block: Stored watermark
        confirmation_depth: Blocks held back from the head
        from_block: Explicit start override
        to_block: Explicit end override

    Returns:
        ScanPlan (is_empty when there is nothing to index)
    """
    safe_block = current_block - confirmation_depth
    caught_up_jump = False

    if from_block is not None:
        start_block = max(from_block, 0)
    else:
        start_block = max(last_indexed_block + 1, 0)
        if start_block == 0 or start_block < safe_block - CATCH_UP_THRESHOLD_BLOCKS:
            start_block = max(safe_block - CATCH_UP_RESUME_BLOCKS, 0)
            caught_up_jump = True
            logger.warning(
                f"[Indexer] Backlog beyond {CATCH_UP_THRESHOLD_BLOCKS} blocks, "
                f"jumping to block {start_block}"
            )

    blocks_behind = safe_block - start_block
    block_range = calculate_block_range(blocks_behind)

    end_block = to_block if to_block is not None else safe_block
    end_block = min(end_block, start_block + block_range)

    return ScanPlan(
        current_block=current_block,
        safe_block=safe_block,
        start_block=start_block,
        end_block=end_block,
        blocks_behind=blocks_behind,
        block_range=block_range,
        caught_up_jump=caught_up_jump,
    )
