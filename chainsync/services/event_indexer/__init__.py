"""
Event Indexer Service.

Mirrors launchpad TokenLaunched and Swap events into the database in
short, time-boxed invocations.

Module Structure:
- planner.py: Scan window and adaptive block range
- reorg.py: Reorg detection and rollback
- block_cache.py: Per-invocation block header memo
- launch_ingestor.py: TokenLaunched events -> tokens
- swap_ingestor.py: Swap events -> swaps, reserves, volume, holders
- history_seeder.py: Best-effort initial price history
- core.py: One invocation end to end
"""

from .block_cache import BlockCache
from .core import EventIndexerService, build_event_indexer
from .history_seeder import HistorySeeder
from .launch_ingestor import LaunchIngestor
from .planner import calculate_block_range, plan_scan_window
from .reorg import ReorgDetector
from .schemas import (
    IndexReport,
    IndexRequest,
    ReorgCheck,
    RollbackSummary,
    ScanPlan,
    SideEffectResult,
)
from .swap_ingestor import SwapIngestor

__all__ = [
    "BlockCache",
    "EventIndexerService",
    "HistorySeeder",
    "IndexReport",
    "IndexRequest",
    "LaunchIngestor",
    "ReorgCheck",
    "ReorgDetector",
    "RollbackSummary",
    "ScanPlan",
    "SideEffectResult",
    "SwapIngestor",
    "build_event_indexer",
    "calculate_block_range",
    "plan_scan_window",
]
