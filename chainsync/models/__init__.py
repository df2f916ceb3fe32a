"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from chainsync.models.base import Base
from chainsync.models.indexer_state import IndexerState
from chainsync.models.skip_block import SKIP_ALL, SKIP_LAUNCH, SKIP_SWAP, SkipBlock
from chainsync.models.swap import Swap
from chainsync.models.token import Token

__all__ = [
    "Base",
    "IndexerState",
    "SkipBlock",
    "SKIP_ALL",
    "SKIP_LAUNCH",
    "SKIP_SWAP",
    "Swap",
    "Token",
]
