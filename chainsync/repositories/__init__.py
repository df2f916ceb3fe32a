"""
Repositories.

Data access layer over the indexer tables.
"""

from chainsync.repositories.indexer_state_repository import IndexerStateRepository
from chainsync.repositories.skip_block_repository import SkipBlockRepository
from chainsync.repositories.swap_repository import SwapRepository
from chainsync.repositories.token_repository import TokenRepository

__all__ = [
    "IndexerStateRepository",
    "SkipBlockRepository",
    "SwapRepository",
    "TokenRepository",
]
