"""
Block Metadata Cache.

Per-invocation memo of block headers, shared by all concurrent token
tasks so events in the same block cost a single RPC round-trip.
"""

import asyncio
from typing import Any

from chainsync.services.rpc.chain_client import BlockInfo


class BlockCache:
    """
    Memoized get_block for one invocation.

    Concurrent lookups of the same block wait on the first fetch instead
    of issuing their own.
    """

    def __init__(self, chain: Any) -> None:
        """
        Initialize cache.

        Args:
            chain: Chain client exposing async get_block(block_number)
        """
        self.chain = chain
        self._blocks: dict[int, BlockInfo] = {}
        self._pending: dict[int, asyncio.Future] = {}
        self.fetch_count = 0

    async def get_block(self, block_number: int) -> BlockInfo | None:
        """
        Get a block header, fetching it at most once.

        Missing blocks are not cached so a later call can retry.
        """
        cached = self._blocks.get(block_number)
        if cached is not None:
            return cached

        pending = self._pending.get(block_number)
        if pending is not None:
            return await asyncio.shield(pending)

        future = asyncio.get_running_loop().create_future()
        self._pending[block_number] = future
        self.fetch_count += 1
        try:
            block = await self.chain.get_block(block_number)
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unawaited failure is not reported
            future.exception()
            raise
        else:
            if block is not None:
                self._blocks[block_number] = block
            future.set_result(block)
            return block
        finally:
            self._pending.pop(block_number, None)
            if not future.done():
                future.cancel()

    def __len__(self) -> int:
        return len(self._blocks)
