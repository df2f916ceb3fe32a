"""
Swap-Event Ingestor.

Scans each tracked token's pool for Swap events, stores them idempotently,
refreshes chain-authoritative reserves and grows the volume accumulator.
Tokens are processed in bounded concurrent batches.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chainsync.config.constants import PARALLEL_TOKEN_LIMIT, TOKEN_BATCH_PAUSE_SECONDS
from chainsync.repositories import SwapRepository, TokenRepository
from chainsync.utils.conversions import wei_to_ether
from chainsync.utils.deadline import Deadline
from chainsync.utils.security import mask_address

from .block_cache import BlockCache
from .schemas import IngestResult


@dataclass
class TokenSwapResult:
    """Outcome of one token's swap scan."""
    token_address: str
    swaps_indexed: int = 0
    volume_added: Decimal = Decimal("0")
    holder_refreshed: bool = False
    timed_out: bool = False
    failed: bool = False
    errors: list[str] = field(default_factory=list)


class SwapIngestor:
    """Ingest Swap events of all tracked tokens for one scan window."""

    def __init__(
        self,
        chain: Any,
        block_cache: BlockCache,
        session_maker: async_sessionmaker[AsyncSession],
        parallel_limit: int = PARALLEL_TOKEN_LIMIT,
        batch_pause: float = TOKEN_BATCH_PAUSE_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize ingestor.

        Args:
            chain: Chain client
            block_cache: Block cache shared with the rest of the invocation
            session_maker: Factory for per-token database sessions
            parallel_limit: Tokens processed concurrently
            batch_pause: Pause between token batches in seconds
            sleep: Awaitable sleep (replaced in tests)
        """
        self.chain = chain
        self.block_cache = block_cache
        self.session_maker = session_maker
        self.parallel_limit = max(parallel_limit, 1)
        self.batch_pause = batch_pause
        self._sleep = sleep

    async def ingest(
        self,
        tokens: Sequence[Any],
        start_block: int,
        end_block: int,
        deadline: Deadline,
        backfill_swaps: bool = False,
        skip_blocks: set[int] | frozenset[int] = frozenset(),
    ) -> IngestResult:
        """
        Index swaps of the given tokens.

        Args:
            tokens: Rows with token_address, amm_address, block_number
            start_block: Window start
            end_block: Window end
            deadline: Invocation deadline
            backfill_swaps: Widen the start of tokens with a history gap
            skip_blocks: Blocks whose events are ignored

        Returns:
            IngestResult; complete is False when any token failed
        """
        result = IngestResult()

        if not tokens:
            return result

        logger.info(f"[Indexer] Processing swaps for {len(tokens)} tokens")

        for offset in range(0, len(tokens), self.parallel_limit):
            if deadline.expired():
                result.timed_out = True
                break

            batch = tokens[offset:offset + self.parallel_limit]
            batch_results = await asyncio.gather(
                *(
                    self.process_token(
                        token,
                        start_block,
                        end_block,
                        deadline,
                        backfill_swaps=backfill_swaps,
                        skip_blocks=skip_blocks,
                    )
                    for token in batch
                )
            )

            for token_result in batch_results:
                result.indexed += token_result.swaps_indexed
                result.errors.extend(token_result.errors)
                if token_result.timed_out:
                    result.timed_out = True
                if token_result.failed:
                    result.complete = False

            if result.timed_out:
                break

            # Stay under public RPC rate limits
            if offset + self.parallel_limit < len(tokens):
                await self._sleep(self.batch_pause)

        return result

    async def process_token(
        self,
        token: Any,
        start_block: int,
        end_block: int,
        deadline: Deadline,
        backfill_swaps: bool = False,
        skip_blocks: set[int] | frozenset[int] = frozenset(),
    ) -> TokenSwapResult:
        """
        Scan, store and account the swaps of one token.

        Everything the token writes is committed in one transaction; on
        timeout the events collected so far are still stored.

        Args:
            token: Row with token_address, amm_address, block_number
            start_block: Window start
            end_block: Window end
            deadline: Invocation deadline
            backfill_swaps: Widen the start of tokens with a history gap
            skip_blocks: Blocks whose events are ignored

        Returns:
            TokenSwapResult
        """
        result = TokenSwapResult(token_address=token.token_address)

        if deadline.expired():
            result.timed_out = True
            return result

        async with self.session_maker() as session:
            try:
                await self._process_token(
                    session,
                    token,
                    start_block,
                    end_block,
                    deadline,
                    backfill_swaps,
                    skip_blocks,
                    result,
                )
            except Exception as e:
                await session.rollback()
                logger.error(
                    f"[Indexer] Swap indexing failed for "
                    f"{mask_address(token.token_address)}: {e}"
                )
                result.swaps_indexed = 0
                result.volume_added = Decimal("0")
                result.holder_refreshed = False
                result.failed = True
                result.errors.append(
                    f"Failed to index swaps for {token.token_address}: {e}"
                )

        return result

    async def _process_token(
        self,
        session: AsyncSession,
        token: Any,
        start_block: int,
        end_block: int,
        deadline: Deadline,
        backfill_swaps: bool,
        skip_blocks: set[int] | frozenset[int],
        result: TokenSwapResult,
    ) -> None:
        swap_repo = SwapRepository(session)
        token_repo = TokenRepository(session)

        query_start = start_block
        if backfill_swaps:
            earliest = await swap_repo.get_earliest_block(token.token_address)
            if earliest is None or earliest > token.block_number + 1:
                query_start = min(start_block, token.block_number)
                if query_start < start_block:
                    logger.info(
                        f"[Indexer] Backfilling {mask_address(token.token_address)} "
                        f"from block {query_start}"
                    )

        if query_start > end_block:
            return

        events = await self.chain.get_swap_events(token.amm_address, query_start, end_block)
        if not events:
            return

        rows: list[dict[str, Any]] = []
        seen_hashes: set[str] = set()

        for event in events:
            if deadline.expired():
                result.timed_out = True
                break

            if event.block_number in skip_blocks or event.tx_hash in seen_hashes:
                continue

            block = await self.block_cache.get_block(event.block_number)
            if block is None:
                raise LookupError(f"block {event.block_number} not found")

            seen_hashes.add(event.tx_hash)
            rows.append({
                "token_address": token.token_address,
                "amm_address": token.amm_address,
                "user_address": event.user,
                "eth_in": wei_to_ether(event.eth_in),
                "token_in": wei_to_ether(event.token_in),
                "eth_out": wei_to_ether(event.eth_out),
                "token_out": wei_to_ether(event.token_out),
                "tx_hash": event.tx_hash,
                "log_index": event.log_index,
                "block_number": block.number,
                "block_hash": block.hash,
                "swapped_at": block.mined_at,
            })

        if not rows:
            return

        inserted = await swap_repo.insert_batch(rows)

        eth_reserve, token_reserve = await self.chain.get_reserves(token.amm_address)
        volume_delta = sum(
            (row["eth_in"] + row["eth_out"] for row in rows if row["tx_hash"] in inserted),
            Decimal("0"),
        )
        await token_repo.apply_swap_batch(
            token.token_address,
            eth_reserve=wei_to_ether(eth_reserve),
            token_reserve=wei_to_ether(token_reserve),
            volume_delta=volume_delta,
        )

        # Only sells can shrink the holder set
        if any(row["token_out"] > 0 for row in rows):
            await token_repo.refresh_holder_count(token.token_address, token.amm_address)
            result.holder_refreshed = True

        await session.commit()

        result.swaps_indexed = len(inserted)
        result.volume_added = volume_delta

        if inserted:
            logger.info(
                f"[Indexer] {mask_address(token.token_address)}: "
                f"{len(inserted)} new swaps, +{volume_delta} ETH volume"
            )
