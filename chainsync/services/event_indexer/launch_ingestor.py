"""
Launch-Event Ingestor.

Stores one token row per TokenLaunched event of the factory and triggers
best-effort history seeding for tokens seen for the first time.
"""

import asyncio
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from chainsync.models.token import NAME_MAX_LENGTH, SYMBOL_MAX_LENGTH
from chainsync.repositories import TokenRepository
from chainsync.services.rpc.core_constants import TOTAL_SUPPLY
from chainsync.utils.conversions import wei_to_ether
from chainsync.utils.deadline import Deadline
from chainsync.utils.security import mask_address

from .block_cache import BlockCache
from .history_seeder import HistorySeeder
from .schemas import IngestResult

ETHER_QUANTUM = Decimal("1e-18")


def launch_reserves(liquidity_percent: int, initial_liquidity_eth: Decimal) -> tuple[Decimal, Decimal]:
    """
    Derive the pool's opening token reserve and price.

    Examples:
        >>> launch_reserves(80, Decimal("1.6"))
        (Decimal('800000'), Decimal('0.000002000000000000'))
    """
    token_reserve = Decimal(TOTAL_SUPPLY * liquidity_percent) / 100
    if token_reserve <= 0:
        return token_reserve, Decimal("0")
    price = (initial_liquidity_eth / token_reserve).quantize(ETHER_QUANTUM)
    return token_reserve, price


def _fit(value: str, limit: int, field: str, token_address: str) -> str:
    """Cut on-chain metadata to the column width, logging when it is cut."""
    if len(value) <= limit:
        return value
    logger.warning(
        f"[Indexer] Truncating {field} of {mask_address(token_address)} "
        f"from {len(value)} to {limit} chars"
    )
    return value[:limit]


class LaunchIngestor:
    """Ingest TokenLaunched events of one scan window."""

    def __init__(
        self,
        chain: Any,
        block_cache: BlockCache,
        seeder: HistorySeeder,
    ) -> None:
        self.chain = chain
        self.block_cache = block_cache
        self.seeder = seeder

    async def ingest(
        self,
        session: AsyncSession,
        start_block: int,
        end_block: int,
        deadline: Deadline,
        skip_blocks: set[int] | frozenset[int] = frozenset(),
    ) -> IngestResult:
        """
        Index token launches in [start_block, end_block].

        Each token is committed on its own, so one failing row does not
        undo the others. The window stays incomplete if the logs could
        not be fetched or any launch could not be stored.

        Args:
            session: Database session
            start_block: First block
            end_block: Last block
            deadline: Invocation deadline
            skip_blocks: Blocks whose events are ignored

        Returns:
            IngestResult with tokens indexed. Seeding runs in the
            background; its tasks are in pending_side_effects.
        """
        result = IngestResult()
        repo = TokenRepository(session)

        try:
            events = await self.chain.get_launch_events(start_block, end_block)
        except Exception as e:
            logger.error(f"[Indexer] Failed to fetch launch events: {e}")
            result.errors.append(f"Token launch indexing error: {e}")
            result.complete = False
            return result

        if events:
            logger.info(
                f"[Indexer] {len(events)} launch events in "
                f"blocks {start_block}-{end_block}"
            )

        for event in events:
            if deadline.expired():
                result.timed_out = True
                break

            if event.block_number in skip_blocks:
                logger.info(
                    f"[Indexer] Skipping launch of {mask_address(event.token_address)} "
                    f"in skip-listed block {event.block_number}"
                )
                continue

            try:
                block = await self.block_cache.get_block(event.block_number)
                if block is None:
                    raise LookupError(f"block {event.block_number} not found")

                initial_liquidity_eth = wei_to_ether(event.initial_liquidity_wei)
                token_reserve, launch_price = launch_reserves(
                    event.liquidity_percent, initial_liquidity_eth
                )

                inserted = await repo.insert_launched(
                    token_address=event.token_address,
                    amm_address=event.amm_address,
                    name=_fit(event.name, NAME_MAX_LENGTH, "name", event.token_address),
                    symbol=_fit(event.symbol, SYMBOL_MAX_LENGTH, "symbol", event.token_address),
                    creator_address=event.creator,
                    liquidity_percent=event.liquidity_percent,
                    initial_liquidity_eth=initial_liquidity_eth,
                    launch_price_eth=launch_price,
                    current_eth_reserve=initial_liquidity_eth,
                    current_token_reserve=token_reserve,
                    total_volume_eth=Decimal("0"),
                    holder_count=0,
                    block_number=block.number,
                    block_hash=block.hash,
                    launched_at=block.mined_at,
                )
                await session.commit()

            except Exception as e:
                await session.rollback()
                logger.error(
                    f"[Indexer] Failed to insert token "
                    f"{mask_address(event.token_address)}: {e}"
                )
                result.errors.append(
                    f"Failed to insert token {event.token_address}: {e}"
                )
                result.complete = False
                continue

            if not inserted:
                continue

            result.indexed += 1
            logger.info(
                f"[Indexer] New token {event.symbol} "
                f"({mask_address(event.token_address)}) at block {block.number}"
            )

            if self.seeder.enabled:
                result.pending_side_effects.append(
                    asyncio.create_task(
                        self.seeder.seed(
                            token_address=event.token_address,
                            launch_price_eth=launch_price,
                            initial_eth_reserve=initial_liquidity_eth,
                            initial_token_reserve=token_reserve,
                            created_at=block.mined_at,
                        )
                    )
                )

        return result
