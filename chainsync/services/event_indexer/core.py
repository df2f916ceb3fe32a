"""
Event Indexer Core Service.

Runs one time-boxed indexer invocation:
state -> endpoint -> reorg check -> scan window -> launches -> swaps ->
watermark advance -> background seeding collected -> report.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chainsync.config.constants import (
    DEFAULT_CONFIRMATION_DEPTH,
    MAX_EXECUTION_SECONDS,
    PARALLEL_TOKEN_LIMIT,
    ZERO_ADDRESS,
)
from chainsync.config.settings import Settings
from chainsync.models.skip_block import SKIP_LAUNCH, SKIP_SWAP
from chainsync.repositories import (
    IndexerStateRepository,
    SkipBlockRepository,
    TokenRepository,
)
from chainsync.services.rpc.chain_client import build_chain_client
from chainsync.utils.deadline import Deadline

from .block_cache import BlockCache
from .history_seeder import HistorySeeder
from .launch_ingestor import LaunchIngestor
from .planner import plan_scan_window
from .reorg import ReorgDetector
from .schemas import IndexReport, IndexRequest, ScanPlan, SideEffectResult
from .swap_ingestor import SwapIngestor


class EventIndexerService:
    """
    Chain-synchronized indexer of launchpad events.

    One instance serves one invocation. The chain client and seeder are
    owned by the caller.

    Usage:
        service = EventIndexerService(session_maker, chain, seeder)
        report = await service.run(IndexRequest())
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        chain: Any,
        seeder: HistorySeeder | None = None,
        confirmation_depth: int = DEFAULT_CONFIRMATION_DEPTH,
        max_execution_seconds: float = MAX_EXECUTION_SECONDS,
        parallel_token_limit: int = PARALLEL_TOKEN_LIMIT,
        factory_address: str | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize indexer.

        Args:
            session_maker: Database session factory
            chain: Chain client (ChainClient or a compatible fake)
            seeder: History seeder (None disables seeding)
            confirmation_depth: Depth used when creating the state row
            max_execution_seconds: Cooperative time budget
            parallel_token_limit: Tokens whose swaps are scanned concurrently
            factory_address: Launchpad factory; zero address disables launches
            clock: Monotonic clock (replaced in tests)
            sleep: Awaitable sleep (replaced in tests)
        """
        self.session_maker = session_maker
        self.chain = chain
        self.seeder = seeder or HistorySeeder(url=None)
        self.confirmation_depth = confirmation_depth
        self.max_execution_seconds = max_execution_seconds
        self.parallel_token_limit = parallel_token_limit
        if factory_address is None:
            factory_address = getattr(chain, "factory_address", ZERO_ADDRESS)
        self.factory_address = factory_address.lower()
        self.clock = clock
        self.sleep = sleep

    @property
    def launches_configured(self) -> bool:
        return self.factory_address != ZERO_ADDRESS

    async def run(self, request: IndexRequest | None = None) -> IndexReport:
        """
        Execute one indexer invocation.

        Args:
            request: Invocation parameters (defaults to an incremental run)

        Returns:
            IndexReport

        Raises:
            AllEndpointsFailedError: If no RPC endpoint is usable
        """
        request = request or IndexRequest()
        deadline = Deadline(self.max_execution_seconds, clock=self.clock)
        block_cache = BlockCache(self.chain)
        report = IndexReport()

        async with self.session_maker() as session:
            state = await IndexerStateRepository(session).get_or_create(
                self.confirmation_depth
            )
            await session.commit()
            state_id = state.id
            watermark = state.last_indexed_block
            watermark_hash = state.last_block_hash
            confirmation_depth = state.confirmation_depth
            endpoint_cursor = state.endpoint_cursor

        await self.chain.connect(start_index=endpoint_cursor)

        pending_seeds: list[asyncio.Task] = []
        try:
            base_verified = True
            if not request.skip_reorg_check:
                watermark, base_verified = await self._check_reorg(
                    state_id, watermark, watermark_hash, report
                )

            try:
                head = await self.chain.get_head()
            except Exception as e:
                logger.error(f"[Indexer] Failed to read chain head: {e}")
                report.errors.append(f"Failed to read chain head: {e}")
                report.last_indexed_block = watermark
                report.message = "Chain head unavailable"
                return self._finish(report, deadline)

            plan = plan_scan_window(
                current_block=head,
                last_indexed_block=watermark,
                confirmation_depth=confirmation_depth,
                from_block=request.from_block,
                to_block=request.to_block,
            )
            report.current_block = plan.current_block
            report.safe_block = plan.safe_block

            logger.info(
                f"[Indexer] Processing blocks {plan.start_block} to {plan.end_block} "
                f"({plan.blocks_behind} blocks behind, range {plan.block_range})"
            )

            if plan.is_empty:
                report.message = "No new blocks to index"
                report.last_indexed_block = watermark
                report.blocks_behind = plan.safe_block - watermark
                return self._finish(report, deadline)

            report.from_block = plan.start_block
            report.to_block = plan.end_block

            window_complete = await self._index_window(
                plan, request, deadline, block_cache, report, pending_seeds
            )

            if base_verified:
                new_watermark = await self._advance_watermark(
                    state_id, watermark, plan, request, window_complete, block_cache, report
                )
            else:
                logger.warning(
                    f"[Indexer] Watermark block {watermark} unverified, "
                    f"watermark stays at {watermark}"
                )
                new_watermark = watermark

            report.last_indexed_block = new_watermark
            report.blocks_behind = plan.safe_block - new_watermark
            report.blocks_processed = plan.end_block - plan.start_block

            await self._collect_side_effects(pending_seeds, deadline, report)
            return self._finish(report, deadline)

        finally:
            for task in pending_seeds:
                if not task.done():
                    task.cancel()
            await self._save_endpoint_cursor(state_id)

    async def _check_reorg(
        self,
        state_id: int,
        watermark: int,
        watermark_hash: str | None,
        report: IndexReport,
    ) -> tuple[int, bool]:
        """
        Detect and repair a reorg.

        Returns:
            (watermark to plan from, whether that watermark is trusted)
        """
        detector = ReorgDetector(self.chain)

        async with self.session_maker() as session:
            check = await detector.detect(session, watermark, watermark_hash)

            if check.error:
                report.errors.append(f"Reorg detection error: {check.error}")

            if not check.reorg_detected:
                return watermark, check.error is None

            try:
                if check.error:
                    # Ancestor search may have left a failed transaction
                    await session.rollback()
                summary = await detector.rollback(session, state_id, check.anchor_block)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        report.reorg_detected = True
        report.rollback = summary
        return check.anchor_block, True

    async def _index_window(
        self,
        plan: ScanPlan,
        request: IndexRequest,
        deadline: Deadline,
        block_cache: BlockCache,
        report: IndexReport,
        pending_seeds: list[asyncio.Task],
    ) -> bool:
        """
        Run the launch and swap ingestors over the window.

        Returns:
            True if every requested part of the window was fully scanned.
            Seeding tasks started for new tokens are appended to pending_seeds.
        """
        async with self.session_maker() as session:
            skip_repo = SkipBlockRepository(session)
            launch_skips = await skip_repo.get_block_numbers(SKIP_LAUNCH, plan.end_block)
            swap_skips = await skip_repo.get_block_numbers(SKIP_SWAP, plan.end_block)

        launches_complete = True
        if request.index_token_launches and self.launches_configured:
            ingestor = LaunchIngestor(self.chain, block_cache, self.seeder)
            async with self.session_maker() as session:
                launch_result = await ingestor.ingest(
                    session,
                    plan.start_block,
                    plan.end_block,
                    deadline,
                    skip_blocks=launch_skips,
                )
            report.tokens_indexed = launch_result.indexed
            report.errors.extend(launch_result.errors)
            pending_seeds.extend(launch_result.pending_side_effects)
            report.timed_out = report.timed_out or launch_result.timed_out
            launches_complete = launch_result.complete

        swaps_complete = True
        if request.index_swaps and not report.timed_out:
            try:
                async with self.session_maker() as session:
                    tokens = await TokenRepository(session).get_tracked_tokens(
                        plan.end_block
                    )
            except Exception as e:
                logger.error(f"[Indexer] Failed to load tokens: {e}")
                report.errors.append(f"Swap indexing error: {e}")
                return False

            ingestor = SwapIngestor(
                self.chain,
                block_cache,
                self.session_maker,
                parallel_limit=self.parallel_token_limit,
                sleep=self.sleep,
            )
            swap_result = await ingestor.ingest(
                tokens,
                plan.start_block,
                plan.end_block,
                deadline,
                backfill_swaps=request.backfill_swaps,
                skip_blocks=swap_skips,
            )
            report.swaps_indexed = swap_result.indexed
            report.errors.extend(swap_result.errors)
            report.timed_out = report.timed_out or swap_result.timed_out
            swaps_complete = swap_result.complete

        return (
            request.index_token_launches
            and request.index_swaps
            and launches_complete
            and swaps_complete
            and not report.timed_out
        )

    async def _advance_watermark(
        self,
        state_id: int,
        watermark: int,
        plan: ScanPlan,
        request: IndexRequest,
        window_complete: bool,
        block_cache: BlockCache,
        report: IndexReport,
    ) -> int:
        """
        Move the watermark to the end of a fully scanned window.

        The window must also join the watermark without a hole, unless
        the start came from the catch-up jump.

        Returns:
            Watermark after this invocation
        """
        if not window_complete:
            if report.timed_out:
                logger.warning(
                    f"[Indexer] Timed out, watermark stays at {watermark}"
                )
            else:
                logger.info(
                    f"[Indexer] Window {plan.start_block}-{plan.end_block} "
                    f"incomplete, watermark stays at {watermark}"
                )
            return watermark

        contiguous = plan.start_block <= watermark + 1 or plan.caught_up_jump
        if not contiguous or plan.end_block <= watermark:
            return watermark

        try:
            block = await block_cache.get_block(plan.end_block)
        except Exception as e:
            report.errors.append(f"Failed to fetch block {plan.end_block}: {e}")
            return watermark

        if block is None:
            report.errors.append(f"Block {plan.end_block} not found")
            return watermark

        async with self.session_maker() as session:
            await IndexerStateRepository(session).advance(
                state_id, plan.end_block, block.hash
            )
            await session.commit()

        return plan.end_block

    async def _collect_side_effects(
        self,
        tasks: list[asyncio.Task],
        deadline: Deadline,
        report: IndexReport,
    ) -> None:
        """
        Wait for background seeding within what is left of the budget.

        Tasks still running at the deadline are cancelled and reported as
        not ok. Results never touch report.errors.
        """
        if not tasks:
            return

        done, pending = await asyncio.wait(tasks, timeout=deadline.remaining)

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                f"[Indexer] {len(pending)} history seed requests cancelled at deadline"
            )

        for task in tasks:
            if task in pending or task.cancelled():
                result = SideEffectResult(
                    name=self.seeder.name, ok=False, detail="cancelled at deadline"
                )
            elif task.exception() is not None:
                result = SideEffectResult(
                    name=self.seeder.name, ok=False, detail=str(task.exception())
                )
            else:
                result = task.result()
            report.side_effects.append(result)

    async def _save_endpoint_cursor(self, state_id: int) -> None:
        """Remember the last good endpoint for the next invocation."""
        try:
            async with self.session_maker() as session:
                await IndexerStateRepository(session).save_endpoint_cursor(
                    state_id, self.chain.endpoint_cursor
                )
                await session.commit()
        except Exception as e:
            logger.warning(f"[Indexer] Failed to save endpoint cursor: {e}")

    def _finish(self, report: IndexReport, deadline: Deadline) -> IndexReport:
        report.execution_time_ms = deadline.elapsed_ms
        elapsed = deadline.elapsed
        if report.blocks_processed and elapsed > 0:
            report.block_processing_rate = round(report.blocks_processed / elapsed)

        logger.success(
            f"[Indexer] Indexing complete: {report.tokens_indexed} tokens, "
            f"{report.swaps_indexed} swaps, {report.blocks_processed} blocks "
            f"in {report.execution_time_ms}ms"
        )
        if report.blocks_behind:
            logger.info(
                f"[Indexer] Still {report.blocks_behind} blocks behind "
                f"(rate: {report.block_processing_rate} blocks/sec)"
            )
        return report


def build_event_indexer(
    session_maker: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> EventIndexerService:
    """
    Build an indexer wired to real RPC endpoints and the seeding endpoint.

    The caller closes service.chain and service.seeder when done.
    """
    chain = build_chain_client(settings)
    seeder = HistorySeeder(
        url=settings.history_seed_url,
        auth_token=settings.history_seed_token,
    )
    return EventIndexerService(
        session_maker=session_maker,
        chain=chain,
        seeder=seeder,
        confirmation_depth=settings.confirmation_depth,
        max_execution_seconds=settings.max_execution_seconds,
        parallel_token_limit=settings.parallel_token_limit,
        factory_address=settings.factory_address,
    )
