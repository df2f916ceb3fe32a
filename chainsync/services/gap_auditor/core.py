"""
Gap Auditor Core Service.

Partitions each audited token's history into fixed block windows and
compares the on-chain Swap count of every window with the stored count.
Read-only: it never writes and never moves the watermark.
"""

import time
from collections.abc import Callable
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chainsync.config.constants import DEFAULT_CONFIRMATION_DEPTH, MAX_EXECUTION_SECONDS
from chainsync.config.settings import Settings
from chainsync.models.skip_block import SKIP_SWAP
from chainsync.models.token import Token
from chainsync.repositories import (
    IndexerStateRepository,
    SkipBlockRepository,
    SwapRepository,
    TokenRepository,
)
from chainsync.services.rpc.chain_client import build_chain_client
from chainsync.utils.deadline import Deadline
from chainsync.utils.security import mask_address

from .schemas import GapAuditReport, GapAuditRequest, TokenGapReport, WindowGap


class GapAuditorService:
    """
    Detect silently missed swaps.

    Its report is the trigger for a backfill run of the indexer.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        chain: Any,
        confirmation_depth: int = DEFAULT_CONFIRMATION_DEPTH,
        max_execution_seconds: float = MAX_EXECUTION_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.session_maker = session_maker
        self.chain = chain
        self.confirmation_depth = confirmation_depth
        self.max_execution_seconds = max_execution_seconds
        self.clock = clock

    async def run(self, request: GapAuditRequest | None = None) -> GapAuditReport:
        """
        Audit the requested tokens.

        Args:
            request: Audit parameters

        Returns:
            GapAuditReport

        Raises:
            AllEndpointsFailedError: If no RPC endpoint is usable
        """
        request = request or GapAuditRequest()
        deadline = Deadline(self.max_execution_seconds, clock=self.clock)
        report = GapAuditReport()
        window_size = max(int(request.window_size), 1)

        async with self.session_maker() as session:
            state = await IndexerStateRepository(session).get_current()
            tokens = await self._select_tokens(session, request, report)

            endpoint_cursor = state.endpoint_cursor if state else 0
            await self.chain.connect(start_index=endpoint_cursor)

            upper = state.last_indexed_block if state else 0
            if upper <= 0:
                depth = state.confirmation_depth if state else self.confirmation_depth
                try:
                    upper = await self.chain.get_head() - depth
                except Exception as e:
                    logger.error(f"[GapAudit] Failed to read chain head: {e}")
                    report.errors.append(f"Failed to read chain head: {e}")
                    report.execution_time_ms = deadline.elapsed_ms
                    return report

            skip_blocks = await SkipBlockRepository(session).get_block_numbers(
                SKIP_SWAP, upper
            )

            logger.info(
                f"[GapAudit] Checking {len(tokens)} tokens up to block {upper} "
                f"(window {window_size})"
            )

            for token in tokens:
                if deadline.expired():
                    report.timed_out = True
                    break

                token_report = await self.audit_token(
                    session, token, upper, window_size, skip_blocks, deadline
                )
                report.tokens_checked += 1

                if token_report.gaps:
                    report.tokens_with_gaps += 1
                    report.total_missing_swaps += token_report.missing_swaps
                    logger.warning(
                        f"[GapAudit] Found {token_report.missing_swaps} missing swaps "
                        f"for {token.symbol} ({mask_address(token.token_address)})"
                    )
                if token_report.gaps or token_report.errors:
                    report.results.append(token_report)

                if deadline.expired():
                    report.timed_out = True
                    break

        report.execution_time_ms = deadline.elapsed_ms
        logger.success(
            f"[GapAudit] Gap detection complete: {report.tokens_with_gaps}/"
            f"{report.tokens_checked} tokens have gaps, "
            f"{report.total_missing_swaps} missing swaps"
        )
        return report

    async def _select_tokens(
        self,
        session: AsyncSession,
        request: GapAuditRequest,
        report: GapAuditReport,
    ) -> list[Token]:
        token_repo = TokenRepository(session)

        if request.token_address:
            token = await token_repo.get_by_address(request.token_address)
            if token is None:
                report.errors.append(f"Token {request.token_address} not found")
                return []
            return [token]

        if request.check_all:
            return await token_repo.get_recently_active(request.max_tokens)

        return []

    async def audit_token(
        self,
        session: AsyncSession,
        token: Token,
        upper_block: int,
        window_size: int,
        skip_blocks: set[int] | frozenset[int],
        deadline: Deadline,
    ) -> TokenGapReport:
        """
        Compare on-chain and stored swap counts window by window.

        Windows are inclusive: [start, start + window_size - 1], the last
        one clipped to upper_block.

        Args:
            session: Database session
            token: Token to audit
            upper_block: Last block of the audited lifetime
            window_size: Blocks per window
            skip_blocks: Blocks excluded from on-chain counts
            deadline: Audit deadline

        Returns:
            TokenGapReport
        """
        swap_repo = SwapRepository(session)
        token_report = TokenGapReport(
            token_address=token.token_address,
            amm_address=token.amm_address,
            name=token.name,
            symbol=token.symbol,
            from_block=token.block_number,
            to_block=upper_block,
        )

        for start in range(token.block_number, upper_block + 1, window_size):
            if deadline.expired():
                token_report.errors.append(f"Timed out before block {start}")
                break

            end = min(start + window_size - 1, upper_block)

            try:
                events = await self.chain.get_swap_events(token.amm_address, start, end)
            except Exception as e:
                logger.error(
                    f"[GapAudit] RPC failed for {mask_address(token.token_address)} "
                    f"blocks {start}-{end}: {e}"
                )
                token_report.errors.append(f"RPC failed for blocks {start}-{end}: {e}")
                continue

            # Stored swaps are unique per transaction
            on_chain = len({
                event.tx_hash for event in events
                if event.block_number not in skip_blocks
            })
            try:
                stored = await swap_repo.count_in_range(token.token_address, start, end)
            except Exception as e:
                await session.rollback()
                logger.error(
                    f"[GapAudit] Count failed for {mask_address(token.token_address)} "
                    f"blocks {start}-{end}: {e}"
                )
                token_report.errors.append(f"Database count failed for blocks {start}-{end}: {e}")
                continue
            token_report.windows_checked += 1

            missing = on_chain - stored
            if missing > 0:
                token_report.add_gap(
                    WindowGap(
                        start_block=start,
                        end_block=end,
                        on_chain_swaps=on_chain,
                        database_swaps=stored,
                        missing=missing,
                    )
                )

        return token_report


def build_gap_auditor(
    session_maker: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> GapAuditorService:
    """Build an auditor wired to real RPC endpoints. The caller closes service.chain."""
    return GapAuditorService(
        session_maker=session_maker,
        chain=build_chain_client(settings),
        confirmation_depth=settings.confirmation_depth,
        max_execution_seconds=settings.max_execution_seconds,
    )
