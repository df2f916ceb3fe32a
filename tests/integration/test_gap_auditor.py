"""
Integration tests for the gap auditor.

Covers:
- A fully indexed database has no gaps
- Swaps the indexer missed are reported per window
- RPC, database and timeout failures are recorded, not raised
- The audit never writes
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import delete

from chainsync.models import SKIP_SWAP, Swap
from chainsync.repositories import SkipBlockRepository, SwapRepository
from chainsync.services.event_indexer import IndexRequest
from chainsync.services.gap_auditor import GapAuditRequest
from tests.fakes import ALICE, AMM_A, TOKEN_A, TOKEN_B, WEI, block_hash

pytestmark = pytest.mark.slow


async def index_all(chain, make_indexer, set_watermark, request=None):
    await set_watermark(899, block_hash(899))
    return await make_indexer(chain).run(request)


class TestGapAuditor:
    """Test swap-count comparison per block window."""

    @pytest.mark.asyncio
    async def test_fully_indexed_has_no_gaps(
        self, launchpad, make_indexer, make_auditor, set_watermark
    ):
        await index_all(launchpad, make_indexer, set_watermark)

        report = await make_auditor(launchpad).run(GapAuditRequest(check_all=True))

        assert report.tokens_checked == 2
        assert report.tokens_with_gaps == 0
        assert report.total_missing_swaps == 0
        assert report.results == []
        assert report.errors == []

    @pytest.mark.asyncio
    async def test_missed_swap_reported_in_its_window(
        self, launchpad, make_indexer, make_auditor, set_watermark
    ):
        """A swap the chain has but the database lacks shows up as a gap."""
        await index_all(launchpad, make_indexer, set_watermark)
        launchpad.add_swap(AMM_A, 930, ALICE, eth_in=WEI)

        report = await make_auditor(launchpad).run(
            GapAuditRequest(token_address=TOKEN_A, window_size=50)
        )

        assert report.tokens_with_gaps == 1
        assert report.total_missing_swaps == 1
        result = report.results[0]
        assert result.token_address == TOKEN_A
        assert result.from_block == 900
        assert result.to_block == 998
        assert result.windows_checked == 2
        assert len(result.gaps) == 1
        gap = result.gaps[0]
        assert (gap.start_block, gap.end_block) == (900, 949)
        assert (gap.on_chain_swaps, gap.database_swaps, gap.missing) == (4, 3, 1)

    @pytest.mark.asyncio
    async def test_deleted_swap_detected(
        self, session_maker, launchpad, make_indexer, make_auditor, set_watermark
    ):
        await index_all(launchpad, make_indexer, set_watermark)
        async with session_maker() as session:
            await session.execute(delete(Swap).where(Swap.block_number == 960))
            await session.commit()

        report = await make_auditor(launchpad).run(GapAuditRequest(check_all=True))

        assert report.tokens_with_gaps == 1
        assert [r.token_address for r in report.results] == [TOKEN_B]

    @pytest.mark.asyncio
    async def test_skip_blocks_excluded(
        self, session_maker, launchpad, make_indexer, make_auditor, set_watermark
    ):
        """Swaps in skip-listed blocks are not expected in the database."""
        async with session_maker() as session:
            await SkipBlockRepository(session).add(920, SKIP_SWAP)
            await session.commit()
        await index_all(launchpad, make_indexer, set_watermark)

        report = await make_auditor(launchpad).run(GapAuditRequest(check_all=True))

        assert report.total_missing_swaps == 0

    @pytest.mark.asyncio
    async def test_rpc_failure_recorded_per_token(
        self, launchpad, make_indexer, make_auditor, set_watermark
    ):
        await index_all(launchpad, make_indexer, set_watermark)
        launchpad.fail_swaps_for = {AMM_A}

        report = await make_auditor(launchpad).run(GapAuditRequest(check_all=True))

        assert report.tokens_checked == 2
        assert report.tokens_with_gaps == 0
        assert [r.token_address for r in report.results] == [TOKEN_A]
        assert report.results[0].errors[0].startswith("RPC failed for blocks 900-998")

    @pytest.mark.asyncio
    async def test_unknown_token(self, launchpad, make_auditor):
        report = await make_auditor(launchpad).run(
            GapAuditRequest(token_address="0x00000000000000000000000000000000000000ff")
        )

        assert report.tokens_checked == 0
        assert report.errors == ["Token 0x00000000000000000000000000000000000000ff not found"]

    @pytest.mark.asyncio
    async def test_no_selection_checks_nothing(self, launchpad, make_auditor):
        report = await make_auditor(launchpad).run()

        assert report.tokens_checked == 0
        assert report.errors == []

    @pytest.mark.asyncio
    async def test_unset_watermark_audits_to_safe_block(
        self, launchpad, make_indexer, make_auditor, get_state
    ):
        """Without a watermark the audit runs up to head minus depth."""
        await make_indexer(launchpad).run(
            IndexRequest(from_block=900, to_block=998, index_swaps=False)
        )
        assert (await get_state()).last_indexed_block == 0

        report = await make_auditor(launchpad).run(GapAuditRequest(token_address=TOKEN_A))

        result = report.results[0]
        assert result.to_block == 998
        assert result.missing_swaps == 3

    @pytest.mark.asyncio
    async def test_audit_is_read_only(
        self, session_maker, launchpad, make_indexer, make_auditor, set_watermark, get_state
    ):
        """Missing swaps are reported, never stored."""
        await index_all(launchpad, make_indexer, set_watermark)
        launchpad.add_swap(AMM_A, 930, ALICE, eth_in=WEI)

        report = await make_auditor(launchpad).run(GapAuditRequest(check_all=True))

        assert report.total_missing_swaps == 1
        assert (await get_state()).last_indexed_block == 998
        async with session_maker() as session:
            assert await SwapRepository(session).count() == 4

    @pytest.mark.asyncio
    async def test_timeout_stops_audit(
        self, launchpad, make_indexer, make_auditor, set_watermark, clock
    ):
        await index_all(launchpad, make_indexer, set_watermark)
        launchpad.on_swap_query = lambda: clock.advance(30)

        report = await make_auditor(launchpad).run(
            GapAuditRequest(token_address=TOKEN_A, window_size=50)
        )

        assert report.timed_out is True
        assert report.tokens_checked == 1
        assert report.results[0].windows_checked == 1
        assert report.results[0].errors == ["Timed out before block 950"]

    @pytest.mark.asyncio
    async def test_connects_with_stored_cursor(
        self, launchpad, make_auditor, set_watermark
    ):
        await set_watermark(899, block_hash(899), endpoint_cursor=2)

        await make_auditor(launchpad).run(GapAuditRequest(token_address=TOKEN_B))

        assert launchpad.connected_from == 2

    @pytest.mark.asyncio
    async def test_chain_head_failure_is_reported(
        self, launchpad, make_indexer, make_auditor, get_state
    ):
        """Without a watermark the head is needed; its failure ends up in the report."""
        await make_indexer(launchpad).run(
            IndexRequest(from_block=900, to_block=998, index_swaps=False)
        )
        assert (await get_state()).last_indexed_block == 0
        launchpad.fail_head = True

        report = await make_auditor(launchpad).run(GapAuditRequest(check_all=True))

        assert report.tokens_checked == 0
        assert report.errors == ["Failed to read chain head: ECONNRESET"]

    @pytest.mark.asyncio
    async def test_count_failure_recorded_per_window(
        self, launchpad, make_indexer, make_auditor, set_watermark
    ):
        """A failed stored-count query marks its window and the audit goes on."""
        await index_all(launchpad, make_indexer, set_watermark)
        count = AsyncMock(side_effect=[RuntimeError("database is locked"), 0])

        with patch.object(SwapRepository, "count_in_range", count):
            report = await make_auditor(launchpad).run(
                GapAuditRequest(token_address=TOKEN_A, window_size=50)
            )

        assert report.tokens_checked == 1
        assert report.tokens_with_gaps == 0
        result = report.results[0]
        assert result.windows_checked == 1
        assert result.errors == ["Database count failed for blocks 900-949: database is locked"]
        assert count.await_count == 2
