"""
Tests for the dramatiq task wrappers.

The broker is configured on import but never contacted; services and
engines are patched out.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chainsync.services.event_indexer import IndexReport
from chainsync.services.gap_auditor import GapAuditReport
from chainsync.utils.exceptions import AllEndpointsFailedError
from jobs.tasks import event_indexer_task, gap_audit_task


def mock_service(report=None, error=None):
    service = MagicMock()
    service.run = AsyncMock(return_value=report, side_effect=error)
    service.seeder.close = AsyncMock()
    return service


def mock_engine():
    engine = MagicMock()
    engine.dispose = AsyncMock()
    return engine


class TestIndexEventsTask:
    """Test the indexer task body."""

    @pytest.mark.asyncio
    async def test_runs_with_parsed_request_and_cleans_up(self):
        service = mock_service(report=IndexReport(tokens_indexed=1, from_block=5))
        engine = mock_engine()

        with patch.object(event_indexer_task, "create_task_engine", return_value=engine), \
                patch.object(event_indexer_task, "create_task_session_maker"), \
                patch.object(event_indexer_task, "build_event_indexer", return_value=service):
            result = await event_indexer_task.index_events({"fromBlock": 5, "indexSwaps": False})

        request = service.run.await_args.args[0]
        assert request.from_block == 5
        assert request.index_swaps is False
        assert result["tokens_indexed"] == 1
        service.chain.close.assert_called_once()
        service.seeder.close.assert_awaited_once()
        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cleans_up_when_endpoints_fail(self):
        service = mock_service(error=AllEndpointsFailedError("all down"))
        engine = mock_engine()

        with patch.object(event_indexer_task, "create_task_engine", return_value=engine), \
                patch.object(event_indexer_task, "create_task_session_maker"), \
                patch.object(event_indexer_task, "build_event_indexer", return_value=service):
            with pytest.raises(AllEndpointsFailedError):
                await event_indexer_task.index_events({})

        service.chain.close.assert_called_once()
        engine.dispose.assert_awaited_once()

    def test_actor_reraises_endpoint_failure(self):
        """Only an unusable RPC pool fails the message."""
        with patch.object(event_indexer_task, "index_events", MagicMock()), \
                patch.object(
                    event_indexer_task,
                    "run_async",
                    side_effect=AllEndpointsFailedError("all down"),
                ):
            with pytest.raises(AllEndpointsFailedError):
                event_indexer_task.run_event_indexer.fn()

    def test_actor_tolerates_report_errors(self):
        report = IndexReport(errors=["Failed to index swaps for 0xabc: boom"]).to_dict()

        with patch.object(event_indexer_task, "index_events", MagicMock()) as index_events, \
                patch.object(event_indexer_task, "run_async", return_value=report):
            event_indexer_task.run_event_indexer.fn(backfill_swaps=True)

        index_events.assert_called_once_with({"backfill_swaps": True})


class TestAuditGapsTask:
    """Test the gap audit task body."""

    @pytest.mark.asyncio
    async def test_runs_and_cleans_up(self):
        service = mock_service(report=GapAuditReport(tokens_checked=3))
        engine = mock_engine()

        with patch.object(gap_audit_task, "create_task_engine", return_value=engine), \
                patch.object(gap_audit_task, "create_task_session_maker"), \
                patch.object(gap_audit_task, "build_gap_auditor", return_value=service):
            result = await gap_audit_task.audit_gaps({"check_all": True, "block_range_size": 500})

        request = service.run.await_args.args[0]
        assert request.check_all is True
        assert request.window_size == 500
        assert result["tokens_checked"] == 3
        service.chain.close.assert_called_once()
        engine.dispose.assert_awaited_once()
