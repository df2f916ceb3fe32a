"""
Tests for RPC failure classification and the failover executor.

Covers:
- Rate limit / connection / other classification
- Endpoint rotation per failure class
- Backoff delays
- Retry exhaustion
"""

import time
from unittest.mock import AsyncMock

import pytest
import requests

from chainsync.services.rpc.endpoint_pool import EndpointPool
from chainsync.services.rpc.error_classifier import FailureKind, classify_error
from chainsync.services.rpc.failover_executor import FailoverExecutor
from chainsync.utils.exceptions import RpcRetryExhaustedError, RpcTimeoutError


class RpcStatusError(Exception):
    """Provider error carrying an HTTP status like requests.HTTPError."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.response = type("Response", (), {"status_code": status_code})()


class TestClassifyError:
    """Test failure classification."""

    @pytest.mark.parametrize(
        "error",
        [
            Exception("429 Client Error: Too Many Requests"),
            Exception("daily request rate limit exceeded"),
            ValueError({"code": -32005, "message": "limit exceeded"}),
            RpcStatusError("slow down", status_code=429),
        ],
    )
    def test_rate_limit(self, error):
        """Status codes and messages both signal rate limiting."""
        assert classify_error(error) is FailureKind.RATE_LIMIT

    @pytest.mark.parametrize(
        "error",
        [
            ConnectionError("reset by peer"),
            TimeoutError(),
            RpcTimeoutError("RPC call timed out after 20s"),
            requests.exceptions.ConnectionError("Max retries exceeded"),
            requests.exceptions.ReadTimeout("read"),
            Exception("connect ETIMEDOUT 1.2.3.4:443"),
            Exception("socket hang up: ECONNRESET"),
        ],
    )
    def test_connection(self, error):
        """Network failures rotate the endpoint."""
        assert classify_error(error) is FailureKind.CONNECTION

    @pytest.mark.parametrize(
        "error",
        [
            ValueError("execution reverted"),
            ValueError({"code": -32000, "message": "header not found"}),
            KeyError("number"),
        ],
    )
    def test_other(self, error):
        """Everything else stays on the same endpoint."""
        assert classify_error(error) is FailureKind.OTHER

    def test_rate_limit_wins_over_connection(self):
        """A connection error mentioning 429 is still a rate limit."""
        error = requests.exceptions.ConnectionError("429 Too Many Requests")

        assert classify_error(error) is FailureKind.RATE_LIMIT


@pytest.fixture
def pool():
    return EndpointPool(["endpoint-a", "endpoint-b", "endpoint-c"], names=["a", "b", "c"])


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def executor(pool, sleep):
    executor = FailoverExecutor(pool, max_retries=3, base_delay=1.0, sleep=sleep)
    yield executor
    executor.close()


def scripted(outcomes: dict):
    """
    Build an operation failing per endpoint.

    outcomes maps an endpoint to a list of exceptions raised on
    successive calls; once exhausted the endpoint answers its own name.
    """
    calls = []

    def operation(endpoint):
        calls.append(endpoint)
        pending = outcomes.get(endpoint, [])
        if pending:
            raise pending.pop(0)
        return f"answer from {endpoint}"

    operation.calls = calls
    return operation


class TestFailoverExecutor:
    """Test classified retries."""

    @pytest.mark.asyncio
    async def test_success_first_try(self, executor, pool, sleep):
        """Healthy endpoint answers without retries."""
        operation = scripted({})

        result = await executor.execute(operation, "get_block_number")

        assert result == "answer from endpoint-a"
        assert operation.calls == ["endpoint-a"]
        sleep.assert_not_awaited()
        assert pool.last_good_index == 0

    @pytest.mark.asyncio
    async def test_rate_limit_rotates_after_backoff(self, executor, pool, sleep):
        """Rate-limited endpoint is left after base * 3^attempt."""
        operation = scripted({"endpoint-a": [Exception("429 Too Many Requests")]})

        result = await executor.execute(operation, "get_logs")

        assert result == "answer from endpoint-b"
        assert operation.calls == ["endpoint-a", "endpoint-b"]
        sleep.assert_awaited_once_with(1.0)
        assert pool.cursor == 1
        assert pool.last_good_index == 1

    @pytest.mark.asyncio
    async def test_connection_error_rotates_with_short_pause(self, executor, pool, sleep):
        """Connection errors rotate with a fixed pause."""
        operation = scripted({
            "endpoint-a": [ConnectionError("ECONNREFUSED")],
            "endpoint-b": [requests.exceptions.Timeout("timed out")],
        })

        result = await executor.execute(operation, "get_block")

        assert result == "answer from endpoint-c"
        assert [call.args[0] for call in sleep.await_args_list] == [0.5, 0.5]
        assert pool.last_good_index == 2

    @pytest.mark.asyncio
    async def test_other_error_retries_same_endpoint(self, executor, pool, sleep):
        """Unclassified errors back off exponentially on the same endpoint."""
        operation = scripted({
            "endpoint-a": [ValueError("header not found"), ValueError("header not found")],
        })

        result = await executor.execute(operation, "get_block")

        assert result == "answer from endpoint-a"
        assert operation.calls == ["endpoint-a"] * 3
        assert [call.args[0] for call in sleep.await_args_list] == [1.0, 2.0]
        assert pool.cursor == 0

    @pytest.mark.asyncio
    async def test_exhaustion_raises(self, executor, sleep):
        """Three failed attempts surface the last error."""
        error = ValueError("execution reverted")
        operation = scripted({"endpoint-a": [error, error, error]})

        with pytest.raises(RpcRetryExhaustedError) as exc_info:
            await executor.execute(operation, "get_reserves")

        assert exc_info.value.attempts == 3
        assert exc_info.value.last_error is error
        assert exc_info.value.operation_name == "get_reserves"
        # No sleep after the final attempt
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_stats(self, executor):
        """Counters track successes, failures and failovers."""
        operation = scripted({"endpoint-a": [ConnectionError("reset")]})

        await executor.execute(operation, "get_block_number")
        stats = executor.get_stats()

        assert stats["endpoints_count"] == 3
        assert stats["current_endpoint"] == "b"
        assert stats["success_count"] == 1
        assert stats["failure_count"] == 1
        assert stats["failover_count"] == 1

    @pytest.mark.asyncio
    async def test_slow_call_times_out(self, pool, sleep):
        """A call exceeding call_timeout counts as a connection failure."""
        executor = FailoverExecutor(pool, max_retries=1, call_timeout=0.05, sleep=sleep)

        def slow(endpoint):
            time.sleep(0.3)
            return 1

        try:
            with pytest.raises(RpcRetryExhaustedError) as exc_info:
                await executor.execute(slow, "get_logs")
        finally:
            executor.close()

        assert isinstance(exc_info.value.last_error, RpcTimeoutError)
        assert classify_error(exc_info.value.last_error) is FailureKind.CONNECTION

    def test_backoff_delays(self, executor):
        """Rate-limit backoff is capped at 60 seconds."""
        assert executor.backoff_delay(FailureKind.RATE_LIMIT, 0) == 1.0
        assert executor.backoff_delay(FailureKind.RATE_LIMIT, 2) == 9.0
        assert executor.backoff_delay(FailureKind.RATE_LIMIT, 10) == 60.0
        assert executor.backoff_delay(FailureKind.CONNECTION, 5) == 0.5
        assert executor.backoff_delay(FailureKind.OTHER, 3) == 8.0
