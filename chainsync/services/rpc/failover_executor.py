"""
Failover Executor - Classified Retry and Endpoint Rotation.

Single component wrapping every RPC call of an invocation. Failures are
classified and retried with a strategy per class:

- rate limit: long exponential backoff, then rotate endpoint
- connection/timeout: rotate endpoint immediately, short fixed pause
- anything else: exponential backoff on the same endpoint
"""

import asyncio
from collections.abc import Awaitable, Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from loguru import logger

from chainsync.config.constants import (
    RPC_CALL_TIMEOUT,
    RPC_CONNECTION_RETRY_DELAY,
    RPC_EXECUTOR_WORKERS,
    RPC_MAX_RETRIES,
    RPC_RATE_LIMIT_MAX_DELAY,
    RPC_RETRY_BASE_DELAY,
)
from chainsync.services.rpc.endpoint_pool import EndpointPool
from chainsync.services.rpc.error_classifier import FailureKind, classify_error
from chainsync.utils.exceptions import RpcRetryExhaustedError, RpcTimeoutError

T = TypeVar("T")


class FailoverExecutor:
    """
    Execute sync Web3 operations with classified retries.

    Usage:
        pool = EndpointPool.from_urls(settings.rpc_url_list)
        executor = FailoverExecutor(pool)

        head = await executor.execute(
            operation=lambda w3: w3.eth.block_number,
            operation_name="get_block_number",
        )
    """

    def __init__(
        self,
        pool: EndpointPool,
        max_retries: int = RPC_MAX_RETRIES,
        base_delay: float = RPC_RETRY_BASE_DELAY,
        call_timeout: float = RPC_CALL_TIMEOUT,
        max_workers: int = RPC_EXECUTOR_WORKERS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize failover executor.

        Args:
            pool: Endpoint pool whose cursor selects the provider
            max_retries: Total attempts per call
            base_delay: Base delay in seconds for backoff
            call_timeout: Timeout of a single call in seconds
            max_workers: Thread pool size for sync operations
            sleep: Awaitable sleep (replaced in tests)
        """
        self.pool = pool
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.call_timeout = call_timeout
        self._sleep = sleep

        # Thread pool for sync Web3 operations
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="failover",
        )

        self._success_count = 0
        self._failure_count = 0
        self._failover_count = 0

    def backoff_delay(self, kind: FailureKind, attempt: int) -> float:
        """
        Delay before the next attempt.

        Args:
            kind: Failure class
            attempt: Zero-based number of the attempt that failed

        Returns:
            Seconds to wait
        """
        if kind is FailureKind.RATE_LIMIT:
            return min(self.base_delay * 3**attempt, RPC_RATE_LIMIT_MAX_DELAY)
        if kind is FailureKind.CONNECTION:
            return RPC_CONNECTION_RETRY_DELAY
        return self.base_delay * 2**attempt

    async def execute(
        self,
        operation: Callable[[Any], T],
        operation_name: str,
    ) -> T:
        """
        Execute operation against the current endpoint with retries.

        Args:
            operation: Function that takes a Web3 instance and returns result
            operation_name: Human-readable operation name for logging

        Returns:
            Operation result

        Raises:
            RpcRetryExhaustedError: If the call still fails after max_retries
        """
        last_error: Exception | None = None
        total_attempts = max(self.max_retries, 1)

        for attempt in range(total_attempts):
            endpoint = self.pool.current()
            try:
                result = await self._call(endpoint, operation)
            except Exception as e:
                last_error = e
                self._failure_count += 1
                kind = classify_error(e)

                logger.warning(
                    f"[{operation_name}] Attempt {attempt + 1}/{total_attempts} "
                    f"on {self.pool.current_name()} failed ({kind.value}): "
                    f"{type(e).__name__}: {e}"
                )

                if attempt + 1 >= total_attempts:
                    break

                if kind in (FailureKind.RATE_LIMIT, FailureKind.CONNECTION):
                    self.pool.rotate()
                    self._failover_count += 1

                await self._sleep(self.backoff_delay(kind, attempt))
                continue

            self._success_count += 1
            self.pool.mark_good()
            return result

        logger.error(
            f"[{operation_name}] Giving up after {total_attempts} attempts. "
            f"Last error: {last_error}"
        )
        raise RpcRetryExhaustedError(operation_name, total_attempts, last_error) from last_error

    async def _call(self, endpoint: Any, operation: Callable[[Any], T]) -> T:
        """Run one sync operation in the thread pool with a timeout."""
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(self._executor, lambda: operation(endpoint)),
                timeout=self.call_timeout,
            )
        except TimeoutError as e:
            raise RpcTimeoutError(
                f"RPC call timed out after {self.call_timeout}s"
            ) from e

    def get_stats(self) -> dict[str, Any]:
        """
        Get execution statistics.

        Returns:
            Dict with endpoint info and success/failure/failover counts
        """
        return {
            "endpoints_count": len(self.pool),
            "current_endpoint": self.pool.current_name(),
            "success_count": self._success_count,
            "failure_count": self._failure_count,
            "failover_count": self._failover_count,
        }

    def close(self) -> None:
        """Shutdown thread pool executor."""
        if self._executor:
            self._executor.shutdown(wait=False)
            logger.debug("FailoverExecutor thread pool shut down")
