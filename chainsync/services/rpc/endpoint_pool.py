"""
RPC Endpoint Pool.

Ordered list of blockchain node endpoints with an explicit rotation
cursor. The cursor of the last endpoint that answered is persisted by
the indexer and becomes the starting point of the next invocation.
"""

import asyncio
from collections.abc import Sequence
from typing import Any

from loguru import logger
from web3 import Web3

from chainsync.utils.exceptions import AllEndpointsFailedError
from chainsync.utils.security import mask_url


class EndpointPool:
    """
    Rotating pool of Web3 providers.

    Usage:
        pool = EndpointPool.from_urls(settings.rpc_url_list)
        await pool.acquire(start_index=state.endpoint_cursor)
        w3 = pool.current()
    """

    def __init__(
        self,
        endpoints: Sequence[Any],
        names: Sequence[str] | None = None,
    ) -> None:
        """
        Initialize pool.

        Args:
            endpoints: Web3 instances (or test doubles exposing eth.block_number)
            names: Display names for logging
        """
        if not endpoints:
            raise ValueError("At least one RPC endpoint must be specified")

        self.endpoints = list(endpoints)
        self.names = list(names) if names else [
            f"endpoint_{i}" for i in range(len(self.endpoints))
        ]
        self._cursor = 0
        self._last_good_index = 0

    @classmethod
    def from_urls(cls, urls: Sequence[str], timeout: int = 15) -> "EndpointPool":
        """
        Build a pool of HTTP providers.

        Args:
            urls: RPC URLs in failover order
            timeout: HTTP request timeout in seconds
        """
        endpoints = [
            Web3(Web3.HTTPProvider(url, request_kwargs={"timeout": timeout}))
            for url in urls
        ]
        return cls(endpoints, names=[mask_url(url) for url in urls])

    def __len__(self) -> int:
        return len(self.endpoints)

    @property
    def cursor(self) -> int:
        """Index of the endpoint currently in use."""
        return self._cursor

    @property
    def last_good_index(self) -> int:
        """Index of the last endpoint that answered successfully."""
        return self._last_good_index

    def current(self) -> Any:
        """Get the endpoint currently in use."""
        return self.endpoints[self._cursor]

    def current_name(self) -> str:
        return self.names[self._cursor]

    def rotate(self) -> int:
        """
        Switch to the next endpoint (wrapping around).

        Returns:
            New cursor
        """
        old_index = self._cursor
        self._cursor = (self._cursor + 1) % len(self.endpoints)
        if self._cursor != old_index:
            logger.info(
                f"[Failover] Rotated {self.names[old_index]} -> "
                f"{self.names[self._cursor]}"
            )
        return self._cursor

    def mark_good(self) -> None:
        """Remember the current endpoint as known-good."""
        self._last_good_index = self._cursor

    async def acquire(self, start_index: int = 0) -> Any:
        """
        Select the first live endpoint, starting from start_index.

        Each candidate gets a cheap block_number probe before first use.

        Args:
            start_index: Rotation start (usually the persisted cursor)

        Returns:
            Live endpoint

        Raises:
            AllEndpointsFailedError: If every endpoint fails the probe
        """
        count = len(self.endpoints)
        start = start_index % count if start_index >= 0 else 0
        last_error: Exception | None = None

        for offset in range(count):
            index = (start + offset) % count
            endpoint = self.endpoints[index]
            try:
                head = await asyncio.to_thread(lambda: endpoint.eth.block_number)
            except Exception as e:
                last_error = e
                logger.warning(
                    f"[Failover] Endpoint {self.names[index]} failed probe: "
                    f"{type(e).__name__}: {e}"
                )
                continue

            self._cursor = index
            self._last_good_index = index
            logger.debug(
                f"[Failover] Using endpoint {self.names[index]} (head={head})"
            )
            return endpoint

        raise AllEndpointsFailedError(
            f"All {count} RPC endpoints failed liveness probe. "
            f"Last error: {last_error}"
        ) from last_error
