"""
Chain client.

RPC capability consumed by the indexer and the gap auditor: chain head,
block headers, decoded launchpad event logs and pool reserve reads. Every
call goes through the FailoverExecutor.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from web3 import Web3
from web3.exceptions import BlockNotFound

from chainsync.config.settings import Settings
from chainsync.services.rpc.core_constants import (
    AMM_ABI,
    FACTORY_ABI,
    SWAP_SIGNATURE,
    TOKEN_LAUNCHED_SIGNATURE,
)
from chainsync.services.rpc.endpoint_pool import EndpointPool
from chainsync.services.rpc.failover_executor import FailoverExecutor
from chainsync.utils.conversions import normalize_address, normalize_hash
from chainsync.utils.security import mask_address

TOKEN_LAUNCHED_TOPIC = Web3.to_hex(Web3.keccak(text=TOKEN_LAUNCHED_SIGNATURE))
SWAP_TOPIC = Web3.to_hex(Web3.keccak(text=SWAP_SIGNATURE))


@dataclass(frozen=True)
class BlockInfo:
    """Block header fields the indexer stores as provenance."""

    number: int
    hash: str
    timestamp: int

    @property
    def mined_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, UTC)


@dataclass(frozen=True)
class LaunchEvent:
    """Decoded TokenLaunched log. Amounts are raw wei."""

    token_address: str
    amm_address: str
    name: str
    symbol: str
    creator: str
    liquidity_percent: int
    initial_liquidity_wei: int
    block_number: int
    block_hash: str
    tx_hash: str
    log_index: int


@dataclass(frozen=True)
class SwapEvent:
    """Decoded Swap log. Amounts are raw wei."""

    user: str
    eth_in: int
    token_in: int
    eth_out: int
    token_out: int
    block_number: int
    block_hash: str
    tx_hash: str
    log_index: int


def _log_position(event: LaunchEvent | SwapEvent) -> tuple[int, int]:
    return event.block_number, event.log_index


class ChainClient:
    """
    Launchpad-aware RPC client over a rotating endpoint pool.

    Usage:
        client = build_chain_client(settings)
        await client.connect(start_index=state.endpoint_cursor)
        head = await client.get_head()
    """

    def __init__(
        self,
        pool: EndpointPool,
        executor: FailoverExecutor,
        factory_address: str,
    ) -> None:
        self.pool = pool
        self.executor = executor
        self.factory_address = normalize_address(factory_address)
        # Contract objects only decode logs, any endpoint will do
        codec = Web3()
        self._factory_events = codec.eth.contract(abi=FACTORY_ABI).events
        self._amm_events = codec.eth.contract(abi=AMM_ABI).events

    async def connect(self, start_index: int = 0) -> None:
        """
        Select a live endpoint.

        Raises:
            AllEndpointsFailedError: If no endpoint answers
        """
        await self.pool.acquire(start_index=start_index)

    @property
    def endpoint_cursor(self) -> int:
        """Index of the last endpoint that answered, persisted between runs."""
        return self.pool.last_good_index

    async def get_head(self) -> int:
        """Get the current chain height."""
        return await self.executor.execute(
            operation=lambda w3: w3.eth.block_number,
            operation_name="get_block_number",
        )

    async def get_block(self, block_number: int) -> BlockInfo | None:
        """
        Get a block header.

        Returns:
            BlockInfo or None if the node does not know the block
        """

        def _fetch(w3: Web3) -> Any:
            try:
                return w3.eth.get_block(block_number)
            except BlockNotFound:
                return None

        block = await self.executor.execute(
            operation=_fetch,
            operation_name=f"get_block({block_number})",
        )
        if block is None:
            return None

        return BlockInfo(
            number=block["number"],
            hash=normalize_hash(block["hash"]),
            timestamp=block["timestamp"],
        )

    async def _get_logs(
        self,
        address: str,
        topic: str,
        from_block: int,
        to_block: int,
        operation_name: str,
    ) -> list[Any]:
        params = {
            "address": Web3.to_checksum_address(address),
            "topics": [topic],
            "fromBlock": from_block,
            "toBlock": to_block,
        }
        return await self.executor.execute(
            operation=lambda w3: w3.eth.get_logs(params),
            operation_name=operation_name,
        )

    async def get_launch_events(self, from_block: int, to_block: int) -> list[LaunchEvent]:
        """
        Get TokenLaunched events of the factory in an inclusive range.

        Returns:
            Events in ascending (block, log index) order
        """
        logs = await self._get_logs(
            self.factory_address,
            TOKEN_LAUNCHED_TOPIC,
            from_block,
            to_block,
            operation_name=f"get_launch_events({from_block}-{to_block})",
        )

        events = []
        for log in logs:
            decoded = self._factory_events.TokenLaunched().process_log(log)
            args = decoded["args"]
            events.append(
                LaunchEvent(
                    token_address=normalize_address(args["tokenAddress"]),
                    amm_address=normalize_address(args["ammAddress"]),
                    name=args["name"],
                    symbol=args["symbol"],
                    creator=normalize_address(args["creator"]),
                    liquidity_percent=int(args["liquidityPercent"]),
                    initial_liquidity_wei=int(args["initialLiquidityETH"]),
                    block_number=decoded["blockNumber"],
                    block_hash=normalize_hash(decoded["blockHash"]),
                    tx_hash=normalize_hash(decoded["transactionHash"]),
                    log_index=decoded["logIndex"],
                )
            )

        events.sort(key=_log_position)
        return events

    async def get_swap_events(
        self,
        amm_address: str,
        from_block: int,
        to_block: int,
    ) -> list[SwapEvent]:
        """
        Get Swap events of one pool in an inclusive range.

        Returns:
            Events in ascending (block, log index) order
        """
        logs = await self._get_logs(
            amm_address,
            SWAP_TOPIC,
            from_block,
            to_block,
            operation_name=(
                f"get_swap_events({mask_address(amm_address)}, "
                f"{from_block}-{to_block})"
            ),
        )

        events = []
        for log in logs:
            decoded = self._amm_events.Swap().process_log(log)
            args = decoded["args"]
            events.append(
                SwapEvent(
                    user=normalize_address(args["user"]),
                    eth_in=int(args["ethIn"]),
                    token_in=int(args["tokenIn"]),
                    eth_out=int(args["ethOut"]),
                    token_out=int(args["tokenOut"]),
                    block_number=decoded["blockNumber"],
                    block_hash=normalize_hash(decoded["blockHash"]),
                    tx_hash=normalize_hash(decoded["transactionHash"]),
                    log_index=decoded["logIndex"],
                )
            )

        events.sort(key=_log_position)
        return events

    async def get_reserves(self, amm_address: str) -> tuple[int, int]:
        """
        Read current pool reserves.

        Returns:
            Tuple of (reserveETH, reserveToken) in wei
        """
        address = Web3.to_checksum_address(amm_address)

        def _read(w3: Web3) -> tuple[int, int]:
            pool = w3.eth.contract(address=address, abi=AMM_ABI)
            return (
                pool.functions.reserveETH().call(),
                pool.functions.reserveToken().call(),
            )

        return await self.executor.execute(
            operation=_read,
            operation_name=f"get_reserves({mask_address(amm_address)})",
        )

    def close(self) -> None:
        """Release the executor thread pool."""
        logger.debug(f"[Chain] RPC stats: {self.executor.get_stats()}")
        self.executor.close()


def build_chain_client(settings: Settings) -> ChainClient:
    """
    Build a chain client from settings.

    Args:
        settings: Application settings

    Returns:
        ChainClient (not yet connected)
    """
    pool = EndpointPool.from_urls(
        settings.rpc_url_list,
        timeout=settings.rpc_request_timeout,
    )
    return ChainClient(
        pool=pool,
        executor=FailoverExecutor(pool),
        factory_address=settings.factory_address,
    )
