"""
Test doubles for the RPC side of the indexer.

FakeChain implements the chain client interface over in-memory blocks,
launch events and swap events, and counts the calls it receives.
"""

import asyncio
from collections import Counter
from unittest.mock import AsyncMock

from chainsync.services.event_indexer.schemas import SideEffectResult
from chainsync.services.rpc.chain_client import BlockInfo, LaunchEvent, SwapEvent
from chainsync.utils.exceptions import AllEndpointsFailedError

FACTORY = "0xde377c1c3280c2de18479acbe40a06a79e0b3831"
GENESIS_TIMESTAMP = 1_700_000_000
WEI = 10**18


def address(n: int) -> str:
    """Deterministic lowercase address."""
    return "0x" + f"{n:040x}"


def tx_hash(n: int) -> str:
    return "0x" + f"{n:064x}"


def block_hash(number: int, fork: int = 0) -> str:
    """Deterministic block hash; a different fork id gives a different hash."""
    return "0x" + f"{fork:08x}" + f"{number:056x}"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeChain:
    """In-memory chain exposing the ChainClient interface."""

    factory_address = FACTORY

    def __init__(self, head: int = 1000) -> None:
        self.head = head
        self.forks: dict[int, int] = {}
        self.launches: list[LaunchEvent] = []
        self.swaps: dict[str, list[SwapEvent]] = {}
        self.reserves: dict[str, tuple[int, int]] = {}

        self.calls: Counter = Counter()
        self.block_fetches: Counter = Counter()
        self.connected_from: int | None = None
        self.cursor = 0

        self.fail_connect = False
        self.fail_launches = False
        self.fail_head = False
        self.fail_get_block = False
        self.fail_blocks_below: int | None = None
        self.fail_swaps_for: set[str] = set()
        self.on_swap_query = None

        self._tx_counter = 0

    # ------------------------------------------------------------------
    # Building the chain
    # ------------------------------------------------------------------

    def _next_tx(self) -> str:
        self._tx_counter += 1
        return tx_hash(self._tx_counter)

    def hash_of(self, number: int) -> str:
        return block_hash(number, self.forks.get(number, 0))

    def add_launch(
        self,
        token: str,
        amm: str,
        block: int,
        symbol: str = "TKN",
        liquidity_percent: int = 80,
        liquidity_wei: int = 2 * WEI,
        creator: str | None = None,
    ) -> LaunchEvent:
        event = LaunchEvent(
            token_address=token,
            amm_address=amm,
            name=f"{symbol} Token",
            symbol=symbol,
            creator=creator or address(0xC0FFEE),
            liquidity_percent=liquidity_percent,
            initial_liquidity_wei=liquidity_wei,
            block_number=block,
            block_hash=self.hash_of(block),
            tx_hash=self._next_tx(),
            log_index=0,
        )
        self.launches.append(event)
        return event

    def add_swap(
        self,
        amm: str,
        block: int,
        user: str,
        eth_in: int = 0,
        token_in: int = 0,
        eth_out: int = 0,
        token_out: int = 0,
        log_index: int | None = None,
    ) -> SwapEvent:
        pool_swaps = self.swaps.setdefault(amm, [])
        event = SwapEvent(
            user=user,
            eth_in=eth_in,
            token_in=token_in,
            eth_out=eth_out,
            token_out=token_out,
            block_number=block,
            block_hash=self.hash_of(block),
            tx_hash=self._next_tx(),
            log_index=log_index if log_index is not None else len(pool_swaps),
        )
        pool_swaps.append(event)
        return event

    def fork(self, from_block: int) -> None:
        """Replace every block from from_block up with a new version and drop its events."""
        for number in range(from_block, self.head + 1):
            self.forks[number] = self.forks.get(number, 0) + 1
        self.launches = [e for e in self.launches if e.block_number < from_block]
        for amm, events in self.swaps.items():
            self.swaps[amm] = [e for e in events if e.block_number < from_block]

    # ------------------------------------------------------------------
    # ChainClient interface
    # ------------------------------------------------------------------

    async def connect(self, start_index: int = 0) -> None:
        self.calls["connect"] += 1
        self.connected_from = start_index
        if self.fail_connect:
            raise AllEndpointsFailedError("All 2 RPC endpoints failed liveness probe")

    @property
    def endpoint_cursor(self) -> int:
        return self.cursor

    async def get_head(self) -> int:
        self.calls["get_head"] += 1
        if self.fail_head:
            raise ConnectionError("ECONNRESET")
        return self.head

    async def get_block(self, block_number: int) -> BlockInfo | None:
        self.calls["get_block"] += 1
        self.block_fetches[block_number] += 1
        await asyncio.sleep(0)
        if self.fail_get_block or (
            self.fail_blocks_below is not None and block_number < self.fail_blocks_below
        ):
            raise ConnectionError("ECONNRESET")
        if block_number < 0 or block_number > self.head:
            return None
        return BlockInfo(
            number=block_number,
            hash=self.hash_of(block_number),
            timestamp=GENESIS_TIMESTAMP + block_number * 12,
        )

    async def get_launch_events(self, from_block: int, to_block: int) -> list[LaunchEvent]:
        self.calls["get_launch_events"] += 1
        if self.fail_launches:
            raise TimeoutError("factory log query timed out")
        events = [e for e in self.launches if from_block <= e.block_number <= to_block]
        return sorted(events, key=lambda e: (e.block_number, e.log_index))

    async def get_swap_events(self, amm_address: str, from_block: int, to_block: int) -> list[SwapEvent]:
        self.calls["get_swap_events"] += 1
        await asyncio.sleep(0)
        if self.on_swap_query is not None:
            self.on_swap_query()
        if amm_address in self.fail_swaps_for:
            raise ConnectionError(f"RPC failed for {amm_address}")
        events = [
            e for e in self.swaps.get(amm_address, [])
            if from_block <= e.block_number <= to_block
        ]
        return sorted(events, key=lambda e: (e.block_number, e.log_index))

    async def get_reserves(self, amm_address: str) -> tuple[int, int]:
        self.calls["get_reserves"] += 1
        return self.reserves.get(amm_address, (0, 0))

    def close(self) -> None:
        self.calls["close"] += 1


class FakeSeeder:
    """History seeder double recording seeded tokens."""

    name = "history_seed"

    def __init__(self, ok: bool = True) -> None:
        self.enabled = True
        self.seed = AsyncMock(
            return_value=SideEffectResult(
                name=self.name,
                ok=ok,
                detail="snapshots=24" if ok else "HTTP 500",
            )
        )
        self.close = AsyncMock()


# ----------------------------------------------------------------------
# Launchpad scenario shared by integration tests
# ----------------------------------------------------------------------

TOKEN_A = address(0x71)
AMM_A = address(0xA1)
TOKEN_B = address(0x72)
AMM_B = address(0xA2)
ALICE = address(0xA11CE)
BOB = address(0xB0B)
CAROL = address(0xCA201)


def launchpad_chain() -> FakeChain:
    """
    Head 1000 with two launches and four swaps.

    Token A (block 900): Alice and Bob buy in block 905, Alice sells in 920.
    Token B (block 950): Carol buys in block 960.
    """
    chain = FakeChain(head=1000)
    chain.add_launch(TOKEN_A, AMM_A, block=900, symbol="AAA")
    chain.add_launch(TOKEN_B, AMM_B, block=950, symbol="BBB", liquidity_percent=50)

    chain.add_swap(AMM_A, 905, ALICE, eth_in=WEI // 2, token_out=1000 * WEI)
    chain.add_swap(AMM_A, 905, BOB, eth_in=WEI // 4, token_out=500 * WEI)
    chain.add_swap(AMM_A, 920, ALICE, token_in=200 * WEI, eth_out=WEI // 8)
    chain.add_swap(AMM_B, 960, CAROL, eth_in=3 * WEI // 2, token_out=3000 * WEI)

    chain.reserves[AMM_A] = (21 * WEI // 8, 798_500 * WEI)
    chain.reserves[AMM_B] = (7 * WEI // 2, 497_000 * WEI)
    return chain
