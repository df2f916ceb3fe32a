"""
Initial price-history seeding.

After a token launch is stored, an external endpoint is asked to generate
its synthetic launch-time price history. This is enrichment only: it is
never retried and never affects the indexer's success or the watermark.
"""

from datetime import datetime
from decimal import Decimal

import aiohttp
from loguru import logger

from chainsync.config.constants import HISTORY_SEED_HOURS, HISTORY_SEED_TIMEOUT
from chainsync.utils.security import mask_address

from .schemas import SideEffectResult


class HistorySeeder:
    """Best-effort POST to the history seeding endpoint."""

    name = "history_seed"

    def __init__(
        self,
        url: str | None,
        auth_token: str | None = None,
        timeout: float = HISTORY_SEED_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        Initialize seeder.

        Args:
            url: Seeding endpoint (None disables seeding)
            auth_token: Bearer token for the endpoint
            timeout: Total request timeout in seconds
            session: Existing aiohttp session to reuse
        """
        self.url = url
        self.auth_token = auth_token
        self.timeout = timeout
        self._session = session

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def seed(
        self,
        token_address: str,
        launch_price_eth: Decimal,
        initial_eth_reserve: Decimal,
        initial_token_reserve: Decimal,
        created_at: datetime,
    ) -> SideEffectResult:
        """
        Request initial history for a freshly launched token.

        Never raises; failures are logged and returned.

        Returns:
            SideEffectResult
        """
        if not self.enabled:
            return SideEffectResult(name=self.name, ok=False, detail="disabled")

        payload = {
            "tokenAddress": token_address,
            "initialPriceETH": float(launch_price_eth),
            "initialEthReserve": float(initial_eth_reserve),
            "initialTokenReserve": float(initial_token_reserve),
            "createdAt": created_at.isoformat(),
            "hoursOfHistory": HISTORY_SEED_HOURS,
        }
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"

        try:
            session = await self._get_session()
            async with session.post(
                self.url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=headers,
            ) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    logger.warning(
                        f"[History] Seeding failed for {mask_address(token_address)}: "
                        f"HTTP {response.status} {error_text[:200]}"
                    )
                    return SideEffectResult(
                        name=self.name,
                        ok=False,
                        detail=f"HTTP {response.status}",
                    )

                data = await response.json(content_type=None)
                created = data.get("snapshotsCreated") if isinstance(data, dict) else None
                logger.info(
                    f"[History] Generated {created} initial snapshots "
                    f"for {mask_address(token_address)}"
                )
                return SideEffectResult(
                    name=self.name,
                    ok=True,
                    detail=f"snapshots={created}",
                )

        except Exception as e:
            logger.warning(
                f"[History] Seeding error for {mask_address(token_address)}: "
                f"{type(e).__name__}: {e}"
            )
            return SideEffectResult(name=self.name, ok=False, detail=str(e))

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
