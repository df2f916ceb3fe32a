"""
Token repository.

Data access layer for the launched token registry.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import Row, delete, distinct, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chainsync.models.swap import Swap
from chainsync.models.token import Token
from chainsync.repositories.base import BaseRepository


class TokenRepository(BaseRepository[Token]):
    """Repository for launched tokens."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Token, session)

    async def get_by_address(self, token_address: str) -> Token | None:
        """
        Get token by address.

        Args:
            token_address: Token contract address (any case)

        Returns:
            Token or None
        """
        return await self.get_by(token_address=token_address.lower())

    async def insert_launched(self, **values: Any) -> bool:
        """
        Insert a launched token keyed by token_address.

        Replays of the same launch event leave the existing row, and the
        reserves/volume it has accumulated, untouched.

        Args:
            **values: Token column values

        Returns:
            True if a new row was inserted
        """
        stmt = (
            self.insert_stmt()
            .values(**values)
            .on_conflict_do_nothing(index_elements=["token_address"])
            .returning(Token.token_address)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get_tracked_tokens(self, up_to_block: int) -> list[Row]:
        """
        Get tokens launched at or before a block.

        Args:
            up_to_block: Highest launch block to include

        Returns:
            Rows with token_address, amm_address, block_number
        """
        stmt = (
            select(Token.token_address, Token.amm_address, Token.block_number)
            .where(Token.block_number <= up_to_block)
            .order_by(Token.block_number.asc(), Token.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.all())

    async def get_recently_active(self, limit: int) -> list[Token]:
        """
        Get tokens ordered by their latest stored swap.

        Tokens without swaps come last, newest launches first.

        Args:
            limit: Maximum number of tokens

        Returns:
            List of tokens
        """
        last_swap = (
            select(
                Swap.token_address.label("token_address"),
                func.max(Swap.block_number).label("last_block"),
            )
            .group_by(Swap.token_address)
            .subquery()
        )
        stmt = (
            select(Token)
            .outerjoin(last_swap, Token.token_address == last_swap.c.token_address)
            .order_by(
                last_swap.c.last_block.desc().nulls_last(),
                Token.block_number.desc(),
            )
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_block_hash(self, block_number: int) -> str | None:
        """Get the recorded hash of a block from any token launched in it."""
        stmt = (
            select(Token.block_hash)
            .where(Token.block_number == block_number)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def apply_swap_batch(
        self,
        token_address: str,
        eth_reserve: Decimal,
        token_reserve: Decimal,
        volume_delta: Decimal,
    ) -> None:
        """
        Store chain-read reserves and grow the volume accumulator.

        The increment happens in SQL so overlapping runs never lose an
        addition or decrease the stored volume.

        Args:
            token_address: Token address
            eth_reserve: reserveETH() read from the pool
            token_reserve: reserveToken() read from the pool
            volume_delta: ETH volume of newly stored swaps (>= 0)
        """
        values: dict[str, Any] = {
            "current_eth_reserve": eth_reserve,
            "current_token_reserve": token_reserve,
        }
        if volume_delta > 0:
            values["total_volume_eth"] = Token.total_volume_eth + volume_delta

        stmt = (
            update(Token)
            .where(Token.token_address == token_address)
            .values(**values)
        )
        await self.session.execute(stmt)

    async def refresh_holder_count(self, token_address: str, amm_address: str) -> int:
        """
        Recompute the holder count of a token from its swaps.

        A holder is any address that received tokens from the pool,
        excluding the pool itself.

        Returns:
            New holder count
        """
        count_stmt = select(func.count(distinct(Swap.user_address))).where(
            Swap.token_address == token_address,
            Swap.token_out > 0,
            Swap.user_address != amm_address,
        )
        holders = (await self.session.execute(count_stmt)).scalar() or 0

        await self.session.execute(
            update(Token)
            .where(Token.token_address == token_address)
            .values(holder_count=holders)
        )
        return holders

    async def get_addresses_above(self, block_number: int) -> list[str]:
        """Get addresses of tokens launched after a block."""
        stmt = select(Token.token_address).where(Token.block_number > block_number)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_above(self, block_number: int) -> int:
        """
        Delete tokens launched after a block.

        Returns:
            Number of deleted tokens
        """
        stmt = delete(Token).where(Token.block_number > block_number)
        result = await self.session.execute(stmt)
        return result.rowcount or 0
