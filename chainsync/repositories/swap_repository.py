"""
Swap repository.

Data access layer for the swap log.
"""

from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chainsync.config.constants import SWAP_INSERT_CHUNK_SIZE
from chainsync.models.swap import Swap
from chainsync.repositories.base import BaseRepository


class SwapRepository(BaseRepository[Swap]):
    """Repository for swap events."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Swap, session)

    async def insert_batch(self, rows: list[dict[str, Any]]) -> set[str]:
        """
        Insert swaps keyed by tx_hash, ignoring ones already stored.

        Args:
            rows: Swap column values

        Returns:
            Transaction hashes of the rows actually inserted
        """
        inserted: set[str] = set()

        for offset in range(0, len(rows), SWAP_INSERT_CHUNK_SIZE):
            chunk = rows[offset:offset + SWAP_INSERT_CHUNK_SIZE]
            stmt = (
                self.insert_stmt()
                .values(chunk)
                .on_conflict_do_nothing(index_elements=["tx_hash"])
                .returning(Swap.tx_hash)
            )
            result = await self.session.execute(stmt)
            inserted.update(result.scalars().all())

        return inserted

    async def get_earliest_block(self, token_address: str) -> int | None:
        """Get the lowest block number of any stored swap for a token."""
        stmt = select(func.min(Swap.block_number)).where(
            Swap.token_address == token_address
        )
        result = await self.session.execute(stmt)
        return result.scalar()

    async def get_block_hash(self, block_number: int) -> str | None:
        """Get the recorded hash of a block from any swap in it."""
        stmt = (
            select(Swap.block_hash)
            .where(Swap.block_number == block_number)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_in_range(
        self,
        token_address: str,
        from_block: int,
        to_block: int,
    ) -> int:
        """
        Count stored swaps of a token in an inclusive block range.

        Args:
            token_address: Token address
            from_block: First block
            to_block: Last block

        Returns:
            Number of stored swaps
        """
        stmt = select(func.count()).select_from(Swap).where(
            Swap.token_address == token_address,
            Swap.block_number >= from_block,
            Swap.block_number <= to_block,
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def delete_above(self, block_number: int) -> int:
        """
        Delete swaps mined after a block.

        Returns:
            Number of deleted swaps
        """
        stmt = delete(Swap).where(Swap.block_number > block_number)
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def delete_for_tokens(self, token_addresses: list[str]) -> int:
        """
        Delete all swaps of the given tokens.

        Returns:
            Number of deleted swaps
        """
        if not token_addresses:
            return 0
        stmt = delete(Swap).where(Swap.token_address.in_(token_addresses))
        result = await self.session.execute(stmt)
        return result.rowcount or 0
