"""
Skip Block repository.

Data access layer for operator-maintained skipped blocks.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chainsync.models.skip_block import SKIP_ALL, SkipBlock
from chainsync.repositories.base import BaseRepository


class SkipBlockRepository(BaseRepository[SkipBlock]):
    """Repository for skipped blocks."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(SkipBlock, session)

    async def get_block_numbers(
        self,
        indexer_type: str,
        up_to_block: int | None = None,
    ) -> set[int]:
        """
        Get blocks an indexer must skip.

        Args:
            indexer_type: launch or swap (rules for "all" are included)
            up_to_block: Optional highest block of interest

        Returns:
            Set of block numbers
        """
        stmt = select(SkipBlock.block_number).where(
            SkipBlock.indexer_type.in_((indexer_type, SKIP_ALL))
        )
        if up_to_block is not None:
            stmt = stmt.where(SkipBlock.block_number <= up_to_block)

        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def add(self, block_number: int, indexer_type: str, reason: str = "") -> bool:
        """
        Add a skip rule.

        Returns:
            True if the rule was new
        """
        stmt = (
            self.insert_stmt()
            .values(block_number=block_number, indexer_type=indexer_type, reason=reason)
            .on_conflict_do_nothing(index_elements=["block_number", "indexer_type"])
            .returning(SkipBlock.id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None
