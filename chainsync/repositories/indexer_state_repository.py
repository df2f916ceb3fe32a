"""
Indexer State repository.

Data access layer for the singleton watermark row.
"""

from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chainsync.models.indexer_state import IndexerState
from chainsync.repositories.base import BaseRepository


class IndexerStateRepository(BaseRepository[IndexerState]):
    """Repository for the indexer watermark."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(IndexerState, session)

    async def get_current(self) -> IndexerState | None:
        """Get the state row without creating it."""
        stmt = select(IndexerState).order_by(IndexerState.id.asc()).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create(self, confirmation_depth: int) -> IndexerState:
        """
        Get the state row, creating it on first run.

        Args:
            confirmation_depth: Depth stored on a freshly created row

        Returns:
            Indexer state
        """
        state = await self.get_current()
        if state is not None:
            return state

        return await self.create(
            last_indexed_block=0,
            last_block_hash=None,
            confirmation_depth=confirmation_depth,
            endpoint_cursor=0,
        )

    async def advance(self, state_id: int, block_number: int, block_hash: str | None) -> None:
        """
        Move the watermark forward.

        Never moves it backwards: a concurrent or replayed run that
        finished a lower window leaves a higher watermark in place.
        """
        stmt = (
            update(IndexerState)
            .where(
                IndexerState.id == state_id,
                IndexerState.last_indexed_block < block_number,
            )
            .values(
                last_indexed_block=block_number,
                last_block_hash=block_hash,
                updated_at=datetime.now(UTC),
            )
        )
        await self.session.execute(stmt)

    async def reset_to(self, state_id: int, block_number: int) -> None:
        """
        Roll the watermark back to an anchor block.

        The hash is cleared until a later run re-verifies the block.
        """
        stmt = (
            update(IndexerState)
            .where(IndexerState.id == state_id)
            .values(
                last_indexed_block=block_number,
                last_block_hash=None,
                updated_at=datetime.now(UTC),
            )
        )
        await self.session.execute(stmt)

    async def save_endpoint_cursor(self, state_id: int, cursor: int) -> None:
        """Persist the last known-good RPC endpoint index."""
        stmt = (
            update(IndexerState)
            .where(IndexerState.id == state_id)
            .values(endpoint_cursor=cursor)
        )
        await self.session.execute(stmt)
