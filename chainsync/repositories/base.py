"""
Base repository.

Shared query helpers for the indexer tables.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from chainsync.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Repository bound to one model and one session.

    Repositories never commit: the caller owns the transaction, so an
    ingestor can group several writes into one atomic unit.
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        self.model = model
        self.session = session

    async def get_by(self, **filters: Any) -> ModelType | None:
        """Return the first row matching column equality filters, or None."""
        result = await self.session.execute(
            select(self.model).filter_by(**filters).limit(1)
        )
        return result.scalar_one_or_none()

    async def create(self, **data: Any) -> ModelType:
        """Add a row and flush it so server defaults are loaded."""
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def count(self, **filters: Any) -> int:
        stmt = select(func.count()).select_from(self.model)
        if filters:
            stmt = stmt.filter_by(**filters)
        return (await self.session.execute(stmt)).scalar() or 0

    def insert_stmt(self):
        """
        Dialect-specific INSERT supporting ON CONFLICT clauses.

        PostgreSQL in production, SQLite in tests.
        """
        if self.session.get_bind().dialect.name == "sqlite":
            return sqlite.insert(self.model)
        return postgresql.insert(self.model)
