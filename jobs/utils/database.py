"""Database setup for tasks."""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from chainsync.config.database import create_engine, create_session_maker


def create_task_engine(database_url: str | None = None) -> AsyncEngine:
    """
    Create an engine for one task run.

    NullPool: every run has its own event loop, pooled connections would
    outlive it.
    """
    return create_engine(database_url, poolclass=NullPool)


def create_task_session_maker(engine: AsyncEngine | None = None) -> async_sessionmaker[AsyncSession]:
    """Create session maker for tasks."""
    if engine is None:
        engine = create_task_engine()
    return create_session_maker(engine)
