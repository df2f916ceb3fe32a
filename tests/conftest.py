"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock

# Minimal environment for Settings() before any chainsync import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RPC_URLS", "https://rpc-1.test,https://rpc-2.test")
os.environ.setdefault("HISTORY_SEED_URL", "")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from chainsync.config.database import create_session_maker
from chainsync.models import Base
from chainsync.repositories import IndexerStateRepository
from chainsync.services.event_indexer import EventIndexerService
from chainsync.services.gap_auditor import GapAuditorService
from tests.fakes import FACTORY, FakeChain, FakeClock, FakeSeeder, launchpad_chain


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    """
    Session factory over a fresh SQLite file database.

    A file (not :memory:) so concurrent token tasks get separate
    connections to the same data.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'indexer.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield create_session_maker(engine)

    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_maker):
    """Single session for repository tests."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def chain():
    """Simulated chain: head 1000, no events."""
    return FakeChain(head=1000)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def seeder():
    return FakeSeeder()


@pytest.fixture
def factory_address():
    return FACTORY


@pytest.fixture
def launchpad():
    """Chain with two launched tokens and four swaps (see launchpad_chain)."""
    return launchpad_chain()


@pytest.fixture
def set_watermark(session_maker):
    """Store the watermark (and its block hash) before a run."""

    async def _set(block_number: int, block_hash: str | None, endpoint_cursor: int = 0):
        async with session_maker() as session:
            repo = IndexerStateRepository(session)
            state = await repo.get_or_create(confirmation_depth=2)
            await repo.advance(state.id, block_number, block_hash)
            await repo.save_endpoint_cursor(state.id, endpoint_cursor)
            await session.commit()

    return _set


@pytest.fixture
def get_state(session_maker):
    """Read the stored indexer state."""

    async def _get():
        async with session_maker() as session:
            return await IndexerStateRepository(session).get_current()

    return _get


@pytest.fixture
def make_indexer(session_maker, clock):
    """Build an indexer over a fake chain with a manual clock and no pauses."""

    def _make(chain, seeder=None, **kwargs):
        return EventIndexerService(
            session_maker=session_maker,
            chain=chain,
            seeder=seeder,
            confirmation_depth=2,
            max_execution_seconds=23.0,
            clock=clock,
            sleep=AsyncMock(),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_auditor(session_maker, clock):
    def _make(chain, **kwargs):
        return GapAuditorService(
            session_maker=session_maker,
            chain=chain,
            confirmation_depth=2,
            max_execution_seconds=23.0,
            clock=clock,
            **kwargs,
        )

    return _make
