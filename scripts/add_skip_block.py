#!/usr/bin/env python3
"""
Add a block to the skip list of the indexers.

Events in skipped blocks are never ingested and are excluded from gap
audits. Use for blocks with undecodable events or bad RPC data.

Example:
    python scripts/add_skip_block.py 5204411 --type swap --reason "corrupt log"
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger
from sqlalchemy.pool import NullPool

from chainsync.config.database import create_engine, create_session_maker
from chainsync.models.skip_block import SKIP_ALL, SKIP_LAUNCH, SKIP_SWAP
from chainsync.repositories import SkipBlockRepository

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def add_skip_block(block_number: int, indexer_type: str, reason: str) -> None:
    engine = create_engine(poolclass=NullPool)
    session_maker = create_session_maker(engine)

    try:
        async with session_maker() as session:
            added = await SkipBlockRepository(session).add(block_number, indexer_type, reason)
            await session.commit()

        if added:
            logger.success(f"Block {block_number} skipped for {indexer_type} indexing")
        else:
            logger.info(f"Block {block_number} was already skipped for {indexer_type}")
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Skip a block during indexing")
    parser.add_argument("block_number", type=int)
    parser.add_argument(
        "--type",
        dest="indexer_type",
        choices=(SKIP_ALL, SKIP_LAUNCH, SKIP_SWAP),
        default=SKIP_ALL,
    )
    parser.add_argument("--reason", default="")

    args = parser.parse_args()
    asyncio.run(add_skip_block(args.block_number, args.indexer_type, args.reason))


if __name__ == "__main__":
    main()
