#!/usr/bin/env python3
"""
Run one event indexer invocation and print its report as JSON.

Examples:
    python scripts/index_events.py
    python scripts/index_events.py --from-block 5200000 --to-block 5201000 --backfill-swaps
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from chainsync.config.settings import settings
from chainsync.utils.exceptions import AllEndpointsFailedError
from chainsync.utils.logging import setup_logging
from jobs.tasks.event_indexer_task import index_events


def main():
    parser = argparse.ArgumentParser(
        description="Index launchpad token launches and swaps"
    )
    parser.add_argument("--from-block", type=int, help="Explicit window start")
    parser.add_argument("--to-block", type=int, help="Explicit window end")
    parser.add_argument(
        "--no-launches",
        action="store_true",
        help="Do not index TokenLaunched events",
    )
    parser.add_argument(
        "--no-swaps",
        action="store_true",
        help="Do not index Swap events",
    )
    parser.add_argument(
        "--skip-reorg-check",
        action="store_true",
        help="Trust the stored watermark without verifying its hash",
    )
    parser.add_argument(
        "--backfill-swaps",
        action="store_true",
        help="Rescan tokens whose stored swap history starts late",
    )
    parser.add_argument("--log-level", default=settings.log_level)

    args = parser.parse_args()
    setup_logging(args.log_level)

    params = {
        "from_block": args.from_block,
        "to_block": args.to_block,
        "index_token_launches": not args.no_launches,
        "index_swaps": not args.no_swaps,
        "skip_reorg_check": args.skip_reorg_check,
        "backfill_swaps": args.backfill_swaps,
    }

    try:
        report = asyncio.run(index_events(params))
    except AllEndpointsFailedError as e:
        logger.error(f"All RPC endpoints failed: {e}")
        sys.exit(2)

    print(json.dumps(report, indent=2, default=str))
    sys.exit(1 if report["errors"] else 0)


if __name__ == "__main__":
    main()
