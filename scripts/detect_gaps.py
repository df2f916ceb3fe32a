#!/usr/bin/env python3
"""
Audit stored swaps against the chain and print the gap report as JSON.

Examples:
    python scripts/detect_gaps.py --all --max-tokens 20
    python scripts/detect_gaps.py --token 0xabc... --window-size 500
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from chainsync.config.constants import GAP_AUDIT_MAX_TOKENS, GAP_AUDIT_WINDOW_SIZE
from chainsync.config.settings import settings
from chainsync.utils.logging import setup_logging
from jobs.tasks.gap_audit_task import audit_gaps


def main():
    parser = argparse.ArgumentParser(
        description="Detect swaps missing from the database"
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--token", help="Audit a single token address")
    target.add_argument(
        "--all",
        action="store_true",
        help="Audit the most recently active tokens",
    )
    parser.add_argument("--max-tokens", type=int, default=GAP_AUDIT_MAX_TOKENS)
    parser.add_argument("--window-size", type=int, default=GAP_AUDIT_WINDOW_SIZE)
    parser.add_argument("--log-level", default=settings.log_level)

    args = parser.parse_args()
    setup_logging(args.log_level)

    report = asyncio.run(
        audit_gaps({
            "token_address": args.token,
            "check_all": args.all,
            "max_tokens": args.max_tokens,
            "window_size": args.window_size,
        })
    )

    print(json.dumps(report, indent=2, default=str))
    sys.exit(1 if report["tokens_with_gaps"] else 0)


if __name__ == "__main__":
    main()
