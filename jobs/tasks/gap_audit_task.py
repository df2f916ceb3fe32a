"""
Gap Audit Task.

Read-only comparison of on-chain and stored swap counts. A report with
gaps should be followed by an indexer run with backfill_swaps=True.
"""

from typing import Any

import dramatiq
from loguru import logger

from chainsync.config.settings import settings
from chainsync.services.gap_auditor import GapAuditRequest, build_gap_auditor
from jobs.async_runner import run_async
from jobs.broker import broker  # noqa: F401
from jobs.utils.database import create_task_engine, create_task_session_maker


async def audit_gaps(params: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Run the gap auditor once.

    Args:
        params: GapAuditRequest fields

    Returns:
        Report dict
    """
    request = GapAuditRequest.from_params(params)
    engine = create_task_engine()
    service = build_gap_auditor(create_task_session_maker(engine), settings)

    try:
        report = await service.run(request)
        return report.to_dict()
    finally:
        service.chain.close()
        await engine.dispose()


@dramatiq.actor(max_retries=0, time_limit=120_000)
def detect_indexer_gaps(**params: Any) -> None:
    """Audit recently active tokens (or one token) for missed swaps."""
    report = run_async(audit_gaps(params))

    if report["tokens_with_gaps"]:
        logger.warning(
            f"[GapAudit Task] {report['tokens_with_gaps']} tokens missing "
            f"{report['total_missing_swaps']} swaps, backfill required"
        )
    else:
        logger.info(
            f"[GapAudit Task] No gaps in {report['tokens_checked']} tokens"
        )
