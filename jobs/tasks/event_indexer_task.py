"""
Event Indexer Task.

One scheduled, time-boxed indexer invocation. The scheduler sends this
message repeatedly; every run resumes from the stored watermark.
"""

from typing import Any

import dramatiq
from loguru import logger

from chainsync.config.settings import settings
from chainsync.services.event_indexer import IndexRequest, build_event_indexer
from chainsync.utils.exceptions import AllEndpointsFailedError
from jobs.async_runner import run_async
from jobs.broker import broker  # noqa: F401
from jobs.utils.database import create_task_engine, create_task_session_maker


async def index_events(params: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Run the event indexer once.

    Args:
        params: IndexRequest fields (snake_case or camelCase)

    Returns:
        Report dict

    Raises:
        AllEndpointsFailedError: If no RPC endpoint is usable
    """
    request = IndexRequest.from_params(params)
    engine = create_task_engine()
    service = build_event_indexer(create_task_session_maker(engine), settings)

    try:
        report = await service.run(request)
        return report.to_dict()
    finally:
        service.chain.close()
        await service.seeder.close()
        await engine.dispose()


@dramatiq.actor(max_retries=0, time_limit=60_000)
def run_event_indexer(**params: Any) -> None:
    """
    Index launchpad events for the next block window.

    Per-token failures are in the report; only an unusable RPC pool
    fails the message.
    """
    try:
        report = run_async(index_events(params))
    except AllEndpointsFailedError as e:
        logger.error(f"[Indexer Task] All RPC endpoints failed: {e}")
        raise

    if report["errors"]:
        logger.warning(
            f"[Indexer Task] Completed with {len(report['errors'])} errors: "
            f"{report['errors'][:5]}"
        )
    logger.info(
        f"[Indexer Task] Blocks {report['from_block']}-{report['to_block']}: "
        f"{report['tokens_indexed']} tokens, {report['swaps_indexed']} swaps, "
        f"timed_out={report['timed_out']}"
    )
