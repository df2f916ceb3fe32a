"""
Bridge between synchronous dramatiq actors and the async indexer code.

Each worker thread keeps one event loop for its lifetime, so asyncpg
connections and web3 sessions created during a run stay on the loop
that owns them.
"""

import asyncio
import threading
from collections.abc import Coroutine
from typing import Any, TypeVar

from loguru import logger

T = TypeVar("T")

_thread_local = threading.local()


def get_event_loop() -> asyncio.AbstractEventLoop:
    """Return the worker thread's loop, creating it on first use or after close."""
    loop: asyncio.AbstractEventLoop | None = getattr(_thread_local, "loop", None)
    if loop is not None and not loop.is_closed():
        return loop

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    _thread_local.loop = loop
    logger.debug(f"[Jobs] New event loop for {threading.current_thread().name}")
    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run ``coro`` to completion on the worker thread's loop and return its result."""
    loop = get_event_loop()
    try:
        return loop.run_until_complete(coro)
    except Exception as e:
        logger.exception(f"[Jobs] Async task failed: {e}")
        raise
