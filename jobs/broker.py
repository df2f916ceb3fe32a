"""
Dramatiq broker for the indexer actors.

Actors are enqueued by an external scheduler (cron, systemd timer,
periodiq); the broker only carries the messages.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import CurrentMessage, ShutdownNotifications
from loguru import logger

from chainsync.config.settings import settings

redis_broker = RedisBroker(
    host=settings.redis_host,
    port=settings.redis_port,
    password=settings.redis_password or None,
    db=settings.redis_db,
)

# No Retries middleware: a failed run resumes from the watermark on the
# next scheduled invocation.
redis_broker.add_middleware(ShutdownNotifications())
redis_broker.add_middleware(CurrentMessage())

dramatiq.set_broker(redis_broker)

broker = redis_broker

logger.info(
    f"[Jobs] Broker ready: redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
)
