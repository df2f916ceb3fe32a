"""
Logging configuration.

Configures loguru sinks for tasks and scripts.
"""

import sys

from loguru import logger


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """
    Configure loguru sinks.

    Args:
        level: Minimum level for stderr output
        log_file: Optional file sink with daily rotation
    """
    logger.remove()
    logger.add(sys.stderr, level=level)

    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=level,
            encoding="utf-8",
        )
