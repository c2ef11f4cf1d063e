"""
Logging setup.

Configures loguru logger for the service.
Sets up log rotation and retention policies.
"""

import sys

from loguru import logger

from affiliate_core.config.settings import settings


def setup_logging() -> None:
    """Configure logger with stderr output and file rotation."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="1 day",
            retention="7 days",
            level=settings.log_level,
            encoding="utf-8",
        )

    logger.info(
        "Affiliate engine logging configured",
        extra={"environment": settings.environment, "level": settings.log_level},
    )
