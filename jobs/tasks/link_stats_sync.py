"""
Link statistics sync task.

Recomputes denormalized link counters from clicks and conversions.
"""

import dramatiq
from loguru import logger

from affiliate_core.services.statistics.affiliate_statistics_service import (
    AffiliateStatisticsService,
)
from jobs.async_runner import async_actor, create_local_session


@dramatiq.actor(max_retries=2, time_limit=300_000)  # 5 min
@async_actor
async def sync_link_stats() -> int:
    """Resynchronise link counters."""
    logger.info("Starting link statistics sync")

    async with create_local_session() as session:
        service = AffiliateStatisticsService(session)
        synced = await service.sync_link_stats()

    logger.info(f"Link statistics sync complete: {synced} links")
    return synced
