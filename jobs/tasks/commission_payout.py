"""
Commission payout task.

Pays PENDING commissions that have passed the hold period. Scheduled once a
day; safe to re-run because each commission transition is status-guarded.
"""

import dramatiq
from loguru import logger

from affiliate_core.services.commission.commission_status_service import (
    CommissionStatusService,
    PayoutSummary,
)
from jobs.async_runner import create_local_session, run_async


async def pay_matured_commissions(
    older_than_days: int | None = None,
) -> PayoutSummary:
    """
    Async implementation of the payout run.

    Args:
        older_than_days: Hold period override (settings value if None)

    Returns:
        PayoutSummary
    """
    async with create_local_session() as session:
        service = CommissionStatusService(session)
        return await service.pay_matured(older_than_days)


@dramatiq.actor(max_retries=3, time_limit=600_000)  # 10 min
def process_commission_payouts(older_than_days: int | None = None) -> None:
    """
    Pay matured commissions.

    Args:
        older_than_days: Hold period override (settings value if None)
    """
    logger.info("Starting commission payout run")

    summary = run_async(pay_matured_commissions(older_than_days))

    logger.info(
        f"Commission payout complete: {summary.paid_count} paid, "
        f"total {summary.paid_total}, {summary.failed_count} skipped"
    )
