"""
Statistics module.

Read projections for affiliate dashboards.
"""

from affiliate_core.services.statistics.affiliate_statistics_service import (
    AccountSummary,
    AffiliateStatisticsService,
    Totals,
    LinkStats,
)

__all__ = [
    "AccountSummary",
    "AffiliateStatisticsService",
    "Totals",
    "LinkStats",
]
