"""
Commission module.

Commission computation at conversion time and status transitions afterwards.
"""

from affiliate_core.services.commission.commission_engine import (
    CommissionEngine,
    CommissionLine,
    CommissionPlan,
)
from affiliate_core.services.commission.commission_status_service import (
    CommissionStatusService,
    PayoutSummary,
)

__all__ = [
    "CommissionEngine",
    "CommissionLine",
    "CommissionPlan",
    "CommissionStatusService",
    "PayoutSummary",
]
