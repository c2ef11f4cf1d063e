"""
Withdrawal services package.

This package provides modular withdrawal management functionality:
- withdrawal_fee: Display fee calculation
- withdrawal_validator: Input and account-state checks
- withdrawal_request_handler: Request creation and balance reservation
- withdrawal_lifecycle_handler: Resolution, cancellation, deletion
- withdrawal_query_service: Queries and history

All components are re-exported for easy importing.
"""

from affiliate_core.services.withdrawal.withdrawal_fee import calculate_fee
from affiliate_core.services.withdrawal.withdrawal_lifecycle_handler import (
    WithdrawalLifecycleHandler,
    check_resolution,
    parse_withdrawal_status,
)
from affiliate_core.services.withdrawal.withdrawal_query_service import (
    BalanceSummary,
    WithdrawalQueryService,
)
from affiliate_core.services.withdrawal.withdrawal_request_handler import (
    WithdrawalRequestHandler,
)
from affiliate_core.services.withdrawal.withdrawal_validator import (
    WithdrawalValidator,
    validate_request_input,
)


__all__ = [
    "BalanceSummary",
    "WithdrawalLifecycleHandler",
    "WithdrawalQueryService",
    "WithdrawalRequestHandler",
    "WithdrawalValidator",
    "calculate_fee",
    "check_resolution",
    "parse_withdrawal_status",
    "validate_request_input",
]
