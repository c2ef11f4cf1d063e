"""
Withdrawal service - Main service facade.

Delegates to the specialized modules in ``services/withdrawal``:
- withdrawal_request_handler: Request creation and reservation
- withdrawal_lifecycle_handler: Resolution, cancellation, deletion
- withdrawal_query_service: Queries and history
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.enums import WithdrawalStatus
from affiliate_core.models.withdrawal import Withdrawal
from affiliate_core.services.base_service import BaseService
from affiliate_core.services.settings_provider import AffiliateSettingsSnapshot
from affiliate_core.services.withdrawal.withdrawal_lifecycle_handler import (
    WithdrawalLifecycleHandler,
)
from affiliate_core.services.withdrawal.withdrawal_query_service import (
    BalanceSummary,
    WithdrawalQueryService,
)
from affiliate_core.services.withdrawal.withdrawal_request_handler import (
    WithdrawalRequestHandler,
)


class WithdrawalService(BaseService):
    """
    Withdrawal service for managing withdrawal requests.

    Facade over request, lifecycle and query components sharing one session.
    """

    def __init__(
        self,
        session: AsyncSession,
        snapshot: AffiliateSettingsSnapshot | None = None,
    ) -> None:
        """Initialize withdrawal service and all sub-components."""
        super().__init__(session)

        self.request_handler = WithdrawalRequestHandler(session, snapshot)
        self.lifecycle_handler = WithdrawalLifecycleHandler(session)
        self.query_service = WithdrawalQueryService(session)

    # ========================================================================
    # REQUEST HANDLING
    # ========================================================================

    async def get_min_withdrawal_amount(self) -> Decimal:
        """Get minimum withdrawal amount in effect."""
        return await self.request_handler.get_min_withdrawal_amount()

    async def create_withdrawal(
        self,
        account_id: int,
        amount: Decimal | str | int,
        bank_account_id: int | None,
        note: str | None = None,
    ) -> Withdrawal:
        """Create a PENDING withdrawal and reserve its amount."""
        return await self.request_handler.create_withdrawal(
            account_id, amount, bank_account_id, note
        )

    # ========================================================================
    # LIFECYCLE MANAGEMENT
    # ========================================================================

    async def resolve(
        self,
        withdrawal_id: int,
        new_status: WithdrawalStatus | str,
        note: str | None = None,
    ) -> Withdrawal:
        """Resolve a withdrawal to PROCESSING, COMPLETED or REJECTED."""
        return await self.lifecycle_handler.resolve(withdrawal_id, new_status, note)

    async def cancel(self, withdrawal_id: int, account_id: int) -> Withdrawal:
        """Cancel own PENDING withdrawal and return the balance."""
        return await self.lifecycle_handler.cancel(withdrawal_id, account_id)

    async def delete(self, withdrawal_id: int) -> None:
        """Delete a PENDING withdrawal after refunding it."""
        await self.lifecycle_handler.delete(withdrawal_id)

    # ========================================================================
    # QUERIES
    # ========================================================================

    async def get_withdrawal(
        self, withdrawal_id: int, account_id: int | None = None
    ) -> Withdrawal:
        """Get withdrawal, optionally restricted to an owner."""
        return await self.query_service.get_withdrawal(withdrawal_id, account_id)

    async def list_for_account(
        self,
        account_id: int,
        status: WithdrawalStatus | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[Withdrawal], int]:
        """Get withdrawal history of an account."""
        return await self.query_service.list_for_account(
            account_id, status=status, page=page, per_page=per_page
        )

    async def list_pending(
        self, page: int = 1, per_page: int = 20
    ) -> tuple[list[Withdrawal], int]:
        """Get the operator queue of pending withdrawals."""
        return await self.query_service.list_pending(page=page, per_page=per_page)

    async def get_balance_summary(self, account_id: int) -> BalanceSummary:
        """Get balances and pending reservation of an account."""
        return await self.query_service.get_balance_summary(account_id)
