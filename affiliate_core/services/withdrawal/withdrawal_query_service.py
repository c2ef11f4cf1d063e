"""
Withdrawal query service.

Read-only views over withdrawal requests.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.config.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from affiliate_core.models.enums import WithdrawalStatus
from affiliate_core.models.withdrawal import Withdrawal
from affiliate_core.repositories.withdrawal_repository import (
    WithdrawalRepository,
)
from affiliate_core.services.ledger.ledger_service import LedgerService
from affiliate_core.utils.exceptions import WithdrawalNotFound


@dataclass(frozen=True)
class BalanceSummary:
    """Balances shown on the withdrawal screen."""

    available_balance: Decimal
    total_commission: Decimal
    total_withdrawn: Decimal
    pending_amount: Decimal
    has_pending: bool


class WithdrawalQueryService:
    """Withdrawal queries and history."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize withdrawal query service.

        Args:
            session: Database session
        """
        self.session = session
        self.withdrawal_repo = WithdrawalRepository(session)
        self.ledger = LedgerService(session)

    async def get_withdrawal(
        self, withdrawal_id: int, account_id: int | None = None
    ) -> Withdrawal:
        """
        Get withdrawal by ID, optionally restricted to an owner.

        Raises:
            WithdrawalNotFound: Unknown id or not owned by account_id
        """
        withdrawal = await self.withdrawal_repo.get_by_id(withdrawal_id)
        if withdrawal is None or (
            account_id is not None and withdrawal.account_id != account_id
        ):
            raise WithdrawalNotFound(withdrawal_id=withdrawal_id)
        return withdrawal

    async def list_for_account(
        self,
        account_id: int,
        status: WithdrawalStatus | None = None,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[list[Withdrawal], int]:
        """
        Get an account's withdrawal history, newest first.

        Returns:
            Tuple of (withdrawals, total_count)
        """
        page = max(page, 1)
        per_page = min(max(per_page, 1), MAX_PAGE_SIZE)
        return await self.withdrawal_repo.list_for_account(
            account_id, status=status, page=page, per_page=per_page
        )

    async def list_pending(
        self, page: int = 1, per_page: int = DEFAULT_PAGE_SIZE
    ) -> tuple[list[Withdrawal], int]:
        """Operator queue of PENDING withdrawals."""
        page = max(page, 1)
        per_page = min(max(per_page, 1), MAX_PAGE_SIZE)
        return await self.withdrawal_repo.list_by_status(
            WithdrawalStatus.PENDING, page=page, per_page=per_page
        )

    async def get_balance_summary(self, account_id: int) -> BalanceSummary:
        """
        Get balances and pending reservation of an account.

        Raises:
            AccountNotFound: Unknown account
        """
        balances = await self.ledger.get_balances(account_id)
        pending = await self.withdrawal_repo.get_pending_for_account(account_id)
        pending_amount = Decimal(str(pending.amount)) if pending else Decimal("0")
        return BalanceSummary(
            available_balance=balances.available_balance,
            total_commission=balances.total_commission,
            total_withdrawn=balances.total_withdrawn,
            pending_amount=pending_amount,
            has_pending=pending is not None,
        )
