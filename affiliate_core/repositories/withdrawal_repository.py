"""
Withdrawal repository.

Data access layer for Withdrawal model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.enums import WithdrawalStatus
from affiliate_core.models.withdrawal import Withdrawal
from affiliate_core.repositories.base import BaseRepository


class WithdrawalRepository(BaseRepository[Withdrawal]):
    """Withdrawal repository with specific methods."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize withdrawal repository."""
        super().__init__(Withdrawal, session)

    async def get_pending_for_account(self, account_id: int) -> Withdrawal | None:
        """
        Get the PENDING withdrawal of an account, if any.

        Args:
            account_id: Account ID

        Returns:
            Withdrawal or None
        """
        return await self.get_by(
            account_id=account_id, status=WithdrawalStatus.PENDING.value
        )

    async def list_for_account(
        self,
        account_id: int,
        status: WithdrawalStatus | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[Withdrawal], int]:
        """
        List withdrawals of an account, newest first.

        Args:
            account_id: Account ID
            status: Optional status filter
            page: Page number (1-indexed)
            per_page: Items per page

        Returns:
            Tuple of (withdrawals, total_count)
        """
        filters: dict = {"account_id": account_id}
        if status is not None:
            filters["status"] = status.value
        return await self.find_paginated(page=page, per_page=per_page, **filters)

    async def list_by_status(
        self,
        status: WithdrawalStatus,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[Withdrawal], int]:
        """List withdrawals across accounts by status (operator queue)."""
        return await self.find_paginated(
            page=page, per_page=per_page, status=status.value
        )

    async def totals_by_status(
        self, account_id: int | None = None
    ) -> dict[str, tuple[int, Decimal]]:
        """
        Count and sum withdrawals grouped by status.

        Args:
            account_id: Restrict to one account (None = all accounts)

        Returns:
            Dict status -> (count, amount_sum)
        """
        stmt = select(
            Withdrawal.status,
            func.count(Withdrawal.id),
            func.coalesce(func.sum(Withdrawal.amount), 0),
        ).group_by(Withdrawal.status)
        if account_id is not None:
            stmt = stmt.where(Withdrawal.account_id == account_id)

        result = await self.session.execute(stmt)
        return {
            status: (count, Decimal(str(total)))
            for status, count, total in result.all()
        }
