"""
Commission repository.

Data access layer for Commission model.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.commission import Commission
from affiliate_core.models.enums import CommissionStatus
from affiliate_core.repositories.base import BaseRepository


class CommissionRepository(BaseRepository[Commission]):
    """Commission repository with specific methods."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission repository."""
        super().__init__(Commission, session)

    async def list_for_conversion(self, conversion_id: int) -> list[Commission]:
        """
        Get commissions created for a conversion, level order.

        Args:
            conversion_id: Conversion ID

        Returns:
            List of commissions
        """
        stmt = (
            select(Commission)
            .where(Commission.conversion_id == conversion_id)
            .order_by(Commission.level)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_matured_pending_ids(self, created_before: datetime) -> list[int]:
        """
        Get ids of PENDING commissions created before a cutoff.

        Args:
            created_before: Cutoff timestamp

        Returns:
            List of commission ids, oldest first
        """
        stmt = (
            select(Commission.id)
            .where(
                Commission.status == CommissionStatus.PENDING.value,
                Commission.created_at < created_before,
            )
            .order_by(Commission.created_at, Commission.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def transition(
        self,
        commission_id: int,
        expected_status: CommissionStatus,
        **values: Any,
    ) -> bool:
        """
        Conditionally update a commission still in the expected status.

        Args:
            commission_id: Commission ID
            expected_status: Status the row must still have
            **values: Column values to set

        Returns:
            True if the row was updated, False if it changed concurrently
        """
        stmt = (
            update(Commission)
            .where(
                Commission.id == commission_id,
                Commission.status == expected_status.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def totals_for_account(
        self, account_id: int
    ) -> list[tuple[int, str, int, Decimal]]:
        """
        Count and sum commissions of a payee grouped by level and status.

        Args:
            account_id: Payee account ID

        Returns:
            List of (level, status, count, amount_sum)
        """
        stmt = (
            select(
                Commission.level,
                Commission.status,
                func.count(Commission.id),
                func.coalesce(func.sum(Commission.amount), 0),
            )
            .where(Commission.account_id == account_id)
            .group_by(Commission.level, Commission.status)
        )
        result = await self.session.execute(stmt)
        return [
            (level, status, count, Decimal(str(total)))
            for level, status, count, total in result.all()
        ]
