"""
Ledger service.

The only writer of the three running balance fields of an account
(total_commission, available_balance, total_withdrawn). Every mutation is a
relative UPDATE executed in the caller's transaction; decrements are guarded
so a balance can never go below zero.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.account import Account
from affiliate_core.services.base_service import BaseService
from affiliate_core.utils.exceptions import (
    AccountNotFound,
    InsufficientBalance,
    ValidationError,
)


@dataclass(frozen=True)
class LedgerBalances:
    """Point-in-time view of an account's ledger fields."""

    account_id: int
    total_commission: Decimal
    available_balance: Decimal
    total_withdrawn: Decimal


class LedgerService(BaseService):
    """
    Relative, guarded balance mutations.

    Does not commit: callers run these inside their own transaction so the
    ledger change and the record that justifies it succeed or fail together.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize ledger service.

        Args:
            session: Database session (transaction owned by caller)
        """
        super().__init__(session)

    async def lock_account(self, account_id: int) -> Account:
        """
        Lock the account row for the rest of the transaction.

        Args:
            account_id: Account ID

        Returns:
            Freshly loaded, locked account

        Raises:
            AccountNotFound: Account does not exist
        """
        stmt = (
            select(Account)
            .where(Account.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        account = result.scalar_one_or_none()
        if account is None:
            raise AccountNotFound(account_id=account_id)
        return account

    async def get_balances(self, account_id: int) -> LedgerBalances:
        """
        Read current ledger fields straight from the database.

        Args:
            account_id: Account ID

        Returns:
            LedgerBalances

        Raises:
            AccountNotFound: Account does not exist
        """
        stmt = select(
            Account.total_commission,
            Account.available_balance,
            Account.total_withdrawn,
        ).where(Account.id == account_id)
        row = (await self.session.execute(stmt)).one_or_none()
        if row is None:
            raise AccountNotFound(account_id=account_id)

        total_commission, available_balance, total_withdrawn = row
        return LedgerBalances(
            account_id=account_id,
            total_commission=Decimal(str(total_commission)),
            available_balance=Decimal(str(available_balance)),
            total_withdrawn=Decimal(str(total_withdrawn)),
        )

    async def accrue_commission(
        self, account_id: int, amount: Decimal, reason: str
    ) -> None:
        """
        Add an accrued commission to total_commission.

        Args:
            account_id: Payee account ID
            amount: Commission amount
            reason: Audit description (e.g. "order:123:L1")
        """
        self._require_non_negative(amount)
        await self._increment(account_id, "total_commission", amount, reason)

    async def reverse_accrual(
        self, account_id: int, amount: Decimal, reason: str
    ) -> None:
        """
        Remove a previously accrued amount from total_commission.

        Raises:
            InsufficientBalance: total_commission would go negative
        """
        self._require_non_negative(amount)
        await self._decrement(account_id, "total_commission", amount, reason)

    async def credit_available(
        self, account_id: int, amount: Decimal, reason: str
    ) -> None:
        """
        Increase available_balance (commission paid, withdrawal refunded).

        Args:
            account_id: Account ID
            amount: Amount to credit
            reason: Audit description
        """
        self._require_non_negative(amount)
        await self._increment(account_id, "available_balance", amount, reason)

    async def debit_available(
        self, account_id: int, amount: Decimal, reason: str
    ) -> None:
        """
        Decrease available_balance (withdrawal reservation, paid commission
        cancelled).

        Args:
            account_id: Account ID
            amount: Amount to debit
            reason: Audit description

        Raises:
            InsufficientBalance: available_balance is lower than amount
        """
        self._require_non_negative(amount)
        await self._decrement(account_id, "available_balance", amount, reason)

    async def record_withdrawn(
        self, account_id: int, amount: Decimal, reason: str
    ) -> None:
        """Add a completed payout to total_withdrawn."""
        self._require_non_negative(amount)
        await self._increment(account_id, "total_withdrawn", amount, reason)

    async def apply_delta(
        self, account_id: int, field: str, delta: Decimal, reason: str
    ) -> None:
        """
        Apply a signed delta to a ledger field (operator corrections).

        Args:
            account_id: Account ID
            field: total_commission or available_balance
            delta: Signed amount
            reason: Audit description
        """
        if field not in ("total_commission", "available_balance"):
            raise ValidationError(f"Field {field} cannot be corrected", field=field)
        if delta > 0:
            await self._increment(account_id, field, delta, reason)
        elif delta < 0:
            await self._decrement(account_id, field, -delta, reason)

    async def _increment(
        self, account_id: int, field: str, amount: Decimal, reason: str
    ) -> None:
        column = getattr(Account, field)
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values({field: column + amount})
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            raise AccountNotFound(account_id=account_id)

        self.logger.info(
            f"Ledger {field} increased",
            extra={
                "account_id": account_id,
                "field": field,
                "amount": str(amount),
                "reason": reason,
            },
        )

    async def _decrement(
        self, account_id: int, field: str, amount: Decimal, reason: str
    ) -> None:
        column = getattr(Account, field)
        stmt = (
            update(Account)
            .where(Account.id == account_id, column >= amount)
            .values({field: column - amount})
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        if result.rowcount != 1:
            # Distinguish a missing account from a failed guard
            balances = await self.get_balances(account_id)
            self.logger.warning(
                f"Ledger {field} decrement refused",
                extra={
                    "account_id": account_id,
                    "field": field,
                    "requested": str(amount),
                    "current": str(getattr(balances, field)),
                    "reason": reason,
                },
            )
            raise InsufficientBalance(
                account_id=account_id,
                field=field,
                requested=amount,
                current=getattr(balances, field),
            )

        self.logger.info(
            f"Ledger {field} decreased",
            extra={
                "account_id": account_id,
                "field": field,
                "amount": str(amount),
                "reason": reason,
            },
        )

    @staticmethod
    def _require_non_negative(amount: Decimal) -> None:
        if amount < 0:
            raise ValidationError(
                "Ledger amounts must be non-negative", amount=amount
            )
