"""
Withdrawal validation.

Input checks run before any transaction opens; account-state checks run
inside the creation transaction after the account row is locked.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.account import Account
from affiliate_core.models.bank_account import BankAccount
from affiliate_core.repositories.bank_account_repository import (
    BankAccountRepository,
)
from affiliate_core.repositories.withdrawal_repository import (
    WithdrawalRepository,
)
from affiliate_core.services.settings_provider import AffiliateSettingsSnapshot
from affiliate_core.utils.exceptions import (
    AccountNotEligible,
    BankAccountNotFound,
    PendingWithdrawalExists,
    ValidationError,
)
from affiliate_core.validators.common import validate_amount


def validate_request_input(
    amount: Decimal | str | int, bank_account_id: int | None
) -> Decimal:
    """
    Validate withdrawal request input.

    Args:
        amount: Requested amount
        bank_account_id: Target bank account

    Returns:
        Parsed amount

    Raises:
        ValidationError: Malformed amount or missing bank account
    """
    is_valid, value, error = validate_amount(amount)
    if not is_valid:
        raise ValidationError(error, field="amount")
    if not bank_account_id:
        raise ValidationError("Bank account is required", field="bank_account_id")
    return value


class WithdrawalValidator:
    """In-transaction checks for withdrawal requests."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize withdrawal validator.

        Args:
            session: Database session
        """
        self.session = session
        self.bank_account_repo = BankAccountRepository(session)
        self.withdrawal_repo = WithdrawalRepository(session)

    async def check_request(
        self,
        account: Account,
        amount: Decimal,
        bank_account_id: int,
        snapshot: AffiliateSettingsSnapshot,
    ) -> BankAccount:
        """
        Check a request against the locked account state.

        Balance sufficiency is enforced by the guarded ledger debit.

        Args:
            account: Locked requesting account
            amount: Requested amount
            bank_account_id: Target bank account
            snapshot: Settings in effect

        Returns:
            The target bank account

        Raises:
            AccountNotEligible: Account not active
            ValidationError: Amount below minimum
            BankAccountNotFound: Bank account missing or not owned
            PendingWithdrawalExists: Another request is pending
        """
        if not account.is_active:
            raise AccountNotEligible(
                "Account is not active", account_id=account.id
            )

        pending = await self.withdrawal_repo.get_pending_for_account(account.id)
        if pending is not None:
            raise PendingWithdrawalExists(
                account_id=account.id, withdrawal_id=pending.id
            )

        if amount < snapshot.min_withdrawal:
            raise ValidationError(
                f"Minimum withdrawal amount is {snapshot.min_withdrawal}",
                field="amount",
                minimum=snapshot.min_withdrawal,
            )

        bank_account = await self.bank_account_repo.get_owned(
            bank_account_id, account.id
        )
        if bank_account is None:
            raise BankAccountNotFound(bank_account_id=bank_account_id)

        return bank_account
