"""
Withdrawal request handler.

Creates withdrawal requests and reserves the full amount from the account's
available balance in the same transaction.
"""

from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.enums import WithdrawalStatus
from affiliate_core.models.withdrawal import Withdrawal
from affiliate_core.repositories.withdrawal_repository import (
    WithdrawalRepository,
)
from affiliate_core.services.base_service import BaseService, transaction
from affiliate_core.services.ledger.ledger_service import LedgerService
from affiliate_core.services.settings_provider import (
    AffiliateSettingsSnapshot,
    SettingsProvider,
)
from affiliate_core.services.withdrawal.withdrawal_fee import calculate_fee
from affiliate_core.services.withdrawal.withdrawal_validator import (
    WithdrawalValidator,
    validate_request_input,
)
from affiliate_core.utils.datetime_utils import utc_now
from affiliate_core.utils.exceptions import PendingWithdrawalExists


class WithdrawalRequestHandler(BaseService):
    """Handles withdrawal request creation."""

    def __init__(
        self,
        session: AsyncSession,
        snapshot: AffiliateSettingsSnapshot | None = None,
    ) -> None:
        """
        Initialize withdrawal request handler.

        Args:
            session: Database session
            snapshot: Fixed settings snapshot (read per operation if None)
        """
        super().__init__(session)
        self.snapshot = snapshot
        self.withdrawal_repo = WithdrawalRepository(session)
        self.validator = WithdrawalValidator(session)
        self.ledger = LedgerService(session)

    async def create_withdrawal(
        self,
        account_id: int,
        amount: Decimal | str | int,
        bank_account_id: int | None,
        note: str | None = None,
    ) -> Withdrawal:
        """
        Create a PENDING withdrawal and reserve its amount.

        Args:
            account_id: Requesting account
            amount: Requested amount
            bank_account_id: Target bank account (must belong to account)
            note: Optional user note

        Returns:
            Created withdrawal

        Raises:
            ValidationError: Malformed input or amount below minimum
            AccountNotFound: Account does not exist
            AccountNotEligible: Account not active
            BankAccountNotFound: Bank account missing or not owned
            PendingWithdrawalExists: Another request is pending
            InsufficientBalance: Amount exceeds available balance
        """
        value = validate_request_input(amount, bank_account_id)
        return await self._create_withdrawal(account_id, value, bank_account_id, note)

    @transaction
    async def _create_withdrawal(
        self,
        account_id: int,
        amount: Decimal,
        bank_account_id: int,
        note: str | None,
    ) -> Withdrawal:
        # Serializes concurrent requests of the same account
        account = await self.ledger.lock_account(account_id)
        snapshot = await self._get_snapshot()

        await self.validator.check_request(
            account, amount, bank_account_id, snapshot
        )

        fee = calculate_fee(
            amount, snapshot.withdrawal_fee_rate, snapshot.withdrawal_fee_floor
        )

        await self.ledger.debit_available(
            account_id, amount, reason="withdrawal:reserve"
        )

        try:
            withdrawal = await self.withdrawal_repo.create(
                account_id=account_id,
                bank_account_id=bank_account_id,
                amount=amount,
                fee=fee,
                status=WithdrawalStatus.PENDING.value,
                user_note=note,
                requested_at=utc_now(),
            )
        except IntegrityError:
            # Partial unique index: one PENDING withdrawal per account
            raise PendingWithdrawalExists(account_id=account_id)

        self.logger.info(
            "Withdrawal requested",
            extra={
                "withdrawal_id": withdrawal.id,
                "account_id": account_id,
                "amount": str(amount),
                "fee": str(fee),
            },
        )
        return withdrawal

    async def get_min_withdrawal_amount(self) -> Decimal:
        """Get the minimum withdrawal amount in effect."""
        snapshot = await self._get_snapshot()
        return snapshot.min_withdrawal

    async def _get_snapshot(self) -> AffiliateSettingsSnapshot:
        if self.snapshot is not None:
            return self.snapshot
        return await SettingsProvider(self.session).get_snapshot()
