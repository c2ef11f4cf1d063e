"""
Bank account service.

Payout destinations an account registers for withdrawals. At most one is
flagged primary per account.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.bank_account import BankAccount
from affiliate_core.repositories.account_repository import AccountRepository
from affiliate_core.repositories.bank_account_repository import (
    BankAccountRepository,
)
from affiliate_core.services.base_service import BaseService, transaction
from affiliate_core.utils.exceptions import (
    AccountNotFound,
    BankAccountExists,
    BankAccountNotFound,
    ValidationError,
)


def _required(value: str | None, field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} is required", field=field)
    return cleaned


class BankAccountService(BaseService):
    """Register and list payout bank accounts."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize bank account service.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.account_repo = AccountRepository(session)
        self.bank_account_repo = BankAccountRepository(session)

    @transaction
    async def add_bank_account(
        self,
        account_id: int,
        bank_name: str,
        account_number: str,
        account_name: str,
        is_primary: bool = False,
    ) -> BankAccount:
        """
        Register a bank account for an account.

        The first bank account of an account is always primary. Flagging a
        new one primary unflags the previous primary.

        Args:
            account_id: Owner account
            bank_name: Bank name
            account_number: Account number at the bank
            account_name: Account holder name
            is_primary: Make this the primary payout destination

        Returns:
            Created bank account

        Raises:
            ValidationError: A required field is empty
            AccountNotFound: Unknown owner
            BankAccountExists: Same bank and number already registered
        """
        bank_name = _required(bank_name, "bank_name")
        account_number = _required(account_number, "account_number")
        account_name = _required(account_name, "account_name")

        if not await self.account_repo.exists(id=account_id):
            raise AccountNotFound(account_id=account_id)

        existing = await self.bank_account_repo.find_for_owner(
            account_id, bank_name, account_number
        )
        if existing is not None:
            raise BankAccountExists(
                account_id=account_id, bank_account_id=existing.id
            )

        if not await self.bank_account_repo.exists(account_id=account_id):
            is_primary = True
        elif is_primary:
            await self.bank_account_repo.clear_primary(account_id)

        bank_account = await self.bank_account_repo.create(
            account_id=account_id,
            bank_name=bank_name,
            account_number=account_number,
            account_name=account_name,
            is_primary=is_primary,
        )

        self.logger.info(
            "Bank account added",
            extra={
                "account_id": account_id,
                "bank_account_id": bank_account.id,
                "is_primary": is_primary,
            },
        )
        return bank_account

    async def list_bank_accounts(self, account_id: int) -> list[BankAccount]:
        """List an account's bank accounts, primary first."""
        return await self.bank_account_repo.list_for_account(account_id)

    @transaction
    async def set_primary(
        self, account_id: int, bank_account_id: int
    ) -> BankAccount:
        """
        Make one of the account's bank accounts the primary one.

        Raises:
            BankAccountNotFound: Unknown or foreign bank account
        """
        bank_account = await self.bank_account_repo.get_owned(
            bank_account_id, account_id
        )
        if bank_account is None:
            raise BankAccountNotFound(
                account_id=account_id, bank_account_id=bank_account_id
            )

        await self.bank_account_repo.clear_primary(account_id)
        bank_account = await self.bank_account_repo.update(
            bank_account_id, is_primary=True
        )

        self.logger.info(
            "Primary bank account changed",
            extra={"account_id": account_id, "bank_account_id": bank_account_id},
        )
        return bank_account
