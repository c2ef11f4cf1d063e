"""
BankAccount repository.

Data access layer for BankAccount model.
"""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.bank_account import BankAccount
from affiliate_core.repositories.base import BaseRepository


class BankAccountRepository(BaseRepository[BankAccount]):
    """BankAccount repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize bank account repository."""
        super().__init__(BankAccount, session)

    async def get_owned(
        self, bank_account_id: int, account_id: int
    ) -> BankAccount | None:
        """
        Get bank account only if it belongs to the given account.

        Args:
            bank_account_id: Bank account ID
            account_id: Expected owner account ID

        Returns:
            BankAccount or None
        """
        return await self.get_by(id=bank_account_id, account_id=account_id)

    async def find_for_owner(
        self, account_id: int, bank_name: str, account_number: str
    ) -> BankAccount | None:
        """Get an owner's bank account by bank and number."""
        return await self.get_by(
            account_id=account_id,
            bank_name=bank_name,
            account_number=account_number,
        )

    async def list_for_account(self, account_id: int) -> list[BankAccount]:
        """
        List an owner's bank accounts, primary first, then newest first.

        Args:
            account_id: Owner account ID

        Returns:
            List of bank accounts
        """
        stmt = (
            select(BankAccount)
            .where(BankAccount.account_id == account_id)
            .order_by(BankAccount.is_primary.desc(), BankAccount.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def clear_primary(self, account_id: int) -> None:
        """Unset the primary flag on all of an owner's bank accounts."""
        stmt = (
            update(BankAccount)
            .where(
                BankAccount.account_id == account_id,
                BankAccount.is_primary.is_(True),
            )
            .values(is_primary=False)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(stmt)
