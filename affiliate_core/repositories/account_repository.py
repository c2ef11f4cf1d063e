"""
Account repository.

Data access layer for Account model. Ledger fields are never written here;
see LedgerService.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.account import Account
from affiliate_core.repositories.base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """Account repository with specific methods."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize account repository."""
        super().__init__(Account, session)

    async def get_by_referral_code(self, referral_code: str) -> Account | None:
        """
        Get account by referral code.

        Args:
            referral_code: Unique referral code

        Returns:
            Account or None
        """
        return await self.get_by(referral_code=referral_code)

    async def get_upline(self, account: Account) -> Account | None:
        """
        Get the account that referred the given one.

        Args:
            account: Account whose referrer is requested

        Returns:
            Referrer account or None
        """
        if account.referred_by_id is None:
            return None
        return await self.get_by_id(account.referred_by_id)

    async def count_referrals(self, referrer_id: int) -> int:
        """
        Count accounts directly referred by an account.

        Args:
            referrer_id: Referrer account ID

        Returns:
            Number of direct referrals
        """
        return await self.count(referred_by_id=referrer_id)
