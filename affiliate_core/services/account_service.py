"""
Account service.

Referral edge registration and operator changes to an account's affiliate
settings. Ledger fields are never touched here.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.account import Account
from affiliate_core.models.enums import AccountRole, AccountStatus
from affiliate_core.repositories.account_repository import AccountRepository
from affiliate_core.services.base_service import BaseService, transaction
from affiliate_core.utils.exceptions import (
    AccountNotFound,
    ReferrerAlreadySet,
    ValidationError,
)
from affiliate_core.validators.common import validate_rate


class AccountService(BaseService):
    """Affiliate-related account operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize account service.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.account_repo = AccountRepository(session)

    @transaction
    async def register_referral(self, account_id: int, referrer_id: int) -> Account:
        """
        Set the account's referrer. Allowed once; immutable afterwards.

        Args:
            account_id: Referred account
            referrer_id: Referrer account

        Returns:
            Updated account

        Raises:
            ValidationError: Self-referral or referral loop
            AccountNotFound: Either account missing
            ReferrerAlreadySet: Referrer was already recorded
        """
        if account_id == referrer_id:
            raise ValidationError("Account cannot refer itself")

        account = await self.account_repo.get_for_update(account_id)
        if account is None:
            raise AccountNotFound(account_id=account_id)
        if account.referred_by_id is not None:
            raise ReferrerAlreadySet(
                account_id=account_id, referred_by_id=account.referred_by_id
            )

        referrer = await self.account_repo.get_by_id(referrer_id)
        if referrer is None:
            raise AccountNotFound(account_id=referrer_id)
        if referrer.referred_by_id == account_id:
            raise ValidationError(
                "Referral loop: referrer was referred by this account"
            )

        account = await self.account_repo.update(
            account_id, referred_by_id=referrer_id
        )
        self.logger.info(
            "Referral registered",
            extra={"account_id": account_id, "referrer_id": referrer_id},
        )
        return account

    async def register_referral_by_code(
        self, account_id: int, referral_code: str
    ) -> Account:
        """
        Set the account's referrer from the ``ref`` code a visitor arrived with.

        Raises:
            AccountNotFound: No account carries the code
            Same errors as register_referral
        """
        code = (referral_code or "").strip()
        referrer = await self.account_repo.get_by_referral_code(code) if code else None
        if referrer is None:
            raise AccountNotFound(
                "Unknown referral code", referral_code=referral_code
            )
        return await self.register_referral(account_id, referrer.id)

    @transaction
    async def set_commission_rate(
        self, account_id: int, rate: Decimal | str | None
    ) -> Account:
        """
        Set (or clear with None) the account default commission rate.

        Recorded commissions keep their snapshotted rate.

        Raises:
            ValidationError: Rate outside 0..1
            AccountNotFound: Unknown account
        """
        parsed = None
        if rate is not None:
            is_valid, parsed, error = validate_rate(rate)
            if not is_valid:
                raise ValidationError(error, field="commission_rate")

        account = await self.account_repo.update(account_id, commission_rate=parsed)
        if account is None:
            raise AccountNotFound(account_id=account_id)

        self.logger.info(
            "Account commission rate changed",
            extra={"account_id": account_id, "rate": str(parsed)},
        )
        return account

    @transaction
    async def set_status(
        self, account_id: int, status: AccountStatus | str
    ) -> Account:
        """
        Change account status.

        Raises:
            ValidationError: Unknown status
            AccountNotFound: Unknown account
        """
        try:
            parsed = AccountStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown account status: {status}", field="status")

        account = await self.account_repo.update(account_id, status=parsed.value)
        if account is None:
            raise AccountNotFound(account_id=account_id)

        self.logger.info(
            "Account status changed",
            extra={"account_id": account_id, "status": parsed.value},
        )
        return account

    @transaction
    async def set_role(self, account_id: int, role: AccountRole | str) -> Account:
        """
        Change account role (e.g. promote a customer to collaborator).

        Raises:
            ValidationError: Unknown role
            AccountNotFound: Unknown account
        """
        try:
            parsed = AccountRole(role)
        except ValueError:
            raise ValidationError(f"Unknown account role: {role}", field="role")

        account = await self.account_repo.update(account_id, role=parsed.value)
        if account is None:
            raise AccountNotFound(account_id=account_id)

        self.logger.info(
            "Account role changed",
            extra={"account_id": account_id, "role": parsed.value},
        )
        return account
