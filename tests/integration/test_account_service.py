"""
Integration tests for referral registration and account settings.
"""

from decimal import Decimal

import pytest

from affiliate_core.models import AccountRole, AccountStatus
from affiliate_core.services.account_service import AccountService
from affiliate_core.utils.exceptions import (
    AccountNotFound,
    ReferrerAlreadySet,
    ValidationError,
)


@pytest.fixture
def service(session):
    return AccountService(session)


class TestRegisterReferral:
    """Referral edge registration."""

    @pytest.mark.asyncio
    async def test_register(self, service, make_account):
        referrer = await make_account(role=AccountRole.AGENT)
        account = await make_account()

        updated = await service.register_referral(account.id, referrer.id)

        assert updated.referred_by_id == referrer.id

    @pytest.mark.asyncio
    async def test_referrer_is_immutable(self, service, make_account):
        first = await make_account()
        second = await make_account()
        account = await make_account(referred_by=first)

        with pytest.raises(ReferrerAlreadySet):
            await service.register_referral(account.id, second.id)

    @pytest.mark.asyncio
    async def test_self_referral(self, service, make_account):
        account = await make_account()

        with pytest.raises(ValidationError):
            await service.register_referral(account.id, account.id)

    @pytest.mark.asyncio
    async def test_two_account_loop(self, service, make_account):
        upline = await make_account()
        account = await make_account(referred_by=upline)
        upline_id, account_id = upline.id, account.id

        with pytest.raises(ValidationError):
            await service.register_referral(upline_id, account_id)

    @pytest.mark.asyncio
    async def test_unknown_accounts(self, service, make_account):
        account = await make_account()
        account_id = account.id

        with pytest.raises(AccountNotFound):
            await service.register_referral(999, account_id)
        with pytest.raises(AccountNotFound):
            await service.register_referral(account_id, 999)

    @pytest.mark.asyncio
    async def test_register_by_code(self, service, make_account):
        referrer = await make_account(referral_code="ANNA2026")
        account = await make_account()

        updated = await service.register_referral_by_code(account.id, " ANNA2026 ")

        assert updated.referred_by_id == referrer.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["NOBODY", "", "   "])
    async def test_register_by_unknown_code(self, service, make_account, code):
        account = await make_account()

        with pytest.raises(AccountNotFound):
            await service.register_referral_by_code(account.id, code)


class TestAccountSettings:
    """Operator changes to rate, status and role."""

    @pytest.mark.asyncio
    async def test_set_and_clear_commission_rate(self, service, make_account):
        account = await make_account()

        updated = await service.set_commission_rate(account.id, "0.12")
        assert updated.commission_rate == Decimal("0.12")

        cleared = await service.set_commission_rate(account.id, None)
        assert cleared.commission_rate is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rate", ["1.5", "-0.1", "abc"])
    async def test_invalid_rate(self, service, make_account, rate):
        account = await make_account()

        with pytest.raises(ValidationError):
            await service.set_commission_rate(account.id, rate)

    @pytest.mark.asyncio
    async def test_set_status(self, service, make_account):
        account = await make_account()

        updated = await service.set_status(account.id, AccountStatus.SUSPENDED)

        assert updated.status == "SUSPENDED"
        assert updated.is_active is False

    @pytest.mark.asyncio
    async def test_set_role(self, service, make_account):
        account = await make_account(role=AccountRole.CUSTOMER)

        updated = await service.set_role(account.id, "COLLABORATOR")

        assert updated.role == "COLLABORATOR"
        assert updated.is_referrer_eligible is True

    @pytest.mark.asyncio
    async def test_unknown_values(self, service, make_account):
        account = await make_account()
        account_id = account.id

        with pytest.raises(ValidationError):
            await service.set_status(account_id, "DELETED")
        with pytest.raises(ValidationError):
            await service.set_role(account_id, "OWNER")

    @pytest.mark.asyncio
    async def test_unknown_account(self, service):
        with pytest.raises(AccountNotFound):
            await service.set_status(999, "ACTIVE")
        with pytest.raises(AccountNotFound):
            await service.set_commission_rate(999, "0.1")
