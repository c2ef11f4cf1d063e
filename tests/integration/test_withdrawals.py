"""
Integration tests for the withdrawal workflow.

Tests cover:
- Request validation and balance reservation
- Operator resolution (processing, completion, rejection)
- Owner cancellation and deletion of pending requests
- Balance summary and history
"""

from decimal import Decimal

import pytest

from affiliate_core.models import AccountStatus, WithdrawalStatus
from affiliate_core.services.ledger import LedgerService
from affiliate_core.services.withdrawal_service import WithdrawalService
from affiliate_core.utils.exceptions import (
    AccountNotEligible,
    AccountNotFound,
    AlreadyProcessed,
    BankAccountNotFound,
    InsufficientBalance,
    InvalidStatusTransition,
    PendingWithdrawalExists,
    PermissionDenied,
    ValidationError,
    WithdrawalNotFound,
)


@pytest.fixture
def service(session, snapshot):
    return WithdrawalService(session, snapshot)


@pytest.fixture
def ledger(session):
    return LedgerService(session)


@pytest.fixture
def funded_account(make_account, make_bank_account):
    """Account with a balance and a bank account."""

    async def _funded_account(balance: str = "200000"):
        account = await make_account(
            available_balance=Decimal(balance), total_commission=Decimal(balance)
        )
        bank_account = await make_bank_account(account)
        return account.id, bank_account.id

    return _funded_account


class TestCreateWithdrawal:
    """Requests and reservations."""

    @pytest.mark.asyncio
    async def test_full_balance_then_pending_conflict(
        self, service, ledger, funded_account
    ):
        account_id, bank_account_id = await funded_account("200000")

        withdrawal = await service.create_withdrawal(
            account_id, "200000", bank_account_id, note="Rent"
        )

        assert withdrawal.status == WithdrawalStatus.PENDING.value
        assert withdrawal.amount == Decimal("200000")
        assert withdrawal.user_note == "Rent"
        assert (await ledger.get_balances(account_id)).available_balance == Decimal("0")

        with pytest.raises(PendingWithdrawalExists):
            await service.create_withdrawal(account_id, "100000", bank_account_id)

    @pytest.mark.asyncio
    async def test_fee_stored(self, service, funded_account):
        account_id, bank_account_id = await funded_account("1000000")

        small = await service.create_withdrawal(account_id, "200000", bank_account_id)
        await service.cancel(small.id, account_id)
        large = await service.create_withdrawal(account_id, "1000000", bank_account_id)

        assert small.fee == Decimal("5000")
        assert small.net_amount == Decimal("195000")
        assert large.fee == Decimal("20000")

    @pytest.mark.asyncio
    async def test_fee_not_deducted_from_balance(self, service, ledger, funded_account):
        account_id, bank_account_id = await funded_account("300000")

        await service.create_withdrawal(account_id, "200000", bank_account_id)

        assert (await ledger.get_balances(account_id)).available_balance == Decimal("100000")

    @pytest.mark.asyncio
    async def test_below_minimum(self, service, ledger, funded_account):
        account_id, bank_account_id = await funded_account("200000")

        with pytest.raises(ValidationError):
            await service.create_withdrawal(account_id, "99999", bank_account_id)

        assert (await ledger.get_balances(account_id)).available_balance == Decimal("200000")

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, service, ledger, funded_account):
        account_id, bank_account_id = await funded_account("150000")

        with pytest.raises(InsufficientBalance):
            await service.create_withdrawal(account_id, "150001", bank_account_id)

        assert (await ledger.get_balances(account_id)).available_balance == Decimal("150000")

    @pytest.mark.asyncio
    async def test_bank_account_of_someone_else(
        self, service, funded_account, make_account, make_bank_account
    ):
        account_id, _ = await funded_account()
        other = await make_account()
        foreign = await make_bank_account(other)
        foreign_id = foreign.id

        with pytest.raises(BankAccountNotFound):
            await service.create_withdrawal(account_id, "100000", foreign_id)

    @pytest.mark.asyncio
    async def test_inactive_account(self, service, make_account, make_bank_account):
        account = await make_account(
            status=AccountStatus.SUSPENDED, available_balance=Decimal("200000")
        )
        bank_account = await make_bank_account(account)
        account_id, bank_account_id = account.id, bank_account.id

        with pytest.raises(AccountNotEligible):
            await service.create_withdrawal(account_id, "100000", bank_account_id)

    @pytest.mark.asyncio
    async def test_unknown_account(self, service):
        with pytest.raises(AccountNotFound):
            await service.create_withdrawal(999, "100000", 1)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount, bank_account_id", [("abc", 1), ("-5", 1), ("100000", None)])
    async def test_malformed_input(self, service, amount, bank_account_id):
        with pytest.raises(ValidationError):
            await service.create_withdrawal(1, amount, bank_account_id)

    @pytest.mark.asyncio
    async def test_missed_pending_check_caught_by_index(
        self, service, ledger, funded_account, monkeypatch
    ):
        """A second request slipping past the pending check is refused on insert."""
        account_id, bank_account_id = await funded_account("300000")
        await service.create_withdrawal(account_id, "150000", bank_account_id)

        async def no_pending(account_id):
            return None

        monkeypatch.setattr(
            service.request_handler.validator.withdrawal_repo,
            "get_pending_for_account",
            no_pending,
        )

        with pytest.raises(PendingWithdrawalExists):
            await service.create_withdrawal(account_id, "100000", bank_account_id)

        assert (await ledger.get_balances(account_id)).available_balance == Decimal("150000")

    @pytest.mark.asyncio
    async def test_min_withdrawal_amount(self, service):
        assert await service.get_min_withdrawal_amount() == Decimal("100000")


class TestResolve:
    """Operator resolution."""

    @pytest.mark.asyncio
    async def test_reject_refunds_exact_amount(self, service, ledger, funded_account):
        account_id, bank_account_id = await funded_account("150000")
        withdrawal = await service.create_withdrawal(account_id, "150000", bank_account_id)

        rejected = await service.resolve(withdrawal.id, "REJECTED", note="Wrong IBAN")

        assert rejected.status == WithdrawalStatus.REJECTED.value
        assert rejected.admin_note == "Wrong IBAN"
        assert rejected.processed_at is not None
        assert rejected.was_cancelled_by_user is False
        balances = await ledger.get_balances(account_id)
        assert balances.available_balance == Decimal("150000")
        assert balances.total_withdrawn == Decimal("0")

    @pytest.mark.asyncio
    async def test_processing_then_completed(self, service, ledger, funded_account):
        account_id, bank_account_id = await funded_account("200000")
        withdrawal = await service.create_withdrawal(account_id, "120000", bank_account_id)

        processing = await service.resolve(withdrawal.id, WithdrawalStatus.PROCESSING)
        assert processing.status == "PROCESSING"
        assert processing.processed_at is None

        completed = await service.resolve(withdrawal.id, WithdrawalStatus.COMPLETED)

        assert completed.status == "COMPLETED"
        assert completed.processed_at is not None
        balances = await ledger.get_balances(account_id)
        assert balances.available_balance == Decimal("80000")
        assert balances.total_withdrawn == Decimal("120000")
        assert balances.total_commission == Decimal("200000")

    @pytest.mark.asyncio
    async def test_processing_request_does_not_block_new_ones(
        self, service, funded_account
    ):
        account_id, bank_account_id = await funded_account("400000")
        withdrawal = await service.create_withdrawal(account_id, "100000", bank_account_id)
        await service.resolve(withdrawal.id, "PROCESSING")

        second = await service.create_withdrawal(account_id, "100000", bank_account_id)

        assert second.status == "PENDING"

    @pytest.mark.asyncio
    async def test_terminal_cannot_change(self, service, ledger, funded_account):
        account_id, bank_account_id = await funded_account("200000")
        withdrawal = await service.create_withdrawal(account_id, "200000", bank_account_id)
        withdrawal_id = withdrawal.id
        await service.resolve(withdrawal_id, "COMPLETED")

        with pytest.raises(AlreadyProcessed):
            await service.resolve(withdrawal_id, "REJECTED")

        balances = await ledger.get_balances(account_id)
        assert balances.available_balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_back_to_pending_refused(self, service, funded_account):
        account_id, bank_account_id = await funded_account("200000")
        withdrawal = await service.create_withdrawal(account_id, "200000", bank_account_id)
        withdrawal_id = withdrawal.id
        await service.resolve(withdrawal_id, "PROCESSING")

        with pytest.raises(InvalidStatusTransition):
            await service.resolve(withdrawal_id, "PENDING")

    @pytest.mark.asyncio
    async def test_unknown_status(self, service):
        with pytest.raises(ValidationError):
            await service.resolve(1, "PAID")

    @pytest.mark.asyncio
    async def test_unknown_withdrawal(self, service):
        with pytest.raises(WithdrawalNotFound):
            await service.resolve(999, "COMPLETED")


class TestCancelAndDelete:
    """Owner cancellation and operator deletion."""

    @pytest.mark.asyncio
    async def test_cancel_returns_balance(self, service, ledger, funded_account):
        account_id, bank_account_id = await funded_account("200000")
        withdrawal = await service.create_withdrawal(account_id, "200000", bank_account_id)

        cancelled = await service.cancel(withdrawal.id, account_id)

        assert cancelled.status == WithdrawalStatus.REJECTED.value
        assert cancelled.cancelled_at is not None
        assert cancelled.admin_note == "Cancelled by user"
        assert cancelled.was_cancelled_by_user is True
        assert (await ledger.get_balances(account_id)).available_balance == Decimal("200000")

        # A new request is possible again
        again = await service.create_withdrawal(account_id, "100000", bank_account_id)
        assert again.status == "PENDING"

    @pytest.mark.asyncio
    async def test_cancel_by_other_account(self, service, ledger, funded_account, make_account):
        account_id, bank_account_id = await funded_account("200000")
        withdrawal = await service.create_withdrawal(account_id, "200000", bank_account_id)
        withdrawal_id = withdrawal.id
        other = await make_account()
        other_id = other.id

        with pytest.raises(PermissionDenied):
            await service.cancel(withdrawal_id, other_id)

        assert (await ledger.get_balances(account_id)).available_balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_cancel_processing_refused(self, service, funded_account):
        account_id, bank_account_id = await funded_account("200000")
        withdrawal = await service.create_withdrawal(account_id, "200000", bank_account_id)
        withdrawal_id = withdrawal.id
        await service.resolve(withdrawal_id, "PROCESSING")

        with pytest.raises(AlreadyProcessed):
            await service.cancel(withdrawal_id, account_id)

    @pytest.mark.asyncio
    async def test_delete_pending_refunds(self, service, ledger, funded_account):
        account_id, bank_account_id = await funded_account("200000")
        withdrawal = await service.create_withdrawal(account_id, "150000", bank_account_id)
        withdrawal_id = withdrawal.id

        await service.delete(withdrawal_id)

        assert (await ledger.get_balances(account_id)).available_balance == Decimal("200000")
        with pytest.raises(WithdrawalNotFound):
            await service.get_withdrawal(withdrawal_id)

    @pytest.mark.asyncio
    async def test_delete_completed_refused(self, service, funded_account):
        account_id, bank_account_id = await funded_account("200000")
        withdrawal = await service.create_withdrawal(account_id, "150000", bank_account_id)
        withdrawal_id = withdrawal.id
        await service.resolve(withdrawal_id, "COMPLETED")

        with pytest.raises(AlreadyProcessed):
            await service.delete(withdrawal_id)


class TestQueries:
    """History, queue and balance summary."""

    @pytest.mark.asyncio
    async def test_balance_summary(self, service, funded_account):
        account_id, bank_account_id = await funded_account("300000")
        await service.create_withdrawal(account_id, "120000", bank_account_id)

        summary = await service.get_balance_summary(account_id)

        assert summary.available_balance == Decimal("180000")
        assert summary.total_commission == Decimal("300000")
        assert summary.total_withdrawn == Decimal("0")
        assert summary.pending_amount == Decimal("120000")
        assert summary.has_pending is True

    @pytest.mark.asyncio
    async def test_balance_summary_without_pending(self, service, funded_account):
        account_id, _ = await funded_account("300000")

        summary = await service.get_balance_summary(account_id)

        assert summary.pending_amount == Decimal("0")
        assert summary.has_pending is False

    @pytest.mark.asyncio
    async def test_history_and_pending_queue(self, service, funded_account):
        first_id, first_bank = await funded_account("500000")
        second_id, second_bank = await funded_account("500000")
        done = await service.create_withdrawal(first_id, "100000", first_bank)
        await service.resolve(done.id, "COMPLETED")
        await service.create_withdrawal(first_id, "100000", first_bank)
        await service.create_withdrawal(second_id, "100000", second_bank)

        history, total = await service.list_for_account(first_id)
        completed, completed_total = await service.list_for_account(
            first_id, status=WithdrawalStatus.COMPLETED
        )
        queue, queue_total = await service.list_pending()

        assert total == 2
        assert len(history) == 2
        assert completed_total == 1
        assert completed[0].id == done.id
        assert queue_total == 2
        assert {w.account_id for w in queue} == {first_id, second_id}

    @pytest.mark.asyncio
    async def test_get_withdrawal_scoped_to_owner(self, service, funded_account, make_account):
        account_id, bank_account_id = await funded_account()
        withdrawal = await service.create_withdrawal(account_id, "100000", bank_account_id)
        other = await make_account()

        assert (await service.get_withdrawal(withdrawal.id, account_id)).id == withdrawal.id
        with pytest.raises(WithdrawalNotFound):
            await service.get_withdrawal(withdrawal.id, other.id)
