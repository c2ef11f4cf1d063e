"""
Commission status service.

Operator and batch-driven commission transitions. Each transition locks the
commission row, applies a status-guarded conditional UPDATE and the matching
ledger delta in the same transaction:

- PENDING -> PAID: available_balance += amount, paid_at stamped
- PENDING -> CANCELLED: no ledger effect
- PAID -> CANCELLED: available_balance -= amount
"""

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.commission import Commission
from affiliate_core.models.enums import CommissionStatus
from affiliate_core.repositories.commission_repository import (
    CommissionRepository,
)
from affiliate_core.services.base_service import (
    BaseService,
    ServiceResult,
    log_operation,
    transaction,
)
from affiliate_core.services.commission.calculator import to_decimal
from affiliate_core.services.ledger.ledger_service import LedgerService
from affiliate_core.services.settings_provider import (
    AffiliateSettingsSnapshot,
    SettingsProvider,
)
from affiliate_core.utils.datetime_utils import utc_now
from affiliate_core.utils.exceptions import (
    AffiliateError,
    AlreadyProcessed,
    CommissionNotFound,
    ConcurrentModification,
    InvalidStatusTransition,
    ValidationError,
)
from affiliate_core.validators.common import validate_amount

# Regular (non-corrective) transitions
ALLOWED_TRANSITIONS: dict[CommissionStatus, frozenset[CommissionStatus]] = {
    CommissionStatus.PENDING: frozenset(
        {CommissionStatus.PAID, CommissionStatus.CANCELLED}
    ),
    CommissionStatus.PAID: frozenset({CommissionStatus.CANCELLED}),
    CommissionStatus.CANCELLED: frozenset(),
}


def check_transition(current: CommissionStatus, target: CommissionStatus) -> None:
    """
    Validate a regular commission status transition.

    Raises:
        AlreadyProcessed: Commission already in the terminal target status
        InvalidStatusTransition: Transition not allowed
    """
    if current == target and current != CommissionStatus.PENDING:
        raise AlreadyProcessed(
            f"Commission is already {current.value}", status=current.value
        )
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransition(
            f"Cannot change commission from {current.value} to {target.value}",
            current=current.value,
            target=target.value,
        )


def paid_amount(status: CommissionStatus, amount: Decimal) -> Decimal:
    """Amount credited to available_balance for a commission in a status."""
    return amount if status == CommissionStatus.PAID else Decimal("0")


@dataclass
class PayoutSummary:
    """Result of a batch payout run."""

    paid_count: int = 0
    paid_total: Decimal = Decimal("0")
    results: list[ServiceResult] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results if not result.success)


class CommissionStatusService(BaseService):
    """Commission status transitions with ledger effects."""

    def __init__(
        self,
        session: AsyncSession,
        snapshot: AffiliateSettingsSnapshot | None = None,
    ) -> None:
        """
        Initialize commission status service.

        Args:
            session: Database session
            snapshot: Fixed settings snapshot (read per operation if None)
        """
        super().__init__(session)
        self.snapshot = snapshot
        self.commission_repo = CommissionRepository(session)
        self.ledger = LedgerService(session)

    @transaction
    async def mark_paid(
        self, commission_id: int, note: str | None = None
    ) -> Commission:
        """
        Confirm payment of a PENDING commission.

        Raises:
            CommissionNotFound, AlreadyProcessed, InvalidStatusTransition,
            ConcurrentModification
        """
        return await self._transition(commission_id, CommissionStatus.PAID, note)

    @transaction
    async def cancel(
        self, commission_id: int, note: str | None = None
    ) -> Commission:
        """
        Cancel a PENDING or PAID commission.

        Raises:
            CommissionNotFound, AlreadyProcessed, InsufficientBalance,
            ConcurrentModification
        """
        return await self._transition(
            commission_id, CommissionStatus.CANCELLED, note
        )

    @transaction
    async def bulk_transition(
        self,
        commission_ids: list[int],
        status: CommissionStatus | str,
        note: str | None = None,
    ) -> list[Commission]:
        """
        Apply one regular transition to several commissions, all or nothing.

        Args:
            commission_ids: Commission IDs
            status: PAID or CANCELLED
            note: Optional admin note for every row

        Returns:
            Updated commissions

        Raises:
            ValidationError: Empty id list or unsupported target
            Any transition error of a single row (whole batch rolled back)
        """
        if not commission_ids:
            raise ValidationError("No commissions selected")
        target = self._parse_status(status)
        if target == CommissionStatus.PENDING:
            raise ValidationError("Bulk update cannot move commissions to PENDING")

        updated = []
        for commission_id in dict.fromkeys(commission_ids):
            updated.append(await self._transition(commission_id, target, note))

        self.logger.info(
            "Bulk commission transition applied",
            extra={"count": len(updated), "status": target.value},
        )
        return updated

    @transaction
    async def correct(
        self,
        commission_id: int,
        status: CommissionStatus | str | None = None,
        amount: Decimal | str | None = None,
        note: str | None = None,
    ) -> Commission:
        """
        Operator correction of status and/or amount.

        Any status may be set. available_balance changes by the difference
        between new and old paid amounts; total_commission changes by the
        difference between new and old amounts.

        Args:
            commission_id: Commission ID
            status: New status (unchanged if None)
            amount: New amount (unchanged if None)
            note: Admin note

        Returns:
            Updated commission

        Raises:
            CommissionNotFound, ValidationError, InsufficientBalance,
            ConcurrentModification
        """
        new_status = self._parse_status(status) if status is not None else None
        new_amount = None
        if amount is not None:
            is_valid, new_amount, error = validate_amount(amount)
            if not is_valid:
                raise ValidationError(error, field="amount")

        commission = await self._get_locked(commission_id)
        current = commission.status_enum
        old_amount = to_decimal(commission.amount)
        target = new_status or current
        target_amount = new_amount if new_amount is not None else old_amount

        now = utc_now()
        values: dict = {
            "status": target.value,
            "amount": target_amount,
            "updated_at": now,
        }
        if note is not None:
            values["admin_note"] = note
        if target == CommissionStatus.PAID and current != CommissionStatus.PAID:
            values["paid_at"] = now
        elif target == CommissionStatus.PENDING:
            values["paid_at"] = None

        await self._apply(commission_id, current, values)

        reason = f"commission:{commission_id}:correction"
        await self.ledger.apply_delta(
            commission.account_id,
            "total_commission",
            target_amount - old_amount,
            reason,
        )
        await self.ledger.apply_delta(
            commission.account_id,
            "available_balance",
            paid_amount(target, target_amount) - paid_amount(current, old_amount),
            reason,
        )

        await self.session.refresh(commission)
        self.logger.info(
            "Commission corrected",
            extra={
                "commission_id": commission_id,
                "account_id": commission.account_id,
                "old_status": current.value,
                "new_status": target.value,
                "old_amount": str(old_amount),
                "new_amount": str(target_amount),
            },
        )
        return commission

    @transaction
    async def delete(self, commission_id: int) -> None:
        """
        Delete a commission that was never paid.

        A PENDING row's amount is reversed from total_commission.

        Raises:
            CommissionNotFound: Unknown id
            InvalidStatusTransition: Commission is PAID
        """
        commission = await self._get_locked(commission_id)
        status = commission.status_enum

        if status == CommissionStatus.PAID:
            raise InvalidStatusTransition(
                "Paid commissions cannot be deleted; cancel them instead",
                commission_id=commission_id,
            )
        if status == CommissionStatus.PENDING:
            await self.ledger.reverse_accrual(
                commission.account_id,
                to_decimal(commission.amount),
                reason=f"commission:{commission_id}:deleted",
            )

        await self.commission_repo.delete(commission_id)
        self.session.expunge(commission)

        self.logger.info(
            "Commission deleted",
            extra={
                "commission_id": commission_id,
                "account_id": commission.account_id,
                "status": status.value,
                "amount": str(commission.amount),
            },
        )

    @log_operation
    async def pay_matured(self, older_than_days: int | None = None) -> PayoutSummary:
        """
        Pay every PENDING commission older than the hold period.

        Each commission is paid in its own transaction; a row that changed
        concurrently is reported and skipped.

        Args:
            older_than_days: Hold period (defaults to commission_hold_days)

        Returns:
            PayoutSummary
        """
        if older_than_days is None:
            snapshot = self.snapshot or await SettingsProvider(self.session).get_snapshot()
            older_than_days = snapshot.commission_hold_days
        if older_than_days < 0:
            raise ValidationError("Hold period cannot be negative")

        cutoff = utc_now() - timedelta(days=older_than_days)
        commission_ids = await self.commission_repo.find_matured_pending_ids(cutoff)
        # Close the read transaction before per-row transactions start
        await self.commit()

        summary = PayoutSummary()
        for commission_id in commission_ids:
            try:
                commission = await self.mark_paid(
                    commission_id, note="Automatic payout"
                )
            except AffiliateError as e:
                summary.results.append(ServiceResult.from_error(e))
                continue

            summary.paid_count += 1
            summary.paid_total += to_decimal(commission.amount)
            summary.results.append(ServiceResult(success=True, data=commission_id))

        self.logger.info(
            "Matured commissions paid",
            extra={
                "cutoff": cutoff.isoformat(),
                "paid_count": summary.paid_count,
                "paid_total": str(summary.paid_total),
                "failed_count": summary.failed_count,
            },
        )
        return summary

    async def _transition(
        self,
        commission_id: int,
        target: CommissionStatus,
        note: str | None,
    ) -> Commission:
        commission = await self._get_locked(commission_id)
        current = commission.status_enum
        check_transition(current, target)

        now = utc_now()
        values: dict = {"status": target.value, "updated_at": now}
        if note is not None:
            values["admin_note"] = note
        if target == CommissionStatus.PAID:
            values["paid_at"] = now

        await self._apply(commission_id, current, values)

        amount = to_decimal(commission.amount)
        reason = f"commission:{commission_id}:{target.value.lower()}"
        if current == CommissionStatus.PENDING and target == CommissionStatus.PAID:
            await self.ledger.credit_available(commission.account_id, amount, reason)
        elif current == CommissionStatus.PAID and target == CommissionStatus.CANCELLED:
            await self.ledger.debit_available(commission.account_id, amount, reason)

        await self.session.refresh(commission)
        self.logger.info(
            "Commission status changed",
            extra={
                "commission_id": commission_id,
                "account_id": commission.account_id,
                "from_status": current.value,
                "to_status": target.value,
                "amount": str(amount),
            },
        )
        return commission

    async def _get_locked(self, commission_id: int) -> Commission:
        commission = await self.commission_repo.get_for_update(commission_id)
        if commission is None:
            raise CommissionNotFound(commission_id=commission_id)
        return commission

    async def _apply(
        self, commission_id: int, expected: CommissionStatus, values: dict
    ) -> None:
        updated = await self.commission_repo.transition(
            commission_id, expected, **values
        )
        if not updated:
            raise ConcurrentModification(commission_id=commission_id)

    @staticmethod
    def _parse_status(status: CommissionStatus | str) -> CommissionStatus:
        if isinstance(status, CommissionStatus):
            return status
        try:
            return CommissionStatus(str(status).strip().upper())
        except ValueError:
            raise ValidationError(
                f"Unknown commission status: {status}", field="status"
            )
