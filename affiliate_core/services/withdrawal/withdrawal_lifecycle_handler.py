"""
Withdrawal lifecycle handling module.

Operator resolution, user cancellation and deletion of withdrawal requests.

State machine (PENDING initial, COMPLETED and REJECTED terminal):
- PENDING -> PROCESSING: no ledger effect
- PENDING | PROCESSING -> COMPLETED: total_withdrawn += amount
- PENDING | PROCESSING -> REJECTED: available_balance += amount (refund)
- PENDING -> cancelled by owner: refund, status REJECTED, cancelled_at set
"""

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.config.constants import USER_CANCEL_NOTE
from affiliate_core.models.enums import WithdrawalStatus
from affiliate_core.models.withdrawal import Withdrawal
from affiliate_core.repositories.withdrawal_repository import (
    WithdrawalRepository,
)
from affiliate_core.services.base_service import BaseService, transaction
from affiliate_core.services.commission.calculator import to_decimal
from affiliate_core.services.ledger.ledger_service import LedgerService
from affiliate_core.utils.datetime_utils import utc_now
from affiliate_core.utils.exceptions import (
    AlreadyProcessed,
    InvalidStatusTransition,
    PermissionDenied,
    ValidationError,
    WithdrawalNotFound,
)

# Source states an operator may resolve from, per target
RESOLVABLE_FROM: dict[WithdrawalStatus, frozenset[WithdrawalStatus]] = {
    WithdrawalStatus.PROCESSING: frozenset({WithdrawalStatus.PENDING}),
    WithdrawalStatus.COMPLETED: frozenset(
        {WithdrawalStatus.PENDING, WithdrawalStatus.PROCESSING}
    ),
    WithdrawalStatus.REJECTED: frozenset(
        {WithdrawalStatus.PENDING, WithdrawalStatus.PROCESSING}
    ),
}


def parse_withdrawal_status(status: WithdrawalStatus | str) -> WithdrawalStatus:
    """Parse status, raising ValidationError for unknown values."""
    if isinstance(status, WithdrawalStatus):
        return status
    try:
        return WithdrawalStatus(str(status).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown withdrawal status: {status}", field="status")


def check_resolution(current: WithdrawalStatus, target: WithdrawalStatus) -> None:
    """
    Validate an operator resolution.

    Raises:
        AlreadyProcessed: Withdrawal already in a terminal state
        InvalidStatusTransition: Target not reachable from current state
    """
    if current.is_terminal:
        raise AlreadyProcessed(
            f"Withdrawal is already {current.value}", status=current.value
        )
    if target not in RESOLVABLE_FROM or current not in RESOLVABLE_FROM[target]:
        raise InvalidStatusTransition(
            f"Cannot change withdrawal from {current.value} to {target.value}",
            current=current.value,
            target=target.value,
        )


class WithdrawalLifecycleHandler(BaseService):
    """Handles withdrawal lifecycle operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize withdrawal lifecycle handler.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.withdrawal_repo = WithdrawalRepository(session)
        self.ledger = LedgerService(session)

    @transaction
    async def resolve(
        self,
        withdrawal_id: int,
        new_status: WithdrawalStatus | str,
        note: str | None = None,
    ) -> Withdrawal:
        """
        Resolve a withdrawal (operator only).

        Args:
            withdrawal_id: Withdrawal ID
            new_status: PROCESSING, COMPLETED or REJECTED
            note: Operator note

        Returns:
            Updated withdrawal

        Raises:
            WithdrawalNotFound, AlreadyProcessed, InvalidStatusTransition
        """
        target = parse_withdrawal_status(new_status)
        withdrawal = await self._get_locked(withdrawal_id)
        current = withdrawal.status_enum
        check_resolution(current, target)

        amount = to_decimal(withdrawal.amount)
        now = utc_now()

        if target == WithdrawalStatus.REJECTED:
            await self.ledger.credit_available(
                withdrawal.account_id, amount, reason=f"withdrawal:{withdrawal_id}:rejected"
            )
            withdrawal.processed_at = now
        elif target == WithdrawalStatus.COMPLETED:
            await self.ledger.record_withdrawn(
                withdrawal.account_id, amount, reason=f"withdrawal:{withdrawal_id}:completed"
            )
            withdrawal.processed_at = now

        withdrawal.status = target.value
        if note is not None:
            withdrawal.admin_note = note
        await self.session.flush()

        self.logger.info(
            "Withdrawal resolved",
            extra={
                "withdrawal_id": withdrawal_id,
                "account_id": withdrawal.account_id,
                "from_status": current.value,
                "to_status": target.value,
                "amount": str(amount),
            },
        )
        return withdrawal

    @transaction
    async def cancel(self, withdrawal_id: int, account_id: int) -> Withdrawal:
        """
        Cancel a PENDING withdrawal and return the balance (owner only).

        Args:
            withdrawal_id: Withdrawal ID
            account_id: Caller account (must own the withdrawal)

        Returns:
            Cancelled withdrawal (status REJECTED, cancelled_at set)

        Raises:
            WithdrawalNotFound, PermissionDenied, AlreadyProcessed
        """
        withdrawal = await self._get_locked(withdrawal_id)
        if withdrawal.account_id != account_id:
            raise PermissionDenied(
                withdrawal_id=withdrawal_id, account_id=account_id
            )
        if withdrawal.status_enum != WithdrawalStatus.PENDING:
            raise AlreadyProcessed(
                "Only pending withdrawals can be cancelled",
                status=withdrawal.status,
            )

        amount = to_decimal(withdrawal.amount)
        await self.ledger.credit_available(
            account_id, amount, reason=f"withdrawal:{withdrawal_id}:cancelled"
        )

        now = utc_now()
        withdrawal.status = WithdrawalStatus.REJECTED.value
        withdrawal.processed_at = now
        withdrawal.cancelled_at = now
        withdrawal.admin_note = USER_CANCEL_NOTE
        await self.session.flush()

        self.logger.info(
            "Withdrawal cancelled and balance returned",
            extra={
                "withdrawal_id": withdrawal_id,
                "account_id": account_id,
                "amount": str(amount),
            },
        )
        return withdrawal

    @transaction
    async def delete(self, withdrawal_id: int) -> None:
        """
        Delete a PENDING withdrawal after refunding its reservation.

        Raises:
            WithdrawalNotFound: Unknown id
            AlreadyProcessed: Withdrawal is no longer PENDING
        """
        withdrawal = await self._get_locked(withdrawal_id)
        if withdrawal.status_enum != WithdrawalStatus.PENDING:
            raise AlreadyProcessed(
                "Only pending withdrawals can be deleted",
                status=withdrawal.status,
            )

        amount = to_decimal(withdrawal.amount)
        await self.ledger.credit_available(
            withdrawal.account_id, amount, reason=f"withdrawal:{withdrawal_id}:deleted"
        )
        await self.withdrawal_repo.delete(withdrawal_id)
        self.session.expunge(withdrawal)

        self.logger.info(
            "Pending withdrawal deleted and balance returned",
            extra={
                "withdrawal_id": withdrawal_id,
                "account_id": withdrawal.account_id,
                "amount": str(amount),
            },
        )

    async def _get_locked(self, withdrawal_id: int) -> Withdrawal:
        withdrawal = await self.withdrawal_repo.get_for_update(withdrawal_id)
        if withdrawal is None:
            raise WithdrawalNotFound(withdrawal_id=withdrawal_id)
        return withdrawal
