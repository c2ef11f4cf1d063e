"""
Withdrawal model.

Payout request against an account's available balance.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from affiliate_core.models.base import Base
from affiliate_core.models.enums import WithdrawalStatus
from affiliate_core.models.types import MoneyType
from affiliate_core.utils.datetime_utils import utc_now

if TYPE_CHECKING:
    from affiliate_core.models.account import Account
    from affiliate_core.models.bank_account import BankAccount


class Withdrawal(Base):
    """
    Withdrawal entity.

    The full amount is reserved from available_balance at creation; the fee
    is informational. cancelled_at distinguishes a user cancellation from an
    operator rejection (both end in REJECTED).
    """

    __tablename__ = "withdrawals"
    __table_args__ = (
        CheckConstraint("amount > 0", name="check_withdrawal_amount_positive"),
        CheckConstraint("fee >= 0", name="check_withdrawal_fee_non_negative"),
        # At most one PENDING withdrawal per account
        Index(
            "uq_withdrawals_one_pending_per_account",
            "account_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    bank_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("bank_accounts.id", ondelete="SET NULL"),
        nullable=True,
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    fee: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False,
        comment="Display fee, not split out of the reservation",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=WithdrawalStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    user_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    account: Mapped["Account"] = relationship(
        "Account", back_populates="withdrawals"
    )
    bank_account: Mapped["BankAccount | None"] = relationship("BankAccount")

    @property
    def status_enum(self) -> WithdrawalStatus:
        """Status as enum."""
        return WithdrawalStatus(self.status)

    @property
    def net_amount(self) -> Decimal:
        """Amount the user receives after the fee."""
        return self.amount - self.fee

    @property
    def was_cancelled_by_user(self) -> bool:
        """True if the owning account cancelled the request."""
        return self.cancelled_at is not None

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Withdrawal(id={self.id}, account_id={self.account_id}, "
            f"amount={self.amount}, status={self.status})>"
        )
