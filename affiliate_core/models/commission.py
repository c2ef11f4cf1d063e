"""
Commission model.

One row per (payee account, order, level). Level 1 pays the link owner,
level 2 pays the link owner's upline.
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
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from affiliate_core.models.base import Base
from affiliate_core.models.enums import CommissionStatus
from affiliate_core.models.types import MoneyType, RateType
from affiliate_core.utils.datetime_utils import utc_now

if TYPE_CHECKING:
    from affiliate_core.models.affiliate_conversion import AffiliateConversion


class Commission(Base):
    """
    Commission entity.

    Status lifecycle:
    - PENDING: accrued into total_commission only
    - PAID: amount credited to available_balance, paid_at stamped
    - CANCELLED: no balance effect (a PAID amount is reversed on cancel)
    """

    __tablename__ = "commissions"
    __table_args__ = (
        UniqueConstraint(
            "account_id", "order_id", "level",
            name="uq_commission_account_order_level",
        ),
        CheckConstraint("level IN (1, 2)", name="check_commission_level"),
        CheckConstraint("amount >= 0", name="check_commission_amount_non_negative"),
        Index("idx_commissions_account_status", "account_id", "status"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    conversion_id: Mapped[int | None] = mapped_column(
        ForeignKey("affiliate_conversions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    referred_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
        comment="Buyer for level 1, level-1 payee for level 2",
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    order_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=CommissionStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    admin_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    conversion: Mapped["AffiliateConversion | None"] = relationship(
        "AffiliateConversion", back_populates="commissions"
    )

    @property
    def status_enum(self) -> CommissionStatus:
        """Status as enum."""
        return CommissionStatus(self.status)

    @property
    def paid_amount(self) -> Decimal:
        """Amount currently credited to available_balance."""
        if self.status == CommissionStatus.PAID.value:
            return self.amount
        return Decimal("0")

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Commission(id={self.id}, account_id={self.account_id}, "
            f"order_id={self.order_id}, level={self.level}, "
            f"status={self.status})>"
        )
