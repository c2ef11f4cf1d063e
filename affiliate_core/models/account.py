"""
Account model.

The subset of a storefront user relevant to the affiliate ledger.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from affiliate_core.models.base import Base
from affiliate_core.models.enums import AccountRole, AccountStatus
from affiliate_core.models.types import MoneyType, RateType
from affiliate_core.utils.datetime_utils import utc_now

if TYPE_CHECKING:
    from affiliate_core.models.affiliate_link import AffiliateLink
    from affiliate_core.models.bank_account import BankAccount
    from affiliate_core.models.withdrawal import Withdrawal


class Account(Base):
    """Account model - storefront users with affiliate ledger fields."""

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint(
            "available_balance >= 0",
            name="check_account_available_balance_non_negative",
        ),
        CheckConstraint(
            "total_commission >= 0",
            name="check_account_total_commission_non_negative",
        ),
        CheckConstraint(
            "total_withdrawn >= 0",
            name="check_account_total_withdrawn_non_negative",
        ),
        CheckConstraint(
            "referred_by_id IS NULL OR referred_by_id <> id",
            name="check_account_no_self_referral",
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Identity
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    full_name: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    referral_code: Mapped[str | None] = mapped_column(
        String(32), nullable=True, unique=True, index=True
    )

    role: Mapped[str] = mapped_column(
        String(20),
        default=AccountRole.CUSTOMER.value,
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=AccountStatus.ACTIVE.value,
        nullable=False,
        index=True,
    )

    # Referral edge (set once at registration)
    referred_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Account-level default commission rate (fraction)
    commission_rate: Mapped[Decimal | None] = mapped_column(
        RateType, nullable=True
    )

    # Ledger fields
    total_commission: Mapped[Decimal] = mapped_column(
        MoneyType,
        default=Decimal("0"),
        nullable=False,
        comment="Lifetime accrued commission",
    )
    available_balance: Mapped[Decimal] = mapped_column(
        MoneyType,
        default=Decimal("0"),
        nullable=False,
        comment="Spendable balance (paid commissions minus reservations)",
    )
    total_withdrawn: Mapped[Decimal] = mapped_column(
        MoneyType,
        default=Decimal("0"),
        nullable=False,
        comment="Lifetime completed withdrawals",
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    # Relationships
    referred_by: Mapped[Optional["Account"]] = relationship(
        "Account",
        remote_side=[id],
        back_populates="referrals",
        foreign_keys=[referred_by_id],
    )
    referrals: Mapped[list["Account"]] = relationship(
        "Account",
        back_populates="referred_by",
        foreign_keys=[referred_by_id],
    )
    links: Mapped[list["AffiliateLink"]] = relationship(
        "AffiliateLink",
        back_populates="owner",
        cascade="all, delete-orphan",
    )
    bank_accounts: Mapped[list["BankAccount"]] = relationship(
        "BankAccount",
        back_populates="account",
        cascade="all, delete-orphan",
    )
    withdrawals: Mapped[list["Withdrawal"]] = relationship(
        "Withdrawal",
        back_populates="account",
        cascade="all, delete-orphan",
    )

    @property
    def role_enum(self) -> AccountRole:
        """Role as enum."""
        return AccountRole(self.role)

    @property
    def is_active(self) -> bool:
        """True if the account is ACTIVE."""
        return self.status == AccountStatus.ACTIVE.value

    @property
    def is_referrer_eligible(self) -> bool:
        """True if the account can earn level-2 overrides."""
        return self.is_active and self.role_enum.is_referrer_eligible

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Account(id={self.id}, email={self.email}, "
            f"role={self.role}, status={self.status})>"
        )
