"""
BankAccount model.

Payout destination owned by an account. Managed by the profile layer;
the withdrawal workflow only checks ownership.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from affiliate_core.models.base import Base
from affiliate_core.utils.datetime_utils import utc_now

if TYPE_CHECKING:
    from affiliate_core.models.account import Account


class BankAccount(Base):
    """Bank account for withdrawal payouts."""

    __tablename__ = "bank_accounts"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    bank_name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_number: Mapped[str] = mapped_column(String(64), nullable=False)
    account_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_primary: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    account: Mapped["Account"] = relationship(
        "Account", back_populates="bank_accounts"
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<BankAccount(id={self.id}, account_id={self.account_id}, "
            f"bank={self.bank_name})>"
        )
