"""
AffiliateSettings model.

Append-only configuration versions. The row with the highest version is
current; older rows document what was in effect when.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from affiliate_core.models.base import Base
from affiliate_core.models.types import MoneyType, RateType
from affiliate_core.utils.datetime_utils import utc_now


class AffiliateSettings(Base):
    """Versioned affiliate program configuration."""

    __tablename__ = "affiliate_settings"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    version: Mapped[int] = mapped_column(
        Integer, unique=True, index=True, nullable=False
    )

    default_commission_rate: Mapped[Decimal] = mapped_column(
        RateType, nullable=False
    )
    level_two_factor: Mapped[Decimal] = mapped_column(
        RateType, nullable=False
    )
    min_withdrawal: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    withdrawal_fee_floor: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    withdrawal_fee_rate: Mapped[Decimal] = mapped_column(
        RateType, nullable=False
    )
    max_links_per_account: Mapped[int] = mapped_column(Integer, nullable=False)
    link_expiry_days: Mapped[int] = mapped_column(Integer, nullable=False)
    tracking_window_days: Mapped[int] = mapped_column(Integer, nullable=False)
    commission_hold_days: Mapped[int] = mapped_column(Integer, nullable=False)

    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<AffiliateSettings(version={self.version})>"
