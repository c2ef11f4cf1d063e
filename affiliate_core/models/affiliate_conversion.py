"""
AffiliateConversion model.

A commission-bearing purchase attributed to a link. At most one row per
(link, order); the unique constraint is the arbiter for concurrent
attribution attempts.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from affiliate_core.models.base import Base
from affiliate_core.models.types import MoneyType, RateType
from affiliate_core.utils.datetime_utils import utc_now

if TYPE_CHECKING:
    from affiliate_core.models.affiliate_link import AffiliateLink
    from affiliate_core.models.commission import Commission


class AffiliateConversion(Base):
    """
    AffiliateConversion entity.

    commission_rate is the level-1 rate in effect at conversion time and is
    never recomputed.
    """

    __tablename__ = "affiliate_conversions"
    __table_args__ = (
        UniqueConstraint(
            "link_id", "order_id", name="uq_affiliate_conversion_link_order"
        ),
        CheckConstraint(
            "order_value > 0", name="check_conversion_order_value_positive"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    link_id: Mapped[int] = mapped_column(
        ForeignKey("affiliate_links.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    order_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    buyer_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
    )
    order_value: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(
        RateType, nullable=False
    )
    commission_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    converted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    link: Mapped["AffiliateLink"] = relationship(
        "AffiliateLink", back_populates="conversions"
    )
    commissions: Mapped[list["Commission"]] = relationship(
        "Commission", back_populates="conversion"
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AffiliateConversion(id={self.id}, link_id={self.link_id}, "
            f"order_id={self.order_id})>"
        )
