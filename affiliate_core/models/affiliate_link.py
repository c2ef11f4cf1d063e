"""
AffiliateLink model.

Trackable link owned by a single account, pointing at the whole site,
a product or a category.
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
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from affiliate_core.models.base import Base
from affiliate_core.models.enums import LinkStatus, LinkType
from affiliate_core.models.types import MoneyType, RateType
from affiliate_core.utils.datetime_utils import expiry_passed, utc_now

if TYPE_CHECKING:
    from affiliate_core.models.account import Account
    from affiliate_core.models.affiliate_click import AffiliateClick
    from affiliate_core.models.affiliate_conversion import AffiliateConversion


class AffiliateLink(Base):
    """
    AffiliateLink entity.

    Target reference must match type:
    - GENERAL: no product, no category
    - PRODUCT: product_id only
    - CATEGORY: category_id only

    Counters (total_clicks, total_conversions, total_commission) are
    denormalized projections of clicks and conversions, incremented
    relatively and resynchronised by the statistics service.
    """

    __tablename__ = "affiliate_links"
    __table_args__ = (
        CheckConstraint(
            "(type = 'GENERAL' AND product_id IS NULL AND category_id IS NULL) OR "
            "(type = 'PRODUCT' AND product_id IS NOT NULL AND category_id IS NULL) OR "
            "(type = 'CATEGORY' AND category_id IS NOT NULL AND product_id IS NULL)",
            name="check_affiliate_link_target_matches_type",
        ),
        CheckConstraint(
            "commission_rate IS NULL OR (commission_rate >= 0 AND commission_rate <= 1)",
            name="check_affiliate_link_rate_range",
        ),
        Index("idx_affiliate_links_owner_status", "account_id", "status"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    slug: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    type: Mapped[str] = mapped_column(
        String(20), default=LinkType.GENERAL.value, nullable=False
    )
    product_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True,
        comment="Catalog product id (external collaborator)",
    )
    category_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True,
        comment="Catalog category id (external collaborator)",
    )

    status: Mapped[str] = mapped_column(
        String(20), default=LinkStatus.ACTIVE.value, nullable=False
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    commission_rate: Mapped[Decimal | None] = mapped_column(
        RateType, nullable=True,
        comment="Per-link override of the owner's rate",
    )

    # Denormalized counters
    total_clicks: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    total_conversions: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    total_commission: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    last_click_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_conversion_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    owner: Mapped["Account"] = relationship("Account", back_populates="links")
    clicks: Mapped[list["AffiliateClick"]] = relationship(
        "AffiliateClick",
        back_populates="link",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    conversions: Mapped[list["AffiliateConversion"]] = relationship(
        "AffiliateConversion",
        back_populates="link",
        passive_deletes="all",
    )

    @property
    def type_enum(self) -> LinkType:
        """Link type as enum."""
        return LinkType(self.type)

    @property
    def is_active(self) -> bool:
        """True if status is ACTIVE."""
        return self.status == LinkStatus.ACTIVE.value

    @property
    def is_expired(self) -> bool:
        """True if expiry moment has passed."""
        return expiry_passed(self.expires_at)

    @property
    def conversion_rate(self) -> Decimal:
        """Conversions per click in percent."""
        if not self.total_clicks:
            return Decimal("0")
        return (
            Decimal(self.total_conversions) / Decimal(self.total_clicks) * 100
        ).quantize(Decimal("0.01"))

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AffiliateLink(id={self.id}, slug={self.slug}, "
            f"type={self.type}, status={self.status})>"
        )
