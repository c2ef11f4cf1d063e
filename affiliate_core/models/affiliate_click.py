"""
AffiliateClick model.

Append-only record of a single link visit. Never updated or deleted on its
own; removed only together with a deletable link.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from affiliate_core.models.base import Base
from affiliate_core.utils.datetime_utils import utc_now

if TYPE_CHECKING:
    from affiliate_core.models.affiliate_link import AffiliateLink


class AffiliateClick(Base):
    """Link visit with coarse client metadata."""

    __tablename__ = "affiliate_clicks"
    __table_args__ = (
        Index("idx_affiliate_clicks_link_time", "link_id", "clicked_at"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    link_id: Mapped[int] = mapped_column(
        ForeignKey("affiliate_links.id", ondelete="CASCADE"),
        nullable=False,
    )
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    referer: Mapped[str | None] = mapped_column(Text, nullable=True)
    clicked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    link: Mapped["AffiliateLink"] = relationship(
        "AffiliateLink", back_populates="clicks"
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<AffiliateClick(id={self.id}, link_id={self.link_id})>"
