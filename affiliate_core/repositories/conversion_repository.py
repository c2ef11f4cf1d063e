"""
AffiliateConversion repository.

Data access layer for AffiliateConversion model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.affiliate_conversion import AffiliateConversion
from affiliate_core.repositories.base import BaseRepository


class ConversionRepository(BaseRepository[AffiliateConversion]):
    """AffiliateConversion repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize conversion repository."""
        super().__init__(AffiliateConversion, session)

    async def get_by_link_order(
        self, link_id: int, order_id: str
    ) -> AffiliateConversion | None:
        """
        Get the conversion for a (link, order) pair.

        Args:
            link_id: Link ID
            order_id: Order ID

        Returns:
            AffiliateConversion or None
        """
        return await self.get_by(link_id=link_id, order_id=order_id)

    async def has_for_link(self, link_id: int) -> bool:
        """Check if any conversion references the link."""
        return await self.exists(link_id=link_id)

    async def totals_by_link(self) -> dict[int, tuple[int, Decimal]]:
        """
        Conversion count and level-1 commission sum for every link.

        Returns:
            Dict link_id -> (count, commission_sum)
        """
        stmt = (
            select(
                AffiliateConversion.link_id,
                func.count(AffiliateConversion.id),
                func.coalesce(func.sum(AffiliateConversion.commission_amount), 0),
            )
            .group_by(AffiliateConversion.link_id)
        )
        result = await self.session.execute(stmt)
        return {
            link_id: (count, Decimal(str(total)))
            for link_id, count, total in result.all()
        }
