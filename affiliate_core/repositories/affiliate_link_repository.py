"""
AffiliateLink repository.

Data access layer for AffiliateLink model.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.affiliate_link import AffiliateLink
from affiliate_core.models.enums import LinkStatus
from affiliate_core.repositories.base import BaseRepository


class AffiliateLinkRepository(BaseRepository[AffiliateLink]):
    """AffiliateLink repository with specific methods."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize affiliate link repository."""
        super().__init__(AffiliateLink, session)

    async def get_by_slug(self, slug: str) -> AffiliateLink | None:
        """
        Get link by slug.

        Args:
            slug: Link slug

        Returns:
            AffiliateLink or None
        """
        return await self.get_by(slug=slug)

    async def slug_exists(self, slug: str) -> bool:
        """Check if slug is already used by any link."""
        return await self.exists(slug=slug)

    async def count_active_for_owner(self, account_id: int) -> int:
        """
        Count ACTIVE links owned by an account.

        Args:
            account_id: Owner account ID

        Returns:
            Number of active links
        """
        return await self.count(
            account_id=account_id, status=LinkStatus.ACTIVE.value
        )

    async def list_for_owner(
        self,
        account_id: int,
        status: LinkStatus | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[AffiliateLink], int]:
        """
        List links of an owner with optional status filter.

        Args:
            account_id: Owner account ID
            status: Optional status filter
            page: Page number (1-indexed)
            per_page: Items per page

        Returns:
            Tuple of (links, total_count)
        """
        filters: dict = {"account_id": account_id}
        if status is not None:
            filters["status"] = status.value
        return await self.find_paginated(page=page, per_page=per_page, **filters)

    async def increment_clicks(self, link_id: int, clicked_at: datetime) -> None:
        """
        Increment click counter relatively and stamp last click time.

        Args:
            link_id: Link ID
            clicked_at: Click timestamp
        """
        stmt = (
            update(AffiliateLink)
            .where(AffiliateLink.id == link_id)
            .values(
                total_clicks=AffiliateLink.total_clicks + 1,
                last_click_at=clicked_at,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def increment_conversions(
        self, link_id: int, commission: Decimal, converted_at: datetime
    ) -> None:
        """
        Increment conversion counters relatively.

        Args:
            link_id: Link ID
            commission: Level-1 commission amount to add
            converted_at: Conversion timestamp
        """
        stmt = (
            update(AffiliateLink)
            .where(AffiliateLink.id == link_id)
            .values(
                total_conversions=AffiliateLink.total_conversions + 1,
                total_commission=AffiliateLink.total_commission + commission,
                last_conversion_at=converted_at,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def set_counters(
        self,
        link_id: int,
        total_clicks: int,
        total_conversions: int,
        total_commission: Decimal,
    ) -> None:
        """Overwrite denormalized counters with recomputed values."""
        stmt = (
            update(AffiliateLink)
            .where(AffiliateLink.id == link_id)
            .values(
                total_clicks=total_clicks,
                total_conversions=total_conversions,
                total_commission=total_commission,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def all_ids(self) -> list[int]:
        """Get ids of every link."""
        result = await self.session.execute(
            select(AffiliateLink.id).order_by(AffiliateLink.id)
        )
        return list(result.scalars().all())

    async def count_by_status(self, account_id: int) -> dict[str, int]:
        """
        Count an owner's links grouped by status.

        Args:
            account_id: Owner account ID

        Returns:
            Dict status -> count
        """
        stmt = (
            select(AffiliateLink.status, func.count(AffiliateLink.id))
            .where(AffiliateLink.account_id == account_id)
            .group_by(AffiliateLink.status)
        )
        result = await self.session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def counter_totals_for_owner(self, account_id: int) -> tuple[int, int]:
        """
        Sum click and conversion counters over an owner's links.

        Args:
            account_id: Owner account ID

        Returns:
            Tuple of (total_clicks, total_conversions)
        """
        stmt = select(
            func.coalesce(func.sum(AffiliateLink.total_clicks), 0),
            func.coalesce(func.sum(AffiliateLink.total_conversions), 0),
        ).where(AffiliateLink.account_id == account_id)
        clicks, conversions = (await self.session.execute(stmt)).one()
        return int(clicks), int(conversions)
