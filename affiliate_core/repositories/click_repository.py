"""
AffiliateClick repository.

Append-only: there is no update path.
"""

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.affiliate_click import AffiliateClick
from affiliate_core.repositories.base import BaseRepository


class ClickRepository(BaseRepository[AffiliateClick]):
    """AffiliateClick repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize click repository."""
        super().__init__(AffiliateClick, session)

    async def count_by_link(self) -> dict[int, int]:
        """
        Count clicks for every link in one query.

        Returns:
            Dict link_id -> click count
        """
        stmt = (
            select(AffiliateClick.link_id, func.count(AffiliateClick.id))
            .group_by(AffiliateClick.link_id)
        )
        result = await self.session.execute(stmt)
        return {link_id: count for link_id, count in result.all()}

    async def delete_for_link(self, link_id: int) -> int:
        """
        Delete all clicks of a link (only used when the link is deleted).

        Args:
            link_id: Link ID

        Returns:
            Number of deleted clicks
        """
        result = await self.session.execute(
            delete(AffiliateClick).where(AffiliateClick.link_id == link_id)
        )
        return result.rowcount or 0
