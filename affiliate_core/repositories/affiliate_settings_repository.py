"""
AffiliateSettings repository.

Versioned configuration rows: only inserts and latest-version reads.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.affiliate_settings import AffiliateSettings
from affiliate_core.repositories.base import BaseRepository


class AffiliateSettingsRepository(BaseRepository[AffiliateSettings]):
    """AffiliateSettings repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize settings repository."""
        super().__init__(AffiliateSettings, session)

    async def get_latest(self) -> AffiliateSettings | None:
        """
        Get the current (highest) settings version.

        Returns:
            Latest AffiliateSettings row or None if never published
        """
        stmt = (
            select(AffiliateSettings)
            .order_by(AffiliateSettings.version.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def max_version(self) -> int:
        """Get the highest stored version (0 if none)."""
        result = await self.session.execute(
            select(func.max(AffiliateSettings.version))
        )
        return result.scalar() or 0
