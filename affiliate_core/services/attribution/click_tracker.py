"""
Click tracker.

Validates a visited link, appends the click record and bumps the link's
denormalized counters.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.account import Account
from affiliate_core.models.affiliate_link import AffiliateLink
from affiliate_core.repositories.account_repository import AccountRepository
from affiliate_core.repositories.affiliate_link_repository import (
    AffiliateLinkRepository,
)
from affiliate_core.repositories.click_repository import ClickRepository
from affiliate_core.services.base_service import BaseService, transaction
from affiliate_core.services.interfaces import CatalogGateway, ClientInfo
from affiliate_core.services.links.redirect_resolver import RedirectResolver
from affiliate_core.utils.datetime_utils import utc_now
from affiliate_core.utils.exceptions import (
    LinkExpired,
    LinkInactive,
    LinkNotFound,
)


@dataclass(frozen=True)
class ClickResult:
    """Outcome of a recorded click."""

    click_id: int
    link_id: int
    redirect_url: str


class ClickTracker(BaseService):
    """Records link visits."""

    def __init__(
        self,
        session: AsyncSession,
        catalog: CatalogGateway,
        redirect_resolver: RedirectResolver | None = None,
    ) -> None:
        """
        Initialize click tracker.

        Args:
            session: Database session
            catalog: Catalog gateway for redirect targets
            redirect_resolver: Custom resolver (built from catalog if None)
        """
        super().__init__(session)
        self.redirect_resolver = redirect_resolver or RedirectResolver(catalog)
        self.link_repo = AffiliateLinkRepository(session)
        self.account_repo = AccountRepository(session)
        self.click_repo = ClickRepository(session)

    async def get_visitable_link(
        self, slug: str
    ) -> tuple[AffiliateLink, Account]:
        """
        Resolve a slug to a link that may receive traffic.

        Args:
            slug: Link slug

        Returns:
            Tuple of (link, owner)

        Raises:
            LinkNotFound: Unknown slug
            LinkInactive: Link or its owner is not active
            LinkExpired: Link expiry has passed
        """
        link = await self.link_repo.get_by_slug((slug or "").strip().lower())
        if link is None:
            raise LinkNotFound(slug=slug)
        if not link.is_active:
            raise LinkInactive(slug=slug)
        if link.is_expired:
            raise LinkExpired(slug=slug)

        owner = await self.account_repo.get_by_id(link.account_id)
        if owner is None or not owner.is_active:
            raise LinkInactive("Link owner is not active", slug=slug)
        return link, owner

    @transaction
    async def record_click(
        self, slug: str, client: ClientInfo | None = None
    ) -> ClickResult:
        """
        Record a click and compute the redirect target.

        Args:
            slug: Visited link slug
            client: Coarse client metadata

        Returns:
            ClickResult with redirect URL

        Raises:
            LinkNotFound, LinkInactive, LinkExpired
        """
        link, owner = await self.get_visitable_link(slug)
        client = client or ClientInfo()
        now = utc_now()

        click = await self.click_repo.create(
            link_id=link.id,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
            referer=client.referer,
            clicked_at=now,
        )
        await self.link_repo.increment_clicks(link.id, now)

        redirect_url = await self.redirect_resolver.resolve(link, owner)

        self.logger.info(
            "Affiliate click recorded",
            extra={
                "link_id": link.id,
                "click_id": click.id,
                "account_id": owner.id,
            },
        )
        return ClickResult(
            click_id=click.id, link_id=link.id, redirect_url=redirect_url
        )
