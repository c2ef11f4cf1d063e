"""
Redirect URL resolution for link visits.

Targets are resolved from the catalog at call time, never cached on the link.
"""

from urllib.parse import urlencode

from loguru import logger

from affiliate_core.config.settings import settings
from affiliate_core.models.account import Account
from affiliate_core.models.affiliate_link import AffiliateLink
from affiliate_core.models.enums import LinkType
from affiliate_core.services.interfaces import CatalogGateway


class RedirectResolver:
    """Builds the storefront URL a link visit should land on."""

    def __init__(
        self,
        catalog: CatalogGateway,
        base_url: str | None = None,
        product_path: str | None = None,
        category_path: str | None = None,
    ) -> None:
        """
        Initialize resolver.

        Args:
            catalog: Catalog gateway
            base_url: Storefront root (defaults to settings.site_base_url)
            product_path: Product path template with {slug}
            category_path: Category path template with {slug}
        """
        self.catalog = catalog
        self.base_url = (base_url or settings.site_base_url).rstrip("/")
        self.product_path = product_path or settings.product_path
        self.category_path = category_path or settings.category_path

    async def resolve(self, link: AffiliateLink, owner: Account) -> str:
        """
        Compute the redirect URL for a link.

        Product links fall back to the site root when the product is missing
        or inactive. The ``ref`` (owner referral code or id) and ``aff``
        (link id) query parameters are always appended.

        Args:
            link: Visited link
            owner: Link owner

        Returns:
            Absolute redirect URL
        """
        path = "/"
        link_type = link.type_enum

        if link_type == LinkType.PRODUCT:
            product = await self.catalog.get_product(link.product_id)
            if product is not None and product.is_active:
                path = self.product_path.format(slug=product.slug)
            else:
                logger.warning(
                    "Product of affiliate link unavailable, redirecting to root",
                    extra={"link_id": link.id, "product_id": link.product_id},
                )
        elif link_type == LinkType.CATEGORY:
            category = await self.catalog.get_category(link.category_id)
            if category is not None:
                path = self.category_path.format(slug=category.slug)

        query = urlencode({
            "ref": owner.referral_code or str(owner.id),
            "aff": str(link.id),
        })
        return f"{self.base_url}{path}?{query}"
