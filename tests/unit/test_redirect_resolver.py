"""Unit tests for redirect URL resolution."""

from urllib.parse import parse_qs, urlsplit

import pytest

from affiliate_core.models import Account, AffiliateLink
from affiliate_core.models.enums import LinkType
from affiliate_core.services.links.redirect_resolver import RedirectResolver


def _link(link_type: LinkType, product_id=None, category_id=None) -> AffiliateLink:
    return AffiliateLink(
        id=7,
        account_id=3,
        slug="spring-sale",
        title="Spring sale",
        type=link_type.value,
        product_id=product_id,
        category_id=category_id,
    )


@pytest.fixture
def resolver(catalog):
    return RedirectResolver(
        catalog,
        base_url="https://shop.example/",
        product_path="/san-pham/{slug}",
        category_path="/danh-muc/{slug}",
    )


@pytest.fixture
def owner():
    return Account(id=3, email="owner@example.com", referral_code="OWNER3")


class TestRedirectResolver:
    """Test redirect targets."""

    @pytest.mark.asyncio
    async def test_general_link_goes_to_root(self, resolver, owner):
        url = await resolver.resolve(_link(LinkType.GENERAL), owner)
        parts = urlsplit(url)
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://shop.example/"
        assert parse_qs(parts.query) == {"ref": ["OWNER3"], "aff": ["7"]}

    @pytest.mark.asyncio
    async def test_active_product(self, resolver, owner):
        url = await resolver.resolve(_link(LinkType.PRODUCT, product_id=10), owner)
        assert urlsplit(url).path == "/san-pham/ao-thun-basic"

    @pytest.mark.asyncio
    async def test_inactive_product_falls_back_to_root(self, resolver, owner):
        url = await resolver.resolve(_link(LinkType.PRODUCT, product_id=11), owner)
        assert urlsplit(url).path == "/"

    @pytest.mark.asyncio
    async def test_missing_product_falls_back_to_root(self, resolver, owner):
        url = await resolver.resolve(_link(LinkType.PRODUCT, product_id=999), owner)
        assert urlsplit(url).path == "/"

    @pytest.mark.asyncio
    async def test_category(self, resolver, owner):
        url = await resolver.resolve(_link(LinkType.CATEGORY, category_id=20), owner)
        assert urlsplit(url).path == "/danh-muc/thoi-trang-nam"

    @pytest.mark.asyncio
    async def test_owner_without_referral_code_uses_id(self, resolver):
        owner = Account(id=3, email="owner@example.com")
        url = await resolver.resolve(_link(LinkType.GENERAL), owner)
        assert parse_qs(urlsplit(url).query)["ref"] == ["3"]
