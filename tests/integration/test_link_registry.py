"""
Integration tests for LinkRegistry.

Tests cover:
- Link creation (types, catalog targets, slugs, default expiry)
- Active-link cap, including reactivation
- Owner-or-admin permissions
- Deletion guarded by recorded conversions
"""

import dataclasses
from datetime import timedelta
from decimal import Decimal

import pytest

from affiliate_core.models import (
    AccountRole,
    AccountStatus,
    AffiliateClick,
    AffiliateConversion,
    LinkStatus,
    LinkType,
)
from affiliate_core.services.interfaces import CallerIdentity
from affiliate_core.services.links import LinkRegistry
from affiliate_core.services.links import link_registry as link_registry_module
from affiliate_core.utils.datetime_utils import ensure_utc, utc_now
from affiliate_core.utils.exceptions import (
    AccountNotEligible,
    AccountNotFound,
    CatalogTargetNotFound,
    HasConversions,
    LinkLimitExceeded,
    LinkNotFound,
    PermissionDenied,
    SlugTaken,
    ValidationError,
)


@pytest.fixture
def registry(session, catalog, snapshot):
    return LinkRegistry(session, catalog, snapshot=snapshot)


class TestCreateLink:
    """Test link creation."""

    @pytest.mark.asyncio
    async def test_general_link_with_generated_slug(self, registry, make_account):
        owner = await make_account()

        link = await registry.create_link(owner.id, LinkType.GENERAL, "Homepage")

        assert link.id is not None
        assert link.slug.startswith(f"{owner.id}-")
        assert link.status == LinkStatus.ACTIVE.value
        assert link.total_clicks == 0

    @pytest.mark.asyncio
    async def test_default_expiry_from_settings(self, registry, make_account):
        owner = await make_account()

        link = await registry.create_link(owner.id, "GENERAL", "Homepage")

        expected = utc_now() + timedelta(days=365)
        assert abs(ensure_utc(link.expires_at) - expected) < timedelta(minutes=1)

    @pytest.mark.asyncio
    async def test_no_expiry_when_disabled(self, session, catalog, snapshot, make_account):
        owner = await make_account()
        registry = LinkRegistry(
            session, catalog, snapshot=dataclasses.replace(snapshot, link_expiry_days=0)
        )

        link = await registry.create_link(owner.id, "GENERAL", "Forever")

        assert link.expires_at is None

    @pytest.mark.asyncio
    async def test_product_link(self, registry, make_account):
        owner = await make_account()

        link = await registry.create_link(
            owner.id, LinkType.PRODUCT, "T-shirt", product_id=10,
            slug="Ao-Thun", commission_rate="0.2",
        )

        assert link.slug == "ao-thun"
        assert link.product_id == 10
        assert Decimal(str(link.commission_rate)) == Decimal("0.2")

    @pytest.mark.asyncio
    async def test_missing_catalog_target(self, registry, make_account):
        owner = await make_account()

        with pytest.raises(CatalogTargetNotFound):
            await registry.create_link(
                owner.id, LinkType.CATEGORY, "Unknown", category_id=404
            )

    @pytest.mark.asyncio
    async def test_target_must_match_type(self, registry, make_account):
        owner = await make_account()

        with pytest.raises(ValidationError):
            await registry.create_link(owner.id, LinkType.PRODUCT, "No product")

    @pytest.mark.asyncio
    async def test_invalid_rate_and_title(self, registry, make_account):
        owner = await make_account()

        with pytest.raises(ValidationError):
            await registry.create_link(owner.id, "GENERAL", "Rate", commission_rate="1.5")
        with pytest.raises(ValidationError):
            await registry.create_link(owner.id, "GENERAL", "   ")

    @pytest.mark.asyncio
    async def test_past_expiry_refused(self, registry, make_account):
        owner = await make_account()

        with pytest.raises(ValidationError):
            await registry.create_link(
                owner.id, "GENERAL", "Old", expires_at=utc_now() - timedelta(days=1)
            )

    @pytest.mark.asyncio
    async def test_duplicate_explicit_slug(self, registry, make_account):
        owner = await make_account()
        owner_id = owner.id
        await registry.create_link(owner_id, "GENERAL", "First", slug="summer-sale")

        with pytest.raises(SlugTaken):
            await registry.create_link(owner_id, "GENERAL", "Second", slug="SUMMER-SALE")

    @pytest.mark.asyncio
    async def test_generated_slug_retries_exhausted(
        self, registry, make_account, make_link, monkeypatch
    ):
        owner = await make_account()
        owner_id = owner.id
        await make_link(owner, slug="fixed-slug")
        monkeypatch.setattr(
            link_registry_module, "generate_slug", lambda owner_id: "fixed-slug"
        )

        with pytest.raises(SlugTaken):
            await registry.create_link(owner_id, "GENERAL", "Collides")

    @pytest.mark.asyncio
    async def test_customer_cannot_own_links(self, registry, make_account):
        customer = await make_account(role=AccountRole.CUSTOMER)

        with pytest.raises(AccountNotEligible):
            await registry.create_link(customer.id, "GENERAL", "Nope")

    @pytest.mark.asyncio
    async def test_inactive_owner(self, registry, make_account):
        owner = await make_account(status=AccountStatus.SUSPENDED)

        with pytest.raises(AccountNotEligible):
            await registry.create_link(owner.id, "GENERAL", "Nope")

    @pytest.mark.asyncio
    async def test_unknown_owner(self, registry):
        with pytest.raises(AccountNotFound):
            await registry.create_link(9999, "GENERAL", "Nope")


class TestLinkCap:
    """Active-link cap per owner."""

    @pytest.mark.asyncio
    async def test_cap_and_reactivation(self, session, catalog, snapshot, make_account):
        owner = await make_account()
        owner_id = owner.id
        caller = CallerIdentity(account_id=owner_id, role=AccountRole.COLLABORATOR)
        registry = LinkRegistry(
            session, catalog, snapshot=dataclasses.replace(snapshot, max_links_per_account=2)
        )

        first = await registry.create_link(owner_id, "GENERAL", "One")
        first_id = first.id
        await registry.create_link(owner_id, "GENERAL", "Two")

        with pytest.raises(LinkLimitExceeded):
            await registry.create_link(owner_id, "GENERAL", "Three")

        # Deactivating frees a slot
        await registry.deactivate_link(first_id, caller)
        third = await registry.create_link(owner_id, "GENERAL", "Three")
        assert third.is_active

        # Reactivation counts against the cap
        with pytest.raises(LinkLimitExceeded):
            await registry.update_link(first_id, caller, status=LinkStatus.ACTIVE)


class TestUpdateLink:
    """Test updates and permissions."""

    @pytest.mark.asyncio
    async def test_owner_updates_fields(self, registry, make_account, make_link):
        owner = await make_account()
        link = await make_link(owner, commission_rate=Decimal("0.2"))
        caller = CallerIdentity(account_id=owner.id, role=AccountRole.COLLABORATOR)

        updated = await registry.update_link(
            link.id, caller, title="New title", commission_rate=None
        )

        assert updated.title == "New title"
        assert updated.commission_rate is None

    @pytest.mark.asyncio
    async def test_omitted_fields_unchanged(self, registry, make_account, make_link):
        owner = await make_account()
        link = await make_link(owner, commission_rate=Decimal("0.2"))
        caller = CallerIdentity(account_id=owner.id, role=AccountRole.COLLABORATOR)

        updated = await registry.update_link(link.id, caller, description="Hello")

        assert updated.description == "Hello"
        assert Decimal(str(updated.commission_rate)) == Decimal("0.2")

    @pytest.mark.asyncio
    async def test_other_user_denied(self, registry, make_account, make_link):
        owner = await make_account()
        other = await make_account()
        link = await make_link(owner)
        caller = CallerIdentity(account_id=other.id, role=AccountRole.COLLABORATOR)

        with pytest.raises(PermissionDenied):
            await registry.update_link(link.id, caller, title="Hijack")

    @pytest.mark.asyncio
    async def test_admin_allowed(self, registry, make_account, make_link):
        owner = await make_account()
        admin = await make_account(role=AccountRole.ADMIN)
        link = await make_link(owner)
        caller = CallerIdentity(account_id=admin.id, role=AccountRole.ADMIN)

        updated = await registry.deactivate_link(link.id, caller)

        assert updated.status == LinkStatus.INACTIVE.value

    @pytest.mark.asyncio
    async def test_status_string_is_normalized(self, registry, make_account, make_link):
        owner = await make_account()
        link = await make_link(owner)
        caller = CallerIdentity(account_id=owner.id, role=AccountRole.COLLABORATOR)

        updated = await registry.update_link(link.id, caller, status=" inactive ")

        assert updated.status == LinkStatus.INACTIVE.value

    @pytest.mark.asyncio
    async def test_unknown_status(self, registry, make_account, make_link):
        owner = await make_account()
        link = await make_link(owner)
        caller = CallerIdentity(account_id=owner.id, role=AccountRole.COLLABORATOR)

        with pytest.raises(ValidationError):
            await registry.update_link(link.id, caller, status="ARCHIVED")

    @pytest.mark.asyncio
    async def test_unknown_link(self, registry):
        caller = CallerIdentity(account_id=1, role=AccountRole.ADMIN)

        with pytest.raises(LinkNotFound):
            await registry.update_link(9999, caller, title="x")


class TestDeleteLink:
    """Deletion is refused once a conversion exists."""

    @pytest.mark.asyncio
    async def test_delete_removes_clicks(self, session, registry, make_account, make_link):
        owner = await make_account()
        link = await make_link(owner)
        link_id = link.id
        session.add(AffiliateClick(link_id=link_id))
        await session.commit()
        caller = CallerIdentity(account_id=owner.id, role=AccountRole.COLLABORATOR)

        await registry.delete_link(link_id, caller)

        with pytest.raises(LinkNotFound):
            await registry.update_link(link_id, caller, title="gone")

    @pytest.mark.asyncio
    async def test_delete_with_conversion_refused(
        self, session, registry, make_account, make_link
    ):
        owner = await make_account()
        link = await make_link(owner)
        link_id, slug = link.id, link.slug
        caller = CallerIdentity(account_id=owner.id, role=AccountRole.COLLABORATOR)
        session.add(
            AffiliateConversion(
                link_id=link_id,
                order_id="ORD-1",
                order_value=Decimal("100000"),
                commission_rate=Decimal("0.15"),
                commission_amount=Decimal("15000"),
            )
        )
        await session.commit()

        with pytest.raises(HasConversions):
            await registry.delete_link(link_id, caller)

        assert (await registry.get_by_slug(slug)).id == link_id


class TestQueries:
    """Test lookups."""

    @pytest.mark.asyncio
    async def test_get_by_slug_normalizes(self, registry, make_account, make_link):
        owner = await make_account()
        link = await make_link(owner, slug="winter-deal")

        found = await registry.get_by_slug(" Winter-Deal ")

        assert found.id == link.id

    @pytest.mark.asyncio
    async def test_get_by_slug_unknown(self, registry):
        with pytest.raises(LinkNotFound):
            await registry.get_by_slug("nope")

    @pytest.mark.asyncio
    async def test_list_for_owner(self, registry, make_account, make_link):
        owner = await make_account()
        other = await make_account()
        for _ in range(3):
            await make_link(owner)
        await make_link(owner, status=LinkStatus.INACTIVE)
        await make_link(other)

        links, total = await registry.list_for_owner(owner.id, per_page=2)
        assert total == 4
        assert len(links) == 2

        active, active_total = await registry.list_for_owner(
            owner.id, status=LinkStatus.ACTIVE
        )
        assert active_total == 3
        assert all(link.is_active for link in active)
