"""Unit tests for link type/target rules and caller permissions."""

import pytest

from affiliate_core.models.enums import AccountRole, LinkStatus, LinkType
from affiliate_core.services.interfaces import CallerIdentity
from affiliate_core.services.links.link_registry import (
    check_target,
    parse_link_status,
    parse_link_type,
)
from affiliate_core.utils.exceptions import ValidationError


class TestParseLinkType:
    """Test link type parsing."""

    def test_string(self):
        assert parse_link_type("PRODUCT") == LinkType.PRODUCT

    def test_enum(self):
        assert parse_link_type(LinkType.CATEGORY) == LinkType.CATEGORY

    def test_lowercase_and_padding(self):
        assert parse_link_type(" product ") == LinkType.PRODUCT

    def test_unknown(self):
        with pytest.raises(ValidationError):
            parse_link_type("BRAND")


class TestParseLinkStatus:
    """Test link status parsing."""

    @pytest.mark.parametrize("value", ["INACTIVE", "inactive", " Inactive "])
    def test_normalized(self, value):
        assert parse_link_status(value) == LinkStatus.INACTIVE

    def test_enum(self):
        assert parse_link_status(LinkStatus.ACTIVE) == LinkStatus.ACTIVE

    def test_unknown(self):
        with pytest.raises(ValidationError):
            parse_link_status("ARCHIVED")


class TestCheckTarget:
    """Target reference must match the link type."""

    @pytest.mark.parametrize(
        "link_type, product_id, category_id",
        [
            (LinkType.GENERAL, None, None),
            (LinkType.PRODUCT, 10, None),
            (LinkType.CATEGORY, None, 20),
        ],
    )
    def test_valid(self, link_type, product_id, category_id):
        check_target(link_type, product_id, category_id)

    @pytest.mark.parametrize(
        "link_type, product_id, category_id",
        [
            (LinkType.GENERAL, 10, None),
            (LinkType.GENERAL, None, 20),
            (LinkType.PRODUCT, None, None),
            (LinkType.PRODUCT, 10, 20),
            (LinkType.CATEGORY, None, None),
            (LinkType.CATEGORY, 10, 20),
        ],
    )
    def test_invalid(self, link_type, product_id, category_id):
        with pytest.raises(ValidationError):
            check_target(link_type, product_id, category_id)


class TestCallerIdentity:
    """Owner-or-admin permission rule."""

    def test_owner_can_manage(self):
        caller = CallerIdentity(account_id=5, role=AccountRole.COLLABORATOR)
        assert caller.can_manage(5) is True
        assert caller.can_manage(6) is False

    def test_admin_can_manage_anything(self):
        caller = CallerIdentity(account_id=1, role=AccountRole.ADMIN)
        assert caller.is_admin is True
        assert caller.can_manage(99) is True


class TestRoleCapabilities:
    """Role capability flags."""

    def test_referrer_eligible_roles(self):
        assert AccountRole.COLLABORATOR.is_referrer_eligible
        assert AccountRole.AGENT.is_referrer_eligible
        assert not AccountRole.CUSTOMER.is_referrer_eligible
        assert not AccountRole.ADMIN.is_referrer_eligible

    def test_link_owner_roles(self):
        assert AccountRole.ADMIN.can_own_links
        assert not AccountRole.CUSTOMER.can_own_links
