"""
Link registry.

CRUD over affiliate links with the registry rules: unique slugs (generated
with collision retry when not supplied), an active-link cap per owner, and
deletion only for links without conversions.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.config.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from affiliate_core.config.settings import settings
from affiliate_core.models.affiliate_link import AffiliateLink
from affiliate_core.models.enums import AccountRole, LinkStatus, LinkType
from affiliate_core.repositories.account_repository import AccountRepository
from affiliate_core.repositories.affiliate_link_repository import (
    AffiliateLinkRepository,
)
from affiliate_core.repositories.click_repository import ClickRepository
from affiliate_core.repositories.conversion_repository import (
    ConversionRepository,
)
from affiliate_core.services.base_service import BaseService, transaction
from affiliate_core.services.interfaces import CallerIdentity, CatalogGateway
from affiliate_core.services.links.slug_generator import generate_slug
from affiliate_core.services.settings_provider import (
    AffiliateSettingsSnapshot,
    SettingsProvider,
)
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
from affiliate_core.validators.common import validate_rate, validate_slug

# Marker for "argument not supplied" where None is a meaningful value
UNSET: Any = object()


def parse_link_type(link_type: LinkType | str) -> LinkType:
    """Parse link type, raising ValidationError for unknown values."""
    if isinstance(link_type, LinkType):
        return link_type
    try:
        return LinkType(str(link_type).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown link type: {link_type}", field="type")


def parse_link_status(status: LinkStatus | str) -> LinkStatus:
    """Parse link status, raising ValidationError for unknown values."""
    if isinstance(status, LinkStatus):
        return status
    try:
        return LinkStatus(str(status).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown link status: {status}", field="status")


def check_target(
    link_type: LinkType, product_id: int | None, category_id: int | None
) -> None:
    """
    Validate that the target reference matches the link type.

    Raises:
        ValidationError: Target missing or ambiguous
    """
    if link_type == LinkType.GENERAL:
        if product_id is not None or category_id is not None:
            raise ValidationError("General links cannot target a product or category")
    elif link_type == LinkType.PRODUCT:
        if product_id is None or category_id is not None:
            raise ValidationError("Product links need exactly a product id")
    elif link_type == LinkType.CATEGORY:
        if category_id is None or product_id is not None:
            raise ValidationError("Category links need exactly a category id")


class LinkRegistry(BaseService):
    """Owns affiliate link records."""

    def __init__(
        self,
        session: AsyncSession,
        catalog: CatalogGateway,
        snapshot: AffiliateSettingsSnapshot | None = None,
        slug_max_attempts: int | None = None,
    ) -> None:
        """
        Initialize link registry.

        Args:
            session: Database session
            catalog: Catalog gateway for target validation
            snapshot: Fixed settings snapshot (read per operation if None)
            slug_max_attempts: Generated slug collision retries
        """
        super().__init__(session)
        self.catalog = catalog
        self.snapshot = snapshot
        self.slug_max_attempts = slug_max_attempts or settings.slug_max_attempts
        self.link_repo = AffiliateLinkRepository(session)
        self.account_repo = AccountRepository(session)
        self.click_repo = ClickRepository(session)
        self.conversion_repo = ConversionRepository(session)

    async def create_link(
        self,
        owner_id: int,
        link_type: LinkType | str,
        title: str,
        product_id: int | None = None,
        category_id: int | None = None,
        slug: str | None = None,
        description: str | None = None,
        commission_rate: Decimal | str | None = None,
        expires_at: datetime | None = None,
    ) -> AffiliateLink:
        """
        Create an affiliate link.

        Args:
            owner_id: Owner account ID
            link_type: GENERAL, PRODUCT or CATEGORY
            title: Display title
            product_id: Target product (PRODUCT links)
            category_id: Target category (CATEGORY links)
            slug: Explicit slug, generated if None
            description: Optional description
            commission_rate: Optional per-link rate override (0..1)
            expires_at: Optional expiry, defaults from link_expiry_days

        Returns:
            Created link

        Raises:
            ValidationError: Malformed input
            AccountNotFound: Owner does not exist
            AccountNotEligible: Owner inactive or role cannot own links
            CatalogTargetNotFound: Target product/category missing
            LinkLimitExceeded: Active-link cap reached
            SlugTaken: Slug already used
        """
        parsed_type = parse_link_type(link_type)
        check_target(parsed_type, product_id, category_id)

        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required", field="title")

        if slug is not None:
            is_valid, slug, error = validate_slug(slug)
            if not is_valid:
                raise ValidationError(error, field="slug")

        rate = None
        if commission_rate is not None:
            is_valid, rate, error = validate_rate(commission_rate)
            if not is_valid:
                raise ValidationError(error, field="commission_rate")

        if expires_at is not None and ensure_utc(expires_at) <= utc_now():
            raise ValidationError("Expiry must be in the future", field="expires_at")

        return await self._create_link(
            owner_id=owner_id,
            link_type=parsed_type,
            title=title,
            product_id=product_id,
            category_id=category_id,
            slug=slug,
            description=description,
            commission_rate=rate,
            expires_at=expires_at,
        )

    @transaction
    async def _create_link(
        self,
        owner_id: int,
        link_type: LinkType,
        title: str,
        product_id: int | None,
        category_id: int | None,
        slug: str | None,
        description: str | None,
        commission_rate: Decimal | None,
        expires_at: datetime | None,
    ) -> AffiliateLink:
        # Lock owner so concurrent creations serialize on the cap check
        owner = await self.account_repo.get_for_update(owner_id)
        if owner is None:
            raise AccountNotFound(account_id=owner_id)
        if not owner.is_active or not owner.role_enum.can_own_links:
            raise AccountNotEligible(
                "Account cannot create affiliate links",
                account_id=owner_id,
                role=owner.role,
                status=owner.status,
            )

        await self._check_catalog_target(link_type, product_id, category_id)

        snapshot = await self._get_snapshot()
        active_count = await self.link_repo.count_active_for_owner(owner_id)
        if active_count >= snapshot.max_links_per_account:
            raise LinkLimitExceeded(
                account_id=owner_id, limit=snapshot.max_links_per_account
            )

        if slug is None:
            slug = await self._generate_unique_slug(owner_id)
        elif await self.link_repo.slug_exists(slug):
            raise SlugTaken(slug=slug)

        if expires_at is None and snapshot.link_expiry_days > 0:
            expires_at = utc_now() + timedelta(days=snapshot.link_expiry_days)

        try:
            link = await self.link_repo.create(
                account_id=owner_id,
                slug=slug,
                title=title,
                description=description,
                type=link_type.value,
                product_id=product_id,
                category_id=category_id,
                status=LinkStatus.ACTIVE.value,
                commission_rate=commission_rate,
                expires_at=expires_at,
            )
        except IntegrityError:
            raise SlugTaken(slug=slug)

        self.logger.info(
            "Affiliate link created",
            extra={
                "link_id": link.id,
                "account_id": owner_id,
                "slug": slug,
                "type": link_type.value,
            },
        )
        return link

    @transaction
    async def update_link(
        self,
        link_id: int,
        actor: CallerIdentity,
        title: str | None = None,
        description: str | None = None,
        status: LinkStatus | str | None = None,
        commission_rate: Decimal | str | None = UNSET,
        expires_at: datetime | None = UNSET,
    ) -> AffiliateLink:
        """
        Update mutable link fields.

        Passing None for commission_rate or expires_at clears them; omit the
        argument to leave them unchanged. Reactivation counts against the
        active-link cap.

        Args:
            link_id: Link ID
            actor: Caller (owner or ADMIN)
            title: New title
            description: New description
            status: New status
            commission_rate: New override rate or None to clear
            expires_at: New expiry or None for no expiry

        Returns:
            Updated link

        Raises:
            LinkNotFound, PermissionDenied, ValidationError, LinkLimitExceeded
        """
        link = await self._get_managed_link(link_id, actor)
        changes: dict[str, Any] = {}

        if title is not None:
            title = title.strip()
            if not title:
                raise ValidationError("Title is required", field="title")
            changes["title"] = title

        if description is not None:
            changes["description"] = description

        if status is not None:
            new_status = parse_link_status(status)
            if new_status == LinkStatus.ACTIVE and not link.is_active:
                snapshot = await self._get_snapshot()
                active_count = await self.link_repo.count_active_for_owner(
                    link.account_id
                )
                if active_count >= snapshot.max_links_per_account:
                    raise LinkLimitExceeded(
                        account_id=link.account_id,
                        limit=snapshot.max_links_per_account,
                    )
            changes["status"] = new_status.value

        if commission_rate is not UNSET:
            if commission_rate is None:
                changes["commission_rate"] = None
            else:
                is_valid, rate, error = validate_rate(commission_rate)
                if not is_valid:
                    raise ValidationError(error, field="commission_rate")
                changes["commission_rate"] = rate

        if expires_at is not UNSET:
            changes["expires_at"] = expires_at

        if not changes:
            return link

        link = await self.link_repo.update(link.id, **changes)
        self.logger.info(
            "Affiliate link updated",
            extra={
                "link_id": link_id,
                "actor_id": actor.account_id,
                "fields": sorted(changes),
            },
        )
        return link

    async def deactivate_link(
        self, link_id: int, actor: CallerIdentity
    ) -> AffiliateLink:
        """Deactivate a link (the safe alternative to deletion)."""
        return await self.update_link(
            link_id, actor, status=LinkStatus.INACTIVE
        )

    @transaction
    async def delete_link(self, link_id: int, actor: CallerIdentity) -> None:
        """
        Delete a link and its clicks.

        Raises:
            LinkNotFound: Link does not exist
            PermissionDenied: Caller is neither owner nor ADMIN
            HasConversions: Link has recorded conversions
        """
        link = await self._get_managed_link(link_id, actor)

        if await self.conversion_repo.has_for_link(link.id):
            raise HasConversions(link_id=link.id)

        clicks_deleted = await self.click_repo.delete_for_link(link.id)
        await self.link_repo.delete(link.id)
        self.session.expunge(link)

        self.logger.info(
            "Affiliate link deleted",
            extra={
                "link_id": link_id,
                "actor_id": actor.account_id,
                "clicks_deleted": clicks_deleted,
            },
        )

    async def get_by_slug(self, slug: str) -> AffiliateLink:
        """
        Get link by slug.

        Raises:
            LinkNotFound: No link with that slug
        """
        link = await self.link_repo.get_by_slug(slug.strip().lower())
        if link is None:
            raise LinkNotFound(slug=slug)
        return link

    async def list_for_owner(
        self,
        owner_id: int,
        status: LinkStatus | None = None,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[list[AffiliateLink], int]:
        """
        List an owner's links, newest first.

        Returns:
            Tuple of (links, total_count)
        """
        page = max(page, 1)
        per_page = min(max(per_page, 1), MAX_PAGE_SIZE)
        return await self.link_repo.list_for_owner(
            owner_id, status=status, page=page, per_page=per_page
        )

    async def _get_managed_link(
        self, link_id: int, actor: CallerIdentity
    ) -> AffiliateLink:
        link = await self.link_repo.get_by_id(link_id)
        if link is None:
            raise LinkNotFound(link_id=link_id)
        if not actor.can_manage(link.account_id):
            raise PermissionDenied(link_id=link_id, actor_id=actor.account_id)
        return link

    async def _check_catalog_target(
        self,
        link_type: LinkType,
        product_id: int | None,
        category_id: int | None,
    ) -> None:
        if link_type == LinkType.PRODUCT:
            if await self.catalog.get_product(product_id) is None:
                raise CatalogTargetNotFound(product_id=product_id)
        elif link_type == LinkType.CATEGORY:
            if await self.catalog.get_category(category_id) is None:
                raise CatalogTargetNotFound(category_id=category_id)

    async def _generate_unique_slug(self, owner_id: int) -> str:
        for _ in range(self.slug_max_attempts):
            candidate = generate_slug(owner_id)
            if not await self.link_repo.slug_exists(candidate):
                return candidate
        raise SlugTaken(
            "Could not generate a unique slug, please retry",
            attempts=self.slug_max_attempts,
        )

    async def _get_snapshot(self) -> AffiliateSettingsSnapshot:
        if self.snapshot is not None:
            return self.snapshot
        return await SettingsProvider(self.session).get_snapshot()
