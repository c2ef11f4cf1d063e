"""
Attribution service.

Entry points of the attribution tracker: link visits (click + tracking
session) and the order-completion hook. ``attribute_order`` is idempotent per
(link, order): retries return the first result and never re-credit balances.
"""

import secrets
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from enum import Enum

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.models.affiliate_conversion import AffiliateConversion
from affiliate_core.models.commission import Commission
from affiliate_core.repositories.account_repository import AccountRepository
from affiliate_core.repositories.affiliate_link_repository import (
    AffiliateLinkRepository,
)
from affiliate_core.repositories.commission_repository import (
    CommissionRepository,
)
from affiliate_core.repositories.conversion_repository import (
    ConversionRepository,
)
from affiliate_core.services.attribution.click_tracker import (
    ClickResult,
    ClickTracker,
)
from affiliate_core.services.attribution.tracking_store import (
    TrackingSession,
    TrackingStore,
)
from affiliate_core.services.base_service import BaseService, transaction
from affiliate_core.services.commission.calculator import to_decimal
from affiliate_core.services.commission.commission_engine import (
    CommissionEngine,
)
from affiliate_core.services.interfaces import CatalogGateway, ClientInfo
from affiliate_core.services.links.redirect_resolver import RedirectResolver
from affiliate_core.services.settings_provider import (
    AffiliateSettingsSnapshot,
    SettingsProvider,
)
from affiliate_core.utils.datetime_utils import utc_now
from affiliate_core.utils.exceptions import DuplicateConversion, ValidationError
from affiliate_core.validators.common import validate_amount, validate_order_id


class AttributionOutcome(str, Enum):
    """How an order-completion call was resolved."""

    ATTRIBUTED = "ATTRIBUTED"
    ALREADY_ATTRIBUTED = "ALREADY_ATTRIBUTED"
    NO_ATTRIBUTION = "NO_ATTRIBUTION"
    PAYEE_INACTIVE = "PAYEE_INACTIVE"


@dataclass(frozen=True)
class RecordedCommission:
    """Commission row as reported to the checkout flow."""

    commission_id: int
    account_id: int
    level: int
    rate: Decimal
    amount: Decimal
    status: str

    @classmethod
    def from_model(cls, commission: Commission) -> "RecordedCommission":
        return cls(
            commission_id=commission.id,
            account_id=commission.account_id,
            level=commission.level,
            rate=to_decimal(commission.commission_rate),
            amount=to_decimal(commission.amount),
            status=commission.status,
        )


@dataclass(frozen=True)
class ConversionResult:
    """Result of attribute_order."""

    outcome: AttributionOutcome
    order_id: str
    link_id: int | None = None
    conversion_id: int | None = None
    commission_rate: Decimal | None = None
    commission_amount: Decimal | None = None
    commissions: tuple[RecordedCommission, ...] = field(default_factory=tuple)

    @property
    def created(self) -> bool:
        """True only for the call that recorded the conversion."""
        return self.outcome == AttributionOutcome.ATTRIBUTED

    @property
    def is_attributed(self) -> bool:
        """True if a conversion exists for the order (new or earlier)."""
        return self.conversion_id is not None


@dataclass(frozen=True)
class VisitResult:
    """Click plus tracking session for a link visit."""

    click: ClickResult
    tracking: TrackingSession

    @property
    def redirect_url(self) -> str:
        return self.click.redirect_url


class AttributionService(BaseService):
    """Link visits and order attribution."""

    def __init__(
        self,
        session: AsyncSession,
        tracking_store: TrackingStore,
        catalog: CatalogGateway,
        snapshot: AffiliateSettingsSnapshot | None = None,
        redirect_resolver: RedirectResolver | None = None,
    ) -> None:
        """
        Initialize attribution service.

        Args:
            session: Database session
            tracking_store: Ephemeral tracking session storage
            catalog: Catalog gateway for redirects
            snapshot: Fixed settings snapshot (read per operation if None)
            redirect_resolver: Custom redirect resolver
        """
        super().__init__(session)
        self.tracking_store = tracking_store
        self.snapshot = snapshot
        self.click_tracker = ClickTracker(session, catalog, redirect_resolver)
        self.link_repo = AffiliateLinkRepository(session)
        self.account_repo = AccountRepository(session)
        self.conversion_repo = ConversionRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.engine = CommissionEngine(session)

    async def record_click(
        self, slug: str, client: ClientInfo | None = None
    ) -> ClickResult:
        """Record a click (see ClickTracker.record_click)."""
        return await self.click_tracker.record_click(slug, client)

    async def begin_tracking_session(self, slug: str) -> TrackingSession:
        """
        Start an attribution window for a buyer session.

        Args:
            slug: Visited link slug

        Returns:
            TrackingSession whose token the caller stores client-side

        Raises:
            LinkNotFound, LinkInactive, LinkExpired
        """
        link, owner = await self.click_tracker.get_visitable_link(slug)
        snapshot = await self._get_snapshot()

        now = utc_now()
        window = timedelta(days=snapshot.tracking_window_days)
        tracking = TrackingSession(
            token=secrets.token_urlsafe(24),
            link_id=link.id,
            account_id=owner.id,
            created_at=now,
            expires_at=now + window,
        )
        await self.tracking_store.put(
            tracking.token,
            tracking.to_payload(),
            ttl_seconds=int(window.total_seconds()),
        )

        self.logger.info(
            "Tracking session started",
            extra={"link_id": link.id, "account_id": owner.id},
        )
        return tracking

    async def visit(
        self, slug: str, client: ClientInfo | None = None
    ) -> VisitResult:
        """
        Handle a public link visit: record the click, start tracking.

        Args:
            slug: Visited link slug
            client: Coarse client metadata

        Returns:
            VisitResult with redirect URL and tracking token
        """
        click = await self.record_click(slug, client)
        tracking = await self.begin_tracking_session(slug)
        return VisitResult(click=click, tracking=tracking)

    async def attribute_order(
        self,
        token: str | None,
        order_id: str,
        order_value: Decimal | str,
        buyer_account_id: int | None = None,
    ) -> ConversionResult:
        """
        Order-completion hook.

        Args:
            token: Tracking token from the buyer session (None if absent)
            order_id: Order ID
            order_value: Order value
            buyer_account_id: Buyer account (None for guests)

        Returns:
            ConversionResult

        Raises:
            ValidationError: Empty order id or non-positive value
            DuplicateConversion: Order already credited to the payee through
                a different link
        """
        is_valid, order_id, error = validate_order_id(order_id)
        if not is_valid:
            raise ValidationError(error, field="order_id")
        is_valid, value, error = validate_amount(order_value)
        if not is_valid:
            raise ValidationError(error, field="order_value")

        tracking = await self._load_tracking(token)
        if tracking is None:
            self.logger.debug(
                "Order without affiliate tracking", extra={"order_id": order_id}
            )
            return ConversionResult(
                outcome=AttributionOutcome.NO_ATTRIBUTION, order_id=order_id
            )

        try:
            return await self._record_conversion(
                tracking, order_id, value, buyer_account_id
            )
        except DuplicateConversion:
            # Lost the race to a concurrent attempt: return the winner's result
            existing = await self.conversion_repo.get_by_link_order(
                tracking.link_id, order_id
            )
            if existing is None:
                raise
            self.logger.info(
                "Concurrent attribution resolved to existing conversion",
                extra={"order_id": order_id, "conversion_id": existing.id},
            )
            return await self._existing_result(existing)

    @transaction
    async def _record_conversion(
        self,
        tracking: TrackingSession,
        order_id: str,
        order_value: Decimal,
        buyer_account_id: int | None,
    ) -> ConversionResult:
        link = await self.link_repo.get_by_id(tracking.link_id)
        if link is None:
            return ConversionResult(
                outcome=AttributionOutcome.NO_ATTRIBUTION, order_id=order_id
            )

        # A failed flush expires loaded instances
        link_id = link.id
        existing = await self.conversion_repo.get_by_link_order(link_id, order_id)
        if existing is not None:
            return await self._existing_result(existing)

        snapshot = await self._get_snapshot()
        plan = await self.engine.plan(link, order_value, buyer_account_id, snapshot)
        direct = plan.direct
        if direct is None:
            return ConversionResult(
                outcome=AttributionOutcome.PAYEE_INACTIVE,
                order_id=order_id,
                link_id=link_id,
            )

        now = utc_now()
        try:
            conversion = await self.conversion_repo.create(
                link_id=link_id,
                order_id=order_id,
                buyer_account_id=buyer_account_id,
                order_value=order_value,
                commission_rate=direct.rate,
                commission_amount=direct.amount,
                converted_at=now,
            )
        except IntegrityError:
            raise DuplicateConversion(link_id=link_id, order_id=order_id)

        commissions = await self.engine.record(conversion, plan)
        await self.link_repo.increment_conversions(link_id, direct.amount, now)

        self.logger.info(
            "Order attributed",
            extra={
                "order_id": order_id,
                "link_id": link_id,
                "conversion_id": conversion.id,
                "order_value": str(order_value),
                "commission_amount": str(direct.amount),
                "levels": len(commissions),
            },
        )
        return ConversionResult(
            outcome=AttributionOutcome.ATTRIBUTED,
            order_id=order_id,
            link_id=link_id,
            conversion_id=conversion.id,
            commission_rate=direct.rate,
            commission_amount=direct.amount,
            commissions=tuple(
                RecordedCommission.from_model(c) for c in commissions
            ),
        )

    async def _existing_result(
        self, conversion: AffiliateConversion
    ) -> ConversionResult:
        commissions = await self.commission_repo.list_for_conversion(conversion.id)
        return ConversionResult(
            outcome=AttributionOutcome.ALREADY_ATTRIBUTED,
            order_id=conversion.order_id,
            link_id=conversion.link_id,
            conversion_id=conversion.id,
            commission_rate=to_decimal(conversion.commission_rate),
            commission_amount=to_decimal(conversion.commission_amount),
            commissions=tuple(
                RecordedCommission.from_model(c) for c in commissions
            ),
        )

    async def _load_tracking(self, token: str | None) -> TrackingSession | None:
        if not token:
            return None

        payload = await self.tracking_store.get(token)
        if payload is None:
            return None

        try:
            tracking = TrackingSession.from_payload(token, payload)
        except (KeyError, TypeError, ValueError):
            self.logger.warning("Malformed tracking payload ignored")
            return None

        if tracking.is_expired:
            self.logger.debug(
                "Tracking session expired",
                extra={"link_id": tracking.link_id},
            )
            return None
        return tracking

    async def _get_snapshot(self) -> AffiliateSettingsSnapshot:
        if self.snapshot is not None:
            return self.snapshot
        return await SettingsProvider(self.session).get_snapshot()
