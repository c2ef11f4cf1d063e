"""
Affiliate statistics service.

Dashboard projections over links, conversions, commissions and withdrawals,
plus resynchronisation of the denormalized link counters.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.config.constants import LEVEL_DIRECT, LEVEL_UPLINE
from affiliate_core.models.enums import (
    CommissionStatus,
    LinkStatus,
    WithdrawalStatus,
)
from affiliate_core.repositories.account_repository import AccountRepository
from affiliate_core.repositories.affiliate_link_repository import (
    AffiliateLinkRepository,
)
from affiliate_core.repositories.click_repository import ClickRepository
from affiliate_core.repositories.commission_repository import (
    CommissionRepository,
)
from affiliate_core.repositories.conversion_repository import (
    ConversionRepository,
)
from affiliate_core.repositories.withdrawal_repository import (
    WithdrawalRepository,
)
from affiliate_core.services.base_service import (
    BaseService,
    log_operation,
    transaction,
)
from affiliate_core.services.commission.calculator import to_decimal
from affiliate_core.services.ledger.ledger_service import LedgerService
from affiliate_core.utils.exceptions import LinkNotFound


@dataclass
class Totals:
    """Count and amount sum of one bucket."""

    count: int = 0
    amount: Decimal = Decimal("0")

    def add(self, count: int, amount: Decimal) -> None:
        self.count += count
        self.amount += amount


@dataclass
class AccountSummary:
    """Affiliate dashboard for one account."""

    account_id: int
    total_links: int
    active_links: int
    total_clicks: int
    total_conversions: int
    total_commission: Decimal
    available_balance: Decimal
    total_withdrawn: Decimal
    direct_referrals: int = 0
    by_status: dict[str, Totals] = field(default_factory=dict)
    by_level: dict[int, Totals] = field(default_factory=dict)

    @property
    def conversion_rate(self) -> Decimal:
        """Conversions per click in percent."""
        if not self.total_clicks:
            return Decimal("0")
        return (
            Decimal(self.total_conversions) / Decimal(self.total_clicks) * 100
        ).quantize(Decimal("0.01"))


@dataclass(frozen=True)
class LinkStats:
    """Counters of a single link."""

    link_id: int
    slug: str
    status: str
    total_clicks: int
    total_conversions: int
    total_commission: Decimal
    conversion_rate: Decimal


class AffiliateStatisticsService(BaseService):
    """Read projections for affiliate dashboards."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize statistics service.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.account_repo = AccountRepository(session)
        self.link_repo = AffiliateLinkRepository(session)
        self.click_repo = ClickRepository(session)
        self.conversion_repo = ConversionRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.withdrawal_repo = WithdrawalRepository(session)
        self.ledger = LedgerService(session)

    async def get_account_summary(self, account_id: int) -> AccountSummary:
        """
        Get the dashboard summary of an account.

        Args:
            account_id: Account ID

        Returns:
            AccountSummary

        Raises:
            AccountNotFound: Unknown account
        """
        balances = await self.ledger.get_balances(account_id)
        total_clicks, total_conversions = await self.link_repo.counter_totals_for_owner(
            account_id
        )
        status_counts = await self.link_repo.count_by_status(account_id)

        by_status = {status.value: Totals() for status in CommissionStatus}
        by_level = {LEVEL_DIRECT: Totals(), LEVEL_UPLINE: Totals()}
        for level, status, count, amount in await self.commission_repo.totals_for_account(
            account_id
        ):
            by_status[status].add(count, amount)
            by_level[level].add(count, amount)

        return AccountSummary(
            account_id=account_id,
            total_links=sum(status_counts.values()),
            active_links=status_counts.get(LinkStatus.ACTIVE.value, 0),
            total_clicks=total_clicks,
            total_conversions=total_conversions,
            total_commission=balances.total_commission,
            available_balance=balances.available_balance,
            total_withdrawn=balances.total_withdrawn,
            direct_referrals=await self.account_repo.count_referrals(account_id),
            by_status=by_status,
            by_level=by_level,
        )

    async def get_link_stats(self, link_id: int) -> LinkStats:
        """
        Get counters of a link.

        Raises:
            LinkNotFound: Unknown link
        """
        link = await self.link_repo.get_by_id(link_id)
        if link is None:
            raise LinkNotFound(link_id=link_id)
        await self.session.refresh(link)

        return LinkStats(
            link_id=link.id,
            slug=link.slug,
            status=link.status,
            total_clicks=link.total_clicks,
            total_conversions=link.total_conversions,
            total_commission=to_decimal(link.total_commission),
            conversion_rate=link.conversion_rate,
        )

    async def get_withdrawal_totals(
        self, account_id: int | None = None
    ) -> dict[str, Totals]:
        """
        Count and sum withdrawals per status.

        Args:
            account_id: Restrict to one account (None = all accounts)

        Returns:
            Dict status -> totals, every status present
        """
        totals = {status.value: Totals() for status in WithdrawalStatus}
        stored = await self.withdrawal_repo.totals_by_status(account_id)
        for status, (count, amount) in stored.items():
            totals[status] = Totals(count=count, amount=amount)
        return totals

    @log_operation
    @transaction
    async def sync_link_stats(self) -> int:
        """
        Recompute every link's counters from clicks and conversions.

        Returns:
            Number of links whose counters were rewritten
        """
        clicks = await self.click_repo.count_by_link()
        conversions = await self.conversion_repo.totals_by_link()

        link_ids = await self.link_repo.all_ids()
        for link_id in link_ids:
            conversion_count, commission_sum = conversions.get(
                link_id, (0, Decimal("0"))
            )
            await self.link_repo.set_counters(
                link_id,
                total_clicks=clicks.get(link_id, 0),
                total_conversions=conversion_count,
                total_commission=commission_sum,
            )

        self.logger.info(
            "Link statistics synchronised", extra={"links": len(link_ids)}
        )
        return len(link_ids)
