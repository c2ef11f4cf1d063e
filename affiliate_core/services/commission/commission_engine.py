"""
Commission engine.

Computes the level-1 commission for the link owner and the optional level-2
override for the owner's upline, inserts the PENDING rows and accrues
total_commission for each payee. Runs inside the attribution transaction.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.config.constants import LEVEL_DIRECT, LEVEL_UPLINE
from affiliate_core.models.account import Account
from affiliate_core.models.affiliate_conversion import AffiliateConversion
from affiliate_core.models.affiliate_link import AffiliateLink
from affiliate_core.models.commission import Commission
from affiliate_core.models.enums import CommissionStatus
from affiliate_core.repositories.account_repository import AccountRepository
from affiliate_core.repositories.commission_repository import (
    CommissionRepository,
)
from affiliate_core.services.base_service import BaseService
from affiliate_core.services.commission.calculator import (
    commission_amount,
    quantize_rate,
    resolve_level_one_rate,
    resolve_level_two_rate,
)
from affiliate_core.services.ledger.ledger_service import LedgerService
from affiliate_core.services.settings_provider import AffiliateSettingsSnapshot
from affiliate_core.utils.exceptions import DuplicateConversion


@dataclass(frozen=True)
class CommissionLine:
    """One planned (or recorded) commission."""

    account_id: int
    level: int
    rate: Decimal
    amount: Decimal
    referred_account_id: int | None = None


@dataclass(frozen=True)
class CommissionPlan:
    """Commissions an order would produce."""

    order_value: Decimal
    lines: tuple[CommissionLine, ...]

    @property
    def direct(self) -> CommissionLine | None:
        """Level-1 line, if any."""
        for line in self.lines:
            if line.level == LEVEL_DIRECT:
                return line
        return None


class CommissionEngine(BaseService):
    """Plans and records commissions for a conversion."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize commission engine.

        Args:
            session: Database session (transaction owned by caller)
        """
        super().__init__(session)
        self.account_repo = AccountRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.ledger = LedgerService(session)

    async def plan(
        self,
        link: AffiliateLink,
        order_value: Decimal,
        buyer_account_id: int | None,
        snapshot: AffiliateSettingsSnapshot,
    ) -> CommissionPlan:
        """
        Compute the commissions an order produces, without writing.

        The level-1 payee is the link owner; an inactive payee yields an empty
        plan. The level-2 payee is the owner's upline when it is active and
        referrer-eligible. Never deeper than two levels.

        Args:
            link: Attributed link
            order_value: Order value
            buyer_account_id: Buyer account (None for guests)
            snapshot: Settings in effect for this transaction

        Returns:
            CommissionPlan
        """
        payee = await self.account_repo.get_by_id(link.account_id)
        if payee is None or not payee.is_active:
            self.logger.warning(
                "Level-1 payee inactive, no commission",
                extra={"link_id": link.id, "account_id": link.account_id},
            )
            return CommissionPlan(order_value=order_value, lines=())

        direct_rate = resolve_level_one_rate(
            link.commission_rate,
            payee.commission_rate,
            snapshot.default_commission_rate,
        )
        lines = [
            CommissionLine(
                account_id=payee.id,
                level=LEVEL_DIRECT,
                rate=direct_rate,
                amount=commission_amount(order_value, direct_rate),
                referred_account_id=buyer_account_id,
            )
        ]

        upline = await self._eligible_upline(payee)
        if upline is not None:
            upline_rate = resolve_level_two_rate(
                upline.commission_rate,
                snapshot.default_commission_rate,
                snapshot.level_two_factor,
            )
            lines.append(
                CommissionLine(
                    account_id=upline.id,
                    level=LEVEL_UPLINE,
                    rate=quantize_rate(upline_rate),
                    amount=commission_amount(order_value, upline_rate),
                    referred_account_id=payee.id,
                )
            )

        return CommissionPlan(order_value=order_value, lines=tuple(lines))

    async def record(
        self,
        conversion: AffiliateConversion,
        plan: CommissionPlan,
    ) -> list[Commission]:
        """
        Insert PENDING commission rows and accrue each payee's total.

        Args:
            conversion: Conversion the commissions belong to
            plan: Planned commission lines

        Returns:
            Created commissions, level order

        Raises:
            DuplicateConversion: A commission for this order and level
                already exists for the payee
        """
        # A failed flush expires loaded instances
        order_id = conversion.order_id
        conversion_id = conversion.id

        commissions = []
        for line in plan.lines:
            try:
                commission = await self.commission_repo.create(
                    account_id=line.account_id,
                    order_id=order_id,
                    conversion_id=conversion_id,
                    referred_account_id=line.referred_account_id,
                    level=line.level,
                    order_amount=plan.order_value,
                    commission_rate=line.rate,
                    amount=line.amount,
                    status=CommissionStatus.PENDING.value,
                )
            except IntegrityError:
                raise DuplicateConversion(
                    "Commission already recorded for this order",
                    order_id=order_id,
                    account_id=line.account_id,
                    level=line.level,
                )

            await self.ledger.accrue_commission(
                line.account_id,
                line.amount,
                reason=f"order:{order_id}:L{line.level}",
            )
            commissions.append(commission)

            self.logger.info(
                "Commission accrued",
                extra={
                    "commission_id": commission.id,
                    "account_id": line.account_id,
                    "order_id": order_id,
                    "level": line.level,
                    "rate": str(line.rate),
                    "amount": str(line.amount),
                },
            )

        return commissions

    async def _eligible_upline(self, payee: Account) -> Account | None:
        upline = await self.account_repo.get_upline(payee)
        if upline is None or upline.id == payee.id:
            return None
        if not upline.is_referrer_eligible:
            self.logger.debug(
                "Upline not eligible for level-2 override",
                extra={
                    "account_id": payee.id,
                    "upline_id": upline.id,
                    "role": upline.role,
                    "status": upline.status,
                },
            )
            return None
        return upline
