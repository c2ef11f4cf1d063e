"""
Affiliate settings provider.

Supplies an immutable configuration snapshot to the commission engine, link
registry and withdrawal workflow. Configuration is stored as append-only
versions; callers read one snapshot at the start of an operation and use it
for the whole transaction.
"""

import dataclasses
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_core.config.settings import Settings, settings
from affiliate_core.models.affiliate_settings import AffiliateSettings
from affiliate_core.repositories.affiliate_settings_repository import (
    AffiliateSettingsRepository,
)
from affiliate_core.services.base_service import BaseService, transaction
from affiliate_core.utils.exceptions import (
    ConcurrentModification,
    ValidationError,
)
from affiliate_core.validators.common import validate_rate

RATE_FIELDS = ("default_commission_rate", "level_two_factor", "withdrawal_fee_rate")
MONEY_FIELDS = ("min_withdrawal", "withdrawal_fee_floor")
# field -> minimum allowed value
INT_FIELDS = {
    "max_links_per_account": 1,
    "link_expiry_days": 0,
    "tracking_window_days": 1,
    "commission_hold_days": 0,
}


@dataclass(frozen=True)
class AffiliateSettingsSnapshot:
    """Immutable affiliate configuration (version 0 = built-in defaults)."""

    version: int = 0
    default_commission_rate: Decimal = Decimal("0.15")
    level_two_factor: Decimal = Decimal("0.30")
    min_withdrawal: Decimal = Decimal("100000")
    withdrawal_fee_floor: Decimal = Decimal("5000")
    withdrawal_fee_rate: Decimal = Decimal("0.02")
    max_links_per_account: int = 50
    link_expiry_days: int = 365
    tracking_window_days: int = 30
    commission_hold_days: int = 7

    @classmethod
    def from_app_settings(
        cls, app_settings: Settings | None = None
    ) -> "AffiliateSettingsSnapshot":
        """Build the default snapshot from environment configuration."""
        source = app_settings or settings
        return cls(
            version=0,
            **{name: getattr(source, name) for name in cls.setting_names()},
        )

    @classmethod
    def from_row(cls, row: AffiliateSettings) -> "AffiliateSettingsSnapshot":
        """Build snapshot from a stored settings version."""
        values = {}
        for name in cls.setting_names():
            value = getattr(row, name)
            if name in RATE_FIELDS or name in MONEY_FIELDS:
                value = Decimal(str(value))
            values[name] = value
        return cls(version=row.version, **values)

    @classmethod
    def setting_names(cls) -> tuple[str, ...]:
        """Names of configurable fields (everything except version)."""
        return tuple(
            f.name for f in dataclasses.fields(cls) if f.name != "version"
        )

    def as_dict(self) -> dict[str, Any]:
        """Snapshot values as a plain dict."""
        return dataclasses.asdict(self)


def parse_setting_changes(changes: dict[str, Any]) -> dict[str, Any]:
    """
    Validate and coerce a partial settings update.

    Args:
        changes: Field name -> new value

    Returns:
        Dict of parsed values

    Raises:
        ValidationError: Unknown field or invalid value
    """
    if not changes:
        raise ValidationError("No settings to change")

    parsed: dict[str, Any] = {}
    for name, raw in changes.items():
        if name in RATE_FIELDS:
            is_valid, value, error = validate_rate(raw)
            if not is_valid:
                raise ValidationError(f"{name}: {error}", field=name)
            parsed[name] = value
        elif name in MONEY_FIELDS:
            try:
                value = Decimal(str(raw))
            except ArithmeticError:
                raise ValidationError(f"{name}: invalid amount", field=name)
            if not value.is_finite() or value < 0:
                raise ValidationError(f"{name}: must be >= 0", field=name)
            parsed[name] = value
        elif name in INT_FIELDS:
            if isinstance(raw, bool) or not isinstance(raw, int):
                raise ValidationError(f"{name}: must be an integer", field=name)
            if raw < INT_FIELDS[name]:
                raise ValidationError(
                    f"{name}: must be >= {INT_FIELDS[name]}", field=name
                )
            parsed[name] = raw
        else:
            raise ValidationError(f"Unknown setting: {name}", field=name)
    return parsed


class SettingsProvider(BaseService):
    """Reads and publishes versioned affiliate settings."""

    def __init__(
        self,
        session: AsyncSession,
        defaults: AffiliateSettingsSnapshot | None = None,
    ) -> None:
        """
        Initialize settings provider.

        Args:
            session: Database session
            defaults: Snapshot used when no version was published
        """
        super().__init__(session)
        self.repo = AffiliateSettingsRepository(session)
        self.defaults = defaults or AffiliateSettingsSnapshot.from_app_settings()

    async def get_snapshot(self) -> AffiliateSettingsSnapshot:
        """
        Get the current settings snapshot.

        Returns:
            Latest published version, or defaults (version 0)
        """
        row = await self.repo.get_latest()
        if row is None:
            return self.defaults
        return AffiliateSettingsSnapshot.from_row(row)

    @transaction
    async def publish(
        self, changes: dict[str, Any], created_by: str | None = None
    ) -> AffiliateSettingsSnapshot:
        """
        Publish a new settings version.

        Unchanged fields are carried over from the current snapshot.

        Args:
            changes: Field name -> new value
            created_by: Operator identifier for audit

        Returns:
            The newly published snapshot

        Raises:
            ValidationError: Invalid change set
            ConcurrentModification: Another version was published concurrently
        """
        parsed = parse_setting_changes(changes)
        current = await self.get_snapshot()
        version = await self.repo.max_version() + 1

        values = {**current.as_dict(), **parsed, "version": version}
        try:
            await self.repo.create(created_by=created_by, **values)
        except IntegrityError:
            raise ConcurrentModification(
                "Settings were published concurrently", version=version
            )

        self.logger.info(
            "Affiliate settings published",
            extra={
                "version": version,
                "changed": sorted(parsed),
                "created_by": created_by,
            },
        )
        return dataclasses.replace(current, **parsed, version=version)
