"""
Commission arithmetic.

Pure functions: rate resolution and amount rounding. No I/O.
"""

from decimal import ROUND_HALF_UP, Decimal

from affiliate_core.config.constants import MONEY_QUANTUM, RATE_QUANTUM


def quantize_money(value: Decimal) -> Decimal:
    """Round to the stored money precision (half up)."""
    return Decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def quantize_rate(value: Decimal) -> Decimal:
    """Round to the stored rate precision (half up)."""
    return Decimal(value).quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)


def to_decimal(value: Decimal | float | int | str | None) -> Decimal | None:
    """Normalize database numerics (floats on some drivers) to Decimal."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def resolve_level_one_rate(
    link_rate: Decimal | None,
    account_rate: Decimal | None,
    default_rate: Decimal,
) -> Decimal:
    """
    Resolve the direct commission rate.

    Precedence: link override, then the payee's account rate, then the
    configured default.

    Examples:
        >>> resolve_level_one_rate(Decimal("0.2"), Decimal("0.1"), Decimal("0.15"))
        Decimal('0.200000')
        >>> resolve_level_one_rate(None, None, Decimal("0.15"))
        Decimal('0.150000')
    """
    for candidate in (link_rate, account_rate):
        if candidate is not None:
            return quantize_rate(to_decimal(candidate))
    return quantize_rate(default_rate)


def resolve_level_two_rate(
    upline_rate: Decimal | None,
    default_rate: Decimal,
    level_two_factor: Decimal,
) -> Decimal:
    """
    Resolve the upline override rate: a fraction of the upline's own rate.

    The product is returned unrounded so the amount is computed from the
    exact rate; round with quantize_rate() only for storage.

    Examples:
        >>> resolve_level_two_rate(Decimal("0.10"), Decimal("0.15"), Decimal("0.30"))
        Decimal('0.0300')
    """
    base = to_decimal(upline_rate) if upline_rate is not None else default_rate
    return base * level_two_factor


def commission_amount(order_value: Decimal, rate: Decimal) -> Decimal:
    """
    Commission for an order at a rate.

    Examples:
        >>> commission_amount(Decimal("1000000"), Decimal("0.15"))
        Decimal('150000.00')
    """
    return quantize_money(order_value * rate)
