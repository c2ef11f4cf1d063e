"""
Withdrawal fee calculation.

The fee is informational: it is shown to the user and stored on the request,
but the whole requested amount is reserved from the balance.
"""

from decimal import Decimal

from affiliate_core.services.commission.calculator import quantize_money


def calculate_fee(
    amount: Decimal, fee_rate: Decimal, fee_floor: Decimal
) -> Decimal:
    """
    Calculate the display fee for a withdrawal.

    Args:
        amount: Requested amount
        fee_rate: Proportional fee (fraction)
        fee_floor: Minimum fee

    Returns:
        max(amount * fee_rate, fee_floor), rounded to money precision

    Examples:
        >>> calculate_fee(Decimal("200000"), Decimal("0.02"), Decimal("5000"))
        Decimal('5000.00')
        >>> calculate_fee(Decimal("1000000"), Decimal("0.02"), Decimal("5000"))
        Decimal('20000.00')
    """
    return quantize_money(max(amount * fee_rate, fee_floor))
