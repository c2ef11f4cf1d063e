"""
Common validators for service input.

Each validator returns a tuple of (is_valid, parsed_value, error_message).
Services turn a failed tuple into ValidationError before any transaction
opens.
"""

from decimal import Decimal, InvalidOperation

from affiliate_core.config.constants import SLUG_PATTERN


def _to_decimal(value: str | int | Decimal) -> Decimal | None:
    """Parse user-supplied numbers, accepting a comma decimal separator."""
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if not isinstance(value, str):
        return None

    value = value.strip().replace(",", ".")
    if not value:
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        return None


def validate_amount(
    amount: str | int | Decimal | None,
    min_val: Decimal | None = None,
    max_val: Decimal | None = None,
) -> tuple[bool, Decimal | None, str | None]:
    """
    Validate a monetary amount.

    Args:
        amount: Amount to validate (string, int or Decimal)
        min_val: Minimum allowed value (optional)
        max_val: Maximum allowed value (optional)

    Returns:
        Tuple of (is_valid, parsed_value, error_message)

    Examples:
        >>> validate_amount("150000")
        (True, Decimal('150000'), None)
        >>> validate_amount("-10")
        (False, None, 'Amount must be positive')
    """
    if amount is None or amount == "":
        return False, None, "Amount is empty"

    value = _to_decimal(amount)
    if value is None:
        return False, None, "Invalid amount format"

    if not value.is_finite():
        return False, None, "Amount must be a finite number"

    if value <= 0:
        return False, None, "Amount must be positive"

    # Stored as DECIMAL(18, 2)
    if value.as_tuple().exponent < -2:
        return False, None, "Amount has too many decimal places (maximum 2)"

    if min_val is not None and value < min_val:
        return False, None, f"Amount must be >= {min_val}"

    if max_val is not None and value > max_val:
        return False, None, f"Amount must be <= {max_val}"

    return True, value, None


def validate_rate(
    rate: str | int | Decimal | None,
) -> tuple[bool, Decimal | None, str | None]:
    """
    Validate a commission rate expressed as a fraction.

    Args:
        rate: Rate to validate, 0..1 inclusive

    Returns:
        Tuple of (is_valid, parsed_rate, error_message)

    Examples:
        >>> validate_rate("0.15")
        (True, Decimal('0.15'), None)
        >>> validate_rate("15")
        (False, None, 'Rate must be between 0 and 1')
    """
    if rate is None or rate == "":
        return False, None, "Rate is empty"

    value = _to_decimal(rate)
    if value is None or not value.is_finite():
        return False, None, "Invalid rate format"

    if value < 0 or value > 1:
        return False, None, "Rate must be between 0 and 1"

    if value.as_tuple().exponent < -6:
        return False, None, "Rate has too many decimal places (maximum 6)"

    return True, value, None


def validate_slug(slug: str | None) -> tuple[bool, str | None, str | None]:
    """
    Validate and normalize an explicitly supplied link slug.

    Args:
        slug: Slug string

    Returns:
        Tuple of (is_valid, normalized_slug, error_message)
    """
    if not slug or not isinstance(slug, str):
        return False, None, "Slug is empty"

    slug = slug.strip().lower()

    if not SLUG_PATTERN.match(slug):
        return (
            False,
            None,
            "Slug must be 3-64 characters of lowercase letters, digits and dashes",
        )

    return True, slug, None


def validate_order_id(order_id: str | int | None) -> tuple[bool, str | None, str | None]:
    """
    Validate an external order identifier.

    Args:
        order_id: Order id from the checkout flow

    Returns:
        Tuple of (is_valid, normalized_order_id, error_message)
    """
    if order_id is None or isinstance(order_id, bool):
        return False, None, "Order id is empty"

    order_id = str(order_id).strip()
    if not order_id:
        return False, None, "Order id is empty"

    if len(order_id) > 64:
        return False, None, "Order id is too long (maximum 64 characters)"

    return True, order_id, None
