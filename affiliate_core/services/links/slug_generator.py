"""
Slug generation for affiliate links.

Generated slugs look like ``{owner-suffix}-{time36}-{random}``; uniqueness is
checked by the registry, which retries with a fresh candidate on collision.
"""

import secrets
import string
import time

from affiliate_core.config.constants import GENERATED_SLUG_SUFFIX_LENGTH

_ALPHABET = string.ascii_lowercase + string.digits
_BASE36 = string.digits + string.ascii_lowercase


def to_base36(number: int) -> str:
    """
    Encode a non-negative integer in lowercase base 36.

    Examples:
        >>> to_base36(0)
        '0'
        >>> to_base36(35)
        'z'
        >>> to_base36(36)
        '10'
    """
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return "0"

    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_slug(owner_id: int, now_ms: int | None = None) -> str:
    """
    Generate a candidate slug for an owner.

    Args:
        owner_id: Link owner account ID
        now_ms: Millisecond timestamp (defaults to current time)

    Returns:
        Lowercase slug matching SLUG_PATTERN
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    owner_part = str(owner_id)[-4:]
    random_part = "".join(
        secrets.choice(_ALPHABET) for _ in range(GENERATED_SLUG_SUFFIX_LENGTH)
    )
    return f"{owner_part}-{to_base36(now_ms)}-{random_part}"
