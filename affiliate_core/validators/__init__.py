"""
Validators package.

Provides common validation functions for service input.
"""

from affiliate_core.validators.common import (
    validate_amount,
    validate_order_id,
    validate_rate,
    validate_slug,
)


__all__ = [
    "validate_amount",
    "validate_rate",
    "validate_slug",
    "validate_order_id",
]
