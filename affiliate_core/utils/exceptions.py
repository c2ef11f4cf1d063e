"""
Exception handling utilities.

Defines categorized, structured exception types. Every error raised by the
services carries a kind (how callers should react), a stable code and a human
message; raw storage exceptions are never surfaced.
"""

from enum import Enum
from typing import Any

from sqlalchemy.exc import IntegrityError, OperationalError


class ErrorKind(str, Enum):
    """Error categories based on handling strategy."""

    VALIDATION = "validation"
    CONFLICT = "conflict"
    PRECONDITION = "precondition"
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    STORAGE = "storage"


class AffiliateError(Exception):
    """Base class for all affiliate engine errors."""

    kind: ErrorKind = ErrorKind.PRECONDITION
    code: str = "affiliate_error"
    default_message: str = "Affiliate operation failed"

    def __init__(self, message: str | None = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize error for API responses.

        Returns:
            Dict with kind, code, message and details
        """
        return {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "details": {k: str(v) for k, v in self.details.items()},
        }


# Validation


class ValidationError(AffiliateError):
    kind = ErrorKind.VALIDATION
    code = "validation_error"
    default_message = "Invalid input"


# Not found


class AccountNotFound(AffiliateError):
    kind = ErrorKind.NOT_FOUND
    code = "account_not_found"
    default_message = "Account not found"


class LinkNotFound(AffiliateError):
    kind = ErrorKind.NOT_FOUND
    code = "link_not_found"
    default_message = "Affiliate link not found"


class BankAccountNotFound(AffiliateError):
    kind = ErrorKind.NOT_FOUND
    code = "bank_account_not_found"
    default_message = "Bank account not found or does not belong to you"


class CatalogTargetNotFound(AffiliateError):
    kind = ErrorKind.NOT_FOUND
    code = "catalog_target_not_found"
    default_message = "Product or category not found"


class WithdrawalNotFound(AffiliateError):
    kind = ErrorKind.NOT_FOUND
    code = "withdrawal_not_found"
    default_message = "Withdrawal not found"


class CommissionNotFound(AffiliateError):
    kind = ErrorKind.NOT_FOUND
    code = "commission_not_found"
    default_message = "Commission not found"


# Preconditions


class LinkInactive(AffiliateError):
    code = "link_inactive"
    default_message = "Affiliate link is inactive"


class LinkExpired(AffiliateError):
    code = "link_expired"
    default_message = "Affiliate link has expired"


class LinkLimitExceeded(AffiliateError):
    code = "link_limit_exceeded"
    default_message = "Maximum number of active links reached"


class HasConversions(AffiliateError):
    code = "has_conversions"
    default_message = (
        "Link has recorded conversions and cannot be deleted; deactivate it instead"
    )


class AccountNotEligible(AffiliateError):
    code = "account_not_eligible"
    default_message = "Account is not eligible for this operation"


class InsufficientBalance(AffiliateError):
    code = "insufficient_balance"
    default_message = "Insufficient balance"


class InvalidStatusTransition(AffiliateError):
    code = "invalid_status_transition"
    default_message = "Status transition is not allowed"


# Conflicts


class SlugTaken(AffiliateError):
    kind = ErrorKind.CONFLICT
    code = "slug_taken"
    default_message = "Slug already exists"


class BankAccountExists(AffiliateError):
    kind = ErrorKind.CONFLICT
    code = "bank_account_exists"
    default_message = "This bank account is already registered"


class PendingWithdrawalExists(AffiliateError):
    kind = ErrorKind.CONFLICT
    code = "pending_withdrawal_exists"
    default_message = (
        "You have a pending withdrawal request. "
        "Please wait for it to be processed."
    )


class AlreadyProcessed(AffiliateError):
    kind = ErrorKind.CONFLICT
    code = "already_processed"
    default_message = "Request has already been processed"


class DuplicateConversion(AffiliateError):
    kind = ErrorKind.CONFLICT
    code = "duplicate_conversion"
    default_message = "Order has already been attributed to this link"


class ReferrerAlreadySet(AffiliateError):
    kind = ErrorKind.CONFLICT
    code = "referrer_already_set"
    default_message = "Referrer can only be set once"


class ConcurrentModification(AffiliateError):
    kind = ErrorKind.CONFLICT
    code = "concurrent_modification"
    default_message = "Record was modified concurrently, retry the operation"


# Permission


class PermissionDenied(AffiliateError):
    kind = ErrorKind.PERMISSION
    code = "permission_denied"
    default_message = "Insufficient permissions"


# Storage


class StorageError(AffiliateError):
    kind = ErrorKind.STORAGE
    code = "storage_error"
    default_message = "Database error, please try again later"


# Exception categories based on handling strategy

# Conflicts detected by storage-level uniqueness
STORAGE_CONFLICTS = (
    IntegrityError,
)

# Transient storage failures (lock timeouts, connection drops)
STORAGE_TRANSIENT = (
    OperationalError,
)


def is_storage_conflict(exc: Exception) -> bool:
    """
    Check if exception is a storage-level uniqueness/constraint conflict.

    Args:
        exc: Exception to check

    Returns:
        True if exception is a constraint violation
    """
    return isinstance(exc, STORAGE_CONFLICTS)


def is_transient(exc: Exception) -> bool:
    """
    Check if exception is a transient storage failure.

    Args:
        exc: Exception to check

    Returns:
        True if exception is transient
    """
    return isinstance(exc, STORAGE_TRANSIENT)
