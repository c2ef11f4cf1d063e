"""
Enumerations used by affiliate models.

Stored as strings; every transition site matches on these closed sets.
"""

from enum import Enum


class AccountRole(str, Enum):
    """Account roles."""

    CUSTOMER = "CUSTOMER"
    COLLABORATOR = "COLLABORATOR"
    AGENT = "AGENT"
    ADMIN = "ADMIN"

    @property
    def is_referrer_eligible(self) -> bool:
        """Roles that can earn level-2 upline overrides."""
        return self in (AccountRole.COLLABORATOR, AccountRole.AGENT)

    @property
    def can_own_links(self) -> bool:
        """Roles that can create affiliate links."""
        return self in (
            AccountRole.COLLABORATOR,
            AccountRole.AGENT,
            AccountRole.ADMIN,
        )


class AccountStatus(str, Enum):
    """Account status."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class LinkType(str, Enum):
    """Affiliate link target type."""

    GENERAL = "GENERAL"
    PRODUCT = "PRODUCT"
    CATEGORY = "CATEGORY"


class LinkStatus(str, Enum):
    """Affiliate link status."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class CommissionStatus(str, Enum):
    """Commission status."""

    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class WithdrawalStatus(str, Enum):
    """Withdrawal request status."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        """COMPLETED and REJECTED cannot change any more."""
        return self in (WithdrawalStatus.COMPLETED, WithdrawalStatus.REJECTED)
