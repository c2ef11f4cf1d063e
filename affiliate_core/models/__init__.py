"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from affiliate_core.models.account import Account
from affiliate_core.models.affiliate_click import AffiliateClick
from affiliate_core.models.affiliate_conversion import AffiliateConversion
from affiliate_core.models.affiliate_link import AffiliateLink
from affiliate_core.models.affiliate_settings import AffiliateSettings
from affiliate_core.models.bank_account import BankAccount
from affiliate_core.models.base import Base
from affiliate_core.models.commission import Commission
from affiliate_core.models.enums import (
    AccountRole,
    AccountStatus,
    CommissionStatus,
    LinkStatus,
    LinkType,
    WithdrawalStatus,
)
from affiliate_core.models.withdrawal import Withdrawal

__all__ = [
    # Base
    "Base",
    # Enums
    "AccountRole",
    "AccountStatus",
    "LinkType",
    "LinkStatus",
    "CommissionStatus",
    "WithdrawalStatus",
    # Core Models
    "Account",
    "BankAccount",
    "AffiliateLink",
    "AffiliateClick",
    "AffiliateConversion",
    "Commission",
    "Withdrawal",
    # System Models
    "AffiliateSettings",
]
