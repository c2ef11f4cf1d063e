"""
Services.

Business logic layer.
"""

from affiliate_core.services.account_service import AccountService
from affiliate_core.services.bank_account_service import BankAccountService
from affiliate_core.services.attribution import (
    AttributionOutcome,
    AttributionService,
    ClickTracker,
    ConversionResult,
    RedisTrackingStore,
    TrackingStore,
)
from affiliate_core.services.base_service import (
    BaseService,
    ServiceResult,
    log_operation,
    transaction,
)
from affiliate_core.services.commission import (
    CommissionEngine,
    CommissionStatusService,
)
from affiliate_core.services.interfaces import (
    CallerIdentity,
    CatalogGateway,
    CatalogItem,
    ClientInfo,
)
from affiliate_core.services.ledger import LedgerBalances, LedgerService
from affiliate_core.services.links import LinkRegistry, RedirectResolver
from affiliate_core.services.settings_provider import (
    AffiliateSettingsSnapshot,
    SettingsProvider,
)
from affiliate_core.services.statistics import AffiliateStatisticsService
from affiliate_core.services.withdrawal_service import WithdrawalService


__all__ = [
    # Base Service Infrastructure
    "BaseService",
    "ServiceResult",
    "log_operation",
    "transaction",
    # Collaborator interfaces
    "CallerIdentity",
    "CatalogGateway",
    "CatalogItem",
    "ClientInfo",
    # Configuration
    "AffiliateSettingsSnapshot",
    "SettingsProvider",
    # Core Services
    "AccountService",
    "AttributionOutcome",
    "AttributionService",
    "BankAccountService",
    "ClickTracker",
    "CommissionEngine",
    "CommissionStatusService",
    "ConversionResult",
    "LedgerBalances",
    "LedgerService",
    "LinkRegistry",
    "RedirectResolver",
    "RedisTrackingStore",
    "TrackingStore",
    "WithdrawalService",
    # Reporting
    "AffiliateStatisticsService",
]
