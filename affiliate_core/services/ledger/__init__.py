"""
Ledger module.

Atomic relative balance mutations for accounts.
"""

from affiliate_core.services.ledger.ledger_service import (
    LedgerBalances,
    LedgerService,
)

__all__ = [
    "LedgerBalances",
    "LedgerService",
]
