"""
Ledger services package.

- store: the only balance writer, reconciliation
- history: paginated transaction history
"""

from wallet_ledger.services.ledger.history import (
    HistoryCursor,
    HistoryPage,
    TransactionHistory,
)
from wallet_ledger.services.ledger.store import (
    LedgerReference,
    LedgerStore,
    ReconciliationReport,
)


__all__ = [
    "LedgerReference",
    "LedgerStore",
    "ReconciliationReport",
    "HistoryCursor",
    "HistoryPage",
    "TransactionHistory",
]
