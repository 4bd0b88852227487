"""Ledger package."""

from taxgo.ledger.demo import demo_transactions, seed_demo_transactions
from taxgo.ledger.store import DuplicateTransactionError, LedgerError, LedgerStore

__all__ = [
    "DuplicateTransactionError",
    "LedgerError",
    "LedgerStore",
    "demo_transactions",
    "seed_demo_transactions",
]
