"""
In-Memory Ledger Store

DESIGN DECISION: The ledger is an explicitly owned object.
The application shell creates one LedgerStore per session and passes
it to whatever needs it; add() and remove() are its only mutators.

Entries live for the session only - persistence is out of scope.
Ordering is newest-first for display; aggregates ignore order.

Single-threaded: Streamlit reruns the script on one
thread per session, so no locking is needed.
"""

from decimal import Decimal
from typing import Callable, Iterable, Iterator, Optional

from taxgo.models.ledger import ExpenseCategory, Transaction, TransactionType
from taxgo.models.tax import TaxGroupId
from taxgo.tax.rates import group_label


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class DuplicateTransactionError(LedgerError):
    """A transaction with the same id is already in the ledger."""

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction already exists: {transaction_id}")


class LedgerStore:
    """
    Ordered collection of transactions, most recently added first.

    Duplicate content (same description/amount) is allowed;
    only a duplicate id is rejected.
    """

    def __init__(self, transactions: Optional[Iterable[Transaction]] = None):
        """
        Args:
            transactions: Initial entries, kept in the given order
                          (first item is shown first).
        """
        self._transactions: list[Transaction] = []
        for transaction in transactions or ():
            if self.get(transaction.id) is not None:
                raise DuplicateTransactionError(transaction.id)
            self._transactions.append(transaction)

    # -------------------------------------------------------------------------
    # Mutators
    # -------------------------------------------------------------------------

    def add(self, transaction: Transaction) -> Transaction:
        """Insert at the front. Raises DuplicateTransactionError on id clash."""
        if self.get(transaction.id) is not None:
            raise DuplicateTransactionError(transaction.id)
        self._transactions.insert(0, transaction)
        return transaction

    def remove(self, transaction_id: str) -> bool:
        """
        Remove the entry with this id.

        Returns True if something was removed. Unknown ids are a no-op.
        """
        for index, transaction in enumerate(self._transactions):
            if transaction.id == transaction_id:
                del self._transactions[index]
                return True
        return False

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in self._transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    def all(self) -> list[Transaction]:
        return list(self._transactions)

    def filter(self, predicate: Callable[[Transaction], bool]) -> list[Transaction]:
        """Entries matching `predicate`, in display order."""
        return [t for t in self._transactions if predicate(t)]

    def search(self, text: str) -> list[Transaction]:
        """Case-insensitive substring match on description. Empty text matches all."""
        needle = (text or "").strip().casefold()
        if not needle:
            return self.all()
        return self.filter(lambda t: needle in t.description.casefold())

    def by_type(self, transaction_type: TransactionType) -> list[Transaction]:
        return self.filter(lambda t: t.type == transaction_type)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(list(self._transactions))

    def __len__(self) -> int:
        return len(self._transactions)

    def __contains__(self, transaction_id: object) -> bool:
        return any(t.id == transaction_id for t in self._transactions)

    # -------------------------------------------------------------------------
    # Aggregates (derived, never stored)
    # -------------------------------------------------------------------------

    def total_income(self) -> Decimal:
        return sum((t.amount for t in self.by_type(TransactionType.INCOME)), Decimal("0"))

    def total_expense(self) -> Decimal:
        return sum((t.amount for t in self.by_type(TransactionType.EXPENSE)), Decimal("0"))

    def net_cash_flow(self) -> Decimal:
        return self.total_income() - self.total_expense()

    def is_negative_cash_flow(self) -> bool:
        """True when expenses exceed income."""
        return self.total_expense() > self.total_income()

    def income_by_group(self) -> dict[str, Decimal]:
        """
        Income summed per tax group short name.

        Entries without a known group go under the ungrouped label.
        Keys appear in order of first occurrence.
        """
        totals: dict[str, Decimal] = {}
        for transaction in self.by_type(TransactionType.INCOME):
            label = group_label(transaction.tax_group_id)
            totals[label] = totals.get(label, Decimal("0")) + transaction.amount
        return totals

    def income_by_group_id(self) -> dict[Optional[TaxGroupId], Decimal]:
        """Income summed per tax group id (None for ungrouped entries)."""
        totals: dict[Optional[TaxGroupId], Decimal] = {}
        for transaction in self.by_type(TransactionType.INCOME):
            key = transaction.tax_group_id
            totals[key] = totals.get(key, Decimal("0")) + transaction.amount
        return totals

    def expense_by_category(self) -> dict[ExpenseCategory, Decimal]:
        totals: dict[ExpenseCategory, Decimal] = {}
        for transaction in self.by_type(TransactionType.EXPENSE):
            key = transaction.expense_category or ExpenseCategory.OTHER
            totals[key] = totals.get(key, Decimal("0")) + transaction.amount
        return totals
