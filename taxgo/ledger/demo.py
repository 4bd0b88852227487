"""Demo entries shown on first launch."""

from datetime import date
from decimal import Decimal

from taxgo.ledger.store import LedgerStore
from taxgo.models.ledger import ExpenseCategory, Transaction, TransactionType
from taxgo.models.tax import TaxGroupId


def demo_transactions() -> list[Transaction]:
    """A month of grocery-store activity, newest entries last."""
    return [
        Transaction(
            id="1",
            date=date(2025, 5, 1),
            description="Bán hàng tạp hóa",
            amount=Decimal("15000000"),
            type=TransactionType.INCOME,
            tax_group_id=TaxGroupId.DISTRIBUTION,
            has_invoice=True,
        ),
        Transaction(
            id="2",
            date=date(2025, 5, 2),
            description="Nhập hàng Vinamilk",
            amount=Decimal("8000000"),
            type=TransactionType.EXPENSE,
            expense_category=ExpenseCategory.SUPPLIES,
            has_invoice=True,
        ),
        Transaction(
            id="3",
            date=date(2025, 5, 5),
            description="Bán hàng tạp hóa",
            amount=Decimal("5000000"),
            type=TransactionType.INCOME,
            tax_group_id=TaxGroupId.DISTRIBUTION,
            has_invoice=False,
        ),
        Transaction(
            id="4",
            date=date(2025, 5, 10),
            description="Tiền điện tháng 4",
            amount=Decimal("1200000"),
            type=TransactionType.EXPENSE,
            expense_category=ExpenseCategory.UTILITIES,
            has_invoice=True,
        ),
    ]


def seed_demo_transactions(store: LedgerStore) -> int:
    """
    Add the demo entries to `store`, keeping their listed order on top.

    Returns the number of entries added.
    """
    entries = demo_transactions()
    for transaction in reversed(entries):
        store.add(transaction)
    return len(entries)
