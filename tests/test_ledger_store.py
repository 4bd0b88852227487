"""
Tests for the in-memory ledger and its aggregates.
"""

from datetime import date
from decimal import Decimal

import pytest

from taxgo.ledger import (
    DuplicateTransactionError,
    LedgerStore,
    demo_transactions,
    seed_demo_transactions,
)
from taxgo.models import ExpenseCategory, TaxGroupId, Transaction, TransactionType


def income(amount, group=TaxGroupId.DISTRIBUTION, **kwargs):
    return Transaction(
        date=kwargs.pop("date", date(2025, 5, 1)),
        description=kwargs.pop("description", "Bán hàng"),
        amount=Decimal(amount),
        type=TransactionType.INCOME,
        tax_group_id=group,
        **kwargs,
    )


def expense(amount, category=ExpenseCategory.SUPPLIES, **kwargs):
    return Transaction(
        date=kwargs.pop("date", date(2025, 5, 2)),
        description=kwargs.pop("description", "Nhập hàng"),
        amount=Decimal(amount),
        type=TransactionType.EXPENSE,
        expense_category=category,
        **kwargs,
    )


class TestLedgerMutations:
    """Tests for add/remove."""

    def test_add_inserts_at_front(self, store):
        """Test the newest entry is listed first."""
        first = store.add(income(1_000))
        second = store.add(expense(500))
        assert [t.id for t in store] == [second.id, first.id]

    def test_generated_ids_are_unique(self, store):
        """Test entries created without an id get distinct ids."""
        a = store.add(income(1_000))
        b = store.add(income(1_000))
        assert a.id != b.id
        assert len(store) == 2

    def test_duplicate_content_allowed(self, store):
        """Test identical entries with different ids are both kept."""
        store.add(income(1_000, description="Bán hàng"))
        store.add(income(1_000, description="Bán hàng"))
        assert store.total_income() == Decimal("2000")

    def test_duplicate_id_rejected(self, store):
        """Test re-adding an id raises."""
        store.add(income(1_000, id="abc"))
        with pytest.raises(DuplicateTransactionError) as exc_info:
            store.add(expense(1, id="abc"))
        assert exc_info.value.transaction_id == "abc"
        assert len(store) == 1

    def test_remove(self, store):
        """Test removing an existing entry."""
        entry = store.add(income(1_000))
        assert store.remove(entry.id) is True
        assert len(store) == 0
        assert entry.id not in store

    def test_remove_unknown_is_noop(self, store):
        """Test removing an unknown id changes nothing."""
        store.add(income(1_000))
        assert store.remove("missing") is False
        assert len(store) == 1

    def test_initial_order_kept(self):
        """Test entries passed at construction keep their order."""
        store = LedgerStore(demo_transactions())
        assert [t.id for t in store] == ["1", "2", "3", "4"]

    def test_initial_duplicates_rejected(self):
        """Test duplicate ids at construction raise."""
        with pytest.raises(DuplicateTransactionError):
            LedgerStore([income(1, id="x"), income(2, id="x")])

    def test_iteration_is_a_snapshot(self, store):
        """Test removing while iterating does not skip entries."""
        for amount in (1, 2, 3):
            store.add(income(amount))
        for entry in store:
            store.remove(entry.id)
        assert len(store) == 0


class TestTransactionModel:
    """Tests for Transaction invariants."""

    def test_expense_requires_category(self):
        with pytest.raises(ValueError):
            Transaction(
                date=date(2025, 5, 1),
                description="Chi",
                amount=Decimal("1"),
                type=TransactionType.EXPENSE,
            )

    def test_no_group_and_category_together(self):
        """Test an income entry cannot carry an expense category."""
        with pytest.raises(ValueError):
            Transaction(
                date=date(2025, 5, 1),
                description="Thu",
                amount=Decimal("1"),
                type=TransactionType.INCOME,
                tax_group_id=TaxGroupId.OTHER,
                expense_category=ExpenseCategory.RENT,
            )

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            income(-1)

    def test_transaction_is_frozen(self):
        entry = income(1_000)
        with pytest.raises(ValueError):
            entry.amount = Decimal("5")


class TestLedgerQueries:
    """Tests for filter/search/date range."""

    def test_search_case_insensitive(self, store):
        store.add(income(1, description="Bán hàng tạp hóa"))
        store.add(expense(1, description="Tiền điện"))
        assert [t.description for t in store.search("TẠP")] == ["Bán hàng tạp hóa"]

    def test_empty_search_returns_all(self, store):
        store.add(income(1))
        store.add(expense(1))
        assert len(store.search("")) == 2
        assert len(store.search("   ")) == 2

    def test_filter_returns_list(self, store):
        """Test filter materialises the matching entries."""
        store.add(income(1))
        store.add(expense(1))
        result = store.filter(lambda t: t.is_income)
        assert isinstance(result, list)
        assert len(result) == 1


class TestLedgerAggregates:
    """Tests for totals and distributions."""

    def test_demo_totals(self):
        """Test the aggregates of the demo month."""
        store = LedgerStore(demo_transactions())
        assert store.total_income() == Decimal("20000000")
        assert store.total_expense() == Decimal("9200000")
        assert store.net_cash_flow() == Decimal("10800000")
        assert not store.is_negative_cash_flow()

    def test_empty_store(self, store):
        assert store.total_income() == 0
        assert store.total_expense() == 0
        assert store.income_by_group() == {}
        assert not store.is_negative_cash_flow()

    def test_negative_cash_flow_round_trip(self, store):
        """Test the flag turns on with a large expense and off once it is removed."""
        store.add(income(15_000_000))
        big = store.add(expense(20_000_000))
        assert store.is_negative_cash_flow()
        store.remove(big.id)
        assert not store.is_negative_cash_flow()

    def test_income_by_group_labels(self, store):
        """Test income is keyed by short name, ungrouped income under 'Khác'."""
        store.add(income(100, group=TaxGroupId.DISTRIBUTION))
        store.add(income(200, group=TaxGroupId.RENTAL))
        store.add(income(300, group=None))
        store.add(income(400, group=TaxGroupId.DISTRIBUTION))
        store.add(expense(999))
        assert store.income_by_group() == {
            "Thương mại": Decimal("500"),
            "Khác": Decimal("300"),
            "Cho thuê tài sản": Decimal("200"),
        }

    def test_other_group_and_ungrouped_share_label(self, store):
        """Test the OTHER group and ungrouped income land in one bucket."""
        store.add(income(100, group=TaxGroupId.OTHER))
        store.add(income(50, group=None))
        assert store.income_by_group() == {"Khác": Decimal("150")}

    def test_group_totals_sum_to_income(self, store):
        for amount, group in [(10, 1), (20, 2), (30, 3), (40, 4), (50, 5), (60, None)]:
            store.add(income(amount, group=group))
        assert sum(store.income_by_group().values()) == store.total_income()

    def test_expense_by_category(self, store):
        store.add(expense(100, ExpenseCategory.RENT))
        store.add(expense(50, ExpenseCategory.RENT))
        store.add(expense(25, ExpenseCategory.SALARY))
        assert store.expense_by_category() == {
            ExpenseCategory.SALARY: Decimal("25"),
            ExpenseCategory.RENT: Decimal("150"),
        }


class TestDemoData:
    """Tests for the demo seed."""

    def test_seed_keeps_listed_order(self, store):
        count = seed_demo_transactions(store)
        assert count == 4
        assert [t.id for t in store] == ["1", "2", "3", "4"]

    def test_demo_contains_uninvoiced_sale(self):
        """Test one demo sale has no invoice (shown as a warning)."""
        assert [t.id for t in demo_transactions() if not t.has_invoice] == ["3"]
