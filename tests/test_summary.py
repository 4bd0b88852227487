"""
Tests for the dashboard summary.
"""

from datetime import date
from decimal import Decimal

import pytest

from taxgo.analytics import build_summary
from taxgo.ledger import LedgerStore, demo_transactions
from taxgo.models import ExpenseCategory, TaxGroupId, Transaction, TransactionType


def _income(amount, group):
    return Transaction(
        date=date(2025, 5, 1),
        description="Thu",
        amount=Decimal(amount),
        type=TransactionType.INCOME,
        tax_group_id=group,
    )


class TestBuildSummary:
    """Tests for build_summary."""

    def test_demo_month(self):
        """Test the figures for the demo ledger."""
        summary = build_summary(LedgerStore(demo_transactions()))

        assert summary.total_income == Decimal("20000000")
        assert summary.total_expense == Decimal("9200000")
        assert summary.net_cash_flow == Decimal("10800000")
        assert summary.transaction_count == 4
        assert summary.annual_projection == Decimal("240000000")
        assert summary.above_threshold
        assert summary.projected_license_fee == 300_000
        # 20M distribution income: 1% VAT + 0.5% PIT
        assert summary.estimated_tax == 300_000
        assert summary.expense_breakdown == {
            ExpenseCategory.SUPPLIES: Decimal("8000000"),
            ExpenseCategory.UTILITIES: Decimal("1200000"),
        }

    def test_distribution_shares(self):
        """Test the income distribution and its shares."""
        store = LedgerStore([
            _income(75, TaxGroupId.DISTRIBUTION),
            _income(25, TaxGroupId.SERVICES_CONSTRUCTION),
        ])
        summary = build_summary(store)
        shares = {share.name: share.share for share in summary.income_distribution}
        assert shares == {"Thương mại": 0.75, "Dịch vụ": 0.25}

    def test_empty_ledger(self):
        """Test an empty ledger has no chart data and nothing owed."""
        summary = build_summary(LedgerStore())
        assert not summary.has_income_data
        assert summary.estimated_tax == 0
        assert summary.projected_license_fee == 0
        assert not summary.above_threshold
        assert summary.cash_flow_warning is None
        assert summary.expense_breakdown == {}

    def test_threshold_is_strict(self):
        """Test a projection of exactly 100M is not above the threshold."""
        store = LedgerStore([_income(100_000_000, TaxGroupId.DISTRIBUTION)])
        summary = build_summary(store, projection_months=1)
        assert summary.annual_projection == Decimal("100000000")
        assert not summary.above_threshold
        assert "dưới ngưỡng" in summary.compliance_message

    def test_above_threshold_message(self):
        summary = build_summary(LedgerStore(demo_transactions()))
        assert "môn bài" in summary.compliance_message

    def test_ungrouped_income_taxed_as_other(self):
        """Test income without a group is estimated at OTHER rates."""
        store = LedgerStore([_income(1_000_000, None)])
        summary = build_summary(store)
        assert summary.estimated_tax == 30_000

    def test_rental_exemption_in_estimate(self):
        """Test small rental income is estimated as exempt."""
        store = LedgerStore([_income(5_000_000, TaxGroupId.RENTAL)])
        summary = build_summary(store)
        assert summary.annual_projection == Decimal("60000000")
        assert summary.estimated_tax == 0

    def test_cash_flow_warning(self):
        store = LedgerStore([
            _income(1_000, TaxGroupId.DISTRIBUTION),
            Transaction(
                date=date(2025, 5, 2),
                description="Thuê",
                amount=Decimal("5000"),
                type=TransactionType.EXPENSE,
                expense_category=ExpenseCategory.RENT,
            ),
        ])
        summary = build_summary(store)
        assert summary.is_negative_cash_flow
        assert "5.000 ₫" in summary.cash_flow_warning

    def test_projection_months_validated(self):
        with pytest.raises(ValueError):
            build_summary(LedgerStore(), projection_months=0)
