"""
Dashboard Analytics

Derives the dashboard figures from the ledger using the calculator's
rate logic. Nothing here is stored; a summary is rebuilt whenever the
ledger changes.

PROJECTION: the ledger holds roughly one month of entries, so the
annual projection is total income × 12. The multiplier is a
parameter so a caller with a longer window can pass a smaller one.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from taxgo.ledger.store import LedgerStore
from taxgo.models.ledger import ExpenseCategory
from taxgo.models.tax import TaxGroupId
from taxgo.tax.calculator import calculate_tax, format_currency, license_fee_for
from taxgo.tax.rates import RENTAL_EXEMPTION_THRESHOLD


class GroupShare(BaseModel):
    """One slice of the income distribution chart."""
    model_config = ConfigDict(frozen=True)

    name: str
    value: Decimal
    share: float = Field(ge=0.0, le=1.0)


class DashboardSummary(BaseModel):
    """Figures shown on the dashboard."""
    model_config = ConfigDict(frozen=True)

    total_income: Decimal
    total_expense: Decimal
    net_cash_flow: Decimal
    is_negative_cash_flow: bool
    transaction_count: int
    income_distribution: list[GroupShare]
    expense_breakdown: dict[ExpenseCategory, Decimal] = Field(default_factory=dict)
    annual_projection: Decimal
    above_threshold: bool = Field(
        description="Projection exceeds 100,000,000 VND"
    )
    projected_license_fee: int
    estimated_tax: int = Field(
        description="VAT + PIT on recorded income at the projected tier"
    )

    @property
    def has_income_data(self) -> bool:
        return bool(self.income_distribution)

    @property
    def compliance_message(self) -> str:
        """Warning line shown under the projection."""
        head = f"Dự báo doanh thu năm: {format_currency(self.annual_projection)}."
        if self.above_threshold:
            return head + " Bạn thuộc đối tượng phải nộp lệ phí môn bài bậc 2."
        return head + " Bạn đang ở dưới ngưỡng chịu thuế VAT/TNCN (nếu chỉ cho thuê tài sản)."

    @property
    def cash_flow_warning(self) -> Optional[str]:
        if not self.is_negative_cash_flow:
            return None
        return (
            f"Chi phí ({format_currency(self.total_expense)}) đang vượt quá thu nhập "
            f"({format_currency(self.total_income)}). "
            "Hãy rà soát lại các khoản chi không cần thiết."
        )


def build_summary(store: LedgerStore, projection_months: int = 12) -> DashboardSummary:
    """
    Build the dashboard summary for the current ledger.

    Income without a tax group is estimated at the OTHER group's rates.
    """
    if projection_months < 1:
        raise ValueError("projection_months must be at least 1")

    total_income = store.total_income()
    total_expense = store.total_expense()
    annual_projection = total_income * projection_months

    by_group = store.income_by_group()
    distribution = [
        GroupShare(
            name=name,
            value=value,
            share=float(value / total_income) if total_income else 0.0,
        )
        for name, value in by_group.items()
    ]

    estimated_tax = 0
    for group_id, income in store.income_by_group_id().items():
        result = calculate_tax(income, group_id or TaxGroupId.OTHER, annual_projection)
        estimated_tax += result.total_tax

    return DashboardSummary(
        total_income=total_income,
        total_expense=total_expense,
        net_cash_flow=store.net_cash_flow(),
        is_negative_cash_flow=store.is_negative_cash_flow(),
        transaction_count=len(store),
        income_distribution=distribution,
        expense_breakdown=store.expense_by_category(),
        annual_projection=annual_projection,
        above_threshold=annual_projection > RENTAL_EXEMPTION_THRESHOLD,
        projected_license_fee=license_fee_for(annual_projection),
        estimated_tax=estimated_tax,
    )
