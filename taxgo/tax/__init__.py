"""Rate table and tax calculation package."""

from taxgo.tax.calculator import (
    calculate_tax,
    format_currency,
    is_rental_exempt,
    license_fee_for,
    round_currency,
    to_decimal,
)
from taxgo.tax.rates import (
    EXPENSE_CATEGORY_LABELS,
    LICENSE_FEE_TIERS,
    RENTAL_EXEMPTION_THRESHOLD,
    TAX_GROUPS,
    UNGROUPED_LABEL,
    InvalidGroupError,
    expense_category_label,
    get_tax_group,
    group_label,
)

__all__ = [
    "calculate_tax",
    "format_currency",
    "is_rental_exempt",
    "license_fee_for",
    "round_currency",
    "to_decimal",
    "EXPENSE_CATEGORY_LABELS",
    "LICENSE_FEE_TIERS",
    "RENTAL_EXEMPTION_THRESHOLD",
    "TAX_GROUPS",
    "UNGROUPED_LABEL",
    "InvalidGroupError",
    "expense_category_label",
    "get_tax_group",
    "group_label",
]
