"""
Tax Calculator

Pure functions over the rate table. No I/O, no hidden state:
the same inputs always produce the same TaxCalculationResult.

ROUNDING: amounts are computed in Decimal and rounded half-up to
the whole đồng (ROUND_HALF_UP). For the non-negative inputs accepted
here this gives the same result as JavaScript's Math.round, which is
what the published calculator uses. The difference from banker's
rounding is at most 1 VND per figure.

BOUNDARIES:
- Rental exemption is inclusive: projection <= 100,000,000 is exempt.
- License tiers are exclusive: a tier applies when projection > threshold.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from taxgo.models.tax import TaxCalculationResult, TaxGroupId
from taxgo.tax.rates import (
    LICENSE_FEE_TIERS,
    RENTAL_EXEMPTION_THRESHOLD,
    get_tax_group,
)

Amount = Union[Decimal, int, float, str]

_HUNDRED = Decimal("100")
_ONE = Decimal("1")


def to_decimal(value: Amount, field: str = "amount") -> Decimal:
    """
    Convert user input to a non-negative Decimal.

    Floats go through str() so 0.1 stays 0.1.
    """
    if isinstance(value, bool):
        raise ValueError(f"{field} must be a number, got {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"{field} must be a number, got {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"{field} must be finite, got {value!r}")
    if amount < 0:
        raise ValueError(f"{field} cannot be negative, got {value!r}")
    return amount


def round_currency(amount: Decimal) -> int:
    """Round to the nearest whole đồng, ties away from zero."""
    return int(amount.quantize(_ONE, rounding=ROUND_HALF_UP))


def is_rental_exempt(tax_group_id: object, annual_revenue_projection: Amount) -> bool:
    """True when rental income falls under the annual exemption threshold."""
    group = get_tax_group(tax_group_id)
    projection = to_decimal(annual_revenue_projection, "annual_revenue_projection")
    return group.id == TaxGroupId.RENTAL and projection <= RENTAL_EXEMPTION_THRESHOLD


def license_fee_for(annual_revenue_projection: Amount) -> int:
    """
    Annual license fee for a projected revenue.

    Scans tiers from the highest threshold down and takes the first
    one the projection strictly exceeds.
    """
    projection = to_decimal(annual_revenue_projection, "annual_revenue_projection")
    for tier in LICENSE_FEE_TIERS:
        if projection > tier.threshold:
            return round_currency(tier.fee)
    return 0


def calculate_tax(
    revenue: Amount,
    tax_group_id: object,
    annual_revenue_projection: Amount,
) -> TaxCalculationResult:
    """
    Calculate VAT and PIT owed on `revenue` for a tax group.

    Args:
        revenue: Revenue subject to tax this period (VND, >= 0)
        tax_group_id: TaxGroupId (or its int value)
        annual_revenue_projection: Expected revenue for the year (VND, >= 0).
            Only used for the rental exemption and the license fee.

    Returns:
        TaxCalculationResult. The license fee is reported separately and
        is not included in total_tax.

    Raises:
        InvalidGroupError: tax_group_id is not in the rate table
        ValueError: revenue or projection is negative or not a number
    """
    group = get_tax_group(tax_group_id)
    amount = to_decimal(revenue, "revenue")
    projection = to_decimal(annual_revenue_projection, "annual_revenue_projection")

    exempt = group.id == TaxGroupId.RENTAL and projection <= RENTAL_EXEMPTION_THRESHOLD

    if exempt:
        vat_amount = 0
        pit_amount = 0
    else:
        vat_amount = round_currency(amount * group.vat_rate / _HUNDRED)
        pit_amount = round_currency(amount * group.pit_rate / _HUNDRED)

    total_tax = vat_amount + pit_amount

    return TaxCalculationResult(
        revenue=amount,
        vat_amount=vat_amount,
        pit_amount=pit_amount,
        total_tax=total_tax,
        license_fee=license_fee_for(projection),
        total_liability=total_tax,
        is_exempt=exempt,
    )


def format_currency(amount: Amount) -> str:
    """
    Format an amount the way vi-VN displays đồng: "1.500.000 ₫".

    Negative amounts (net cash flow) keep their sign.
    """
    value = Decimal(str(amount)) if not isinstance(amount, Decimal) else amount
    whole = round_currency(abs(value))
    sign = "-" if value < 0 and whole else ""
    return f"{sign}{whole:,}".replace(",", ".") + " ₫"
