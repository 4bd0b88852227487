"""
Tax Reference and Result Models

These models describe the presumptive-tax rate table (one TaxGroup per
business-activity category), the license-fee (môn bài) tiers and the
result of a tax calculation.

DESIGN DECISION: Reference records and results are frozen.
The rate table is loaded once at import time and a calculation
result is a value, so nothing downstream may mutate either.
"""

from decimal import Decimal
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TaxGroupId(IntEnum):
    """
    Business-activity categories for household-business tax.

    The numeric values match the group numbering used on the
    01/CNKD declaration form.
    """
    DISTRIBUTION = 1
    SERVICES_CONSTRUCTION = 2
    PRODUCTION_TRANSPORT = 3
    OTHER = 4
    RENTAL = 5


class TaxGroup(BaseModel):
    """A single row of the rate table. Rates are percentages."""
    model_config = ConfigDict(frozen=True)

    id: TaxGroupId
    name: str = Field(..., min_length=1)
    short_name: str = Field(..., min_length=1)
    vat_rate: Decimal = Field(..., ge=0, description="VAT rate in percent")
    pit_rate: Decimal = Field(..., ge=0, description="PIT rate in percent")
    description: str = ""
    warning: Optional[str] = None


class LicenseFeeTier(BaseModel):
    """
    Annual license fee owed when projected revenue is strictly
    above `threshold`.
    """
    model_config = ConfigDict(frozen=True)

    threshold: Decimal = Field(..., ge=0)
    fee: Decimal = Field(..., ge=0)


class TaxCalculationResult(BaseModel):
    """
    Tax owed on one revenue figure.

    `license_fee` is the annual môn bài obligation for the projected
    revenue. It is informational and is NOT part of `total_tax`.
    `total_liability` currently always equals `total_tax`.
    """
    model_config = ConfigDict(frozen=True)

    revenue: Decimal = Field(..., ge=0)
    vat_amount: int = Field(..., ge=0)
    pit_amount: int = Field(..., ge=0)
    total_tax: int = Field(..., ge=0)
    license_fee: int = Field(..., ge=0)
    total_liability: int = Field(..., ge=0)
    is_exempt: bool = Field(
        default=False,
        description="True when the rental below-threshold exemption applied"
    )


class TaxpayerProfile(BaseModel):
    """Who the filing document is issued for."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    tax_code: str = Field(..., min_length=1, max_length=20, description="MST")
    address: str = ""
