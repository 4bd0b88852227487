"""
Tests for the rate table and the tax calculator.

The calculator is pure, so these tests need no fixtures.
"""

from decimal import Decimal

import pytest

from taxgo.models import TaxGroupId
from taxgo.tax import (
    LICENSE_FEE_TIERS,
    TAX_GROUPS,
    InvalidGroupError,
    calculate_tax,
    expense_category_label,
    format_currency,
    get_tax_group,
    group_label,
    is_rental_exempt,
    license_fee_for,
    round_currency,
)


class TestRateTable:
    """Tests for the static rate table."""

    def test_one_group_per_id(self):
        """Test every TaxGroupId has exactly one group."""
        ids = [group.id for group in TAX_GROUPS]
        assert sorted(ids) == sorted(TaxGroupId)
        assert len(ids) == len(set(ids))

    @pytest.mark.parametrize("group_id,vat,pit", [
        (TaxGroupId.DISTRIBUTION, "1.0", "0.5"),
        (TaxGroupId.SERVICES_CONSTRUCTION, "5.0", "2.0"),
        (TaxGroupId.PRODUCTION_TRANSPORT, "3.0", "1.5"),
        (TaxGroupId.OTHER, "2.0", "1.0"),
        (TaxGroupId.RENTAL, "5.0", "5.0"),
    ])
    def test_group_rates(self, group_id, vat, pit):
        """Test the VAT/PIT percentages of each group."""
        group = get_tax_group(group_id)
        assert group.vat_rate == Decimal(vat)
        assert group.pit_rate == Decimal(pit)

    def test_lookup_by_int(self):
        """Test groups can be looked up by their integer value."""
        assert get_tax_group(3).id == TaxGroupId.PRODUCTION_TRANSPORT

    @pytest.mark.parametrize("bad_id", [0, 6, -1, "1", None, True, 2.5])
    def test_unknown_group_rejected(self, bad_id):
        """Test unknown ids raise instead of defaulting."""
        with pytest.raises(InvalidGroupError):
            get_tax_group(bad_id)

    def test_invalid_group_is_value_error(self):
        """Test InvalidGroupError can be caught as ValueError."""
        with pytest.raises(ValueError):
            get_tax_group(99)

    def test_services_group_carries_warning(self):
        """Test the highest-rate group has a warning."""
        assert get_tax_group(TaxGroupId.SERVICES_CONSTRUCTION).warning
        assert get_tax_group(TaxGroupId.DISTRIBUTION).warning is None

    def test_tiers_descending_with_floor(self):
        """Test license tiers are ordered by descending threshold and end at zero."""
        thresholds = [tier.threshold for tier in LICENSE_FEE_TIERS]
        assert thresholds == sorted(thresholds, reverse=True)
        assert LICENSE_FEE_TIERS[-1].threshold == 0
        assert LICENSE_FEE_TIERS[-1].fee == 0

    def test_group_label_fallback(self):
        """Test missing or unknown groups get the ungrouped label."""
        assert group_label(TaxGroupId.DISTRIBUTION) == "Thương mại"
        assert group_label(None) == "Khác"
        assert group_label(42) == "Khác"

    def test_expense_category_label(self):
        """Test category labels, with unknown values mapped to 'other'."""
        assert expense_category_label("utilities") == "Điện, Nước, Internet"
        assert expense_category_label("nonsense") == "Chi phí khác"


class TestCalculateTax:
    """Tests for calculate_tax."""

    @pytest.mark.parametrize("group_id,vat,pit", [
        (TaxGroupId.DISTRIBUTION, 1_000_000, 500_000),
        (TaxGroupId.SERVICES_CONSTRUCTION, 5_000_000, 2_000_000),
        (TaxGroupId.PRODUCTION_TRANSPORT, 3_000_000, 1_500_000),
        (TaxGroupId.OTHER, 2_000_000, 1_000_000),
        (TaxGroupId.RENTAL, 5_000_000, 5_000_000),
    ])
    def test_every_group(self, group_id, vat, pit):
        """Test VAT and PIT on 100M revenue for each group."""
        result = calculate_tax(100_000_000, group_id, 500_000_000)
        assert result.vat_amount == vat
        assert result.pit_amount == pit
        assert result.total_tax == vat + pit
        assert result.total_liability == result.total_tax

    def test_scenario_distribution(self):
        """Test 50M distribution revenue with a 500M projection."""
        result = calculate_tax(50_000_000, TaxGroupId.DISTRIBUTION, 500_000_000)
        assert result.vat_amount == 500_000
        assert result.pit_amount == 250_000
        assert result.total_tax == 750_000
        assert result.license_fee == 1_000_000

    def test_scenario_rental_exempt(self):
        """Test rental income under the threshold pays no VAT/PIT."""
        result = calculate_tax(50_000_000, TaxGroupId.RENTAL, 80_000_000)
        assert result.vat_amount == 0
        assert result.pit_amount == 0
        assert result.total_tax == 0
        assert result.license_fee == 0
        assert result.is_exempt

    def test_rental_exemption_inclusive_boundary(self):
        """Test the exemption applies at exactly 100,000,000."""
        at = calculate_tax(10_000_000, TaxGroupId.RENTAL, 100_000_000)
        above = calculate_tax(10_000_000, TaxGroupId.RENTAL, 100_000_001)
        assert at.total_tax == 0
        assert at.is_exempt
        assert above.vat_amount == 500_000
        assert above.pit_amount == 500_000
        assert not above.is_exempt

    def test_exemption_only_for_rental(self):
        """Test other groups are taxed even with a small projection."""
        result = calculate_tax(10_000_000, TaxGroupId.OTHER, 50_000_000)
        assert result.total_tax == 300_000
        assert not result.is_exempt

    def test_license_fee_not_in_total(self):
        """Test the license fee is reported but never added to total_tax."""
        result = calculate_tax(1_000_000, TaxGroupId.DISTRIBUTION, 600_000_000)
        assert result.license_fee == 1_000_000
        assert result.total_tax == 15_000
        assert result.total_liability == 15_000

    def test_half_up_rounding(self):
        """Test fractional đồng round half-up."""
        # 1% of 150 = 1.5 -> 2; 0.5% of 150 = 0.75 -> 1
        result = calculate_tax(150, TaxGroupId.DISTRIBUTION, 0)
        assert result.vat_amount == 2
        assert result.pit_amount == 1
        assert round_currency(Decimal("2.5")) == 3
        assert round_currency(Decimal("2.4999")) == 2

    def test_zero_revenue(self):
        """Test zero revenue gives zero tax."""
        result = calculate_tax(0, TaxGroupId.SERVICES_CONSTRUCTION, 0)
        assert result.total_tax == 0
        assert result.license_fee == 0

    def test_idempotent(self):
        """Test identical inputs give identical results."""
        first = calculate_tax(12_345_678, TaxGroupId.PRODUCTION_TRANSPORT, 250_000_000)
        second = calculate_tax(12_345_678, TaxGroupId.PRODUCTION_TRANSPORT, 250_000_000)
        assert first == second

    def test_accepts_strings_and_floats(self):
        """Test numeric strings and floats are accepted."""
        from_str = calculate_tax("50000000", 1, "500000000")
        from_float = calculate_tax(50_000_000.0, 1, 500_000_000.0)
        assert from_str.total_tax == from_float.total_tax == 750_000

    def test_invalid_group(self):
        """Test an unknown group raises InvalidGroupError."""
        with pytest.raises(InvalidGroupError):
            calculate_tax(1_000_000, 9, 0)

    @pytest.mark.parametrize("revenue,projection", [
        (-1, 0),
        (0, -1),
        ("abc", 0),
        (float("nan"), 0),
        (True, 0),
    ])
    def test_bad_amounts(self, revenue, projection):
        """Test negative and non-numeric amounts are rejected."""
        with pytest.raises(ValueError):
            calculate_tax(revenue, TaxGroupId.DISTRIBUTION, projection)

    def test_result_is_frozen(self):
        """Test the result cannot be modified."""
        result = calculate_tax(1_000_000, TaxGroupId.DISTRIBUTION, 0)
        with pytest.raises(ValueError):
            result.total_tax = 0


class TestLicenseFee:
    """Tests for license fee tiers."""

    @pytest.mark.parametrize("projection,fee", [
        (0, 0),
        (100_000_000, 0),
        (100_000_001, 300_000),
        (300_000_000, 300_000),
        (300_000_001, 500_000),
        (500_000_000, 500_000),
        (500_000_001, 1_000_000),
        (5_000_000_000, 1_000_000),
    ])
    def test_tier_boundaries(self, projection, fee):
        """Test a tier applies only when the projection strictly exceeds it."""
        assert license_fee_for(projection) == fee

    def test_rental_exempt_helper(self):
        """Test is_rental_exempt matches calculate_tax."""
        assert is_rental_exempt(TaxGroupId.RENTAL, 100_000_000)
        assert not is_rental_exempt(TaxGroupId.RENTAL, 100_000_001)
        assert not is_rental_exempt(TaxGroupId.DISTRIBUTION, 0)


class TestFormatCurrency:
    """Tests for vi-VN currency formatting."""

    def test_thousands_separator(self):
        assert format_currency(1_500_000) == "1.500.000 ₫"

    def test_small_and_zero(self):
        assert format_currency(0) == "0 ₫"
        assert format_currency(999) == "999 ₫"

    def test_negative(self):
        """Test negative amounts keep their sign."""
        assert format_currency(Decimal("-2500000")) == "-2.500.000 ₫"

    def test_rounds_to_whole_dong(self):
        assert format_currency(Decimal("1234.5")) == "1.235 ₫"
