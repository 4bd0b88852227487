"""
Presumptive Tax Rate Table

Household-business rates by activity group (Circular 40/2021/TT-BTC)
and the annual license-fee (môn bài) tiers.

CRITICAL: These are the ONLY source of truth for tax calculations.
The assistant must never be asked to produce rates or amounts.
"""

from decimal import Decimal
from types import MappingProxyType

from taxgo.models.ledger import ExpenseCategory
from taxgo.models.tax import LicenseFeeTier, TaxGroup, TaxGroupId


class InvalidGroupError(ValueError):
    """Raised when a tax group identifier is not in the rate table."""

    def __init__(self, group_id: object):
        self.group_id = group_id
        super().__init__(f"Invalid tax group: {group_id!r}")


# Rental income is exempt from VAT and PIT up to and including this
# annual revenue (VND).
RENTAL_EXEMPTION_THRESHOLD = Decimal("100000000")

# Label used when an income entry has no (known) tax group.
UNGROUPED_LABEL = "Khác"


# =============================================================================
# TAX GROUPS
# =============================================================================

TAX_GROUPS: tuple[TaxGroup, ...] = (
    TaxGroup(
        id=TaxGroupId.DISTRIBUTION,
        name="Phân phối, cung cấp hàng hóa (Bán buôn, bán lẻ)",
        short_name="Thương mại",
        vat_rate=Decimal("1.0"),
        pit_rate=Decimal("0.5"),
        description="Cửa hàng tạp hóa, siêu thị mini, bán buôn...",
    ),
    TaxGroup(
        id=TaxGroupId.SERVICES_CONSTRUCTION,
        name="Dịch vụ, xây dựng không bao thầu nguyên vật liệu",
        short_name="Dịch vụ",
        vat_rate=Decimal("5.0"),
        pit_rate=Decimal("2.0"),
        description="Lưu trú, sửa chữa, tư vấn, xây dựng nhân công...",
        warning="Lưu ý: Ngành có thuế suất cao nhất. Tránh khai sai từ dịch vụ sang bán hàng.",
    ),
    TaxGroup(
        id=TaxGroupId.PRODUCTION_TRANSPORT,
        name="Sản xuất, vận tải, dịch vụ có gắn với hàng hóa",
        short_name="Sản xuất/Vận tải",
        vat_rate=Decimal("3.0"),
        pit_rate=Decimal("1.5"),
        description="Nhà hàng, quán ăn, xưởng gia công, vận tải hàng hóa...",
    ),
    TaxGroup(
        id=TaxGroupId.OTHER,
        name="Hoạt động kinh doanh khác",
        short_name="Khác",
        vat_rate=Decimal("2.0"),
        pit_rate=Decimal("1.0"),
        description="Các hoạt động không thuộc các nhóm trên.",
    ),
    TaxGroup(
        id=TaxGroupId.RENTAL,
        name="Cho thuê tài sản (Doanh thu > 100tr/năm)",
        short_name="Cho thuê tài sản",
        vat_rate=Decimal("5.0"),
        pit_rate=Decimal("5.0"),
        description="Cho thuê nhà, mặt bằng, phương tiện...",
        warning="Ngưỡng chịu thuế: Doanh thu > 8.33 triệu/tháng.",
    ),
)

_GROUPS_BY_ID = MappingProxyType({group.id: group for group in TAX_GROUPS})


# =============================================================================
# LICENSE FEE TIERS
# Ordered by descending threshold; the zero tier is the catch-all floor.
# =============================================================================

LICENSE_FEE_TIERS: tuple[LicenseFeeTier, ...] = (
    LicenseFeeTier(threshold=Decimal("500000000"), fee=Decimal("1000000")),
    LicenseFeeTier(threshold=Decimal("300000000"), fee=Decimal("500000")),
    LicenseFeeTier(threshold=Decimal("100000000"), fee=Decimal("300000")),
    LicenseFeeTier(threshold=Decimal("0"), fee=Decimal("0")),
)


# =============================================================================
# EXPENSE CATEGORY LABELS
# =============================================================================

EXPENSE_CATEGORY_LABELS = MappingProxyType({
    ExpenseCategory.SUPPLIES: "Nguyên vật liệu/Hàng hóa",
    ExpenseCategory.RENT: "Thuê mặt bằng",
    ExpenseCategory.UTILITIES: "Điện, Nước, Internet",
    ExpenseCategory.MARKETING: "Quảng cáo & Marketing",
    ExpenseCategory.SALARY: "Lương nhân viên",
    ExpenseCategory.OTHER: "Chi phí khác",
})


def get_tax_group(group_id: object) -> TaxGroup:
    """
    Look up a tax group.

    Accepts a TaxGroupId or its integer value.
    Raises InvalidGroupError for anything else - never defaults.
    """
    # bool is an int subclass; True must not resolve to DISTRIBUTION
    if isinstance(group_id, bool):
        raise InvalidGroupError(group_id)
    try:
        key = TaxGroupId(group_id)
    except (ValueError, TypeError):
        raise InvalidGroupError(group_id) from None
    return _GROUPS_BY_ID[key]


def group_label(group_id: object) -> str:
    """Short name of a group, or the ungrouped label for missing/unknown ids."""
    if group_id is None:
        return UNGROUPED_LABEL
    try:
        return get_tax_group(group_id).short_name
    except InvalidGroupError:
        return UNGROUPED_LABEL


def expense_category_label(category: object) -> str:
    return EXPENSE_CATEGORY_LABELS[ExpenseCategory.coerce(category)]
