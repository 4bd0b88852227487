"""
01/CNKD Filing Document Export

Renders a calculation into the XML layout of the household-business
declaration form 01/CNKD, for local download.

This is a best-effort convenience artifact, NOT a validated filing:
no schema validation and no check of the tax code format. The tree
is built with lxml, so free-text fields (taxpayer name, tax code)
are escaped on serialization. Control characters pasted into them
are dropped, since XML 1.0 cannot carry them.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

from lxml import etree

FORM_CODE = "01/CNKD"
FORM_TITLE = "Tờ khai thuế đối với cá nhân kinh doanh"
FILENAME_PREFIX = "ToKhai_01_CNKD_"

_XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

# Outside the XML 1.0 Char production: C0 controls other than
# tab/LF/CR, lone surrogates, U+FFFE and U+FFFF
_XML_ILLEGAL_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def _format_amount(value: Union[Decimal, int, float]) -> str:
    """Plain digits, no exponent, no trailing zeros."""
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    if amount == amount.to_integral_value():
        return str(int(amount))
    return format(amount.normalize(), "f")


def xml_safe_text(text: str) -> str:
    """Drop characters that cannot appear in an XML 1.0 document."""
    return _XML_ILLEGAL_CHARS.sub("", text)


def _child(parent: etree._Element, tag: str, text: str) -> etree._Element:
    element = etree.SubElement(parent, tag)
    element.text = xml_safe_text(text)
    return element


def generate_filing_document(
    revenue: Union[Decimal, int, float],
    tax: Union[Decimal, int, float],
    tax_code: str,
    name: str,
    filing_date: Optional[date] = None,
) -> str:
    """
    Build the 01/CNKD XML text.

    Args:
        revenue: Declared revenue (VND)
        tax: Computed tax payable (VND)
        tax_code: Taxpayer code (MST), escaped, control characters removed
        name: Taxpayer name, escaped, control characters removed
        filing_date: Declaration date, defaults to today

    Returns:
        The XML document as a string, starting with the XML declaration.
    """
    filing_date = filing_date or date.today()

    root = etree.Element("HSoThueDTu")
    declaration = etree.SubElement(root, "HSoKhaiThue")

    general = etree.SubElement(declaration, "TTinChung")
    _child(general, "MSo", FORM_CODE)
    _child(general, "Ten", FORM_TITLE)
    _child(general, "NguoiNopThue", name)
    _child(general, "MaSoThue", tax_code)
    _child(general, "NgayKhai", filing_date.isoformat())

    content = etree.SubElement(declaration, "NoiDung")
    _child(content, "DoanhThu", _format_amount(revenue))
    _child(content, "ThuePhaiNop", _format_amount(tax))

    body = etree.tostring(root, pretty_print=True, encoding="unicode")
    return _XML_DECLARATION + body


def filing_filename(now: Optional[datetime] = None) -> str:
    """Download name: ToKhai_01_CNKD_<epoch milliseconds>.xml"""
    now = now or datetime.now()
    return f"{FILENAME_PREFIX}{int(now.timestamp() * 1000)}.xml"
