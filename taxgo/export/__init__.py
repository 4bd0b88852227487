"""Filing document export package."""

from taxgo.export.filing import (
    FORM_CODE,
    filing_filename,
    generate_filing_document,
    xml_safe_text,
)

__all__ = ["FORM_CODE", "filing_filename", "generate_filing_document", "xml_safe_text"]
