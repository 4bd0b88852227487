"""
Data Models Package

This package contains all Pydantic models used in TaxGo.
All data flowing through the system must conform to these schemas.
"""

from taxgo.models.tax import (
    LicenseFeeTier,
    TaxCalculationResult,
    TaxGroup,
    TaxGroupId,
    TaxpayerProfile,
)
from taxgo.models.ledger import (
    ExpenseCategory,
    InvoiceExtraction,
    Transaction,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from taxgo.models.chat import (
    ChatMessage,
    ChatRole,
    ChatTranscript,
)
from taxgo.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Tax models
    "LicenseFeeTier",
    "TaxCalculationResult",
    "TaxGroup",
    "TaxGroupId",
    "TaxpayerProfile",
    # Ledger models
    "ExpenseCategory",
    "InvoiceExtraction",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    # Chat models
    "ChatMessage",
    "ChatRole",
    "ChatTranscript",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
