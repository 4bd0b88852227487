"""
Ledger Data Models

These models define the strict schemas for income/expense entries
and for the data that flows into them (manual form drafts and
receipt extractions).

DESIGN DECISION: A Transaction is immutable.
The ledger only supports add and delete, so a frozen model makes
"no edit operation" a property of the type rather than a convention.

CRITICAL: An InvoiceExtraction is PROPOSED data from the LLM.
It only ever fills a TransactionDraft; the user confirms the draft
before anything reaches the ledger.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from taxgo.models.tax import TaxGroupId


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money for a ledger entry."""
    INCOME = "income"
    EXPENSE = "expense"


class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    The same six values constrain the receipt extraction response.
    """
    SUPPLIES = "supplies"
    RENT = "rent"
    UTILITIES = "utilities"
    MARKETING = "marketing"
    SALARY = "salary"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: object) -> "ExpenseCategory":
        """Map any value onto a category, falling back to OTHER."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.OTHER


def _new_transaction_id() -> str:
    return uuid4().hex


def parse_loose_date(value: object) -> Optional[dt.date]:
    """Parse the date formats receipts commonly carry. None if unparsable."""
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        for fmt in ["%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d"]:
            try:
                return dt.datetime.strptime(text, fmt).date()
            except ValueError:
                continue
    return None


# =============================================================================
# CORE LEDGER MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense entry.

    INVARIANT: income entries may carry a tax group, expense entries
    carry an expense category, never both.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        default_factory=_new_transaction_id,
        min_length=1,
        description="Unique within the ledger"
    )
    date: dt.date
    description: str = Field(..., min_length=1, max_length=500)
    amount: Decimal = Field(..., ge=0, description="Amount in VND")
    type: TransactionType
    tax_group_id: Optional[TaxGroupId] = None
    expense_category: Optional[ExpenseCategory] = None
    has_invoice: bool = False

    @model_validator(mode='after')
    def validate_type_fields(self) -> 'Transaction':
        """Exactly one of group/category is meaningful, based on type."""
        if self.type == TransactionType.INCOME:
            if self.expense_category is not None:
                raise ValueError("Income entries cannot carry an expense category")
        else:
            if self.tax_group_id is not None:
                raise ValueError("Expense entries cannot carry a tax group")
            if self.expense_category is None:
                raise ValueError("Expense entries require an expense category")
        return self

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME


# =============================================================================
# INPUT MODELS
# =============================================================================

class InvoiceExtraction(BaseModel):
    """
    Structured data the LLM read off a receipt photo.

    An unknown category is replaced by OTHER rather than rejecting
    the extraction. An unreadable date is dropped.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal = Field(..., ge=0)
    date: Optional[dt.date] = None
    description: str = Field(default="", max_length=500)
    category: ExpenseCategory = ExpenseCategory.OTHER

    @field_validator('description', mode='before')
    @classmethod
    def clip_description(cls, v: object) -> object:
        if v is None:
            return ""
        if isinstance(v, str):
            return v.strip()[:500]
        return v

    @field_validator('category', mode='before')
    @classmethod
    def coerce_category(cls, v: object) -> ExpenseCategory:
        return ExpenseCategory.coerce(v)

    @field_validator('date', mode='before')
    @classmethod
    def lenient_date(cls, v: object) -> Optional[dt.date]:
        return parse_loose_date(v)


class TransactionDraft(BaseModel):
    """
    State of the add-entry form.

    Every field is optional because the user fills it in gradually
    (or a receipt scan pre-fills it). A draft only becomes a
    Transaction through TransactionValidator / LedgerFlow.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: TransactionType = TransactionType.INCOME
    date: dt.date = Field(default_factory=dt.date.today)
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    tax_group_id: TaxGroupId = TaxGroupId.DISTRIBUTION
    expense_category: Optional[ExpenseCategory] = ExpenseCategory.SUPPLIES
    has_invoice: bool = True

    def apply_extraction(self, extraction: InvoiceExtraction) -> "TransactionDraft":
        """
        Return a copy pre-filled from a receipt scan.

        Receipts are almost always purchases, so the draft switches
        to EXPENSE. The date is only replaced if one was read.
        """
        update = {
            "type": TransactionType.EXPENSE,
            "amount": extraction.amount,
            "description": extraction.description or self.description,
            "expense_category": extraction.category,
        }
        if extraction.date is not None:
            update["date"] = extraction.date
        return self.model_copy(update=update)

    def to_transaction(self, transaction_id: Optional[str] = None) -> Transaction:
        """
        Build the Transaction for this draft.

        Raises ValueError (pydantic ValidationError) when required
        fields are missing. Callers validate first.
        """
        is_income = self.type == TransactionType.INCOME
        data = {
            "date": self.date,
            "description": self.description,
            "amount": self.amount,
            "type": self.type,
            "tax_group_id": self.tax_group_id if is_income else None,
            "expense_category": None if is_income else self.expense_category,
            "has_invoice": self.has_invoice,
        }
        if transaction_id:
            data["id"] = transaction_id
        return Transaction(**data)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'future_date')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of the two-stage draft validation.

    Stage 1: Schema validation (required fields)
    Stage 2: Semantic validation (plausibility checks)
    """

    validated_at: dt.datetime = Field(
        default_factory=dt.datetime.utcnow
    )
    schema_valid: bool
    semantic_valid: bool
    is_valid: bool = Field(
        ...,
        description="True when the draft may be added to the ledger"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]
