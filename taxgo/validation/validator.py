"""
Two-Stage Validation of Ledger Entries

DESIGN DECISION: A draft (manual form or receipt scan) is checked
in two distinct stages before it can become a Transaction:

STAGE 1 - SCHEMA VALIDATION:
- Description and amount present
- Amount strictly positive
- Expense entries carry a category
- Errors here block the add

STAGE 2 - SEMANTIC VALIDATION:
- Future date detection
- Unusually large amount
- Missing invoice (a compliance risk, not an error)
- Same-looking entry already in the ledger
- Warnings only; the user may still add the entry

Stage 2 only runs when stage 1 passes.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to correct.
"""

from datetime import date, timedelta
from typing import Optional

from taxgo.config import AppSettings, get_settings
from taxgo.ledger.store import LedgerStore
from taxgo.models.ledger import (
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from taxgo.tax.calculator import format_currency


MAX_DESCRIPTION_LENGTH = 500


class IncompleteDraftError(ValueError):
    """The draft has validation errors and cannot be added."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__("; ".join(result.error_messages) or "Draft is incomplete")


class TransactionValidator:
    """
    Validates entry drafts through a two-stage pipeline.

    Stage 1: Schema validation (no ledger access)
    Stage 2: Semantic validation (ledger used for the similar-entry check)
    """

    def __init__(
        self,
        store: Optional[LedgerStore] = None,
        settings: Optional[AppSettings] = None,
    ):
        """
        Args:
            store: Ledger to look for similar entries in.
                   If None, that check is skipped.
            settings: Thresholds, defaults to the global settings
        """
        self._store = store
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        draft: TransactionDraft,
    ) -> tuple[bool, list[ValidationIssue]]:
        """Stage 1. Returns (is_valid, issues)."""
        issues = []

        description = (draft.description or "").strip()
        if not description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Vui lòng nhập nội dung giao dịch",
                severity="error",
            ))
        elif len(description) > MAX_DESCRIPTION_LENGTH:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message=f"Nội dung không được dài quá {MAX_DESCRIPTION_LENGTH} ký tự",
                severity="error",
            ))

        if draft.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Vui lòng nhập số tiền",
                severity="error",
            ))
        elif draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Số tiền phải lớn hơn 0",
                severity="error",
                suggested_fix="Kiểm tra lại số tiền đã nhập",
            ))

        if draft.type == TransactionType.EXPENSE and draft.expense_category is None:
            issues.append(ValidationIssue(
                field="expense_category",
                issue_type="missing",
                message="Vui lòng chọn loại chi phí",
                severity="error",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        draft: TransactionDraft,
    ) -> tuple[bool, list[ValidationIssue]]:
        """Stage 2. Returns (is_valid, issues)."""
        issues = []

        max_future_date = date.today() + timedelta(
            days=self._settings.future_date_tolerance_days
        )
        if draft.date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Ngày giao dịch ({draft.date.strftime('%d/%m/%Y')}) nằm trong tương lai",
                severity="warning",
                suggested_fix="Kiểm tra lại ngày",
            ))

        max_amount = self._settings.max_transaction_amount
        if draft.amount is not None and draft.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Số tiền ({format_currency(draft.amount)}) lớn bất thường",
                severity="warning",
                suggested_fix="Kiểm tra lại số chữ số 0",
            ))

        if not draft.has_invoice:
            issues.append(ValidationIssue(
                field="has_invoice",
                issue_type="missing_invoice",
                message="Giao dịch không có hóa đơn, chứng từ",
                severity="warning",
                suggested_fix="Lưu giữ hóa đơn để tránh rủi ro khi quyết toán",
            ))

        issues.extend(self._check_similar(draft))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _check_similar(self, draft: TransactionDraft) -> list[ValidationIssue]:
        """
        Flag an entry that looks like one already recorded.

        Same-content entries are legitimate (two identical sales on
        one day), so this is a warning only.
        """
        if self._store is None or not draft.description:
            return []

        description = draft.description.strip().casefold()
        similar = self._store.filter(
            lambda t: t.date == draft.date
            and t.amount == draft.amount
            and t.type == draft.type
            and t.description.casefold() == description
        )
        if not similar:
            return []
        return [ValidationIssue(
            field="duplicate",
            issue_type="potential_duplicate",
            message="Đã có giao dịch giống hệt trong sổ cùng ngày",
            severity="warning",
            suggested_fix="Kiểm tra để tránh ghi trùng",
        )]

    def validate(self, draft: TransactionDraft) -> ValidationResult:
        """
        Run the two-stage pipeline.

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(draft)
        all_issues.extend(schema_issues)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(draft)
            all_issues.extend(semantic_issues)

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Summary text shown under the entry form."""
        if result.is_valid and not result.warnings:
            return "✅ Thông tin hợp lệ."

        lines = []

        if not result.schema_valid:
            lines.append("❌ Thiếu hoặc sai thông tin:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Lưu ý:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
