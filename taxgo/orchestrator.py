"""
Main Orchestrator for TaxGo

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger (draft → validate → add; receipt photo → draft)
2. Calculator (inputs → tax result → 01/CNKD export)
3. Assistant (question → Gemini → transcript)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing enters the ledger without passing validation
- A receipt scan only pre-fills a draft; the user confirms the add
- One assistant request at a time per flow
- Every step is audited

The flows own the session state (ledger, transcript). The Streamlit
shell keeps one instance of each per browser session.
"""

from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator, Optional
from uuid import UUID

from taxgo.agents import AssistantGateway
from taxgo.analytics import DashboardSummary, build_summary
from taxgo.audit import AuditLogger, configure_logging, create_correlation_id
from taxgo.config import get_settings
from taxgo.export import filing_filename, generate_filing_document
from taxgo.ledger import LedgerStore, seed_demo_transactions
from taxgo.models.chat import ChatMessage, ChatRole, ChatTranscript
from taxgo.models.ledger import (
    InvoiceExtraction,
    Transaction,
    TransactionDraft,
    ValidationResult,
)
from taxgo.models.tax import TaxCalculationResult, TaxpayerProfile
from taxgo.services.image import ImageValidationError, prepare_receipt_image
from taxgo.tax import calculate_tax, get_tax_group
from taxgo.tax.calculator import Amount, to_decimal
from taxgo.validation import IncompleteDraftError, TransactionValidator


SCAN_FAILED_MESSAGE = "Không thể đọc thông tin từ ảnh. Vui lòng nhập thủ công."
SCAN_SUCCESS_MESSAGE = "Đã đọc hóa đơn. Vui lòng kiểm tra lại trước khi lưu."


class RequestInProgressError(RuntimeError):
    """An assistant request is already running for this flow."""
    pass


class _SingleRequest:
    """Pending flag shared by flows that call the assistant."""

    def __init__(self):
        self._pending = False

    @property
    def is_pending(self) -> bool:
        return self._pending

    @contextmanager
    def _request(self) -> Iterator[None]:
        if self._pending:
            raise RequestInProgressError("An assistant request is already in progress")
        self._pending = True
        try:
            yield
        finally:
            self._pending = False


class LedgerFlow(_SingleRequest):
    """
    Orchestrates ledger changes.

    Flow (manual):
    1. User fills a TransactionDraft
    2. Validate → errors block, warnings are shown
    3. Add → Transaction inserted at the top of the ledger

    Flow (receipt):
    1. Photo → checked and normalized locally
    2. Gemini extraction → draft pre-filled as an EXPENSE
    3. User reviews, then continues with the manual flow
    """

    def __init__(
        self,
        store: LedgerStore,
        validator: Optional[TransactionValidator] = None,
        gateway: Optional[AssistantGateway] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__()
        self._store = store
        self._validator = validator or TransactionValidator(store)
        self._gateway = gateway or AssistantGateway(audit_logger=audit_logger)
        self._audit_logger = audit_logger

    @property
    def store(self) -> LedgerStore:
        return self._store

    def summary(self) -> DashboardSummary:
        return build_summary(self._store)

    def validate(self, draft: TransactionDraft) -> ValidationResult:
        return self._validator.validate(draft)

    def validation_summary(self, result: ValidationResult) -> str:
        return self._validator.get_user_friendly_summary(result)

    def add_from_draft(
        self,
        draft: TransactionDraft,
        source: str = "manual",
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Transaction, ValidationResult]:
        """
        Validate a draft and add it to the ledger.

        Returns:
            (transaction, validation_result). The result carries any
            non-blocking warnings for display.

        Raises:
            IncompleteDraftError: the draft has validation errors
        """
        result = self._validator.validate(draft)

        if not result.schema_valid:
            if self._audit_logger:
                self._audit_logger.log_draft_validation_failed(
                    issues=[issue.model_dump() for issue in result.issues],
                    correlation_id=correlation_id,
                )
            raise IncompleteDraftError(result)

        transaction = self._store.add(draft.to_transaction())

        if self._audit_logger:
            self._audit_logger.log_transaction_added(
                transaction_id=transaction.id,
                transaction_type=transaction.type.value,
                amount=str(transaction.amount),
                source=source,
                correlation_id=correlation_id,
            )

        return transaction, result

    def remove(self, transaction_id: str) -> bool:
        """Remove an entry. Unknown ids are a no-op and are not audited."""
        removed = self._store.remove(transaction_id)
        if removed and self._audit_logger:
            self._audit_logger.log_transaction_removed(transaction_id=transaction_id)
        return removed

    def draft_from_invoice(
        self,
        extraction: InvoiceExtraction,
        draft: Optional[TransactionDraft] = None,
    ) -> TransactionDraft:
        """Pre-fill a draft (or a fresh one) from extracted receipt data."""
        return (draft or TransactionDraft()).apply_extraction(extraction)

    async def scan_receipt(
        self,
        image_bytes: bytes,
        filename: str,
        draft: Optional[TransactionDraft] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[TransactionDraft, bool, str]:
        """
        Read a receipt photo into a draft.

        Returns:
            (draft, success, message). On failure the draft is returned
            unchanged and the user enters the data manually.

        Raises:
            ImageValidationError: the upload is not a usable image
            RequestInProgressError: another scan is still running
        """
        correlation_id = correlation_id or create_correlation_id()
        draft = draft or TransactionDraft()

        with self._request():
            try:
                image = prepare_receipt_image(image_bytes, filename)
            except ImageValidationError as e:
                if self._audit_logger:
                    self._audit_logger.log_image_rejected(
                        filename=filename,
                        reason=e.reason,
                        correlation_id=correlation_id,
                    )
                raise

            extraction = await self._gateway.analyze_invoice_image(
                image.base64_data,
                mime_type=image.mime_type,
            )

        if extraction is None:
            if self._audit_logger:
                reason = "demo mode" if self._gateway.is_demo_mode else "no data extracted"
                self._audit_logger.log_invoice_scan_failed(
                    reason=reason,
                    correlation_id=correlation_id,
                )
            return draft, False, SCAN_FAILED_MESSAGE

        if self._audit_logger:
            self._audit_logger.log_invoice_scanned(
                amount=str(extraction.amount),
                category=extraction.category.value,
                correlation_id=correlation_id,
            )

        message = SCAN_SUCCESS_MESSAGE
        if image.quality_issues:
            message += " " + " ".join(image.quality_issues)
        return self.draft_from_invoice(extraction, draft), True, message


class CalculatorFlow:
    """
    Orchestrates the tax calculator page.

    Calculation itself is pure; this flow adds auditing and the
    filing export with the configured taxpayer profile.

    The page recalculates on every rerun, so a calculation is audited
    only when its inputs differ from the last audited one.
    """

    def __init__(
        self,
        taxpayer: Optional[TaxpayerProfile] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        if taxpayer is None:
            settings = get_settings().taxpayer
            taxpayer = TaxpayerProfile(
                name=settings.name,
                tax_code=settings.tax_code,
                address=settings.address,
            )
        self._taxpayer = taxpayer
        self._audit_logger = audit_logger
        self._last_inputs: Optional[tuple] = None
        self._last_filing: Optional[tuple] = None

    @property
    def taxpayer(self) -> TaxpayerProfile:
        return self._taxpayer

    def calculate(
        self,
        revenue: Amount,
        tax_group_id: object,
        annual_revenue_projection: Amount,
    ) -> TaxCalculationResult:
        """
        Raises:
            InvalidGroupError: unknown group
            ValueError: negative or non-numeric amounts
        """
        result = calculate_tax(revenue, tax_group_id, annual_revenue_projection)
        group = get_tax_group(tax_group_id)

        inputs = (
            group.id,
            result.revenue,
            to_decimal(annual_revenue_projection, "annual_revenue_projection"),
        )
        if inputs == self._last_inputs:
            return result
        self._last_inputs = inputs

        if self._audit_logger:
            self._audit_logger.log_tax_calculated(
                tax_group=group.short_name,
                revenue=str(result.revenue),
                total_tax=result.total_tax,
                license_fee=result.license_fee,
                is_exempt=result.is_exempt,
            )
        return result

    def export_filing(
        self,
        result: TaxCalculationResult,
        name: Optional[str] = None,
        tax_code: Optional[str] = None,
        filing_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> tuple[str, str]:
        """
        Render the 01/CNKD document for a calculation.

        Name and tax code default to the taxpayer profile. The export
        is kept so the page can offer it again via latest_filing().

        Returns:
            (filename, xml_text)
        """
        inputs = self._filing_inputs(result, name, tax_code, filing_date)
        filename = filing_filename(now)
        xml_text = generate_filing_document(
            revenue=result.revenue,
            tax=result.total_tax,
            tax_code=inputs[2],
            name=inputs[1],
            filing_date=inputs[3],
        )
        self._last_filing = (inputs, (filename, xml_text))

        if self._audit_logger:
            self._audit_logger.log_filing_exported(
                filename=filename,
                revenue=str(result.revenue),
                tax=result.total_tax,
            )
        return filename, xml_text

    def latest_filing(
        self,
        result: TaxCalculationResult,
        name: Optional[str] = None,
        tax_code: Optional[str] = None,
        filing_date: Optional[date] = None,
    ) -> Optional[tuple[str, str]]:
        """
        The last export, if it was made from exactly these inputs.

        Returns None once the result or the taxpayer fields changed,
        so a download never carries figures that are no longer shown.
        """
        if self._last_filing is None:
            return None
        inputs, export = self._last_filing
        if inputs != self._filing_inputs(result, name, tax_code, filing_date):
            return None
        return export

    def _filing_inputs(
        self,
        result: TaxCalculationResult,
        name: Optional[str],
        tax_code: Optional[str],
        filing_date: Optional[date],
    ) -> tuple:
        return (
            result,
            name if name is not None else self._taxpayer.name,
            tax_code if tax_code is not None else self._taxpayer.tax_code,
            filing_date or date.today(),
        )


class AssistantFlow(_SingleRequest):
    """
    Orchestrates the assistant chat.

    The transcript belongs to the session, not to the page: a reply
    that arrives after the user navigated away is still appended.
    """

    def __init__(
        self,
        gateway: Optional[AssistantGateway] = None,
        transcript: Optional[ChatTranscript] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__()
        self._gateway = gateway or AssistantGateway(audit_logger=audit_logger)
        self._transcript = transcript or ChatTranscript()
        self._audit_logger = audit_logger

    @property
    def transcript(self) -> ChatTranscript:
        return self._transcript

    @property
    def is_demo_mode(self) -> bool:
        return self._gateway.is_demo_mode

    async def ask(
        self,
        question: str,
        correlation_id: Optional[UUID] = None,
    ) -> ChatMessage:
        """
        Send a question and append both turns to the transcript.

        Returns:
            The assistant's reply message

        Raises:
            ValueError: empty question
            RequestInProgressError: a previous question is unanswered
        """
        text = (question or "").strip()
        if not text:
            raise ValueError("Question cannot be empty")

        with self._request():
            history = self._transcript.history()
            self._transcript.append(ChatRole.USER, text)
            reply_text = await self._gateway.send_chat_message(history, text)

        reply = self._transcript.append(ChatRole.ASSISTANT, reply_text)

        if self._audit_logger:
            self._audit_logger.log_chat_answered(
                message_id=reply.id,
                history_length=len(history),
                demo_mode=self._gateway.is_demo_mode,
                correlation_id=correlation_id,
            )
        return reply


def create_app_components(
    seed_demo: Optional[bool] = None,
) -> tuple[LedgerFlow, CalculatorFlow, AssistantFlow, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        seed_demo: Load the demo transactions. Defaults to the
                   SEED_DEMO_DATA setting.

    Returns:
        (ledger_flow, calculator_flow, assistant_flow, audit_logger)
    """
    settings = get_settings()
    app_settings = settings.app
    configure_logging(app_settings.log_level)

    audit_logger = AuditLogger()
    store = LedgerStore()

    if seed_demo if seed_demo is not None else app_settings.seed_demo_data:
        count = seed_demo_transactions(store)
        audit_logger.log_demo_data_seeded(count)

    gateway = AssistantGateway(settings=settings.gemini, audit_logger=audit_logger)

    ledger_flow = LedgerFlow(
        store=store,
        validator=TransactionValidator(store, settings=app_settings),
        gateway=gateway,
        audit_logger=audit_logger,
    )
    calculator_flow = CalculatorFlow(audit_logger=audit_logger)
    assistant_flow = AssistantFlow(gateway=gateway, audit_logger=audit_logger)

    return ledger_flow, calculator_flow, assistant_flow, audit_logger
