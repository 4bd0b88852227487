"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability of ledger changes
2. Debugging capability for assistant failures
3. User can see the history of their session

The audit logger:
- Writes every event to the structured log
- Keeps an append-only in-memory trail for the Activity page
  (ledger data is session-only, so is its audit trail)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from taxgo.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output to stderr at the configured level."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    logging.getLogger().setLevel(level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The in-memory session trail (for the Activity page)
    """

    def __init__(self, max_events: int = 1000):
        """
        Args:
            max_events: Size of the in-memory trail. Oldest events are
                        dropped from the trail (never from the log).
        """
        self._events: list[AuditEvent] = []
        self._max_events = max_events
        self._logger = structlog.get_logger("taxgo.audit")

    def log(self, event: AuditEvent) -> AuditEvent:
        """Log an audit event locally and append it to the trail."""
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._events.append(event)
        if len(self._events) > self._max_events:
            del self._events[: len(self._events) - self._max_events]
        return event

    @property
    def events(self) -> list[AuditEvent]:
        """Copy of the trail, oldest first."""
        return list(self._events)

    def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._events[-limit:]))

    def events_for_correlation(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    def log_demo_data_seeded(self, count: int) -> None:
        self.log(AuditEventBuilder.demo_data_seeded(count))

    def log_transaction_added(
        self,
        transaction_id: str,
        transaction_type: str,
        amount: str,
        source: str = "manual",
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a new ledger entry."""
        self.log(AuditEventBuilder.transaction_added(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            source=source,
            correlation_id=correlation_id,
        ))

    def log_transaction_removed(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_removed(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    def log_draft_validation_failed(
        self,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.draft_validation_failed(
            issues=issues,
            correlation_id=correlation_id,
        ))

    def log_tax_calculated(
        self,
        tax_group: str,
        revenue: str,
        total_tax: int,
        license_fee: int,
        is_exempt: bool,
    ) -> None:
        self.log(AuditEventBuilder.tax_calculated(
            tax_group=tax_group,
            revenue=revenue,
            total_tax=total_tax,
            license_fee=license_fee,
            is_exempt=is_exempt,
        ))

    def log_filing_exported(
        self,
        filename: str,
        revenue: str,
        tax: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.filing_exported(
            filename=filename,
            revenue=revenue,
            tax=tax,
            correlation_id=correlation_id,
        ))

    def log_chat_answered(
        self,
        message_id: str,
        history_length: int,
        demo_mode: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.chat_answered(
            message_id=message_id,
            history_length=history_length,
            demo_mode=demo_mode,
            correlation_id=correlation_id,
        ))

    def log_invoice_scanned(
        self,
        amount: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.invoice_scanned(
            amount=amount,
            category=category,
            correlation_id=correlation_id,
        ))

    def log_invoice_scan_failed(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.invoice_scan_failed(
            reason=reason,
            correlation_id=correlation_id,
        ))

    def log_image_rejected(
        self,
        filename: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.image_rejected(
            filename=filename,
            reason=reason,
            correlation_id=correlation_id,
        ))

    def log_external_service_error(
        self,
        service: str,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., scanning a receipt
    and then saving the resulting entry).
    """
    return uuid4()
