"""
Audit Models for TaxGo

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every ledger change
2. Debugging information when the assistant misbehaves
3. A session activity history the user can review

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Ledger
    DEMO_DATA_SEEDED = "demo_data_seeded"
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_REMOVED = "transaction_removed"
    DRAFT_VALIDATION_FAILED = "draft_validation_failed"

    # Calculator
    TAX_CALCULATED = "tax_calculated"
    FILING_EXPORTED = "filing_exported"

    # Assistant
    CHAT_ANSWERED = "chat_answered"
    INVOICE_SCANNED = "invoice_scanned"
    INVOICE_SCAN_FAILED = "invoice_scan_failed"
    IMAGE_REJECTED = "image_rejected"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'filing', 'chat')"
    )
    entity_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., scan then add)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(transaction, correlation_id)
    """

    @staticmethod
    def demo_data_seeded(count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEMO_DATA_SEEDED,
            entity_type="ledger",
            description=f"Seeded {count} demo transactions",
            details={"count": count},
        )

    @staticmethod
    def transaction_added(
        transaction_id: str,
        transaction_type: str,
        amount: str,
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction added: {transaction_type} {amount} ({source})",
            details={
                "type": transaction_type,
                "amount": amount,
                "source": source,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_removed(
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REMOVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction removed by user",
            is_user_action=True,
        )

    @staticmethod
    def draft_validation_failed(
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DRAFT_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="draft",
            correlation_id=correlation_id,
            description=f"Entry rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def tax_calculated(
        tax_group: str,
        revenue: str,
        total_tax: int,
        license_fee: int,
        is_exempt: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TAX_CALCULATED,
            severity=AuditSeverity.DEBUG,
            entity_type="calculation",
            description=f"Tax calculated for {tax_group}: {total_tax}",
            details={
                "tax_group": tax_group,
                "revenue": revenue,
                "total_tax": total_tax,
                "license_fee": license_fee,
                "is_exempt": is_exempt,
            },
        )

    @staticmethod
    def filing_exported(
        filename: str,
        revenue: str,
        tax: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FILING_EXPORTED,
            entity_type="filing",
            entity_id=filename,
            correlation_id=correlation_id,
            description=f"01/CNKD declaration exported: {filename}",
            details={"revenue": revenue, "tax": tax},
            is_user_action=True,
        )

    @staticmethod
    def chat_answered(
        message_id: str,
        history_length: int,
        demo_mode: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHAT_ANSWERED,
            entity_type="chat",
            entity_id=message_id,
            correlation_id=correlation_id,
            description="Assistant answered a question",
            details={
                "history_length": history_length,
                "demo_mode": demo_mode,
            },
            is_user_action=True,
        )

    @staticmethod
    def invoice_scanned(
        amount: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVOICE_SCANNED,
            entity_type="invoice",
            correlation_id=correlation_id,
            description=f"Receipt scanned: {amount} ({category})",
            details={"amount": amount, "category": category},
            is_user_action=True,
        )

    @staticmethod
    def invoice_scan_failed(
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVOICE_SCAN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="invoice",
            correlation_id=correlation_id,
            description="Receipt could not be read - manual entry required",
            details={"reason": reason},
        )

    @staticmethod
    def image_rejected(
        filename: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMAGE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="image",
            entity_id=filename,
            correlation_id=correlation_id,
            description=f"Receipt image rejected: {filename}",
            details={"reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def external_service_error(
        service: str,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service} ({operation})",
            error_message=error_message,
            details={
                "service": service,
                "operation": operation,
            },
            correlation_id=correlation_id,
        )
