"""
Audit Models for SnapLedger

Every significant step of the extraction and save pipeline is logged.
This provides:
1. Traceability from an uploaded screenshot to the transactions it produced
2. Server-side diagnostics when the model misbehaves
3. A record of categories created implicitly on the user's behalf

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Extraction
    RECEIPT_UPLOADED = "receipt_uploaded"
    CATALOG_DEGRADED = "catalog_degraded"
    ANALYSIS_COMPLETED = "analysis_completed"
    ANALYSIS_FAILED = "analysis_failed"
    MALFORMED_RESPONSE = "malformed_response"
    LINE_ITEMS_REJECTED = "line_items_rejected"

    # Reconciliation
    CATEGORY_CREATED = "category_created"
    CATEGORY_CREATION_FAILED = "category_creation_failed"
    CATEGORY_DELETED = "category_deleted"

    # Materialization
    TRANSACTION_SAVED = "transaction_saved"
    TRANSACTION_SAVE_FAILED = "transaction_save_failed"
    TRANSACTION_DELETED = "transaction_deleted"
    BATCH_SAVED = "batch_saved"

    # System events
    SYSTEM_ERROR = "system_error"
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
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Who and what is this about?
    owner_id: Optional[UUID] = Field(
        default=None,
        description="User the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'upload', 'category', 'transaction')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - all events of one request share this
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "owner_id": str(self.owner_id) if self.owner_id else None,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, owner_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            str(self.owner_id) if self.owner_id else "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.receipt_uploaded(upload_id, owner_id, ...)
        event = AuditEventBuilder.batch_saved(owner_id, succeeded, total, ...)
    """

    @staticmethod
    def receipt_uploaded(
        upload_id: UUID,
        owner_id: UUID,
        filename: str,
        file_size: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_UPLOADED,
            owner_id=owner_id,
            entity_type="upload",
            entity_id=upload_id,
            correlation_id=correlation_id,
            description=f"Screenshot uploaded: {filename[:200]}",
            details={
                "filename": filename,
                "file_size_bytes": file_size,
            },
            is_user_action=True,
        )

    @staticmethod
    def catalog_degraded(
        owner_id: UUID,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATALOG_DEGRADED,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description="Category catalog unavailable, using built-in defaults",
            error_message=error_message,
        )

    @staticmethod
    def analysis_completed(
        extraction_id: UUID,
        owner_id: UUID,
        item_count: int,
        rejected_count: int,
        matched_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_COMPLETED,
            owner_id=owner_id,
            entity_type="extraction",
            entity_id=extraction_id,
            correlation_id=correlation_id,
            description=f"Screenshot analyzed: {item_count} line items extracted",
            details={
                "item_count": item_count,
                "rejected_count": rejected_count,
                "matched_category_count": matched_count,
            },
        )

    @staticmethod
    def analysis_failed(
        owner_id: UUID,
        error_code: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_FAILED,
            severity=AuditSeverity.ERROR,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"Screenshot analysis failed: {error_code}",
            error_message=error_message,
            details={
                "error_code": error_code,
            },
        )

    @staticmethod
    def malformed_response(
        owner_id: UUID,
        reason: str,
        raw_text: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MALFORMED_RESPONSE,
            severity=AuditSeverity.ERROR,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description="Model reply did not contain usable JSON",
            error_message=reason,
            details={
                "raw_text": raw_text,
            },
        )

    @staticmethod
    def line_items_rejected(
        extraction_id: UUID,
        owner_id: UUID,
        rejected: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LINE_ITEMS_REJECTED,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type="extraction",
            entity_id=extraction_id,
            correlation_id=correlation_id,
            description=f"{len(rejected)} extracted line items failed validation",
            details={
                "rejected": rejected,
            },
        )

    @staticmethod
    def category_created(
        category_id: UUID,
        owner_id: UUID,
        name: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_CREATED,
            owner_id=owner_id,
            entity_type="category",
            entity_id=category_id,
            correlation_id=correlation_id,
            description=f"Category created: {name}",
            details={
                "name": name,
            },
        )

    @staticmethod
    def category_creation_failed(
        owner_id: UUID,
        name: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_CREATION_FAILED,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type="category",
            correlation_id=correlation_id,
            description=f"Could not create category '{name}', item left uncategorized",
            error_message=error_message,
            details={
                "name": name,
            },
        )

    @staticmethod
    def category_deleted(
        category_id: UUID,
        owner_id: UUID,
        reassigned_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_DELETED,
            owner_id=owner_id,
            entity_type="category",
            entity_id=category_id,
            correlation_id=correlation_id,
            description=f"Category deleted, {reassigned_count} transactions now uncategorized",
            details={
                "reassigned_count": reassigned_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_saved(
        transaction_id: UUID,
        owner_id: UUID,
        name: str,
        amount: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            owner_id=owner_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction saved: {name} - {amount}",
            details={
                "name": name,
                "amount": amount,
            },
        )

    @staticmethod
    def transaction_save_failed(
        owner_id: UUID,
        name: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            owner_id=owner_id,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"Transaction save failed: {name}",
            error_message=error_message,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: UUID,
        owner_id: UUID,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            owner_id=owner_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def batch_saved(
        owner_id: UUID,
        succeeded: int,
        total: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        severity = AuditSeverity.INFO if succeeded else AuditSeverity.ERROR
        return AuditEvent(
            event_type=AuditEventType.BATCH_SAVED,
            severity=severity,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"Saved {succeeded} of {total} confirmed line items",
            details={
                "succeeded": succeeded,
                "total": total,
            },
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
