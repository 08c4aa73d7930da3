"""
Audit Logger

DESIGN DECISION: Every significant step of the pipeline is logged.
This provides:
1. Traceability from screenshot to saved transactions
2. Server-side diagnostics (raw model text never reaches the user)
3. A record of categories created on the user's behalf

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from snapledger.models.audit import AuditEvent, AuditEventBuilder
from snapledger.services.storage import AuditStorageInterface


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
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("snapledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def events_for(self, correlation_id: UUID) -> list[AuditEvent]:
        """All stored events of one request, oldest first."""
        if not self._storage:
            return []
        return await self._storage.get_events_by_correlation_id(correlation_id)

    async def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        if not self._storage:
            return []
        return await self._storage.get_recent_events(limit)

    async def log_receipt_uploaded(
        self,
        upload_id: UUID,
        owner_id: UUID,
        filename: str,
        file_size: int,
        correlation_id: UUID,
    ) -> None:
        """Log screenshot upload."""
        await self.log(AuditEventBuilder.receipt_uploaded(
            upload_id=upload_id,
            owner_id=owner_id,
            filename=filename,
            file_size=file_size,
            correlation_id=correlation_id,
        ))

    async def log_catalog_degraded(
        self,
        owner_id: UUID,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log that the category catalog fell back to defaults."""
        await self.log(AuditEventBuilder.catalog_degraded(
            owner_id=owner_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_analysis_completed(
        self,
        extraction_id: UUID,
        owner_id: UUID,
        item_count: int,
        rejected_count: int,
        matched_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log a successful analysis."""
        await self.log(AuditEventBuilder.analysis_completed(
            extraction_id=extraction_id,
            owner_id=owner_id,
            item_count=item_count,
            rejected_count=rejected_count,
            matched_count=matched_count,
            correlation_id=correlation_id,
        ))

    async def log_analysis_failed(
        self,
        owner_id: UUID,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a provider-side analysis failure."""
        await self.log(AuditEventBuilder.analysis_failed(
            owner_id=owner_id,
            error_code=error_code,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_malformed_response(
        self,
        owner_id: UUID,
        reason: str,
        raw_text: str,
        correlation_id: UUID,
    ) -> None:
        """Log unusable model output, keeping the raw text server-side."""
        await self.log(AuditEventBuilder.malformed_response(
            owner_id=owner_id,
            reason=reason,
            raw_text=raw_text,
            correlation_id=correlation_id,
        ))

    async def log_line_items_rejected(
        self,
        extraction_id: UUID,
        owner_id: UUID,
        rejected: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log line items that failed validation."""
        await self.log(AuditEventBuilder.line_items_rejected(
            extraction_id=extraction_id,
            owner_id=owner_id,
            rejected=rejected,
            correlation_id=correlation_id,
        ))

    async def log_category_created(
        self,
        category_id: UUID,
        owner_id: UUID,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an implicit category creation."""
        await self.log(AuditEventBuilder.category_created(
            category_id=category_id,
            owner_id=owner_id,
            name=name,
            correlation_id=correlation_id,
        ))

    async def log_category_creation_failed(
        self,
        owner_id: UUID,
        name: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed implicit category creation."""
        await self.log(AuditEventBuilder.category_creation_failed(
            owner_id=owner_id,
            name=name,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_category_deleted(
        self,
        category_id: UUID,
        owner_id: UUID,
        reassigned_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a category deletion."""
        await self.log(AuditEventBuilder.category_deleted(
            category_id=category_id,
            owner_id=owner_id,
            reassigned_count=reassigned_count,
            correlation_id=correlation_id,
        ))

    async def log_transaction_saved(
        self,
        transaction_id: UUID,
        owner_id: UUID,
        name: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a transaction insert."""
        await self.log(AuditEventBuilder.transaction_saved(
            transaction_id=transaction_id,
            owner_id=owner_id,
            name=name,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_transaction_save_failed(
        self,
        owner_id: UUID,
        name: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed transaction insert."""
        await self.log(AuditEventBuilder.transaction_save_failed(
            owner_id=owner_id,
            name=name,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        transaction_id: UUID,
        owner_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a transaction deletion."""
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            owner_id=owner_id,
            correlation_id=correlation_id,
        ))

    async def log_batch_saved(
        self,
        owner_id: UUID,
        succeeded: int,
        total: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log the outcome of a batch save."""
        await self.log(AuditEventBuilder.batch_saved(
            owner_id=owner_id,
            succeeded=succeeded,
            total=total,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a screenshot upload).
    Pass it through all subsequent operations.
    """
    return uuid4()
