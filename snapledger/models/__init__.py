"""
Data Models Package

This package contains all Pydantic models used in SnapLedger.
All data flowing through the system must conform to these schemas.
"""

from snapledger.models.ledger import (
    NEUTRAL_GRAY,
    UNCATEGORIZED_NAME,
    Category,
    CategoryIcon,
    CategoryTotal,
    CategoryType,
    ConfirmedLineItem,
    ExtractedLineItem,
    ExtractionResult,
    ImageUpload,
    ItemOutcome,
    MaterializationReport,
    NewCategoryRequest,
    PeriodSummary,
    RejectedLineItem,
    StatisticsPeriod,
    Transaction,
    TransactionType,
    ValidationIssue,
    normalize_hsl,
)
from snapledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "NEUTRAL_GRAY",
    "UNCATEGORIZED_NAME",
    "Category",
    "CategoryIcon",
    "CategoryTotal",
    "CategoryType",
    "ConfirmedLineItem",
    "ExtractedLineItem",
    "ExtractionResult",
    "ImageUpload",
    "ItemOutcome",
    "MaterializationReport",
    "NewCategoryRequest",
    "PeriodSummary",
    "RejectedLineItem",
    "StatisticsPeriod",
    "Transaction",
    "TransactionType",
    "ValidationIssue",
    "normalize_hsl",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
