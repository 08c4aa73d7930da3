"""Services package."""

from snapledger.services.storage import (
    AuditStorageInterface,
    CategoryStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryTransactionStorage,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    TransactionStorageInterface,
)
from snapledger.services.vision import (
    AnalysisError,
    EmptyResponseError,
    GeminiVisionService,
    VisionProviderError,
)

__all__ = [
    # Vision services
    "AnalysisError",
    "EmptyResponseError",
    "GeminiVisionService",
    "VisionProviderError",
    # Storage services
    "AuditStorageInterface",
    "CategoryStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsCategoryStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
    "InMemoryAuditStorage",
    "InMemoryCategoryStorage",
    "InMemoryTransactionStorage",
    "NotFoundError",
    "PermissionDeniedError",
    "StorageError",
    "TransactionStorageInterface",
]
