"""
Main Orchestrator for SnapLedger

This module ties together all the components and defines the
end-to-end flows for:
1. Analysis (screenshot → catalog → model → recovery → reconciliation)
2. Saving (confirmed items → category creation → transactions)
3. Category management and statistics

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is persisted during analysis - items come back for review
- Nothing is saved without the user confirming it
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import date
from typing import NamedTuple, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from snapledger.audit import AuditLogger, create_correlation_id
from snapledger.catalog import CategoryCatalog, CategoryCatalogResolver, default_categories
from snapledger.config import AppSettings, get_settings
from snapledger.materialization import TransactionMaterializer
from snapledger.models.ledger import (
    ConfirmedLineItem,
    ExtractionResult,
    ImageUpload,
    MaterializationReport,
    Transaction,
    TransactionType,
)
from snapledger.parsing import MalformedResponseError, parse_model_response
from snapledger.reconciliation import reconcile_items
from snapledger.reports import StatisticsService
from snapledger.services.storage import (
    CategoryStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryTransactionStorage,
    NotFoundError,
    PermissionDeniedError,
    TransactionStorageInterface,
)
from snapledger.services.vision import AnalysisError, GeminiVisionService, VisionProviderError
from snapledger.validation import LineItemValidator


logger = structlog.get_logger(__name__)


class InvalidImageError(Exception):
    """The uploaded file can't be analyzed (empty, too large, wrong type)."""
    pass


class ReceiptAnalysisFlow:
    """
    Orchestrates screenshot analysis.

    Flow:
    1. Upload → Validate size and type
    2. Catalog → Load the user's categories (degrades to defaults)
    3. Extract → One Gemini request with the image and category names
    4. Recover → Parse the reply into line items
    5. Reconcile → Resolve category labels to ids
    6. Review → Return items to the user (PAUSE - nothing is saved)
    """

    def __init__(
        self,
        category_storage: CategoryStorageInterface,
        vision_service: Optional[GeminiVisionService] = None,
        validator: Optional[LineItemValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._settings = settings or get_settings().app
        self._audit_logger = audit_logger or AuditLogger()
        self._resolver = CategoryCatalogResolver(category_storage, self._audit_logger)
        self._vision_service = vision_service
        self._validator = validator or LineItemValidator(self._settings)

    @property
    def vision_service(self) -> GeminiVisionService:
        # Created on first use so the app starts without Gemini credentials
        if self._vision_service is None:
            self._vision_service = GeminiVisionService()
        return self._vision_service

    async def load_catalog(
        self,
        owner_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> CategoryCatalog:
        """Load the user's category catalog."""
        return await self._resolver.resolve(owner_id, correlation_id)

    def validate_upload(
        self,
        filename: str,
        file_size: int,
        mime_type: Optional[str],
    ) -> ImageUpload:
        """
        Check an upload before it's sent anywhere.

        Raises:
            InvalidImageError: If the file is empty, too large or not a
                supported image type
        """
        if file_size <= 0:
            raise InvalidImageError("No image provided")
        if file_size > self._settings.max_upload_size_bytes:
            raise InvalidImageError(
                f"Image is too large (max {self._settings.max_upload_size_mb} MB)"
            )

        try:
            return ImageUpload(
                original_filename=filename or "upload",
                file_size_bytes=file_size,
                mime_type=mime_type or "image/jpeg",
            )
        except ValidationError as e:
            raise InvalidImageError("Unsupported image type") from e

    async def analyze(
        self,
        owner_id: UUID,
        image_bytes: bytes,
        filename: str,
        mime_type: Optional[str],
        catalog: Optional[CategoryCatalog] = None,
        correlation_id: Optional[UUID] = None,
        today: Optional[date] = None,
    ) -> ExtractionResult:
        """
        Analyze one screenshot.

        Returns:
            ExtractionResult with reconciled items and rejected ones

        Raises:
            InvalidImageError: If the upload is unusable
            AnalysisError: If the provider fails, returns nothing, or
                returns text no items can be recovered from
        """
        correlation_id = correlation_id or create_correlation_id()
        today = today or date.today()

        upload = self.validate_upload(filename, len(image_bytes), mime_type)
        await self._audit_logger.log_receipt_uploaded(
            upload_id=upload.upload_id,
            owner_id=owner_id,
            filename=upload.original_filename,
            file_size=upload.file_size_bytes,
            correlation_id=correlation_id,
        )

        if catalog is None:
            catalog = await self.load_catalog(owner_id, correlation_id)

        try:
            raw_text = await self.vision_service.extract(
                image_bytes=image_bytes,
                mime_type=upload.mime_type,
                expense_categories=catalog.names_for(TransactionType.EXPENSE),
                income_categories=catalog.names_for(TransactionType.INCOME),
                today=today,
            )
        except AnalysisError as e:
            if isinstance(e, VisionProviderError):
                await self._audit_logger.log_external_service_error(
                    service="gemini",
                    error_message=str(e.__cause__ or e),
                    correlation_id=correlation_id,
                )
            await self._audit_logger.log_analysis_failed(
                owner_id=owner_id,
                error_code=e.code,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        try:
            result = parse_model_response(raw_text, today, self._validator)
        except MalformedResponseError as e:
            await self._audit_logger.log_malformed_response(
                owner_id=owner_id,
                reason=e.reason,
                raw_text=e.raw_text[:self._settings.raw_response_log_chars],
                correlation_id=correlation_id,
            )
            raise

        result = result.model_copy(update={"items": reconcile_items(result.items, catalog)})

        if result.rejected:
            await self._audit_logger.log_line_items_rejected(
                extraction_id=result.extraction_id,
                owner_id=owner_id,
                rejected=[
                    {
                        "index": r.index,
                        "name": r.name,
                        "issues": [issue.message for issue in r.issues],
                    }
                    for r in result.rejected
                ],
                correlation_id=correlation_id,
            )

        await self._audit_logger.log_analysis_completed(
            extraction_id=result.extraction_id,
            owner_id=owner_id,
            item_count=result.item_count,
            rejected_count=len(result.rejected),
            matched_count=sum(1 for item in result.items if item.resolved_category_id),
            correlation_id=correlation_id,
        )

        return result


class TransactionSaveFlow:
    """
    Saves user-confirmed line items and manages stored transactions.

    Confirmation is the caller's responsibility: only items the user
    accepted on the review screen are passed to save_items().
    """

    def __init__(
        self,
        category_storage: CategoryStorageInterface,
        transaction_storage: TransactionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._audit_logger = audit_logger or AuditLogger()
        self._transactions = transaction_storage
        self._resolver = CategoryCatalogResolver(category_storage, self._audit_logger)
        self._materializer = TransactionMaterializer(
            category_storage,
            transaction_storage,
            self._audit_logger,
        )

    async def save_items(
        self,
        owner_id: UUID,
        items: list[ConfirmedLineItem],
        correlation_id: Optional[UUID] = None,
    ) -> MaterializationReport:
        """Persist confirmed items one by one."""
        correlation_id = correlation_id or create_correlation_id()
        catalog = await self._resolver.resolve(owner_id, correlation_id)
        return await self._materializer.materialize(
            owner_id,
            items,
            catalog,
            correlation_id=correlation_id,
        )

    async def list_transactions(
        self,
        owner_id: UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> list[Transaction]:
        return await self._transactions.list_transactions(
            owner_id,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
            offset=offset,
        )

    async def delete_transaction(self, owner_id: UUID, transaction_id: UUID) -> bool:
        """Delete one of the user's transactions. False if it doesn't exist."""
        deleted = await self._transactions.delete_transaction(owner_id, transaction_id)
        if deleted:
            await self._audit_logger.log_transaction_deleted(
                transaction_id=transaction_id,
                owner_id=owner_id,
            )
        return deleted


class CategoryService:
    """Category listing, seeding and deletion."""

    def __init__(
        self,
        category_storage: CategoryStorageInterface,
        transaction_storage: TransactionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._audit_logger = audit_logger or AuditLogger()
        self._categories = category_storage
        self._transactions = transaction_storage
        self._resolver = CategoryCatalogResolver(category_storage, self._audit_logger)

    @property
    def resolver(self) -> CategoryCatalogResolver:
        return self._resolver

    async def list_categories(self, owner_id: UUID) -> CategoryCatalog:
        return await self._resolver.resolve(owner_id)

    async def seed_defaults(self) -> int:
        """Store any built-in categories the backend doesn't have yet."""
        return await self._categories.seed_default_categories(default_categories())

    async def delete_category(self, owner_id: UUID, category_id: UUID) -> int:
        """
        Delete one of the user's categories.

        Transactions in the category are kept and become uncategorized.

        Returns:
            Number of transactions reassigned

        Raises:
            NotFoundError: If the user has no such category
            PermissionDeniedError: If the category is a system default
        """
        catalog = await self._resolver.resolve(owner_id)
        category = catalog.get(category_id)
        if category is None:
            raise NotFoundError(f"Category not found: {category_id}")
        if category.is_default or category.owner_id is None:
            raise PermissionDeniedError("Default categories cannot be deleted")

        reassigned = await self._transactions.reassign_category(owner_id, category_id, None)
        await self._categories.delete_category(owner_id, category_id)

        await self._audit_logger.log_category_deleted(
            category_id=category_id,
            owner_id=owner_id,
            reassigned_count=reassigned,
        )
        return reassigned


class AppComponents(NamedTuple):
    """Everything the API and the Streamlit app need."""

    analysis_flow: ReceiptAnalysisFlow
    save_flow: TransactionSaveFlow
    category_service: CategoryService
    statistics_service: StatisticsService
    audit_logger: AuditLogger
    sheets_client: Optional[GoogleSheetsClient]


def create_app_components(
    use_storage: bool = True,
    vision_service: Optional[GeminiVisionService] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run fully in memory.
        vision_service: Vision client to use (Gemini if None)

    Returns:
        AppComponents
    """
    sheets_client = None
    category_storage: CategoryStorageInterface
    transaction_storage: TransactionStorageInterface

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            category_storage = GoogleSheetsCategoryStorage(sheets_client)
            transaction_storage = GoogleSheetsTransactionStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            use_storage = False
            sheets_client = None

    if not use_storage:
        category_storage = InMemoryCategoryStorage(default_categories())
        transaction_storage = InMemoryTransactionStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    category_service = CategoryService(category_storage, transaction_storage, audit_logger)

    return AppComponents(
        analysis_flow=ReceiptAnalysisFlow(
            category_storage,
            vision_service=vision_service,
            audit_logger=audit_logger,
        ),
        save_flow=TransactionSaveFlow(category_storage, transaction_storage, audit_logger),
        category_service=category_service,
        statistics_service=StatisticsService(transaction_storage, category_service.resolver),
        audit_logger=audit_logger,
        sheets_client=sheets_client,
    )
