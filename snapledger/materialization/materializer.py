"""
Transaction Materializer

Saves a batch of user-confirmed line items as transactions.

DESIGN DECISION: Items are saved ONE BY ONE, in order.
1. A failing item doesn't block the others (partial success is reported)
2. Category creation for item N is visible to item N+1 (dedup cache)
3. The report says exactly which items were saved

A batch where nothing was saved is a failure; anything else is a
(possibly partial) success.
"""

from typing import Optional
from uuid import UUID

from snapledger.audit.logger import AuditLogger
from snapledger.catalog import CategoryCatalog
from snapledger.models.ledger import (
    Category,
    ConfirmedLineItem,
    ItemOutcome,
    MaterializationReport,
    Transaction,
)
from snapledger.reconciliation import ensure_category, plan_new_category
from snapledger.services.storage import (
    CategoryStorageInterface,
    TransactionStorageInterface,
)


class TransactionMaterializer:
    """Persists confirmed line items for one user."""

    def __init__(
        self,
        category_storage: CategoryStorageInterface,
        transaction_storage: TransactionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._categories = category_storage
        self._transactions = transaction_storage
        self._audit = audit_logger or AuditLogger()

    async def _resolve_category(
        self,
        owner_id: UUID,
        item: ConfirmedLineItem,
        catalog: CategoryCatalog,
        created: dict[str, UUID],
        created_categories: list[Category],
        correlation_id: Optional[UUID],
    ) -> Optional[UUID]:
        """
        Pick the category for one item.

        Order: explicit category_id (if the user can see it), catalog match
        on the label, a category created earlier in this batch, then
        creation when the item asks for a new category.
        """
        if item.category_id is not None and catalog.get(item.category_id) is not None:
            return item.category_id

        label = item.category_label.strip()
        if not label:
            return None

        match = catalog.find_by_name(label)
        if match is not None:
            return match.id

        if label.lower() in created:
            return created[label.lower()]

        request = plan_new_category(item)
        if request is None:
            return None

        return await ensure_category(
            request,
            owner_id=owner_id,
            storage=self._categories,
            created=created,
            audit_logger=self._audit,
            correlation_id=correlation_id,
            created_categories=created_categories,
        )

    async def materialize(
        self,
        owner_id: UUID,
        items: list[ConfirmedLineItem],
        catalog: CategoryCatalog,
        correlation_id: Optional[UUID] = None,
    ) -> MaterializationReport:
        """
        Save every item, continuing past failures.

        Returns:
            MaterializationReport with one outcome per item
        """
        created: dict[str, UUID] = {}
        created_categories: list[Category] = []
        outcomes: list[ItemOutcome] = []
        succeeded = 0

        for index, item in enumerate(items):
            try:
                category_id = await self._resolve_category(
                    owner_id, item, catalog, created, created_categories, correlation_id,
                )
                transaction = Transaction(
                    owner_id=owner_id,
                    category_id=category_id,
                    name=item.name,
                    amount=item.amount,
                    transaction_type=item.transaction_type,
                    transaction_date=item.transaction_date,
                    ai_processed=True,
                )
                stored = await self._transactions.insert_transaction(transaction)
            except Exception as e:
                await self._audit.log_transaction_save_failed(
                    owner_id=owner_id,
                    name=item.name,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                outcomes.append(ItemOutcome(
                    index=index,
                    name=item.name,
                    success=False,
                    error="Failed to save transaction",
                ))
                continue

            succeeded += 1
            outcomes.append(ItemOutcome(
                index=index,
                name=stored.name,
                success=True,
                transaction_id=stored.id,
                category_id=stored.category_id,
            ))
            await self._audit.log_transaction_saved(
                transaction_id=stored.id,
                owner_id=owner_id,
                name=stored.name,
                amount=str(stored.amount),
                correlation_id=correlation_id,
            )

        await self._audit.log_batch_saved(
            owner_id=owner_id,
            succeeded=succeeded,
            total=len(items),
            correlation_id=correlation_id,
        )

        return MaterializationReport(
            total=len(items),
            succeeded=succeeded,
            outcomes=outcomes,
            created_categories=created_categories,
        )
