"""
In-Memory Storage

Process-local implementation of the storage interfaces. Used by the test
suite and as the fallback backend when Google Sheets isn't configured,
so the app still runs end to end on a developer machine.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from snapledger.models.audit import AuditEvent
from snapledger.models.ledger import Category, Transaction
from snapledger.services.storage.interface import (
    AuditStorageInterface,
    CategoryStorageInterface,
    DuplicateError,
    PermissionDeniedError,
    TransactionStorageInterface,
)


class InMemoryCategoryStorage(CategoryStorageInterface):
    """Categories kept in a dict keyed by id, in insertion order."""

    def __init__(self, categories: Optional[list[Category]] = None):
        self._categories: dict[UUID, Category] = {}
        for category in categories or []:
            self._categories[category.id] = category

    async def list_categories(self, owner_id: UUID) -> list[Category]:
        defaults = [c for c in self._categories.values() if c.owner_id is None]
        own = [c for c in self._categories.values() if c.owner_id == owner_id]
        return defaults + own

    async def create_category(self, category: Category) -> Category:
        if category.id in self._categories:
            raise DuplicateError(f"Category already exists: {category.id}")
        self._categories[category.id] = category
        return category

    async def delete_category(self, owner_id: UUID, category_id: UUID) -> bool:
        category = self._categories.get(category_id)
        if category is None:
            return False
        if category.owner_id != owner_id:
            raise PermissionDeniedError(f"Category {category_id} cannot be deleted")
        del self._categories[category_id]
        return True

    async def seed_default_categories(self, categories: list[Category]) -> int:
        added = 0
        for category in categories:
            if category.id not in self._categories:
                self._categories[category.id] = category
                added += 1
        return added


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Transactions kept in a dict keyed by id."""

    def __init__(self):
        self._transactions: dict[UUID, Transaction] = {}

    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        if transaction.id in self._transactions:
            raise DuplicateError(f"Transaction already exists: {transaction.id}")
        self._transactions[transaction.id] = transaction
        return transaction

    async def list_transactions(
        self,
        owner_id: UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> list[Transaction]:
        matches = [
            t for t in self._transactions.values()
            if t.owner_id == owner_id
            and (date_from is None or t.transaction_date >= date_from)
            and (date_to is None or t.transaction_date <= date_to)
        ]
        matches.sort(key=lambda t: (t.transaction_date, t.created_at), reverse=True)
        return matches[offset:offset + limit]

    async def delete_transaction(self, owner_id: UUID, transaction_id: UUID) -> bool:
        current = self._transactions.get(transaction_id)
        if current is None or current.owner_id != owner_id:
            return False
        del self._transactions[transaction_id]
        return True

    async def reassign_category(
        self,
        owner_id: UUID,
        category_id: UUID,
        new_category_id: Optional[UUID] = None,
    ) -> int:
        changed = 0
        for transaction in list(self._transactions.values()):
            if transaction.owner_id == owner_id and transaction.category_id == category_id:
                self._transactions[transaction.id] = transaction.model_copy(
                    update={"category_id": new_category_id}
                )
                changed += 1
        return changed


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
