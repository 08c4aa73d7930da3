"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a managed database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

Every read and write is scoped by owner id. Implementations are
responsible for never returning or touching another user's rows.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from snapledger.models.ledger import Category, Transaction
from snapledger.models.audit import AuditEvent


class CategoryStorageInterface(ABC):
    """Abstract interface for category storage operations."""

    @abstractmethod
    async def list_categories(self, owner_id: UUID) -> list[Category]:
        """
        List the categories visible to a user.

        Returns system defaults (owner_id is None) followed by the
        user's own categories.
        """
        pass

    @abstractmethod
    async def create_category(self, category: Category) -> Category:
        """
        Persist a new user category.

        Returns:
            The stored category (with its final id)

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_category(self, owner_id: UUID, category_id: UUID) -> bool:
        """
        Delete one of the user's categories.

        Returns:
            True if a category was deleted, False if it didn't exist

        Raises:
            PermissionDeniedError: If the category is a default or belongs
                to someone else
        """
        pass

    @abstractmethod
    async def seed_default_categories(self, categories: list[Category]) -> int:
        """
        Store system default categories that are not stored yet.

        Returns:
            Number of categories added
        """
        pass


class TransactionStorageInterface(ABC):
    """Abstract interface for transaction storage operations."""

    @abstractmethod
    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        """
        Insert one transaction.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        owner_id: UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> list[Transaction]:
        """
        List a user's transactions, newest first.

        Args:
            owner_id: Owner of the transactions
            date_from: Only transactions on or after this date
            date_to: Only transactions on or before this date
            limit: Maximum number of results
            offset: Number of results to skip
        """
        pass

    @abstractmethod
    async def delete_transaction(self, owner_id: UUID, transaction_id: UUID) -> bool:
        """Delete a transaction. Returns False if it didn't exist."""
        pass

    @abstractmethod
    async def reassign_category(
        self,
        owner_id: UUID,
        category_id: UUID,
        new_category_id: Optional[UUID] = None,
    ) -> int:
        """
        Point every transaction in category_id at new_category_id.

        With new_category_id None the transactions become uncategorized.

        Returns:
            Number of transactions changed
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event to the log. Returns True on success."""
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events of one request, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class PermissionDeniedError(StorageError):
    """Entity exists but the caller may not modify it."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
