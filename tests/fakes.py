"""Fakes for external services used across the test suite."""

from datetime import date
from typing import Optional, Sequence

from snapledger.services.storage import (
    InMemoryCategoryStorage,
    InMemoryTransactionStorage,
    StorageError,
)


TODAY = date(2024, 5, 20)


class FakeVisionService:
    """Stands in for GeminiVisionService; returns a canned reply or raises."""

    def __init__(self, reply: str = '{"items": []}', error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []

    async def extract(
        self,
        image_bytes: bytes,
        mime_type: str,
        expense_categories: Sequence[str],
        income_categories: Sequence[str],
        today: date,
    ) -> str:
        self.calls.append({
            "image_bytes": image_bytes,
            "mime_type": mime_type,
            "expense_categories": list(expense_categories),
            "income_categories": list(income_categories),
            "today": today,
        })
        if self.error is not None:
            raise self.error
        return self.reply


class UnavailableCategoryStorage(InMemoryCategoryStorage):
    """Category storage whose reads and writes always fail."""

    async def list_categories(self, owner_id):
        raise StorageError("categories sheet unavailable")

    async def create_category(self, category):
        raise StorageError("categories sheet unavailable")


class FailingCreateCategoryStorage(InMemoryCategoryStorage):
    """Category storage that reads fine but can't create categories."""

    async def create_category(self, category):
        raise StorageError("categories sheet is read-only")


class CountingCategoryStorage(InMemoryCategoryStorage):
    """Category storage that counts create_category calls."""

    def __init__(self, categories=None):
        super().__init__(categories)
        self.create_calls = 0

    async def create_category(self, category):
        self.create_calls += 1
        return await super().create_category(category)


class FlakyTransactionStorage(InMemoryTransactionStorage):
    """Transaction storage that fails inserts for the given names."""

    def __init__(self, failing_names: set[str]):
        super().__init__()
        self.failing_names = failing_names

    async def insert_transaction(self, transaction):
        if transaction.name in self.failing_names:
            raise StorageError(f"insert failed for {transaction.name}")
        return await super().insert_transaction(transaction)
