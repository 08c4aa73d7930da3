"""
Shared test fixtures.

No test talks to Gemini or Google Sheets: the vision client is replaced
by FakeVisionService and storage by the in-memory implementations.
"""

from uuid import uuid4

import pytest

from snapledger.audit import AuditLogger
from snapledger.catalog import CategoryCatalog, default_categories
from snapledger.config import AppSettings
from snapledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryTransactionStorage,
)
from snapledger.validation import LineItemValidator


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def app_settings():
    return AppSettings()


@pytest.fixture
def validator(app_settings):
    return LineItemValidator(app_settings)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def category_storage():
    return InMemoryCategoryStorage(default_categories())


@pytest.fixture
def transaction_storage():
    return InMemoryTransactionStorage()


@pytest.fixture
def default_catalog():
    return CategoryCatalog(default_categories())
