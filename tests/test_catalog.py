"""Tests for the category catalog and its resolver."""

import pytest
from uuid import uuid4

from snapledger.catalog import (
    DEFAULT_EXPENSE_CATEGORIES,
    DEFAULT_INCOME_CATEGORIES,
    CategoryCatalog,
    CategoryCatalogResolver,
    default_categories,
    default_category_id,
)
from snapledger.models.audit import AuditEventType
from snapledger.models.ledger import Category, CategoryType, TransactionType
from snapledger.services.storage import InMemoryCategoryStorage

from tests.fakes import UnavailableCategoryStorage


class TestDefaults:
    """Tests for the built-in categories."""

    def test_default_names(self):
        assert [c.name for c in DEFAULT_EXPENSE_CATEGORIES] == [
            "Food", "Transport", "Cafe", "Shopping",
            "Leisure", "Health", "Housing", "Utilities",
        ]
        assert [c.name for c in DEFAULT_INCOME_CATEGORIES] == [
            "Salary", "Allowance", "Interest", "Other Income",
        ]

    def test_default_ids_are_stable(self):
        """Seeded and fallback defaults share ids."""
        assert default_categories()[1].id == default_category_id("Transport")
        assert default_category_id("transport") == default_category_id("Transport")

    def test_defaults_have_no_owner(self):
        assert all(c.owner_id is None and c.is_default for c in default_categories())


class TestCategoryCatalog:
    """Tests for catalog lookups."""

    def test_find_by_name_is_case_insensitive(self, default_catalog):
        assert default_catalog.find_by_name("transport").name == "Transport"
        assert default_catalog.find_by_name("  OTHER INCOME ").name == "Other Income"
        assert default_catalog.find_by_name("Subscriptions") is None
        assert default_catalog.find_by_name("") is None

    def test_user_category_wins_over_default(self, owner_id):
        own = Category(owner_id=owner_id, name="food")
        catalog = CategoryCatalog(default_categories() + [own])
        assert catalog.find_by_name("Food").id == own.id

    def test_names_for_splits_by_type(self, owner_id):
        both = Category(owner_id=owner_id, name="Side Gig", category_type=CategoryType.BOTH)
        catalog = CategoryCatalog(default_categories() + [both])

        expense_names = catalog.names_for(TransactionType.EXPENSE)
        income_names = catalog.names_for(TransactionType.INCOME)

        assert "Food" in expense_names and "Food" not in income_names
        assert "Salary" in income_names and "Salary" not in expense_names
        assert "Side Gig" in expense_names and "Side Gig" in income_names

    def test_get_by_id(self, default_catalog):
        transport_id = default_category_id("Transport")
        assert default_catalog.get(transport_id).name == "Transport"
        assert default_catalog.get(uuid4()) is None
        assert default_catalog.get(None) is None


class TestCategoryCatalogResolver:
    """Tests for loading catalogs from storage."""

    @pytest.mark.asyncio
    async def test_resolve_merges_defaults_and_own(self, owner_id, category_storage, audit_logger):
        other_user = uuid4()
        await category_storage.create_category(Category(owner_id=owner_id, name="Pets"))
        await category_storage.create_category(Category(owner_id=other_user, name="Secret"))

        catalog = await CategoryCatalogResolver(category_storage, audit_logger).resolve(owner_id)

        names = [c.name for c in catalog]
        assert "Pets" in names
        assert "Secret" not in names
        assert len(catalog) == len(default_categories()) + 1
        assert catalog.degraded is False

    @pytest.mark.asyncio
    async def test_missing_defaults_are_filled_in(self, owner_id, audit_logger):
        storage = InMemoryCategoryStorage()
        catalog = await CategoryCatalogResolver(storage, audit_logger).resolve(owner_id)
        assert len(catalog) == len(default_categories())

    @pytest.mark.asyncio
    async def test_storage_failure_degrades_to_defaults(self, owner_id, audit_logger, audit_storage):
        resolver = CategoryCatalogResolver(UnavailableCategoryStorage(), audit_logger)

        catalog = await resolver.resolve(owner_id)

        assert catalog.degraded is True
        assert [c.name for c in catalog] == [c.name for c in default_categories()]
        assert audit_storage.events[-1].event_type == AuditEventType.CATALOG_DEGRADED
