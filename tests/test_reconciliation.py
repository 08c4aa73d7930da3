"""Tests for category reconciliation."""

from datetime import date
from decimal import Decimal

import pytest

from snapledger.models.audit import AuditEventType
from snapledger.models.ledger import (
    NEUTRAL_GRAY,
    CategoryIcon,
    CategoryType,
    ExtractedLineItem,
    TransactionType,
)
from snapledger.reconciliation import ensure_category, plan_new_category, reconcile_items
from snapledger.catalog import default_categories

from tests.fakes import CountingCategoryStorage, FailingCreateCategoryStorage


def _item(name="Netflix", category="Subscriptions", **kwargs) -> ExtractedLineItem:
    return ExtractedLineItem(
        name=name,
        amount=kwargs.pop("amount", Decimal("13500")),
        transaction_date=kwargs.pop("transaction_date", date(2024, 5, 3)),
        category_label=category,
        **kwargs,
    )


class TestReconcileItems:
    """Tests for the pure matching step."""

    def test_matches_case_insensitively(self, default_catalog):
        items = [_item(name="Taxi", category="TRANSPORT"), _item(name="Latte", category="cafe")]
        reconciled = reconcile_items(items, default_catalog)
        assert reconciled[0].resolved_category_id == default_catalog.find_by_name("Transport").id
        assert reconciled[1].resolved_category_id == default_catalog.find_by_name("Cafe").id

    def test_match_ignores_transaction_type(self, default_catalog):
        """A label resolves by name alone, even across income and expense."""
        item = _item(name="Refund", category="Food", transaction_type=TransactionType.INCOME)
        reconciled = reconcile_items([item], default_catalog)
        assert reconciled[0].resolved_category_id == default_catalog.find_by_name("Food").id

    def test_unmatched_items_stay_unresolved(self, default_catalog):
        reconciled = reconcile_items([_item(is_new_category=True)], default_catalog)
        assert reconciled[0].resolved_category_id is None

    def test_input_is_not_mutated(self, default_catalog):
        items = [_item(category="Food")]
        reconcile_items(items, default_catalog)
        assert items[0].resolved_category_id is None


class TestPlanNewCategory:
    """Tests for describing categories to create."""

    def test_uses_suggestions(self):
        request = plan_new_category(_item(
            is_new_category=True,
            suggested_icon=CategoryIcon.TV,
            suggested_color="hsl(0, 72%, 51%)",
        ))
        assert request.name == "Subscriptions"
        assert request.icon == CategoryIcon.TV
        assert request.color == "hsl(0, 72%, 51%)"
        assert request.category_type == CategoryType.EXPENSE

    def test_falls_back_to_neutral_icon_and_color(self):
        request = plan_new_category(_item(is_new_category=True))
        assert request.icon == CategoryIcon.HELP_CIRCLE
        assert request.color == NEUTRAL_GRAY

    def test_type_follows_transaction(self):
        request = plan_new_category(_item(
            name="Dividend",
            category="Dividends",
            is_new_category=True,
            transaction_type=TransactionType.INCOME,
        ))
        assert request.category_type == CategoryType.INCOME

    def test_nothing_to_plan(self):
        assert plan_new_category(_item(is_new_category=False)) is None
        assert plan_new_category(_item(category="", is_new_category=True)) is None


class TestEnsureCategory:
    """Tests for deduplicated category creation."""

    @pytest.mark.asyncio
    async def test_same_name_is_created_once(self, owner_id, audit_logger):
        storage = CountingCategoryStorage(default_categories())
        created = {}

        first = await ensure_category(
            plan_new_category(_item(category="Subscriptions", is_new_category=True)),
            owner_id, storage, created, audit_logger,
        )
        second = await ensure_category(
            plan_new_category(_item(category="subscriptions", is_new_category=True)),
            owner_id, storage, created, audit_logger,
        )

        assert first is not None
        assert first == second
        assert storage.create_calls == 1
        assert created == {"subscriptions": first}
        stored = [c for c in await storage.list_categories(owner_id) if c.owner_id == owner_id]
        assert [c.name for c in stored] == ["Subscriptions"]

    @pytest.mark.asyncio
    async def test_failure_returns_none_and_is_not_cached(self, owner_id, audit_logger, audit_storage):
        storage = FailingCreateCategoryStorage(default_categories())
        created = {}

        result = await ensure_category(
            plan_new_category(_item(is_new_category=True)),
            owner_id, storage, created, audit_logger,
        )

        assert result is None
        assert created == {}
        assert audit_storage.events[-1].event_type == AuditEventType.CATEGORY_CREATION_FAILED

    @pytest.mark.asyncio
    async def test_created_category_is_reported(self, owner_id, audit_logger):
        storage = CountingCategoryStorage()
        new_categories = []

        await ensure_category(
            plan_new_category(_item(is_new_category=True)),
            owner_id, storage, {}, audit_logger,
            created_categories=new_categories,
        )

        assert len(new_categories) == 1
        assert new_categories[0].owner_id == owner_id
        assert new_categories[0].is_default is False
