"""Tests for saving confirmed line items."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from snapledger.catalog import default_category_id
from snapledger.materialization import TransactionMaterializer
from snapledger.models.audit import AuditEventType
from snapledger.models.ledger import ConfirmedLineItem, TransactionType

from tests.fakes import (
    CountingCategoryStorage,
    FailingCreateCategoryStorage,
    FlakyTransactionStorage,
)


def _confirmed(name: str, category: str = "", **kwargs) -> ConfirmedLineItem:
    return ConfirmedLineItem(
        name=name,
        amount=kwargs.pop("amount", Decimal("10000")),
        transaction_date=kwargs.pop("transaction_date", date(2024, 5, 18)),
        category_label=category,
        **kwargs,
    )


class TestTransactionMaterializer:
    """Tests for TransactionMaterializer.materialize()."""

    @pytest.mark.asyncio
    async def test_saves_every_item_with_ai_flag(
        self, owner_id, category_storage, transaction_storage, audit_logger, default_catalog,
    ):
        materializer = TransactionMaterializer(category_storage, transaction_storage, audit_logger)
        items = [
            _confirmed("Taxi", "transport"),
            _confirmed("Salary", "Salary", transaction_type=TransactionType.INCOME),
        ]

        report = await materializer.materialize(owner_id, items, default_catalog)

        assert report.succeeded == 2
        assert report.total == 2
        saved = await transaction_storage.list_transactions(owner_id)
        assert all(t.ai_processed for t in saved)
        by_name = {t.name: t for t in saved}
        assert by_name["Taxi"].category_id == default_category_id("Transport")
        assert by_name["Salary"].transaction_type == TransactionType.INCOME

    @pytest.mark.asyncio
    async def test_explicit_category_id_wins(
        self, owner_id, category_storage, transaction_storage, audit_logger, default_catalog,
    ):
        materializer = TransactionMaterializer(category_storage, transaction_storage, audit_logger)
        food_id = default_category_id("Food")

        report = await materializer.materialize(
            owner_id, [_confirmed("Taxi", "Transport", category_id=food_id)], default_catalog,
        )

        assert report.outcomes[0].category_id == food_id

    @pytest.mark.asyncio
    async def test_new_category_is_created_once_per_batch(
        self, owner_id, transaction_storage, audit_logger, default_catalog,
    ):
        storage = CountingCategoryStorage()
        materializer = TransactionMaterializer(storage, transaction_storage, audit_logger)
        items = [
            _confirmed("Netflix", "Subscriptions", is_new_category=True),
            _confirmed("Spotify", "subscriptions", is_new_category=True),
            _confirmed("YouTube", "SUBSCRIPTIONS"),
        ]

        report = await materializer.materialize(owner_id, items, default_catalog)

        assert storage.create_calls == 1
        assert report.succeeded == 3
        category_ids = {o.category_id for o in report.outcomes}
        assert len(category_ids) == 1 and None not in category_ids
        assert [c.name for c in report.created_categories] == ["Subscriptions"]

    @pytest.mark.asyncio
    async def test_category_failure_saves_uncategorized(
        self, owner_id, transaction_storage, audit_logger, audit_storage, default_catalog,
    ):
        materializer = TransactionMaterializer(
            FailingCreateCategoryStorage(), transaction_storage, audit_logger,
        )

        report = await materializer.materialize(
            owner_id, [_confirmed("Netflix", "Subscriptions", is_new_category=True)], default_catalog,
        )

        assert report.succeeded == 1
        assert report.outcomes[0].category_id is None
        event_types = [e.event_type for e in audit_storage.events]
        assert AuditEventType.CATEGORY_CREATION_FAILED in event_types

    @pytest.mark.asyncio
    async def test_one_failure_does_not_block_others(
        self, owner_id, category_storage, audit_logger, audit_storage, default_catalog,
    ):
        transactions = FlakyTransactionStorage({"Broken"})
        materializer = TransactionMaterializer(category_storage, transactions, audit_logger)
        items = [_confirmed("First"), _confirmed("Broken"), _confirmed("Third")]

        report = await materializer.materialize(owner_id, items, default_catalog)

        assert report.succeeded == 2
        assert report.is_partial
        assert [o.success for o in report.outcomes] == [True, False, True]
        assert report.outcomes[1].error == "Failed to save transaction"
        assert audit_storage.events[-1].event_type == AuditEventType.BATCH_SAVED

    @pytest.mark.asyncio
    async def test_zero_successes_is_failure(
        self, owner_id, category_storage, audit_logger, default_catalog,
    ):
        transactions = FlakyTransactionStorage({"A", "B"})
        materializer = TransactionMaterializer(category_storage, transactions, audit_logger)

        report = await materializer.materialize(
            owner_id, [_confirmed("A"), _confirmed("B")], default_catalog,
        )

        assert report.is_failure
        assert report.summary_message == "Failed to save transactions"

    @pytest.mark.asyncio
    async def test_unknown_category_id_is_ignored(
        self, owner_id, category_storage, transaction_storage, audit_logger, default_catalog,
    ):
        """A category id the user can't see falls back to label matching."""
        materializer = TransactionMaterializer(category_storage, transaction_storage, audit_logger)

        report = await materializer.materialize(
            owner_id, [_confirmed("Taxi", "Transport", category_id=uuid4())], default_catalog,
        )

        assert report.outcomes[0].category_id == default_category_id("Transport")
