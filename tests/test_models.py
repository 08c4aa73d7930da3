"""
Tests for SnapLedger models

Test strategy:
1. Unit tests for individual components (models, validators, parser)
2. Integration tests for flows (with fake external services)
3. No real API calls in tests
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from snapledger.models.ledger import (
    NEUTRAL_GRAY,
    Category,
    CategoryIcon,
    CategoryType,
    ConfirmedLineItem,
    ExtractedLineItem,
    ExtractionResult,
    ImageUpload,
    ItemOutcome,
    MaterializationReport,
    Transaction,
    TransactionType,
    normalize_hsl,
)
from snapledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestEnums:
    """Tests for closed vocabularies."""

    def test_transaction_type_coerce(self):
        """Unknown or missing types fall back to expense."""
        assert TransactionType.coerce("income") == TransactionType.INCOME
        assert TransactionType.coerce(" Income ") == TransactionType.INCOME
        assert TransactionType.coerce("deposit") == TransactionType.EXPENSE
        assert TransactionType.coerce(None) == TransactionType.EXPENSE

    def test_category_type_accepts(self):
        assert CategoryType.BOTH.accepts(TransactionType.INCOME)
        assert CategoryType.BOTH.accepts(TransactionType.EXPENSE)
        assert CategoryType.INCOME.accepts(TransactionType.INCOME)
        assert not CategoryType.INCOME.accepts(TransactionType.EXPENSE)

    def test_icon_lookup_is_case_insensitive(self):
        assert CategoryIcon.from_name("coffee") == CategoryIcon.COFFEE
        assert CategoryIcon.from_name("ShoppingBag") == CategoryIcon.SHOPPING_BAG

    def test_unknown_icon_falls_back_to_help_circle(self):
        assert CategoryIcon.from_name("Spaceship") == CategoryIcon.HELP_CIRCLE
        assert CategoryIcon.from_name(None) == CategoryIcon.HELP_CIRCLE


class TestColors:
    """Tests for HSL color normalization."""

    def test_valid_hsl_is_normalized(self):
        assert normalize_hsl("hsl(200,50%,40%)") == "hsl(200, 50%, 40%)"
        assert normalize_hsl("  HSL(0, 0%, 50%) ") == "hsl(0, 0%, 50%)"

    def test_invalid_colors_are_rejected(self):
        assert normalize_hsl("#ff0000") is None
        assert normalize_hsl("hsl(400, 50%, 40%)") is None
        assert normalize_hsl(None) is None


class TestCategory:
    """Tests for the Category model."""

    def test_category_coerces_icon_and_color(self):
        """Bad icon and color values become the neutral fallbacks."""
        category = Category(name="Pets", icon="Dog", color="purple")
        assert category.icon == CategoryIcon.HELP_CIRCLE
        assert category.color == NEUTRAL_GRAY

    def test_category_strips_whitespace(self):
        category = Category(name="  Pets  ")
        assert category.name == "Pets"


class TestLineItems:
    """Tests for extracted and confirmed line items."""

    def test_extracted_item_accepts_wire_aliases(self):
        item = ExtractedLineItem.model_validate({
            "name": "Starbucks",
            "amount": "4500",
            "date": "2024-05-01",
            "type": "expense",
            "category": "Cafe",
            "isNewCategory": False,
        })
        assert item.amount == Decimal("4500")
        assert item.transaction_date == date(2024, 5, 1)
        assert item.category_label == "Cafe"

    def test_extracted_item_rejects_non_positive_amount(self):
        with pytest.raises(ValidationError):
            ExtractedLineItem(name="Refund", amount=Decimal("-100"), transaction_date=date.today())
        with pytest.raises(ValidationError):
            ExtractedLineItem(name="Zero", amount=Decimal("0"), transaction_date=date.today())

    def test_response_emits_amount_as_number(self):
        """Amounts are JSON numbers and keys use the wire names."""
        result = ExtractionResult(
            processed_on=date(2024, 5, 20),
            items=[
                ExtractedLineItem(name="Taxi", amount=Decimal("12000.00"), transaction_date=date(2024, 5, 20)),
                ExtractedLineItem(name="Gum", amount=Decimal("4.50"), transaction_date=date(2024, 5, 20)),
            ],
        )
        body = result.to_response()
        assert body["items"][0]["amount"] == 12000
        assert isinstance(body["items"][0]["amount"], int)
        assert body["items"][1]["amount"] == 4.5
        assert body["items"][0]["date"] == "2024-05-20"
        assert body["items"][0]["type"] == "expense"
        assert "isNewCategory" in body["items"][0]
        assert body["rejected"] == []

    def test_confirmed_item_from_extracted(self):
        category_id = uuid4()
        extracted = ExtractedLineItem(
            name="Taxi",
            amount=Decimal("12000"),
            transaction_date=date(2024, 5, 20),
            category_label="Transport",
            resolved_category_id=category_id,
        )
        confirmed = ConfirmedLineItem.from_extracted(extracted)
        assert confirmed.category_id == category_id
        assert confirmed.category_label == "Transport"

    def test_confirmed_item_coerces_suggestions(self):
        confirmed = ConfirmedLineItem.model_validate({
            "name": "Netflix",
            "amount": 13500,
            "date": "2024-05-03",
            "category": "Subscriptions",
            "isNewCategory": True,
            "suggestedIcon": "not-an-icon",
            "suggestedColor": "red",
        })
        assert confirmed.suggested_icon == CategoryIcon.HELP_CIRCLE
        assert confirmed.suggested_color is None


class TestTransaction:
    """Tests for persisted transactions."""

    def test_transaction_creation(self):
        transaction = Transaction(
            owner_id=uuid4(),
            name="Salary",
            amount=Decimal("3000000"),
            transaction_type=TransactionType.INCOME,
            transaction_date=date(2024, 5, 25),
            ai_processed=True,
        )
        assert transaction.category_id is None
        assert transaction.ai_processed is True

    def test_transaction_rejects_negative_amount(self):
        with pytest.raises(ValidationError):
            Transaction(
                owner_id=uuid4(),
                name="Bad",
                amount=Decimal("-1"),
                transaction_date=date(2024, 5, 25),
            )


class TestMaterializationReport:
    """Tests for batch save reporting."""

    def _report(self, succeeded: int, total: int) -> MaterializationReport:
        return MaterializationReport(
            total=total,
            succeeded=succeeded,
            outcomes=[
                ItemOutcome(index=i, name=f"item {i}", success=i < succeeded)
                for i in range(total)
            ],
        )

    def test_full_success(self):
        report = self._report(3, 3)
        assert not report.is_failure
        assert not report.is_partial
        assert report.summary_message == "Saved 3 transactions"

    def test_partial_success(self):
        report = self._report(2, 3)
        assert report.is_partial
        assert report.failed == 1
        assert report.summary_message == "Saved 2 of 3 transactions"

    def test_zero_successes_is_failure(self):
        report = self._report(0, 2)
        assert report.is_failure
        assert report.summary_message == "Failed to save transactions"


class TestImageUpload:
    """Tests for upload validation."""

    def test_jpg_alias_is_normalized(self):
        upload = ImageUpload(original_filename="a.jpg", file_size_bytes=10, mime_type="image/jpg")
        assert upload.mime_type == "image/jpeg"

    def test_non_image_is_rejected(self):
        with pytest.raises(ValidationError):
            ImageUpload(original_filename="a.pdf", file_size_bytes=10, mime_type="application/pdf")


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECEIPT_UPLOADED,
            description="Screenshot uploaded",
        )
        assert event.event_type == AuditEventType.RECEIPT_UPLOADED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        owner_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.CATEGORY_CREATED,
            owner_id=owner_id,
            description="Category created: Subscriptions",
            details={"name": "Subscriptions"},
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "category_created"
        assert log_dict["owner_id"] == str(owner_id)
        assert log_dict["details"]["name"] == "Subscriptions"

    def test_audit_event_to_sheets_row(self):
        event = AuditEvent(
            event_type=AuditEventType.BATCH_SAVED,
            description="Saved 2 of 2 confirmed line items",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 12  # Expected number of columns
        assert row[2] == "batch_saved"  # event_type
        assert row[11] == "True"  # is_user_action

    def test_audit_event_builder_receipt_uploaded(self):
        upload_id = uuid4()
        correlation_id = uuid4()
        event = AuditEventBuilder.receipt_uploaded(
            upload_id=upload_id,
            owner_id=uuid4(),
            filename="screenshot.png",
            file_size=1024,
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.RECEIPT_UPLOADED
        assert event.entity_id == upload_id
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_batch_with_no_successes_is_an_error(self):
        event = AuditEventBuilder.batch_saved(owner_id=uuid4(), succeeded=0, total=2)
        assert event.severity == AuditSeverity.ERROR
