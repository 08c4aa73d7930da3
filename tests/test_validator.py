"""Tests for the two-stage line item validator."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from snapledger.models.ledger import (
    CategoryIcon,
    ExtractedLineItem,
    RejectedLineItem,
    TransactionType,
)
from snapledger.validation import LineItemValidator, coerce_amount, coerce_date
from snapledger.validation.validator import UNNAMED_TRANSACTION

from tests.fakes import TODAY


class TestCoercion:
    """Tests for amount and date coercion helpers."""

    @pytest.mark.parametrize("raw, expected", [
        (12000, Decimal("12000")),
        (4.5, Decimal("4.50")),
        ("12,000", Decimal("12000")),
        ("₩12,000", Decimal("12000")),
        ("$1,234.56", Decimal("1234.56")),
        ("3,500원", Decimal("3500")),
        ("+5,000", Decimal("5000")),
        ("-3,000", Decimal("-3000")),
    ])
    def test_coerce_amount(self, raw, expected):
        assert coerce_amount(raw) == expected

    @pytest.mark.parametrize("raw", [
        None, "", "free", True, [], {"value": 1},
        1e30, "12345678901234567890123456789", float("nan"), float("inf"),
    ])
    def test_coerce_amount_unreadable(self, raw):
        assert coerce_amount(raw) is None

    @pytest.mark.parametrize("raw, expected", [
        ("2024-05-01", date(2024, 5, 1)),
        ("2024/05/01", date(2024, 5, 1)),
        ("2024.05.01", date(2024, 5, 1)),
        ("01/05/2024", date(2024, 5, 1)),
        ("2024-05-01T09:30:00", date(2024, 5, 1)),
    ])
    def test_coerce_date(self, raw, expected):
        assert coerce_date(raw) == expected

    def test_coerce_date_unreadable(self):
        assert coerce_date("May-ish") is None
        assert coerce_date(20240501) is None


class TestSchemaStage:
    """Stage 1: presence and coercion."""

    def test_valid_item_passes(self, validator):
        outcome = validator.validate_item({
            "name": "Taxi",
            "amount": "12,000",
            "date": "2024-05-18",
            "type": "expense",
            "category": "Transport",
            "isNewCategory": False,
        }, 0, TODAY)
        assert isinstance(outcome, ExtractedLineItem)
        assert outcome.amount == Decimal("12000")
        assert outcome.issues == []

    def test_zero_amount_is_rejected(self, validator):
        outcome = validator.validate_item({"name": "Free", "amount": 0}, 3, TODAY)
        assert isinstance(outcome, RejectedLineItem)
        assert outcome.index == 3
        assert outcome.raw == {"name": "Free", "amount": 0}

    def test_non_object_item_is_rejected(self, validator):
        outcome = validator.validate_item("Taxi 12000", 0, TODAY)
        assert isinstance(outcome, RejectedLineItem)
        assert outcome.issues[0].field == "item"

    def test_missing_name_gets_placeholder(self, validator):
        outcome = validator.validate_item({"amount": 5000, "date": "2024-05-18"}, 0, TODAY)
        assert isinstance(outcome, ExtractedLineItem)
        assert outcome.name == UNNAMED_TRANSACTION
        assert any(i.field == "name" and i.severity == "warning" for i in outcome.issues)

    def test_missing_date_uses_today_with_warning(self, validator):
        outcome = validator.validate_item({"name": "Taxi", "amount": 5000}, 0, TODAY)
        assert outcome.transaction_date == TODAY
        assert [i.issue_type for i in outcome.issues] == ["defaulted"]

    def test_unknown_type_is_expense_with_info(self, validator):
        outcome = validator.validate_item(
            {"name": "Transfer", "amount": 5000, "date": "2024-05-18", "type": "transfer"},
            0,
            TODAY,
        )
        assert outcome.transaction_type == TransactionType.EXPENSE
        assert outcome.issues[0].severity == "info"

    def test_income_type_is_kept(self, validator):
        outcome = validator.validate_item(
            {"name": "Salary", "amount": 3000000, "date": "2024-05-18", "type": "Income"},
            0,
            TODAY,
        )
        assert outcome.transaction_type == TransactionType.INCOME
        assert outcome.issues == []

    def test_new_category_hints_are_coerced(self, validator):
        outcome = validator.validate_item({
            "name": "Netflix",
            "amount": 13500,
            "date": "2024-05-03",
            "category": "Subscriptions",
            "isNewCategory": "true",
            "suggestedIcon": "tv",
            "suggestedColor": "hsl(0,72%,51%)",
        }, 0, TODAY)
        assert outcome.is_new_category is True
        assert outcome.suggested_icon == CategoryIcon.TV
        assert outcome.suggested_color == "hsl(0, 72%, 51%)"

    def test_unknown_icon_and_bad_color(self, validator):
        outcome = validator.validate_item({
            "name": "Gym",
            "amount": 50000,
            "date": "2024-05-03",
            "category": "Fitness",
            "isNewCategory": True,
            "suggestedIcon": "Dumbbell",
            "suggestedColor": "#00ff00",
        }, 0, TODAY)
        assert outcome.suggested_icon == CategoryIcon.HELP_CIRCLE
        assert outcome.suggested_color is None


class TestSemanticStage:
    """Stage 2: suspicious but well-formed values."""

    def test_future_date_warning(self, validator):
        future = (TODAY + timedelta(days=30)).isoformat()
        outcome = validator.validate_item({"name": "Rent", "amount": 500000, "date": future}, 0, TODAY)
        assert any(i.issue_type == "future_date" for i in outcome.issues)

    def test_date_within_tolerance_is_fine(self, validator):
        soon = (TODAY + timedelta(days=2)).isoformat()
        outcome = validator.validate_item({"name": "Rent", "amount": 500000, "date": soon}, 0, TODAY)
        assert outcome.issues == []

    def test_old_date_warning(self, validator):
        outcome = validator.validate_item(
            {"name": "Rent", "amount": 500000, "date": "2019-01-01"}, 0, TODAY,
        )
        assert any(i.issue_type == "suspicious_date" for i in outcome.issues)

    def test_huge_amount_warning(self, validator):
        outcome = validator.validate_item(
            {"name": "Apartment", "amount": 5_000_000_000, "date": "2024-05-18"}, 0, TODAY,
        )
        assert isinstance(outcome, ExtractedLineItem)
        assert any(i.field == "amount" and i.severity == "warning" for i in outcome.issues)

    def test_symbol_heavy_name_warning(self, validator):
        outcome = validator.validate_item(
            {"name": "#### 1234-5678", "amount": 1000, "date": "2024-05-18"}, 0, TODAY,
        )
        assert any(i.field == "name" for i in outcome.issues)

    def test_non_latin_names_are_fine(self, validator):
        outcome = validator.validate_item(
            {"name": "스타벅스 강남점", "amount": 4500, "date": "2024-05-18"}, 0, TODAY,
        )
        assert outcome.issues == []


class TestSummary:
    """Tests for the user-facing summary."""

    def test_summary_mentions_rejections(self, validator):
        items = [validator.validate_item({"name": "Taxi", "amount": 100, "date": "2024-05-18"}, 0, TODAY)]
        rejected = [validator.validate_item({"name": "Bad", "amount": -1}, 1, TODAY)]
        summary = LineItemValidator.get_user_friendly_summary(items, rejected)
        assert "Found 1 transaction." in summary
        assert "1 could not be read" in summary

    def test_summary_for_nothing_found(self):
        assert "No transactions" in LineItemValidator.get_user_friendly_summary([], [])
