"""
Core Data Models for SnapLedger

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage, the HTTP API and logging

Wire names follow the JSON contract the extraction prompt asks the model
for (``type``, ``category``, ``isNewCategory`` ...). Python code uses the
snake_case attribute names; serialize with ``by_alias=True`` for clients.
"""

import math
import re
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)


NEUTRAL_GRAY = "hsl(0, 0%, 50%)"
UNCATEGORIZED_NAME = "Uncategorized"

_HSL_PATTERN = re.compile(
    r"^hsl\(\s*(\d{1,3}(?:\.\d+)?)\s*,\s*(\d{1,3}(?:\.\d+)?)%\s*,\s*(\d{1,3}(?:\.\d+)?)%\s*\)$",
    re.IGNORECASE,
)


def _decimal_to_number(value: Decimal) -> Union[int, float]:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _finite_or_none(value: Any) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, list):
        return [_finite_or_none(v) for v in value]
    if isinstance(value, dict):
        return {k: _finite_or_none(v) for k, v in value.items()}
    return value


# Money is kept as Decimal internally and emitted as a JSON number
Money = Annotated[
    Decimal,
    PlainSerializer(_decimal_to_number, return_type=Union[int, float], when_used="json"),
]


def normalize_hsl(value: Any) -> Optional[str]:
    """Return a canonical ``hsl(h, s%, l%)`` string, or None if value isn't one."""
    if not isinstance(value, str):
        return None
    match = _HSL_PATTERN.match(value.strip())
    if not match:
        return None
    hue, saturation, lightness = match.groups()
    if float(hue) > 360 or float(saturation) > 100 or float(lightness) > 100:
        return None
    return f"hsl({hue}, {saturation}%, {lightness}%)"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money flow for a transaction."""
    INCOME = "income"
    EXPENSE = "expense"

    @classmethod
    def coerce(cls, value: Any) -> "TransactionType":
        """Map free text to a transaction type; anything unrecognized is an expense."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.EXPENSE


class CategoryType(str, Enum):
    """Which transaction types a category applies to."""
    INCOME = "income"
    EXPENSE = "expense"
    BOTH = "both"

    def accepts(self, transaction_type: TransactionType) -> bool:
        return self is CategoryType.BOTH or self.value == transaction_type.value


class CategoryIcon(str, Enum):
    """
    Closed vocabulary of icon identifiers a category may use.

    Values are Lucide icon names, which is what the UI layer renders and
    what the extraction prompt offers to the model. Unknown names always
    resolve to HELP_CIRCLE through from_name().
    """
    UTENSILS = "Utensils"
    CAR = "Car"
    COFFEE = "Coffee"
    SHOPPING_BAG = "ShoppingBag"
    FILM = "Film"
    HEART = "Heart"
    HOME = "Home"
    ZAP = "Zap"
    BANKNOTE = "Banknote"
    GIFT = "Gift"
    TRENDING_UP = "TrendingUp"
    PLUS = "Plus"
    HELP_CIRCLE = "HelpCircle"
    PHONE = "Phone"
    WIFI = "Wifi"
    BOOK = "Book"
    MUSIC = "Music"
    PLANE = "Plane"
    TRAIN = "Train"
    BUS = "Bus"
    BIKE = "Bike"
    SHIRT = "Shirt"
    WATCH = "Watch"
    HEADPHONES = "Headphones"
    MONITOR = "Monitor"
    SMARTPHONE = "Smartphone"
    GAMEPAD = "Gamepad"
    CAMERA = "Camera"
    TV = "Tv"
    SPEAKER = "Speaker"
    LAPTOP = "Laptop"
    TABLET = "Tablet"

    @classmethod
    def from_name(cls, name: Any) -> "CategoryIcon":
        """Case-insensitive lookup by icon name, falling back to HELP_CIRCLE."""
        if isinstance(name, cls):
            return name
        if isinstance(name, str):
            wanted = name.strip().lower()
            for icon in cls:
                if icon.value.lower() == wanted:
                    return icon
        return cls.HELP_CIRCLE


class StatisticsPeriod(str, Enum):
    """Aggregation window for spending statistics."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


# =============================================================================
# CATEGORY
# =============================================================================

class Category(BaseModel):
    """
    A transaction category.

    owner_id is None for system defaults. Name uniqueness is an
    application-level rule (case-insensitive lookup), not a storage constraint.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: Optional[UUID] = None
    name: str = Field(..., min_length=1, max_length=100)
    icon: CategoryIcon = CategoryIcon.HELP_CIRCLE
    color: str = NEUTRAL_GRAY
    is_default: bool = False
    category_type: CategoryType = CategoryType.EXPENSE
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator('icon', mode='before')
    @classmethod
    def coerce_icon(cls, v: Any) -> CategoryIcon:
        return CategoryIcon.from_name(v)

    @field_validator('color', mode='before')
    @classmethod
    def coerce_color(cls, v: Any) -> str:
        return normalize_hsl(v) or NEUTRAL_GRAY


class NewCategoryRequest(BaseModel):
    """A category the reconciliation engine wants created for a line item."""

    name: str = Field(..., min_length=1, max_length=100)
    icon: CategoryIcon = CategoryIcon.HELP_CIRCLE
    color: str = NEUTRAL_GRAY
    category_type: CategoryType = CategoryType.EXPENSE

    @property
    def cache_key(self) -> str:
        return self.name.lower()


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found on a line item."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'defaulted')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


# =============================================================================
# LINE ITEMS
# =============================================================================

class ExtractedLineItem(BaseModel):
    """
    One transaction candidate recovered from the model's reply.

    CRITICAL: This is PROPOSED data. Nothing is persisted until the user
    confirms it and it comes back as a ConfirmedLineItem.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=200)
    amount: Money = Field(..., gt=0)
    transaction_date: date = Field(..., alias="date")
    transaction_type: TransactionType = Field(
        default=TransactionType.EXPENSE,
        alias="type",
    )
    category_label: str = Field(default="", max_length=100, alias="category")
    is_new_category: bool = Field(default=False, alias="isNewCategory")
    suggested_icon: Optional[CategoryIcon] = Field(default=None, alias="suggestedIcon")
    suggested_color: Optional[str] = Field(default=None, alias="suggestedColor")
    resolved_category_id: Optional[UUID] = Field(default=None, alias="resolvedCategoryId")

    # Warnings attached during validation (never errors - those reject the item)
    issues: list[ValidationIssue] = Field(default_factory=list)


class RejectedLineItem(BaseModel):
    """An element of the model's ``items`` list that failed validation."""

    index: int = Field(ge=0, description="Position in the model's items list")
    name: Optional[str] = None
    raw: dict[str, Any] = Field(default_factory=dict)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @field_validator('raw')
    @classmethod
    def drop_non_finite(cls, v: dict[str, Any]) -> dict[str, Any]:
        """NaN and Infinity have no JSON form; echo them back as null."""
        return {key: _finite_or_none(value) for key, value in v.items()}


class ExtractionResult(BaseModel):
    """Outcome of one screenshot analysis, returned to the client for review."""

    extraction_id: UUID = Field(default_factory=uuid4)
    processed_on: date
    items: list[ExtractedLineItem] = Field(default_factory=list)
    rejected: list[RejectedLineItem] = Field(default_factory=list)

    @property
    def item_count(self) -> int:
        return len(self.items)

    def to_response(self) -> dict:
        """JSON body for the analyze endpoint."""
        return {
            "items": [
                item.model_dump(mode="json", by_alias=True) for item in self.items
            ],
            "rejected": [
                rejected.model_dump(mode="json") for rejected in self.rejected
            ],
        }


class ConfirmedLineItem(BaseModel):
    """
    A line item the user has reviewed and wants saved.

    The user may have changed the type, amount, date or category, or
    picked a category explicitly (category_id).
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=200)
    amount: Money = Field(..., gt=0)
    transaction_date: date = Field(..., alias="date")
    transaction_type: TransactionType = Field(
        default=TransactionType.EXPENSE,
        alias="type",
    )
    category_id: Optional[UUID] = Field(default=None, alias="categoryId")
    category_label: str = Field(default="", max_length=100, alias="category")
    is_new_category: bool = Field(default=False, alias="isNewCategory")
    suggested_icon: Optional[CategoryIcon] = Field(default=None, alias="suggestedIcon")
    suggested_color: Optional[str] = Field(default=None, alias="suggestedColor")

    @field_validator('suggested_icon', mode='before')
    @classmethod
    def coerce_icon(cls, v: Any) -> Optional[CategoryIcon]:
        if v is None or v == "":
            return None
        return CategoryIcon.from_name(v)

    @field_validator('suggested_color', mode='before')
    @classmethod
    def coerce_color(cls, v: Any) -> Optional[str]:
        return normalize_hsl(v)

    @classmethod
    def from_extracted(cls, item: ExtractedLineItem) -> "ConfirmedLineItem":
        """Accept an extracted item unchanged."""
        return cls(
            name=item.name,
            amount=item.amount,
            transaction_date=item.transaction_date,
            transaction_type=item.transaction_type,
            category_id=item.resolved_category_id,
            category_label=item.category_label,
            is_new_category=item.is_new_category,
            suggested_icon=item.suggested_icon,
            suggested_color=item.suggested_color,
        )


# =============================================================================
# TRANSACTION
# =============================================================================

class Transaction(BaseModel):
    """
    A persisted transaction.

    category_id None means "uncategorized", either because no category
    was assigned or because the category was deleted later.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    category_id: Optional[UUID] = None
    name: str = Field(..., min_length=1, max_length=200)
    amount: Money = Field(..., gt=0)
    transaction_type: TransactionType = Field(
        default=TransactionType.EXPENSE,
        alias="type",
    )
    transaction_date: date = Field(..., alias="date")
    receipt_url: Optional[str] = None
    ai_processed: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ItemOutcome(BaseModel):
    """What happened to one line item during materialization."""

    index: int = Field(ge=0)
    name: str
    success: bool
    transaction_id: Optional[UUID] = None
    category_id: Optional[UUID] = None
    error: Optional[str] = None


class MaterializationReport(BaseModel):
    """Per-batch result of saving confirmed line items."""

    total: int = Field(ge=0)
    succeeded: int = Field(ge=0)
    outcomes: list[ItemOutcome] = Field(default_factory=list)
    created_categories: list[Category] = Field(default_factory=list)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def is_failure(self) -> bool:
        """Nothing was saved."""
        return self.succeeded == 0

    @property
    def is_partial(self) -> bool:
        return 0 < self.succeeded < self.total

    @property
    def summary_message(self) -> str:
        if self.is_failure:
            return "Failed to save transactions"
        if self.is_partial:
            return f"Saved {self.succeeded} of {self.total} transactions"
        noun = "transaction" if self.succeeded == 1 else "transactions"
        return f"Saved {self.succeeded} {noun}"


# =============================================================================
# IMAGE UPLOAD
# =============================================================================

class ImageUpload(BaseModel):
    """Represents an uploaded screenshot before analysis."""

    upload_id: UUID = Field(
        default_factory=uuid4,
        description="Unique upload identifier"
    )
    uploaded_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    original_filename: str
    file_size_bytes: int = Field(gt=0)
    mime_type: str

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        """Only allow image types the vision model accepts."""
        allowed = {'image/jpeg', 'image/png', 'image/webp', 'image/heic', 'image/heif'}
        normalized = v.lower().strip()
        if normalized == 'image/jpg':
            normalized = 'image/jpeg'
        if normalized not in allowed:
            raise ValueError(f"Unsupported image type: {v}. Allowed: {sorted(allowed)}")
        return normalized


# =============================================================================
# STATISTICS
# =============================================================================

class CategoryTotal(BaseModel):
    """Sum of transactions for one category within a period."""

    category_id: Optional[UUID] = None
    name: str
    amount: Money
    color: str = NEUTRAL_GRAY
    icon: CategoryIcon = CategoryIcon.HELP_CIRCLE


class PeriodSummary(BaseModel):
    """Income/expense totals and per-category breakdown for a period."""

    period: StatisticsPeriod
    start: date
    end: date
    total_income: Money = Decimal("0")
    total_expense: Money = Decimal("0")
    balance: Money = Decimal("0")
    transaction_count: int = Field(default=0, ge=0)
    expenses_by_category: list[CategoryTotal] = Field(default_factory=list)
    income_by_category: list[CategoryTotal] = Field(default_factory=list)
