"""
Two-Stage Line Item Validation

DESIGN DECISION: Every element of the model's ``items`` list is validated
on its own, in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Amount present, numeric and strictly positive
- Name present
- Date parseable (falls back to today)
- Type, icon and color coerced to their closed vocabularies
This catches model output that doesn't follow the requested format.

STAGE 2 - SEMANTIC VALIDATION:
- Future date detection
- Very old date detection
- Absurd amount detection
- Name sanity checks
This catches values that are well-formed but suspicious.

Errors REJECT the item (it is reported back, never dropped silently).
Warnings ride along on the item for the user to review.
"""

import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from pydantic import ValidationError

from snapledger.config import AppSettings, get_settings
from snapledger.models.ledger import (
    CategoryIcon,
    ExtractedLineItem,
    RejectedLineItem,
    TransactionType,
    ValidationIssue,
    normalize_hsl,
)


UNNAMED_TRANSACTION = "Unnamed transaction"

DATE_FORMATS = ["%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d", "%d-%m-%Y", "%d/%m/%Y"]

_NUMBER_PATTERN = re.compile(r"\d[\d,]*(?:\.\d+)?|\.\d+")
_NEGATIVE_SIGNS = ("-", "−")


def coerce_amount(value: Any) -> Optional[Decimal]:
    """
    Convert a model-supplied amount to Decimal.

    Accepts numbers and numeric strings with thousands separators,
    currency symbols or a leading sign ("₩12,000", "-3,500원").
    Returns None when no number can be read. The sign is preserved;
    rejecting non-positive values is the caller's job.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float, Decimal)):
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return None
    elif isinstance(value, str):
        text = value.strip()
        match = _NUMBER_PATTERN.search(text)
        if not match:
            return None
        try:
            amount = Decimal(match.group().replace(",", ""))
        except InvalidOperation:
            return None
        if text.startswith(_NEGATIVE_SIGNS):
            amount = -amount
    else:
        return None

    if not amount.is_finite():
        return None
    try:
        return amount.quantize(Decimal("0.01"))
    except InvalidOperation:
        # More digits than the decimal context holds
        return None


def coerce_date(value: Any) -> Optional[date]:
    """Parse a model-supplied date, or None if it isn't one."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


class LineItemValidator:
    """
    Validates raw line items from the model through a two-stage pipeline.

    Stateless apart from settings; one instance can serve many requests.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    @property
    def max_line_items(self) -> int:
        return self._settings.max_line_items

    def _validate_schema(
        self,
        raw: dict,
        today: date,
    ) -> tuple[dict, list[ValidationIssue]]:
        """
        Stage 1: Schema validation and coercion.

        Returns: (coerced_fields, list_of_issues)
        """
        issues = []
        fields: dict[str, Any] = {}

        # Amount
        raw_amount = raw.get("amount")
        amount = coerce_amount(raw_amount)
        if raw_amount is None or (isinstance(raw_amount, str) and not raw_amount.strip()):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required but was not extracted",
                severity="error",
                suggested_fix="Enter this transaction manually",
            ))
        elif amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message=f"Amount ({raw_amount!r}) is not a number",
                severity="error",
                suggested_fix="Enter this transaction manually",
            ))
        elif amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message=f"Amount ({raw_amount}) must be greater than zero",
                severity="error",
                suggested_fix="Amounts are always positive; use the type for direction",
            ))
        fields["amount"] = amount

        # Name
        raw_name = raw.get("name")
        name = str(raw_name).strip() if raw_name is not None else ""
        if not name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Transaction name was not extracted",
                severity="warning",
                suggested_fix="Enter a name for this transaction",
            ))
            name = UNNAMED_TRANSACTION
        fields["name"] = name[:200]

        # Date
        raw_date = raw.get("date")
        parsed_date = coerce_date(raw_date)
        if parsed_date is None:
            if raw_date in (None, ""):
                message = f"Date was not extracted; using today ({today})"
            else:
                message = f"Date ({raw_date!r}) could not be read; using today ({today})"
            issues.append(ValidationIssue(
                field="date",
                issue_type="defaulted",
                message=message,
                severity="warning",
                suggested_fix="Please verify the date",
            ))
            parsed_date = today
        fields["transaction_date"] = parsed_date

        # Type
        raw_type = raw.get("type")
        transaction_type = TransactionType.coerce(raw_type)
        if raw_type is not None and (
            not isinstance(raw_type, str)
            or raw_type.strip().lower() != transaction_type.value
        ):
            issues.append(ValidationIssue(
                field="type",
                issue_type="defaulted",
                message=f"Unknown transaction type ({raw_type!r}); treated as expense",
                severity="info",
            ))
        fields["transaction_type"] = transaction_type

        # Category hints
        raw_category = raw.get("category")
        fields["category_label"] = (
            str(raw_category).strip()[:100] if raw_category is not None else ""
        )
        fields["is_new_category"] = coerce_bool(raw.get("isNewCategory", False))

        raw_icon = raw.get("suggestedIcon")
        fields["suggested_icon"] = (
            CategoryIcon.from_name(raw_icon) if raw_icon not in (None, "") else None
        )
        fields["suggested_color"] = normalize_hsl(raw.get("suggestedColor"))

        return fields, issues

    def _validate_semantic(
        self,
        fields: dict,
        today: date,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Only runs on items that passed stage 1, so amount is a positive
        Decimal and the date is set.
        """
        issues = []

        # Future date check (with tolerance)
        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if fields["transaction_date"] > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({fields['transaction_date']}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        # Very old date check (might be a misread year)
        min_reasonable_date = today - timedelta(days=365 * 2)
        if fields["transaction_date"] < min_reasonable_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="suspicious_date",
                message=f"Date ({fields['transaction_date']}) seems unusually old",
                severity="warning",
                suggested_fix="Please verify the date was read correctly",
            ))

        # Absurd amount check
        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if fields["amount"] > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({fields['amount']:,}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        # Name sanity (not just numbers/symbols)
        name = fields["name"]
        if name != UNNAMED_TRANSACTION:
            alpha_count = sum(1 for c in name if c.isalpha())
            if alpha_count / len(name) < 0.3:
                issues.append(ValidationIssue(
                    field="name",
                    issue_type="suspicious_value",
                    message="Name looks unusual (too many numbers/symbols)",
                    severity="warning",
                    suggested_fix="Please verify the name",
                ))

        return issues

    def validate_item(
        self,
        raw: Any,
        index: int,
        today: date,
    ) -> Union[ExtractedLineItem, RejectedLineItem]:
        """
        Run both stages on one element of the model's items list.

        Returns:
            ExtractedLineItem carrying any warnings, or a RejectedLineItem
            carrying the errors that disqualified it
        """
        if not isinstance(raw, dict):
            return RejectedLineItem(
                index=index,
                issues=[ValidationIssue(
                    field="item",
                    issue_type="invalid_value",
                    message="Line item is not an object",
                    severity="error",
                )],
            )

        fields, issues = self._validate_schema(raw, today)

        if any(issue.severity == "error" for issue in issues):
            return RejectedLineItem(
                index=index,
                name=fields["name"],
                raw=raw,
                issues=issues,
            )

        issues.extend(self._validate_semantic(fields, today))

        try:
            return ExtractedLineItem(**fields, issues=issues)
        except ValidationError as e:
            for error in e.errors():
                issues.append(ValidationIssue(
                    field=".".join(str(part) for part in error["loc"]),
                    issue_type="invalid_value",
                    message=error["msg"],
                    severity="error",
                ))
            return RejectedLineItem(
                index=index,
                name=fields["name"],
                raw=raw,
                issues=issues,
            )

    def rejected_over_limit(self, raw: Any, index: int) -> RejectedLineItem:
        """Rejection for items past max_line_items."""
        name = raw.get("name") if isinstance(raw, dict) else None
        return RejectedLineItem(
            index=index,
            name=str(name) if name is not None else None,
            raw=raw if isinstance(raw, dict) else {},
            issues=[ValidationIssue(
                field="items",
                issue_type="too_many_items",
                message=f"Only the first {self.max_line_items} line items are accepted",
                severity="error",
                suggested_fix="Split the screenshot into smaller parts",
            )],
        )

    @staticmethod
    def get_user_friendly_summary(
        items: list[ExtractedLineItem],
        rejected: list[RejectedLineItem],
    ) -> str:
        """One-line summary of an extraction for non-technical users."""
        warned = sum(1 for item in items if item.issues)
        if not items and not rejected:
            return "No transactions were found in this screenshot."

        parts = [f"Found {len(items)} transaction{'s' if len(items) != 1 else ''}."]
        if warned:
            parts.append(f"{warned} need a second look.")
        if rejected:
            parts.append(f"{len(rejected)} could not be read and were left out.")
        return " ".join(parts)
