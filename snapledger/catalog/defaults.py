"""
Built-in Default Categories

System categories every user sees. Ids are derived with uuid5 from the
category name, so the rows seeded into storage and the fallback copies
used when storage is unreachable always agree on ids.
"""

from datetime import datetime, timezone
from uuid import NAMESPACE_URL, UUID, uuid5

from snapledger.models.ledger import Category, CategoryIcon, CategoryType


DEFAULT_CATEGORY_NAMESPACE = uuid5(NAMESPACE_URL, "snapledger:default-categories")

# Fixed so that defaults compare equal across processes
_DEFAULTS_CREATED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


def default_category_id(name: str) -> UUID:
    """Stable id of the default category with this name."""
    return uuid5(DEFAULT_CATEGORY_NAMESPACE, name.lower())


def _default(
    name: str,
    icon: CategoryIcon,
    color: str,
    category_type: CategoryType,
) -> Category:
    return Category(
        id=default_category_id(name),
        owner_id=None,
        name=name,
        icon=icon,
        color=color,
        is_default=True,
        category_type=category_type,
        created_at=_DEFAULTS_CREATED_AT,
    )


DEFAULT_EXPENSE_CATEGORIES: list[Category] = [
    _default("Food", CategoryIcon.UTENSILS, "hsl(0, 84%, 60%)", CategoryType.EXPENSE),
    _default("Transport", CategoryIcon.CAR, "hsl(25, 95%, 53%)", CategoryType.EXPENSE),
    _default("Cafe", CategoryIcon.COFFEE, "hsl(30, 41%, 41%)", CategoryType.EXPENSE),
    _default("Shopping", CategoryIcon.SHOPPING_BAG, "hsl(280, 68%, 47%)", CategoryType.EXPENSE),
    _default("Leisure", CategoryIcon.FILM, "hsl(221, 83%, 53%)", CategoryType.EXPENSE),
    _default("Health", CategoryIcon.HEART, "hsl(142, 71%, 45%)", CategoryType.EXPENSE),
    _default("Housing", CategoryIcon.HOME, "hsl(186, 94%, 37%)", CategoryType.EXPENSE),
    _default("Utilities", CategoryIcon.ZAP, "hsl(48, 96%, 53%)", CategoryType.EXPENSE),
]

DEFAULT_INCOME_CATEGORIES: list[Category] = [
    _default("Salary", CategoryIcon.BANKNOTE, "hsl(142, 71%, 45%)", CategoryType.INCOME),
    _default("Allowance", CategoryIcon.GIFT, "hsl(280, 68%, 47%)", CategoryType.INCOME),
    _default("Interest", CategoryIcon.TRENDING_UP, "hsl(221, 83%, 53%)", CategoryType.INCOME),
    _default("Other Income", CategoryIcon.PLUS, "hsl(186, 94%, 37%)", CategoryType.INCOME),
]


def default_categories() -> list[Category]:
    """All built-in categories, expense first."""
    return DEFAULT_EXPENSE_CATEGORIES + DEFAULT_INCOME_CATEGORIES
