"""Category catalog package."""

from snapledger.catalog.defaults import (
    DEFAULT_EXPENSE_CATEGORIES,
    DEFAULT_INCOME_CATEGORIES,
    default_categories,
    default_category_id,
)
from snapledger.catalog.resolver import CategoryCatalog, CategoryCatalogResolver

__all__ = [
    "CategoryCatalog",
    "CategoryCatalogResolver",
    "DEFAULT_EXPENSE_CATEGORIES",
    "DEFAULT_INCOME_CATEGORIES",
    "default_categories",
    "default_category_id",
]
