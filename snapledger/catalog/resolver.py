"""
Category Catalog Resolver

Builds the set of categories a user can pick from: the system defaults
plus the user's own categories. The catalog feeds two places:
- the extraction prompt (category names split by transaction type)
- reconciliation of the model's category labels to category ids

DESIGN DECISION: A storage failure never aborts an analysis. The resolver
logs the failure and falls back to the built-in defaults, so the model
still gets a sensible list and the user still gets line items back.
"""

from typing import Iterable, Optional
from uuid import UUID

from snapledger.audit.logger import AuditLogger
from snapledger.catalog.defaults import default_categories
from snapledger.models.ledger import Category, CategoryType, TransactionType
from snapledger.services.storage import CategoryStorageInterface


class CategoryCatalog:
    """Read-only view over one user's categories."""

    def __init__(self, categories: Iterable[Category], degraded: bool = False):
        self._categories: list[Category] = list(categories)
        self._by_id: dict[UUID, Category] = {c.id: c for c in self._categories}
        self.degraded = degraded

    def __iter__(self):
        return iter(self._categories)

    def __len__(self) -> int:
        return len(self._categories)

    @property
    def categories(self) -> list[Category]:
        return list(self._categories)

    def get(self, category_id: Optional[UUID]) -> Optional[Category]:
        if category_id is None:
            return None
        return self._by_id.get(category_id)

    def find_by_name(self, name: str) -> Optional[Category]:
        """
        Case-insensitive exact match on category name.

        The user's own categories win over defaults with the same name.
        """
        wanted = name.strip().lower()
        if not wanted:
            return None
        match = None
        for category in self._categories:
            if category.name.lower() == wanted:
                if category.owner_id is not None:
                    return category
                match = match or category
        return match

    def names_for(self, transaction_type: TransactionType) -> list[str]:
        """Category names offered to the model for one transaction type."""
        wanted = (
            CategoryType.INCOME
            if transaction_type == TransactionType.INCOME
            else CategoryType.EXPENSE
        )
        names: list[str] = []
        seen: set[str] = set()
        for category in self._categories:
            if category.category_type in (wanted, CategoryType.BOTH):
                key = category.name.lower()
                if key not in seen:
                    seen.add(key)
                    names.append(category.name)
        return names


class CategoryCatalogResolver:
    """Loads a user's CategoryCatalog from storage."""

    def __init__(
        self,
        storage: CategoryStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit = audit_logger or AuditLogger()

    async def resolve(
        self,
        owner_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> CategoryCatalog:
        """
        Resolve the catalog for a user.

        Defaults missing from storage (e.g. a freshly created sheet) are
        merged in, so the catalog always contains every built-in category.
        """
        defaults = default_categories()
        try:
            stored = await self._storage.list_categories(owner_id)
        except Exception as e:
            await self._audit.log_catalog_degraded(
                owner_id=owner_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return CategoryCatalog(defaults, degraded=True)

        stored_ids = {c.id for c in stored}
        missing_defaults = [c for c in defaults if c.id not in stored_ids]
        stored_defaults = [c for c in stored if c.owner_id is None]
        own = [c for c in stored if c.owner_id == owner_id]

        return CategoryCatalog(stored_defaults + missing_defaults + own)
