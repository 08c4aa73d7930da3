"""Category reconciliation package."""

from snapledger.reconciliation.engine import (
    ensure_category,
    plan_new_category,
    reconcile_items,
)

__all__ = ["ensure_category", "plan_new_category", "reconcile_items"]
