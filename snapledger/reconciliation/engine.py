"""
Category Reconciliation Engine

Maps the category labels the model proposed onto the user's categories.

Two phases:
1. reconcile_items() - PURE. Runs right after analysis so the review
   screen can show which items already have a category.
2. ensure_category() - SIDE EFFECT. Runs only at save time, for items
   the user confirmed with a category that doesn't exist yet.

DESIGN DECISION: Creation is deduplicated per batch through an explicit
``created`` dict (lower-cased name -> category id) owned by the caller.
Two items proposing "Subscriptions" and "subscriptions" create exactly
one category. The dict is filled only AFTER a successful insert, so a
failed creation is retried by the next item that needs the same name.
"""

from typing import Optional, Union
from uuid import UUID

from snapledger.audit.logger import AuditLogger
from snapledger.catalog import CategoryCatalog
from snapledger.models.ledger import (
    NEUTRAL_GRAY,
    Category,
    CategoryIcon,
    CategoryType,
    ConfirmedLineItem,
    ExtractedLineItem,
    NewCategoryRequest,
    TransactionType,
    normalize_hsl,
)
from snapledger.services.storage import CategoryStorageInterface


LineItem = Union[ExtractedLineItem, ConfirmedLineItem]


def reconcile_items(
    items: list[ExtractedLineItem],
    catalog: CategoryCatalog,
) -> list[ExtractedLineItem]:
    """
    Resolve each item's category label against the catalog.

    Returns copies; the input items are left untouched. Unmatched items
    keep resolved_category_id None.
    """
    reconciled = []
    for item in items:
        match = catalog.find_by_name(item.category_label) if item.category_label else None
        reconciled.append(item.model_copy(update={
            "resolved_category_id": match.id if match else None,
        }))
    return reconciled


def plan_new_category(item: LineItem) -> Optional[NewCategoryRequest]:
    """
    Describe the category to create for an unmatched item.

    Returns None when the item doesn't ask for a new category or has no
    label to name it with.
    """
    if not item.is_new_category or not item.category_label.strip():
        return None

    icon = item.suggested_icon or CategoryIcon.HELP_CIRCLE
    color = normalize_hsl(item.suggested_color) or NEUTRAL_GRAY
    category_type = (
        CategoryType.INCOME
        if item.transaction_type == TransactionType.INCOME
        else CategoryType.EXPENSE
    )

    return NewCategoryRequest(
        name=item.category_label.strip(),
        icon=icon,
        color=color,
        category_type=category_type,
    )


async def ensure_category(
    request: NewCategoryRequest,
    owner_id: UUID,
    storage: CategoryStorageInterface,
    created: dict[str, UUID],
    audit_logger: Optional[AuditLogger] = None,
    correlation_id: Optional[UUID] = None,
    created_categories: Optional[list[Category]] = None,
) -> Optional[UUID]:
    """
    Create the requested category unless this batch already did.

    Args:
        request: Category to create
        owner_id: Owner of the new category
        storage: Category storage
        created: Batch-scoped cache of lower-cased name -> category id
        audit_logger: Where creation outcomes are logged
        correlation_id: Correlation id of the batch
        created_categories: Optional list that receives new categories

    Returns:
        The category id, or None if creation failed
    """
    key = request.cache_key
    if key in created:
        return created[key]

    audit = audit_logger or AuditLogger()
    category = Category(
        owner_id=owner_id,
        name=request.name,
        icon=request.icon,
        color=request.color,
        is_default=False,
        category_type=request.category_type,
    )

    try:
        stored = await storage.create_category(category)
    except Exception as e:
        await audit.log_category_creation_failed(
            owner_id=owner_id,
            name=request.name,
            error_message=str(e),
            correlation_id=correlation_id,
        )
        return None

    created[key] = stored.id
    if created_categories is not None:
        created_categories.append(stored)

    await audit.log_category_created(
        category_id=stored.id,
        owner_id=owner_id,
        name=stored.name,
        correlation_id=correlation_id,
    )
    return stored.id
