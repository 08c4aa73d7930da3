"""
Spending Statistics

DESIGN DECISION: Statistics are computed DETERMINISTICALLY from stored
transactions. Nothing here is estimated or generated by the model.

Periods:
- day, week (Monday to Sunday), month, year
- offset 0 is the period containing today, -1 the one before, ...
"""

import calendar
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from snapledger.catalog import CategoryCatalog, CategoryCatalogResolver
from snapledger.models.ledger import (
    NEUTRAL_GRAY,
    UNCATEGORIZED_NAME,
    CategoryIcon,
    CategoryTotal,
    PeriodSummary,
    StatisticsPeriod,
    Transaction,
    TransactionType,
)
from snapledger.services.storage import TransactionStorageInterface


# Upper bound on transactions read for one period
MAX_PERIOD_TRANSACTIONS = 10000


class StatisticsError(Exception):
    """Invalid statistics request."""
    pass


def _shift_months(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) + months
    return date(month_index // 12, month_index % 12 + 1, 1)


def period_range(
    period: StatisticsPeriod,
    offset: int,
    today: date,
) -> tuple[date, date]:
    """
    First and last day (inclusive) of a period.

    Raises:
        StatisticsError: If offset is positive (future periods) or reaches
            before the first representable date
    """
    if offset > 0:
        raise StatisticsError("offset must be zero or negative")

    try:
        if period == StatisticsPeriod.DAY:
            day = today + timedelta(days=offset)
            return day, day

        if period == StatisticsPeriod.WEEK:
            monday = today - timedelta(days=today.weekday()) + timedelta(weeks=offset)
            return monday, monday + timedelta(days=6)

        if period == StatisticsPeriod.MONTH:
            start = _shift_months(today.replace(day=1), offset)
            last_day = calendar.monthrange(start.year, start.month)[1]
            return start, start.replace(day=last_day)

        year = today.year + offset
        return date(year, 1, 1), date(year, 12, 31)
    except (ValueError, OverflowError) as e:
        raise StatisticsError(f"offset {offset} is out of range") from e


def _category_totals(
    transactions: list[Transaction],
    catalog: CategoryCatalog,
) -> list[CategoryTotal]:
    sums: dict[Optional[UUID], Decimal] = defaultdict(lambda: Decimal("0"))
    for transaction in transactions:
        # Deleted categories count as uncategorized
        category = catalog.get(transaction.category_id)
        sums[category.id if category else None] += transaction.amount

    totals = []
    for category_id, amount in sums.items():
        category = catalog.get(category_id)
        if category is None:
            totals.append(CategoryTotal(
                category_id=None,
                name=UNCATEGORIZED_NAME,
                amount=amount,
                color=NEUTRAL_GRAY,
                icon=CategoryIcon.HELP_CIRCLE,
            ))
        else:
            totals.append(CategoryTotal(
                category_id=category.id,
                name=category.name,
                amount=amount,
                color=category.color,
                icon=category.icon,
            ))

    totals.sort(key=lambda t: (-t.amount, t.name))
    return totals


class StatisticsService:
    """Aggregates a user's transactions per period and category."""

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        catalog_resolver: CategoryCatalogResolver,
    ):
        self._transactions = transaction_storage
        self._resolver = catalog_resolver

    async def summarize(
        self,
        owner_id: UUID,
        period: StatisticsPeriod,
        offset: int = 0,
        today: Optional[date] = None,
    ) -> PeriodSummary:
        """
        Totals and per-category breakdown for one period.

        Raises:
            StatisticsError: If offset is positive
        """
        today = today or date.today()
        start, end = period_range(period, offset, today)

        transactions = await self._transactions.list_transactions(
            owner_id,
            date_from=start,
            date_to=end,
            limit=MAX_PERIOD_TRANSACTIONS,
        )
        catalog = await self._resolver.resolve(owner_id)

        income = [t for t in transactions if t.transaction_type == TransactionType.INCOME]
        expenses = [t for t in transactions if t.transaction_type == TransactionType.EXPENSE]

        total_income = sum((t.amount for t in income), Decimal("0"))
        total_expense = sum((t.amount for t in expenses), Decimal("0"))

        return PeriodSummary(
            period=period,
            start=start,
            end=end,
            total_income=total_income,
            total_expense=total_expense,
            balance=total_income - total_expense,
            transaction_count=len(transactions),
            expenses_by_category=_category_totals(expenses, catalog),
            income_by_category=_category_totals(income, catalog),
        )
