"""Reporting package."""

from snapledger.reports.statistics import (
    StatisticsError,
    StatisticsService,
    period_range,
)

__all__ = ["StatisticsError", "StatisticsService", "period_range"]
