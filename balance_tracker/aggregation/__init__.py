"""Summary and trend aggregation package."""

from balance_tracker.aggregation.engine import (
    MONTHLY_HORIZON,
    QUARTERLY_HORIZON,
    WEEKLY_HORIZON,
    AggregationEngine,
    change_over,
    find_baseline,
    select_current_record,
)

__all__ = [
    "AggregationEngine",
    "MONTHLY_HORIZON",
    "QUARTERLY_HORIZON",
    "WEEKLY_HORIZON",
    "change_over",
    "find_baseline",
    "select_current_record",
]
