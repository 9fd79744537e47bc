"""Rolling period aggregation: calendar, records, updater, refresher, queries."""

from .backfill import HistoricalObservation, load_history_jsonl, rebuild_from_history
from .queries import LeaderboardEntry, Page, QuerySurface, TotalsSummary
from .record import BUCKETS, AggregateRecord
from .refresher import LazyRefresher, RefreshFailure, RefreshReport
from .time_windows import (
    PERIODS,
    WEEK_START_SUNDAY,
    CalendarResolver,
    PeriodLabels,
    PeriodWindow,
    compute_period_window,
    get_month_start,
    get_week_start,
    next_period_start,
    resolve_period_labels,
)
from .updater import IncrementalUpdater

__all__ = [
    # Calendar
    "PERIODS",
    "WEEK_START_SUNDAY",
    "CalendarResolver",
    "PeriodLabels",
    "PeriodWindow",
    "compute_period_window",
    "get_month_start",
    "get_week_start",
    "next_period_start",
    "resolve_period_labels",
    # Records
    "BUCKETS",
    "AggregateRecord",
    # Mutation
    "IncrementalUpdater",
    "LazyRefresher",
    "RefreshFailure",
    "RefreshReport",
    # Reads
    "LeaderboardEntry",
    "Page",
    "QuerySurface",
    "TotalsSummary",
    # Rebuild
    "HistoricalObservation",
    "load_history_jsonl",
    "rebuild_from_history",
]
