"""Read-only projections over aggregate records.

Every query reconciles first: point lookups refresh their subject,
listings refresh every subject.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..core.errors import NotFound
from ..observability.loguru_config import get_logger
from .record import BUCKETS, AggregateRecord, Amount
from .refresher import LazyRefresher
from .time_windows import PeriodLabels

if TYPE_CHECKING:
    from ..storage.base import TotalsStore

logger = get_logger("queries")

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_TOP_LIMIT",
    "LeaderboardEntry",
    "Page",
    "QuerySurface",
    "TotalsSummary",
]

DEFAULT_TOP_LIMIT = 20
DEFAULT_PAGE_SIZE = 500


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    period: str
    subject: str
    total: Amount
    record: AggregateRecord

    def to_dict(self) -> dict[str, Any]:
        record = self.record.to_dict()
        return {
            "rank": self.rank,
            "subject": self.subject,
            "total": self.total,
            "day_start": record["day_start"],
            "week_start": record["week_start"],
            "month_start": record["month_start"],
            "updated_at": record["updated_at"],
        }


@dataclass
class Page:
    """One page of records ordered by ``total_all`` descending."""

    page: int
    page_size: int
    total_items: int
    total_pages: int
    items: list[AggregateRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "page_size": self.page_size,
            "total_items": self.total_items,
            "total_pages": self.total_pages,
            "items": [record.to_dict() for record in self.items],
        }


@dataclass
class TotalsSummary:
    """Grand totals per bucket across every subject."""

    subjects: int
    totals: dict[str, Amount]
    labels: PeriodLabels

    def to_dict(self) -> dict[str, Any]:
        return {
            "subjects": self.subjects,
            "totals": dict(self.totals),
            "labels": self.labels.to_dict(),
        }


def _ranking_key(bucket: str):
    # Highest total first, then subject ascending for a deterministic order
    return lambda record: (-record.total_for(bucket), record.subject)


class QuerySurface:
    """Lookup, leaderboard, pagination and summary over reconciled records.

    Parameters
    ----------
    store
        Record store
    refresher
        Refresher sharing the store, resolver and locks with the updater
    """

    def __init__(self, store: TotalsStore, refresher: LazyRefresher) -> None:
        self.store = store
        self.refresher = refresher

    def _current_labels(self) -> PeriodLabels:
        return self.refresher.resolver.resolve(self.refresher.clock())

    def _reconciled_records(self) -> list[AggregateRecord]:
        """Refresh every subject, then read a consistent view.

        Subjects that failed to refresh are left out rather than served
        with stale numbers. The in-memory copies are reconciled again so a
        boundary crossed between refresh and read cannot leak through.
        """
        report = self.refresher.refresh_all()
        failed = report.failed_subjects
        if failed:
            logger.warning(f"Omitting {len(failed)} subjects that failed to refresh")

        now = self.refresher.clock()
        labels = self.refresher.resolver.resolve(now)
        records = []
        for record in self.store.load_all():
            if record.subject in failed:
                continue
            record.reconcile(labels, now)
            records.append(record)
        return records

    def get(self, subject: str) -> AggregateRecord:
        """Point lookup.

        Raises
        ------
        NotFound
            If the subject has no record
        StorageUnavailable
            If the store cannot be read
        """
        record = self.refresher.refresh_one(subject)
        if record is None:
            raise NotFound(subject)
        return record

    def top(self, period: str = "all", limit: int = DEFAULT_TOP_LIMIT) -> list[LeaderboardEntry]:
        """Rank subjects by one bucket.

        Parameters
        ----------
        period
            "all", "day", "week" or "month" (case-insensitive)
        limit
            Maximum entries; values below 1 are treated as 1

        Raises
        ------
        ValueError
            If ``period`` is not a bucket
        """
        period = period.lower()
        if period not in BUCKETS:
            raise ValueError(f"Unknown period: {period} (expected one of {', '.join(BUCKETS)})")
        limit = max(1, int(limit))

        ranked = sorted(self._reconciled_records(), key=_ranking_key(period))[:limit]
        return [
            LeaderboardEntry(
                rank=index,
                period=period,
                subject=record.subject,
                total=record.total_for(period),
                record=record,
            )
            for index, record in enumerate(ranked, start=1)
        ]

    def list_page(self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Page:
        """Paginated listing ordered by ``total_all`` descending.

        ``page`` and ``page_size`` below 1 are treated as 1. Pages past the
        end are empty.
        """
        page = max(1, int(page))
        page_size = max(1, int(page_size))

        records = sorted(self._reconciled_records(), key=_ranking_key("all"))
        total_items = len(records)
        offset = (page - 1) * page_size

        return Page(
            page=page,
            page_size=page_size,
            total_items=total_items,
            total_pages=math.ceil(total_items / page_size),
            items=records[offset : offset + page_size],
        )

    def summary(self) -> TotalsSummary:
        """Sum each bucket across every subject."""
        records = self._reconciled_records()
        totals: dict[str, Amount] = {bucket: 0 for bucket in BUCKETS}
        for record in records:
            for bucket in BUCKETS:
                totals[bucket] += record.total_for(bucket)

        return TotalsSummary(subjects=len(records), totals=totals, labels=self._current_labels())
