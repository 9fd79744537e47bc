"""Aggregation engine: one object wiring store, calendar, locks and queries.

The updater, refresher and query surface share a single resolver and a
single lock registry so every call site uses the same calendar and the
same per-subject serialization.

Example:
    >>> from bettotals.storage import InMemoryTotalsStore
    >>> engine = TotalsEngine(InMemoryTotalsStore(), timezone_str="Asia/Ho_Chi_Minh")
    >>> engine.apply("alice", 100).total_day
    100
    >>> [entry.subject for entry in engine.top("day")]
    ['alice']
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime
from typing import TYPE_CHECKING

from .core.time import get_current_utc
from .core.validation import validate_observation
from .observability.loguru_config import get_logger, timing_context
from .rollups.backfill import HistoricalObservation, rebuild_from_history
from .rollups.queries import DEFAULT_PAGE_SIZE, DEFAULT_TOP_LIMIT, LeaderboardEntry, Page, QuerySurface, TotalsSummary
from .rollups.record import AggregateRecord, Amount
from .rollups.refresher import LazyRefresher, RefreshReport
from .rollups.time_windows import WEEK_START_SUNDAY, CalendarResolver, PeriodLabels
from .rollups.updater import IncrementalUpdater
from .storage.locks import FileSubjectLocks, SubjectLocks
from .storage.sqlite import create_store

if TYPE_CHECKING:
    from .config.settings import Settings
    from .storage.base import TotalsStore

logger = get_logger("engine")

__all__ = ["TotalsEngine", "create_engine"]


class TotalsEngine:
    """Facade over the incremental updater, lazy refresher and queries.

    Parameters
    ----------
    store
        Record store
    timezone_str
        Civil timezone (default: the configured civil timezone)
    week_start_on
        Weekday weeks start on (0=Monday, 6=Sunday)
    locks
        Lock registry (default: in-process locks)
    clock
        Returns the current UTC time
    """

    def __init__(
        self,
        store: TotalsStore,
        *,
        timezone_str: str | None = None,
        week_start_on: int = WEEK_START_SUNDAY,
        locks: SubjectLocks | FileSubjectLocks | None = None,
        clock: Callable[[], datetime] = get_current_utc,
    ) -> None:
        self.store = store
        self.clock = clock
        self.resolver = CalendarResolver(timezone_str, week_start_on)
        self.locks = locks or SubjectLocks()

        self.updater = IncrementalUpdater(store, self.resolver, self.locks, clock)
        self.refresher = LazyRefresher(store, self.resolver, self.locks, clock)
        self.queries = QuerySurface(store, self.refresher)

    def apply(self, subject: str, amount: Amount) -> AggregateRecord:
        """Validate and apply one observation.

        Raises
        ------
        InvalidObservation
            If subject or amount is malformed
        StorageUnavailable
            If the record could not be persisted
        """
        observation = validate_observation(subject, amount)
        return self.updater.apply(observation.subject, observation.amount)

    def refresh_one(self, subject: str) -> AggregateRecord | None:
        return self.refresher.refresh_one(subject)

    def refresh_all(self) -> RefreshReport:
        return self.refresher.refresh_all()

    def get(self, subject: str) -> AggregateRecord:
        return self.queries.get(subject)

    def top(self, period: str = "all", limit: int = DEFAULT_TOP_LIMIT) -> list[LeaderboardEntry]:
        return self.queries.top(period, limit)

    def list_page(self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Page:
        return self.queries.list_page(page, page_size)

    def summary(self) -> TotalsSummary:
        return self.queries.summary()

    def labels(self, instant: datetime | None = None) -> PeriodLabels:
        """Period labels for ``instant`` (default: now per the engine clock)."""
        return self.resolver.resolve(instant or self.clock())

    def rebuild(self, observations: Iterable[HistoricalObservation]) -> dict[str, AggregateRecord]:
        """Replace the records of every subject found in ``observations``.

        Subjects absent from the history keep their current records.
        """
        with timing_context("rebuild", component="engine") as ctx:
            records = rebuild_from_history(observations, self.resolver, self.clock())
            for subject, record in records.items():
                with self.locks.hold(subject):
                    self.store.upsert(record)
            ctx["subjects"] = len(records)

        logger.info(f"Rebuilt totals for {len(records)} subjects from history")
        return records

    def purge(self, subject: str) -> bool:
        """Delete a subject's record (administrative)."""
        with self.locks.hold(subject):
            return self.store.purge(subject)

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> TotalsEngine:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def create_engine(settings: Settings, *, clock: Callable[[], datetime] = get_current_utc) -> TotalsEngine:
    """Build an engine from settings.

    Uses file locks when ``settings.lock_dir`` is set, in-process locks
    otherwise.
    """
    store = create_store(settings.db_path, timeout=settings.storage_timeout)

    locks: SubjectLocks | FileSubjectLocks
    if settings.lock_dir:
        locks = FileSubjectLocks(settings.lock_dir, timeout=settings.lock_timeout)
    else:
        locks = SubjectLocks(timeout=settings.lock_timeout)

    logger.debug(f"Engine using {settings.db_path} in {settings.timezone}, weeks start on {settings.week_start_on}")

    return TotalsEngine(
        store,
        timezone_str=settings.timezone,
        week_start_on=settings.week_start_on,
        locks=locks,
        clock=clock,
    )
