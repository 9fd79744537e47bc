"""Lazy refresher: roll over stale buckets without adding anything.

Runs before every read so a subject with no observations since a period
boundary reports zero for the new period instead of last period's total.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from ..core.errors import BetTotalsError
from ..core.time import get_current_utc
from ..observability.loguru_config import get_logger, timing_context
from ..storage.locks import FileSubjectLocks, SubjectLocks
from .record import AggregateRecord
from .time_windows import CalendarResolver

if TYPE_CHECKING:
    from ..storage.base import TotalsStore

logger = get_logger("refresher")

__all__ = [
    "LazyRefresher",
    "RefreshFailure",
    "RefreshReport",
]


@dataclass(frozen=True)
class RefreshFailure:
    subject: str
    error: str


@dataclass
class RefreshReport:
    """Outcome of a refresh pass over every subject.

    Attributes
    ----------
    checked : int
        Subjects whose record was reconciled
    reset : dict[str, list[str]]
        Buckets reset, by subject (only subjects with resets)
    failures : list[RefreshFailure]
        Subjects that could not be reconciled
    """

    checked: int = 0
    reset: dict[str, list[str]] = field(default_factory=dict)
    failures: list[RefreshFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def failed_subjects(self) -> set[str]:
        return {failure.subject for failure in self.failures}

    def to_dict(self) -> dict[str, Any]:
        return {
            "checked": self.checked,
            "reset": {subject: list(buckets) for subject, buckets in self.reset.items()},
            "failures": [{"subject": f.subject, "error": f.error} for f in self.failures],
        }


class LazyRefresher:
    """Reconcile stored records against the current period labels."""

    def __init__(
        self,
        store: TotalsStore,
        resolver: CalendarResolver | None = None,
        locks: SubjectLocks | FileSubjectLocks | None = None,
        clock: Callable[[], datetime] = get_current_utc,
    ) -> None:
        self.store = store
        self.resolver = resolver or CalendarResolver()
        self.locks = locks or SubjectLocks()
        self.clock = clock

    def _reconcile_subject(self, subject: str) -> tuple[AggregateRecord | None, list[str]]:
        with self.locks.hold(subject):
            now = self.clock()
            labels = self.resolver.resolve(now)

            record = self.store.load_by_subject(subject)
            if record is None:
                return None, []

            reset = record.reconcile(labels, now)
            if reset:
                self.store.upsert(record)

        return record, reset

    def refresh_one(self, subject: str) -> AggregateRecord | None:
        """Roll over ``subject``'s stale buckets.

        Returns
        -------
        AggregateRecord | None
            The reconciled record, or None if the subject has no record

        Raises
        ------
        StorageUnavailable
            If the record cannot be loaded or saved
        """
        record, reset = self._reconcile_subject(subject)
        if reset:
            logger.info(f"Rolled over {', '.join(reset)} for {subject}")
        return record

    def refresh_all(self) -> RefreshReport:
        """Roll over stale buckets for every subject.

        Idempotent; subjects that are already current are not rewritten.
        A failing subject is recorded in the report and the pass moves on.

        Raises
        ------
        StorageUnavailable
            If the list of records cannot be loaded at all
        """
        report = RefreshReport()

        with timing_context("refresh_all", component="refresher") as ctx:
            subjects = [record.subject for record in self.store.load_all()]

            for subject in subjects:
                try:
                    record, reset = self._reconcile_subject(subject)
                except (BetTotalsError, ValueError, TypeError) as exc:
                    logger.warning(f"Refresh failed for {subject}: {exc}")
                    report.failures.append(RefreshFailure(subject=subject, error=str(exc)))
                    continue

                if record is None:
                    # Purged between listing and locking
                    continue

                report.checked += 1
                if reset:
                    report.reset[subject] = reset

            ctx["checked"] = report.checked
            ctx["reset_subjects"] = len(report.reset)
            ctx["failures"] = len(report.failures)

        if report.reset:
            logger.info(f"Rolled over stale buckets for {len(report.reset)} of {report.checked} subjects")
        return report
