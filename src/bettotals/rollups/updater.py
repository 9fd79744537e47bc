"""Incremental updater: fold one observation into a subject's totals."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from ..core.time import get_current_utc
from ..observability.loguru_config import get_logger
from ..storage.locks import FileSubjectLocks, SubjectLocks
from .record import AggregateRecord, Amount
from .time_windows import CalendarResolver

if TYPE_CHECKING:
    from ..storage.base import TotalsStore

logger = get_logger("updater")

__all__ = ["IncrementalUpdater"]


class IncrementalUpdater:
    """Apply observations to aggregate records.

    Parameters
    ----------
    store
        Record store
    resolver
        Calendar resolver shared with the refresher
    locks
        Per-subject lock registry shared with the refresher
    clock
        Returns the current UTC time
    """

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

    def apply(self, subject: str, amount: Amount) -> AggregateRecord:
        """Add ``amount`` to every bucket of ``subject``.

        Loads the record (or starts a fresh one), resets buckets whose
        stored label is stale, adds the amount to all four buckets and
        persists the result before returning.

        Returns
        -------
        AggregateRecord
            Copy of the persisted record

        Raises
        ------
        StorageUnavailable
            If the record cannot be loaded or saved, or the subject lock
            times out; nothing is persisted in that case
        """
        with self.locks.hold(subject):
            # Labels are resolved under the lock so a writer that waited
            # can never move a label backwards.
            now = self.clock()
            labels = self.resolver.resolve(now)

            record = self.store.load_by_subject(subject)
            created = record is None
            if record is None:
                record = AggregateRecord.fresh(subject, labels, now)

            reset = record.reconcile(labels, now)
            record.add(amount, now)
            self.store.upsert(record)

        if created:
            logger.info(f"Created totals for {subject} with {amount}")
        elif reset:
            logger.info(f"Rolled over {', '.join(reset)} for {subject} before adding {amount}")
        else:
            logger.debug(f"Added {amount} to {subject}")

        return record.copy()
