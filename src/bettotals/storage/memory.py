"""In-memory record store for tests and single-process tools."""

from __future__ import annotations

import threading

from ..rollups.record import AggregateRecord
from .base import TotalsStore

__all__ = ["InMemoryTotalsStore"]


class InMemoryTotalsStore(TotalsStore):
    """Dict-backed store.

    Records are copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self, records: list[AggregateRecord] | None = None) -> None:
        self._records: dict[str, AggregateRecord] = {}
        self._lock = threading.Lock()
        for record in records or []:
            self.upsert(record)

    def load_by_subject(self, subject: str) -> AggregateRecord | None:
        with self._lock:
            record = self._records.get(subject)
            return record.copy() if record else None

    def upsert(self, record: AggregateRecord) -> None:
        with self._lock:
            self._records[record.subject] = record.copy()

    def load_all(self) -> list[AggregateRecord]:
        with self._lock:
            return [self._records[subject].copy() for subject in sorted(self._records)]

    def purge(self, subject: str) -> bool:
        with self._lock:
            return self._records.pop(subject, None) is not None

    def count(self) -> int:
        with self._lock:
            return len(self._records)
