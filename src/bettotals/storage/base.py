"""Record store interface.

The engine never touches module-level state; a store instance is injected
into the updater, refresher and query surface.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..rollups.record import AggregateRecord

__all__ = ["TotalsStore"]


class TotalsStore:
    """Base class for aggregate record persistence.

    Implementations raise :class:`~bettotals.core.errors.StorageUnavailable`
    when the backing store cannot be reached.
    """

    def load_by_subject(self, subject: str) -> AggregateRecord | None:
        """Load one record.

        Parameters
        ----------
        subject
            Subject identifier

        Returns
        -------
        AggregateRecord | None
            Record or None if the subject has none
        """
        raise NotImplementedError

    def upsert(self, record: AggregateRecord) -> None:
        """Insert or replace the record keyed by ``record.subject``."""
        raise NotImplementedError

    def load_all(self) -> list[AggregateRecord]:
        """Load every record, ordered by subject."""
        raise NotImplementedError

    def purge(self, subject: str) -> bool:
        """Delete a record (administrative only).

        Returns
        -------
        bool
            True if a record was deleted
        """
        raise NotImplementedError

    def count(self) -> int:
        return len(self.load_all())

    def close(self) -> None:
        """Release resources held by the store."""

    def __enter__(self) -> TotalsStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
