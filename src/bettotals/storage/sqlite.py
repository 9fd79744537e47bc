"""SQLite-backed record store.

One row per subject in ``bet_totals``. Every ``sqlite3`` failure, including
busy-timeout expiry and sums past the 64-bit INTEGER range, surfaces as
:class:`StorageUnavailable`.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..core.errors import StorageUnavailable
from ..core.time import format_utc_iso8601
from ..observability.loguru_config import get_logger
from ..rollups.record import AggregateRecord
from .base import TotalsStore

logger = get_logger("storage")

__all__ = ["SQLiteTotalsStore", "create_store"]

_COLUMNS = (
    "username",
    "total_all",
    "total_day",
    "day_start",
    "total_week",
    "week_start",
    "total_month",
    "month_start",
    "updated_at",
)


class SQLiteTotalsStore(TotalsStore):
    """SQLite store with a bounded busy timeout.

    Parameters
    ----------
    db_path
        Path to SQLite database file (parent directories are created)
    timeout
        Seconds to wait on a locked database before giving up
    """

    def __init__(self, db_path: Path | str, *, timeout: float = 5.0) -> None:
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._init_db()

    @contextmanager
    def _connect(self, operation: str) -> Iterator[sqlite3.Connection]:
        conn: sqlite3.Connection | None = None
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
            conn.row_factory = sqlite3.Row
            with conn:
                yield conn
        except (sqlite3.Error, OverflowError) as exc:
            logger.error(f"SQLite {operation} failed on {self.db_path}: {exc}")
            raise StorageUnavailable(f"{operation} failed: {exc}") from exc
        finally:
            if conn is not None:
                conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageUnavailable(f"Cannot create {self.db_path.parent}: {exc}") from exc

        with self._connect("init") as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS bet_totals (
                    username TEXT PRIMARY KEY,
                    -- Untyped sums keep their int or float storage class
                    total_all NOT NULL DEFAULT 0,
                    total_day NOT NULL DEFAULT 0,
                    day_start TEXT,
                    total_week NOT NULL DEFAULT 0,
                    week_start TEXT,
                    total_month NOT NULL DEFAULT 0,
                    month_start TEXT,
                    updated_at TEXT
                )
                """
            )

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> AggregateRecord:
        data = dict(row)
        data["subject"] = data.pop("username")
        return AggregateRecord.from_dict(data)

    def load_by_subject(self, subject: str) -> AggregateRecord | None:
        with self._connect("load") as conn:
            row = conn.execute(
                f"SELECT {', '.join(_COLUMNS)} FROM bet_totals WHERE username = ?",
                (subject,),
            ).fetchone()

        return self._row_to_record(row) if row else None

    def upsert(self, record: AggregateRecord) -> None:
        values = (
            record.subject,
            record.total_all,
            record.total_day,
            record.day_start,
            record.total_week,
            record.week_start,
            record.total_month,
            record.month_start,
            format_utc_iso8601(record.updated_at) if record.updated_at else None,
        )
        placeholders = ", ".join("?" for _ in _COLUMNS)

        with self._connect("upsert") as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO bet_totals ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                values,
            )

        logger.debug(f"Saved totals for {record.subject}")

    def load_all(self) -> list[AggregateRecord]:
        with self._connect("load_all") as conn:
            rows = conn.execute(
                f"SELECT {', '.join(_COLUMNS)} FROM bet_totals ORDER BY username"
            ).fetchall()

        return [self._row_to_record(row) for row in rows]

    def purge(self, subject: str) -> bool:
        with self._connect("purge") as conn:
            cursor = conn.execute("DELETE FROM bet_totals WHERE username = ?", (subject,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info(f"Purged totals for {subject}")
        return deleted

    def count(self) -> int:
        with self._connect("count") as conn:
            return conn.execute("SELECT COUNT(*) FROM bet_totals").fetchone()[0]


def create_store(db_path: Path | str | None = None, *, timeout: float = 5.0) -> TotalsStore:
    """Factory function to create a record store.

    Parameters
    ----------
    db_path
        SQLite file path; ``None`` or ``":memory:"`` gives an in-memory store

    Returns
    -------
    TotalsStore
        Configured store
    """
    if db_path is None or str(db_path) == ":memory:":
        from .memory import InMemoryTotalsStore

        return InMemoryTotalsStore()

    return SQLiteTotalsStore(db_path, timeout=timeout)
