"""Rebuild aggregate records from a history of past observations.

Used to seed ``bet_totals`` from an existing bet history: ``total_all`` sums
everything, each periodic bucket sums only the observations inside the
period that is current at rebuild time.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from ..core.errors import InvalidObservation
from ..core.time import ensure_timezone, get_current_utc, parse_utc_iso8601
from ..core.validation import validate_observation
from .record import AggregateRecord, Amount
from .time_windows import PERIODS, CalendarResolver, compute_period_window

__all__ = [
    "HistoricalObservation",
    "load_history_jsonl",
    "rebuild_from_history",
]


@dataclass(frozen=True)
class HistoricalObservation:
    subject: str
    amount: Amount
    occurred_at: datetime


def load_history_jsonl(path: Path | str) -> Iterator[HistoricalObservation]:
    """Read observations from a JSON-lines file.

    Each line is an object with ``subject`` (or ``username``), ``amount``
    and ``occurred_at`` (or ``time``) as ISO-8601; timestamps without an
    offset are UTC. Blank lines are skipped.

    Raises
    ------
    InvalidObservation
        On the first malformed line, naming its line number
    """
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue

            try:
                data = json.loads(line)
                subject = data.get("subject", data.get("username"))
                occurred_raw = data.get("occurred_at", data.get("time"))
                if not isinstance(occurred_raw, str):
                    raise ValueError("missing occurred_at")
                occurred_at = parse_utc_iso8601(occurred_raw)
                observation = validate_observation(subject, data.get("amount"))
            except (ValueError, AttributeError, InvalidObservation) as exc:
                raise InvalidObservation(f"{path}:{line_no}: {exc}") from exc

            yield HistoricalObservation(
                subject=observation.subject,
                amount=observation.amount,
                occurred_at=occurred_at,
            )


def rebuild_from_history(
    observations: Iterable[HistoricalObservation],
    resolver: CalendarResolver | None = None,
    now: datetime | None = None,
) -> dict[str, AggregateRecord]:
    """Compute fresh records for every subject in ``observations``.

    Parameters
    ----------
    observations
        Past observations, in any order
    resolver
        Calendar resolver (default: configured civil timezone, Sunday weeks)
    now
        Rebuild time; decides which periods are current

    Returns
    -------
    dict[str, AggregateRecord]
        Records keyed by subject, labels set to the periods current at ``now``
    """
    resolver = resolver or CalendarResolver()
    now = ensure_timezone(now) if now else get_current_utc()
    labels = resolver.resolve(now)
    windows = {
        period: compute_period_window(period, labels.for_period(period), resolver.timezone_str)
        for period in PERIODS
    }

    records: dict[str, AggregateRecord] = {}
    for observation in observations:
        record = records.get(observation.subject)
        if record is None:
            record = AggregateRecord.fresh(observation.subject, labels, now)
            records[observation.subject] = record

        record.total_all += observation.amount
        for period, window in windows.items():
            if window.contains(observation.occurred_at):
                setattr(record, f"total_{period}", record.total_for(period) + observation.amount)

    return records
