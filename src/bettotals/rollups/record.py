"""Per-subject aggregate record.

Four running sums plus the period labels that were current when each
periodic sum was last reconciled.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Union

from ..core.time import format_utc_iso8601, get_current_utc, parse_utc_iso8601
from .time_windows import PERIODS, PeriodLabels

__all__ = [
    "BUCKETS",
    "AggregateRecord",
    "Amount",
]

Amount = Union[int, float]

BUCKETS: tuple[str, ...] = ("all", *PERIODS)


def _sum_or_zero(data: dict[str, Any], key: str) -> Amount:
    value = data.get(key)
    return 0 if value is None else value


@dataclass
class AggregateRecord:
    """Running totals for one subject.

    Attributes
    ----------
    subject : str
        Subject identity (username), unique and immutable
    total_all : int | float
        Sum of every observation ever recorded
    total_day, total_week, total_month : int | float
        Sums accrued since the matching ``*_start`` label
    day_start, week_start, month_start : str | None
        Period labels (``YYYY-MM-DD``) in effect for each sum; ``None`` is
        always stale
    updated_at : datetime | None
        Last mutation (UTC); informational only
    """

    subject: str
    total_all: Amount = 0
    total_day: Amount = 0
    day_start: str | None = None
    total_week: Amount = 0
    week_start: str | None = None
    total_month: Amount = 0
    month_start: str | None = None
    updated_at: datetime | None = None

    @classmethod
    def fresh(cls, subject: str, labels: PeriodLabels, now: datetime | None = None) -> AggregateRecord:
        """Zeroed record whose labels are already current."""
        return cls(
            subject=subject,
            day_start=labels.day,
            week_start=labels.week,
            month_start=labels.month,
            updated_at=now or get_current_utc(),
        )

    def label_for(self, period: str) -> str | None:
        if period not in PERIODS:
            raise ValueError(f"Unknown period: {period}")
        return getattr(self, f"{period}_start")

    def total_for(self, bucket: str) -> Amount:
        if bucket not in BUCKETS:
            raise ValueError(f"Unknown bucket: {bucket}")
        return getattr(self, f"total_{bucket}")

    def stale_buckets(self, labels: PeriodLabels) -> list[str]:
        """Periodic buckets whose stored label differs from ``labels``."""
        return [period for period in PERIODS if self.label_for(period) != labels.for_period(period)]

    def reconcile(self, labels: PeriodLabels, now: datetime | None = None) -> list[str]:
        """Reset every stale bucket to zero and adopt the new label.

        Each bucket is checked independently. ``total_all`` is never reset.

        Returns
        -------
        list[str]
            Buckets that were reset (empty when already current)
        """
        stale = self.stale_buckets(labels)
        for period in stale:
            setattr(self, f"total_{period}", 0)
            setattr(self, f"{period}_start", labels.for_period(period))

        if stale:
            self.updated_at = now or get_current_utc()
        return stale

    def add(self, amount: Amount, now: datetime | None = None) -> None:
        """Fold one observation into all four buckets."""
        self.total_all += amount
        self.total_day += amount
        self.total_week += amount
        self.total_month += amount
        self.updated_at = now or get_current_utc()

    def copy(self) -> AggregateRecord:
        return dataclasses.replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (``updated_at`` as ISO-8601 UTC)."""
        return {
            "subject": self.subject,
            "total_all": self.total_all,
            "total_day": self.total_day,
            "day_start": self.day_start,
            "total_week": self.total_week,
            "week_start": self.week_start,
            "total_month": self.total_month,
            "month_start": self.month_start,
            "updated_at": format_utc_iso8601(self.updated_at) if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AggregateRecord:
        """Build a record from a stored row or :meth:`to_dict` output.

        Missing sums default to zero, missing labels to ``None``.
        """
        updated_at = data.get("updated_at")
        if isinstance(updated_at, str):
            updated_at = parse_utc_iso8601(updated_at)

        return cls(
            subject=data["subject"],
            total_all=_sum_or_zero(data, "total_all"),
            total_day=_sum_or_zero(data, "total_day"),
            day_start=data.get("day_start"),
            total_week=_sum_or_zero(data, "total_week"),
            week_start=data.get("week_start"),
            total_month=_sum_or_zero(data, "total_month"),
            month_start=data.get("month_start"),
            updated_at=updated_at,
        )
