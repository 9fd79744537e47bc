"""Period label calculations for the betting calendar.

Maps an instant to the canonical start-of-day, start-of-week and
start-of-month labels in one fixed civil timezone, and computes UTC
boundaries for those periods with DST awareness.

Calendar rules:
- day: the civil date
- week: the most recent ``week_start_on`` weekday (0=Monday, 6=Sunday)
- month: runs from the 30th of one month to the 29th of the next; a month
  without a 30th (February) hands over on the 1st of the following month
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Literal

import pytz

from ..core.time import TimeConfig, ensure_timezone, get_current_utc, validate_timezone_name

__all__ = [
    "MONTH_START_DAY",
    "PERIODS",
    "WEEK_START_SUNDAY",
    "CalendarResolver",
    "Period",
    "PeriodLabels",
    "PeriodWindow",
    "civil_date",
    "compute_period_window",
    "get_month_start",
    "get_week_start",
    "next_period_start",
    "resolve_period_labels",
]

Period = Literal["day", "week", "month"]

PERIODS: tuple[Period, ...] = ("day", "week", "month")

WEEK_START_SUNDAY = 6
MONTH_START_DAY = 30


@dataclass(frozen=True)
class PeriodLabels:
    """Canonical period-start labels (``YYYY-MM-DD``) for one instant."""

    day: str
    week: str
    month: str

    def for_period(self, period: str) -> str:
        if period not in PERIODS:
            raise ValueError(f"Unknown period: {period}")
        return getattr(self, period)

    def to_dict(self) -> dict[str, str]:
        return {"day": self.day, "week": self.week, "month": self.month}


def civil_date(instant: datetime, timezone_str: str) -> date:
    """Civil date of ``instant`` in ``timezone_str``.

    Naive instants are taken to be UTC.
    """
    tz = pytz.timezone(validate_timezone_name(timezone_str))
    return ensure_timezone(instant).astimezone(tz).date()


def get_week_start(day: date, start_on: int = WEEK_START_SUNDAY) -> date:
    """Get start of week for a date.

    Parameters
    ----------
    day
        Date to get week start for
    start_on
        Day of week to start on (0=Monday, 6=Sunday)

    Returns
    -------
    date
        The ``start_on`` weekday on or before ``day``
    """
    if not 0 <= start_on <= 6:
        raise ValueError(f"start_on must be between 0 and 6, got {start_on}")

    days_since_start = (day.weekday() - start_on) % 7
    return day - timedelta(days=days_since_start)


def _month_handover(year: int, month: int) -> date:
    """First day of the betting month anchored in ``year``/``month``."""
    last_day = calendar.monthrange(year, month)[1]
    if last_day >= MONTH_START_DAY:
        return date(year, month, MONTH_START_DAY)
    return date(year, month, last_day) + timedelta(days=1)


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def get_month_start(day: date) -> date:
    """Get start of the 30th-to-29th month containing ``day``.

    Examples
    --------
    >>> get_month_start(date(2024, 4, 29))
    datetime.date(2024, 3, 30)
    >>> get_month_start(date(2024, 4, 30))
    datetime.date(2024, 4, 30)
    >>> get_month_start(date(2025, 3, 10))
    datetime.date(2025, 3, 1)
    """
    if day.day >= MONTH_START_DAY:
        return date(day.year, day.month, MONTH_START_DAY)

    year, month = _shift_month(day.year, day.month, -1)
    return _month_handover(year, month)


def next_period_start(period: str, label: str) -> date:
    """First civil date of the period following ``label``.

    Raises
    ------
    ValueError
        If ``period`` is unknown or ``label`` is not a month label
    """
    start = date.fromisoformat(label)

    if period == "day":
        return start + timedelta(days=1)
    elif period == "week":
        return start + timedelta(days=7)
    elif period == "month":
        if get_month_start(start) != start:
            raise ValueError(f"Not a month period label: {label}")
        # A handover label on the 1st is anchored in the previous month
        if start.day == MONTH_START_DAY:
            anchor_year, anchor_month = start.year, start.month
        else:
            anchor_year, anchor_month = _shift_month(start.year, start.month, -1)
        year, month = _shift_month(anchor_year, anchor_month, 1)
        return _month_handover(year, month)
    else:
        raise ValueError(f"Unknown period: {period}")


def resolve_period_labels(
    instant: datetime | None = None,
    timezone_str: str | None = None,
    week_start_on: int = WEEK_START_SUNDAY,
) -> PeriodLabels:
    """Resolve day, week and month labels for an instant.

    Parameters
    ----------
    instant
        Moment to resolve (default: now); naive values are UTC
    timezone_str
        Civil timezone name (default: the configured civil timezone)
    week_start_on
        Day of week weeks start on (0=Monday, 6=Sunday)

    Returns
    -------
    PeriodLabels
        Labels formatted as ``YYYY-MM-DD``

    Examples
    --------
    >>> labels = resolve_period_labels(
    ...     datetime(2024, 6, 1, 17, 30, tzinfo=pytz.UTC),
    ...     "Asia/Ho_Chi_Minh",
    ... )
    >>> labels.day  # already June 2nd in Saigon
    '2024-06-02'
    >>> labels.week
    '2024-06-02'
    >>> labels.month
    '2024-05-30'
    """
    if instant is None:
        instant = get_current_utc()
    if timezone_str is None:
        timezone_str = TimeConfig.get_civil_timezone_name()

    today = civil_date(instant, timezone_str)

    return PeriodLabels(
        day=today.isoformat(),
        week=get_week_start(today, start_on=week_start_on).isoformat(),
        month=get_month_start(today).isoformat(),
    )


@dataclass(frozen=True)
class PeriodWindow:
    """UTC window ``[start_utc, end_utc)`` covered by one period label."""

    period: str
    label: str
    start_utc: datetime
    end_utc: datetime
    timezone_name: str

    def contains(self, instant: datetime) -> bool:
        instant = ensure_timezone(instant)
        return self.start_utc <= instant < self.end_utc


def _civil_midnight_utc(day: date, tz: pytz.BaseTzInfo) -> datetime:
    local_midnight = tz.localize(datetime(day.year, day.month, day.day, 0, 0, 0))
    return local_midnight.astimezone(pytz.UTC)


def compute_period_window(period: str, label: str, timezone_str: str) -> PeriodWindow:
    """Compute UTC boundaries for a period label.

    Handles DST transitions: a civil day may be 23, 24 or 25 hours in UTC.

    Parameters
    ----------
    period
        "day", "week" or "month"
    label
        Period start label (``YYYY-MM-DD``)
    timezone_str
        Civil timezone name

    Returns
    -------
    PeriodWindow
        Window whose end is the start of the next period (exclusive)
    """
    tz = pytz.timezone(validate_timezone_name(timezone_str))
    start = date.fromisoformat(label)
    end = next_period_start(period, label)

    return PeriodWindow(
        period=period,
        label=label,
        start_utc=_civil_midnight_utc(start, tz),
        end_utc=_civil_midnight_utc(end, tz),
        timezone_name=timezone_str,
    )


class CalendarResolver:
    """Resolve period labels through one fixed civil timezone.

    One resolver is shared by the updater, the refresher and the history
    rebuild so every call site uses the same week-start convention.
    """

    def __init__(
        self,
        timezone_str: str | None = None,
        week_start_on: int = WEEK_START_SUNDAY,
    ) -> None:
        self.timezone_str = timezone_str or TimeConfig.get_civil_timezone_name()
        validate_timezone_name(self.timezone_str)
        if not 0 <= week_start_on <= 6:
            raise ValueError(f"week_start_on must be between 0 and 6, got {week_start_on}")
        self.week_start_on = week_start_on

    def resolve(self, instant: datetime | None = None) -> PeriodLabels:
        return resolve_period_labels(instant, self.timezone_str, self.week_start_on)

    def windows(self, instant: datetime | None = None) -> dict[str, PeriodWindow]:
        """Current window for each periodic bucket."""
        labels = self.resolve(instant)
        return {
            period: compute_period_window(period, labels.for_period(period), self.timezone_str)
            for period in PERIODS
        }
