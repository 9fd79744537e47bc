"""Time and timezone utilities for bettotals.

Provides consistent timezone handling across the engine with:
- UTC discipline: all persisted timestamps are UTC
- ISO-8601 format enforcement
- One civil timezone for every calendar computation
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo

import pytz

__all__ = [
    "DEFAULT_CIVIL_TIMEZONE",
    "TimeConfig",
    "ensure_timezone",
    "format_utc_iso8601",
    "get_civil_timezone",
    "get_current_utc",
    "localize_utc_to_tz",
    "parse_utc_iso8601",
    "set_civil_timezone",
    "validate_timezone_name",
]

DEFAULT_CIVIL_TIMEZONE = "Asia/Ho_Chi_Minh"


def validate_timezone_name(timezone_name: str) -> str:
    """Return ``timezone_name`` if it is a known IANA zone.

    Raises
    ------
    ValueError
        If the zone is unknown
    """
    try:
        pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError as exc:
        raise ValueError(f"Invalid timezone: {timezone_name}") from exc
    return timezone_name


class TimeConfig:
    """Process-wide civil timezone, fixed at startup."""

    _civil_timezone = DEFAULT_CIVIL_TIMEZONE

    @classmethod
    def get_civil_timezone_name(cls) -> str:
        return cls._civil_timezone

    @classmethod
    def set_civil_timezone_name(cls, timezone_name: str) -> None:
        """Set civil timezone.

        Raises
        ------
        ValueError
            If timezone is invalid
        """
        cls._civil_timezone = validate_timezone_name(timezone_name)


def get_civil_timezone() -> tzinfo:
    """Get the configured civil timezone object."""
    return pytz.timezone(TimeConfig.get_civil_timezone_name())


def set_civil_timezone(timezone_name: str) -> None:
    TimeConfig.set_civil_timezone_name(timezone_name)


def get_current_utc() -> datetime:
    """Get current time in UTC.

    Returns
    -------
    datetime
        Current time in UTC with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_timezone(dt: datetime, tz: str | tzinfo | None = None) -> datetime:
    """Ensure datetime has timezone information.

    Parameters
    ----------
    dt
        Datetime (may be naive)
    tz
        Timezone to assume if dt is naive (default: UTC)

    Returns
    -------
    datetime
        Timezone-aware datetime
    """
    if dt.tzinfo is not None:
        return dt

    if tz is None:
        return dt.replace(tzinfo=timezone.utc)
    if isinstance(tz, str):
        tz = pytz.timezone(tz)
    if hasattr(tz, "localize"):
        # pytz zones need localize() to pick the right offset
        return tz.localize(dt)
    return dt.replace(tzinfo=tz)


def format_utc_iso8601(dt: datetime) -> str:
    """Format datetime as ISO-8601 UTC string.

    Always converts to UTC before formatting. Naive datetimes are
    assumed to be UTC.

    Example
    -------
    >>> dt = datetime(2025, 10, 8, 12, 30, 0, tzinfo=timezone.utc)
    >>> format_utc_iso8601(dt)
    '2025-10-08T12:30:00+00:00'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return dt.isoformat()


def parse_utc_iso8601(iso_string: str) -> datetime:
    """Parse ISO-8601 string to UTC datetime.

    Parameters
    ----------
    iso_string
        ISO-8601 formatted string; a trailing ``Z`` is accepted and a
        missing offset means UTC

    Returns
    -------
    datetime
        Datetime in UTC

    Raises
    ------
    ValueError
        If string is not valid ISO-8601

    Example
    -------
    >>> parse_utc_iso8601("2025-10-08T14:30:00+02:00").hour
    12
    """
    iso_string = iso_string.strip().replace("Z", "+00:00")

    dt = datetime.fromisoformat(iso_string)

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return dt


def localize_utc_to_tz(utc_dt: datetime, tz: str | tzinfo) -> datetime:
    """Convert a UTC (or naive, assumed UTC) datetime to ``tz``.

    Example
    -------
    >>> utc_dt = datetime(2024, 6, 1, 17, 30, tzinfo=timezone.utc)
    >>> localize_utc_to_tz(utc_dt, "Asia/Ho_Chi_Minh").day
    2
    """
    if isinstance(tz, str):
        tz = pytz.timezone(tz)

    utc_dt = ensure_timezone(utc_dt)
    return utc_dt.astimezone(tz)
