"""Tests for time utilities and UTC discipline."""

from datetime import datetime, timedelta, timezone

import pytest

from bettotals.core.time import (
    DEFAULT_CIVIL_TIMEZONE,
    TimeConfig,
    ensure_timezone,
    format_utc_iso8601,
    get_civil_timezone,
    get_current_utc,
    localize_utc_to_tz,
    parse_utc_iso8601,
    set_civil_timezone,
)


@pytest.fixture(autouse=True)
def reset_civil_timezone():
    """Restore the default civil timezone after each test."""
    yield
    TimeConfig.set_civil_timezone_name(DEFAULT_CIVIL_TIMEZONE)


class TestTimeConfig:
    def test_default_timezone(self):
        assert TimeConfig.get_civil_timezone_name() == "Asia/Ho_Chi_Minh"

    def test_set_civil_timezone(self):
        set_civil_timezone("Europe/Brussels")

        assert TimeConfig.get_civil_timezone_name() == "Europe/Brussels"
        assert str(get_civil_timezone()) == "Europe/Brussels"

    def test_set_invalid_timezone(self):
        with pytest.raises(ValueError, match="Invalid timezone"):
            set_civil_timezone("Invalid/Timezone")

        assert TimeConfig.get_civil_timezone_name() == DEFAULT_CIVIL_TIMEZONE


def test_get_current_utc_is_aware():
    now = get_current_utc()

    assert now.tzinfo is not None
    assert now.utcoffset() == timedelta(0)


def test_ensure_timezone_naive_defaults_to_utc():
    dt = ensure_timezone(datetime(2024, 6, 1, 12, 0))

    assert dt.utcoffset() == timedelta(0)


def test_ensure_timezone_localizes_with_pytz():
    """Test naive local times get the offset in effect on that date."""
    summer = ensure_timezone(datetime(2024, 7, 1, 12, 0), "America/New_York")
    winter = ensure_timezone(datetime(2024, 1, 1, 12, 0), "America/New_York")

    assert summer.utcoffset() == timedelta(hours=-4)
    assert winter.utcoffset() == timedelta(hours=-5)


def test_ensure_timezone_keeps_aware_values():
    dt = datetime(2024, 6, 1, 12, 0, tzinfo=timezone(timedelta(hours=7)))

    assert ensure_timezone(dt) is dt


def test_format_utc_iso8601_converts_to_utc():
    dt = datetime(2024, 6, 2, 0, 30, tzinfo=timezone(timedelta(hours=7)))

    assert format_utc_iso8601(dt) == "2024-06-01T17:30:00+00:00"


def test_parse_utc_iso8601_variants():
    assert parse_utc_iso8601("2024-06-01T17:30:00Z") == datetime(2024, 6, 1, 17, 30, tzinfo=timezone.utc)
    assert parse_utc_iso8601("2024-06-02T00:30:00+07:00") == datetime(2024, 6, 1, 17, 30, tzinfo=timezone.utc)
    # No offset means UTC
    assert parse_utc_iso8601("2024-06-01T17:30:00") == datetime(2024, 6, 1, 17, 30, tzinfo=timezone.utc)


def test_parse_utc_iso8601_invalid():
    with pytest.raises(ValueError):
        parse_utc_iso8601("yesterday")


def test_localize_utc_to_tz():
    local = localize_utc_to_tz(datetime(2024, 6, 1, 17, 30, tzinfo=timezone.utc), "Asia/Ho_Chi_Minh")

    assert local.day == 2
    assert local.hour == 0
