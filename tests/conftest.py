"""Shared fixtures for bettotals tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from loguru import logger


class FakeClock:
    """Settable UTC clock injected in place of ``get_current_utc``."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, *args: int) -> None:
        self.now = datetime(*args, tzinfo=timezone.utc)

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting Saturday 2024-06-01 17:00 in Saigon."""
    return FakeClock(datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc))


@pytest.fixture(autouse=True)
def reset_loguru():
    """Drop sinks added by a test (the CLI reconfigures loguru)."""
    yield
    logger.remove()
