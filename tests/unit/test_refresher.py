"""Tests for the lazy refresher."""

from __future__ import annotations

import pytest

from bettotals.core.errors import StorageUnavailable
from bettotals.rollups.refresher import LazyRefresher
from bettotals.rollups.time_windows import CalendarResolver
from bettotals.rollups.updater import IncrementalUpdater
from bettotals.storage.locks import SubjectLocks
from bettotals.storage.memory import InMemoryTotalsStore


class FlakyStore(InMemoryTotalsStore):
    """Store that cannot read some subjects."""

    def __init__(self, broken: set[str]) -> None:
        super().__init__()
        self.broken = broken
        self.writes = 0

    def load_by_subject(self, subject):
        if subject in self.broken:
            raise StorageUnavailable(f"load failed for {subject}")
        return super().load_by_subject(subject)

    def upsert(self, record):
        self.writes += 1
        super().upsert(record)


@pytest.fixture
def store():
    return FlakyStore(broken=set())


@pytest.fixture
def engine_parts(store, clock):
    resolver = CalendarResolver("Asia/Ho_Chi_Minh")
    locks = SubjectLocks()
    updater = IncrementalUpdater(store, resolver, locks, clock)
    refresher = LazyRefresher(store, resolver, locks, clock)
    return updater, refresher


def test_refresh_one_unknown_subject(engine_parts):
    """Test refreshing a subject without a record returns None."""
    _, refresher = engine_parts

    assert refresher.refresh_one("ghost") is None


def test_inactive_subject_reads_zero_for_new_day(engine_parts, clock, store):
    """Test a subject with no new observations reports zero for the new day."""
    updater, refresher = engine_parts
    # Monday 2024-06-03 10:00 in Saigon
    clock.set(2024, 6, 3, 3, 0)
    updater.apply("alice", 100)

    clock.set(2024, 6, 4, 3, 0)
    record = refresher.refresh_one("alice")

    assert record.total_day == 0
    assert record.day_start == "2024-06-04"
    assert record.total_week == 100
    assert record.total_month == 100
    assert record.total_all == 100
    assert store.load_by_subject("alice") == record


def test_refresh_current_record_does_not_write(engine_parts, store):
    """Test a current record is not rewritten."""
    updater, refresher = engine_parts
    updater.apply("alice", 100)
    writes = store.writes

    refresher.refresh_one("alice")

    assert store.writes == writes


def test_refresh_all_is_idempotent(engine_parts, clock, store):
    """Test a second pass finds nothing to reset."""
    updater, refresher = engine_parts
    updater.apply("alice", 100)
    updater.apply("bob", 20)

    clock.set(2024, 6, 1, 17, 30)
    first = refresher.refresh_all()
    snapshot = store.load_all()
    second = refresher.refresh_all()

    assert first.reset == {"alice": ["day", "week"], "bob": ["day", "week"]}
    assert second.reset == {}
    assert second.checked == 2
    assert store.load_all() == snapshot


def test_refresh_never_changes_total_all(engine_parts, clock, store):
    """Test refresh only resets periodic buckets."""
    updater, refresher = engine_parts
    updater.apply("alice", 100)

    clock.advance(days=45)
    refresher.refresh_all()

    record = store.load_by_subject("alice")
    assert record.total_all == 100
    assert (record.total_day, record.total_week, record.total_month) == (0, 0, 0)


def test_partial_failure_is_reported(engine_parts, clock, store):
    """Test one failing subject does not stop the pass."""
    updater, refresher = engine_parts
    for subject in ("alice", "bob", "carol"):
        updater.apply(subject, 10)

    store.broken.add("bob")
    clock.set(2024, 6, 1, 17, 30)
    report = refresher.refresh_all()

    assert not report.ok
    assert report.failed_subjects == {"bob"}
    assert report.checked == 2
    assert set(report.reset) == {"alice", "carol"}
    assert report.to_dict()["failures"] == [{"subject": "bob", "error": "load failed for bob"}]


def test_listing_failure_propagates(engine_parts, store, monkeypatch):
    """Test refresh_all raises when no record can be listed."""
    _, refresher = engine_parts

    def broken_load_all():
        raise StorageUnavailable("load_all failed")

    monkeypatch.setattr(store, "load_all", broken_load_all)

    with pytest.raises(StorageUnavailable):
        refresher.refresh_all()


def test_refresh_then_apply_does_not_double_reset(engine_parts, clock):
    """Test apply after a refresh keeps the refreshed label."""
    updater, refresher = engine_parts
    updater.apply("alice", 100)

    clock.set(2024, 6, 1, 17, 30)
    refresher.refresh_one("alice")
    record = updater.apply("alice", 5)

    assert record.total_day == 5
    assert record.total_week == 5
    assert record.total_month == 105
