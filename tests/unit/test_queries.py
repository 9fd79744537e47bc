"""Tests for the query surface: lookup, leaderboard, pagination, summary."""

from __future__ import annotations

import pytest

from bettotals.core.errors import NotFound, StorageUnavailable
from bettotals.engine import TotalsEngine
from bettotals.rollups.record import AggregateRecord
from bettotals.storage.memory import InMemoryTotalsStore


class BrokenSubjectStore(InMemoryTotalsStore):
    def __init__(self, broken: str) -> None:
        super().__init__()
        self.broken = broken
        self.fail = False

    def load_by_subject(self, subject):
        if self.fail and subject == self.broken:
            raise StorageUnavailable(f"load failed for {subject}")
        return super().load_by_subject(subject)


@pytest.fixture
def engine(clock):
    return TotalsEngine(InMemoryTotalsStore(), timezone_str="Asia/Ho_Chi_Minh", clock=clock)


def test_get_reconciles_before_reading(engine, clock):
    """Test a point lookup never returns last period's total."""
    engine.apply("alice", 100)

    clock.set(2024, 6, 1, 17, 30)
    record = engine.get("alice")

    assert record.total_day == 0
    assert record.day_start == "2024-06-02"
    assert record.total_all == 100


def test_get_unknown_subject(engine):
    """Test lookup of a subject with no record raises NotFound."""
    with pytest.raises(NotFound) as exc_info:
        engine.get("ghost")

    assert exc_info.value.subject == "ghost"


def test_top_orders_by_bucket_then_subject(engine):
    """Test ties break by subject ascending."""
    engine.apply("carol", 50)
    engine.apply("bob", 100)
    engine.apply("alice", 100)

    entries = engine.top("all")

    assert [(e.rank, e.subject, e.total) for e in entries] == [
        (1, "alice", 100),
        (2, "bob", 100),
        (3, "carol", 50),
    ]


def test_top_by_day_after_rollover(engine, clock):
    """Test daily ranking ignores yesterday's totals."""
    engine.apply("alice", 500)

    clock.set(2024, 6, 1, 17, 30)
    engine.apply("bob", 30)

    entries = engine.top("day")

    assert [(e.subject, e.total) for e in entries] == [("bob", 30), ("alice", 0)]
    assert engine.top("all")[0].subject == "alice"


def test_top_limit_and_period_case(engine):
    """Test limit clamps to at least one and period is case-insensitive."""
    for index, subject in enumerate(["a", "b", "c", "d"]):
        engine.apply(subject, index)

    assert len(engine.top("WEEK", limit=2)) == 2
    assert len(engine.top("week", limit=0)) == 1
    assert engine.top("Month", limit=1)[0].subject == "d"


def test_top_unknown_period(engine):
    """Test an unknown period is rejected."""
    with pytest.raises(ValueError, match="Unknown period"):
        engine.top("year")


def test_top_empty_store(engine):
    """Test an empty store gives an empty leaderboard."""
    assert engine.top("all") == []


def test_leaderboard_entry_to_dict(engine):
    """Test serialized entries carry the period labels."""
    engine.apply("alice", 10)

    data = engine.top("day")[0].to_dict()

    assert data["rank"] == 1
    assert data["subject"] == "alice"
    assert data["total"] == 10
    assert data["day_start"] == "2024-06-01"


def test_list_page_pagination(engine):
    """Test pages are ordered by total_all and sized by page_size."""
    for amount, subject in enumerate(["e", "d", "c", "b", "a"], start=1):
        engine.apply(subject, amount)

    first = engine.list_page(page=1, page_size=2)
    last = engine.list_page(page=3, page_size=2)
    past_end = engine.list_page(page=4, page_size=2)

    assert first.total_items == 5
    assert first.total_pages == 3
    assert [r.subject for r in first.items] == ["a", "b"]
    assert [r.subject for r in last.items] == ["e"]
    assert past_end.items == []


def test_list_page_clamps_arguments(engine):
    """Test page and page_size below one are treated as one."""
    engine.apply("alice", 1)
    engine.apply("bob", 2)

    page = engine.list_page(page=0, page_size=-5)

    assert page.page == 1
    assert page.page_size == 1
    assert [r.subject for r in page.items] == ["bob"]


def test_list_page_defaults(engine):
    """Test default page size."""
    engine.apply("alice", 1)

    page = engine.list_page()

    assert page.page_size == 500
    assert page.total_pages == 1
    assert page.to_dict()["items"][0]["subject"] == "alice"


def test_summary_sums_reconciled_buckets(engine, clock):
    """Test grand totals use reconciled values."""
    engine.apply("alice", 100)
    engine.apply("bob", 50)

    clock.set(2024, 6, 1, 17, 30)
    engine.apply("bob", 5)

    summary = engine.summary()

    assert summary.subjects == 2
    assert summary.totals == {"all": 155, "day": 5, "week": 5, "month": 155}
    assert summary.labels.day == "2024-06-02"


def test_queries_omit_subjects_that_failed_to_refresh(clock):
    """Test listings never serve a subject with unreconciled totals."""
    store = BrokenSubjectStore(broken="bob")
    engine = TotalsEngine(store, timezone_str="Asia/Ho_Chi_Minh", clock=clock)
    engine.apply("alice", 10)
    engine.apply("bob", 20)

    store.fail = True
    clock.set(2024, 6, 1, 17, 30)

    assert [e.subject for e in engine.top("all")] == ["alice"]
    assert engine.list_page().total_items == 1
    assert engine.summary().subjects == 1


def test_queries_reconcile_records_written_with_stale_labels(clock):
    """Test records stored under old labels never leak old totals."""
    store = InMemoryTotalsStore(
        [
            AggregateRecord(
                subject="alice",
                total_all=900,
                total_day=900,
                day_start="2024-01-01",
                total_week=900,
                week_start="2023-12-31",
                total_month=900,
                month_start="2023-12-30",
            )
        ]
    )
    engine = TotalsEngine(store, timezone_str="Asia/Ho_Chi_Minh", clock=clock)

    entry = engine.top("month")[0]

    assert entry.total == 0
    assert entry.record.total_all == 900
