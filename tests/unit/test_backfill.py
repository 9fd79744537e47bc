"""Tests for rebuilding totals from bet history."""

from __future__ import annotations

import json
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from bettotals.core.errors import InvalidObservation
from bettotals.engine import TotalsEngine
from bettotals.rollups.backfill import HistoricalObservation, load_history_jsonl, rebuild_from_history
from bettotals.rollups.time_windows import CalendarResolver
from bettotals.storage.memory import InMemoryTotalsStore


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# Sunday 2024-06-02 12:00 in Saigon
NOW = utc(2024, 6, 2, 5, 0)

HISTORY = [
    # Sunday morning local: today, this week, this month
    HistoricalObservation("alice", 10, utc(2024, 6, 2, 1, 0)),
    # Saturday local: previous week, this month
    HistoricalObservation("alice", 20, utc(2024, 6, 1, 10, 0)),
    # May 20th local: previous month
    HistoricalObservation("alice", 5, utc(2024, 5, 20, 0, 0)),
    # 00:30 on May 30th local: first minutes of this month
    HistoricalObservation("bob", 7, utc(2024, 5, 29, 17, 30)),
]


def test_rebuild_from_history_buckets():
    """Test each bucket only sums observations inside its current window."""
    records = rebuild_from_history(HISTORY, CalendarResolver("Asia/Ho_Chi_Minh"), NOW)

    alice = records["alice"]
    assert (alice.total_all, alice.total_day, alice.total_week, alice.total_month) == (35, 10, 10, 30)
    assert (alice.day_start, alice.week_start, alice.month_start) == ("2024-06-02", "2024-06-02", "2024-05-30")

    bob = records["bob"]
    assert (bob.total_all, bob.total_day, bob.total_week, bob.total_month) == (7, 0, 0, 7)


def test_rebuild_from_history_order_independent():
    """Test history order does not matter."""
    resolver = CalendarResolver("Asia/Ho_Chi_Minh")

    forward = rebuild_from_history(HISTORY, resolver, NOW)
    backward = rebuild_from_history(list(reversed(HISTORY)), resolver, NOW)

    assert forward == backward


def test_rebuild_from_empty_history():
    assert rebuild_from_history([], now=NOW) == {}


def test_load_history_jsonl():
    """Test JSON-lines history with both key spellings and blank lines."""
    lines = [
        json.dumps({"subject": "alice", "amount": 10, "occurred_at": "2024-06-02T01:00:00Z"}),
        "",
        json.dumps({"username": "bob", "amount": 2.5, "time": "2024-06-02T08:00:00+07:00"}),
    ]
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "history.jsonl"
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")

        observations = list(load_history_jsonl(path))

    assert observations == [
        HistoricalObservation("alice", 10, utc(2024, 6, 2, 1, 0)),
        HistoricalObservation("bob", 2.5, utc(2024, 6, 2, 1, 0)),
    ]


@pytest.mark.parametrize(
    "bad_line",
    [
        "not json",
        json.dumps({"subject": "alice", "amount": 10}),
        json.dumps({"subject": "alice", "amount": "ten", "occurred_at": "2024-06-02T01:00:00Z"}),
        json.dumps({"subject": "", "amount": 1, "occurred_at": "2024-06-02T01:00:00Z"}),
        json.dumps({"subject": "alice", "amount": 1, "occurred_at": "soon"}),
        json.dumps(["alice", 1]),
    ],
)
def test_load_history_jsonl_rejects_malformed_line(bad_line):
    """Test malformed lines name their line number."""
    good = json.dumps({"subject": "alice", "amount": 1, "occurred_at": "2024-06-02T01:00:00Z"})
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "history.jsonl"
        path.write_text(f"{good}\n{good}\n{bad_line}\n", encoding="utf-8")

        with pytest.raises(InvalidObservation, match=r"history\.jsonl:3:"):
            list(load_history_jsonl(path))


def test_engine_rebuild_replaces_only_subjects_in_history(clock):
    """Test rebuild overwrites listed subjects and leaves others alone."""
    clock.now = NOW
    engine = TotalsEngine(InMemoryTotalsStore(), timezone_str="Asia/Ho_Chi_Minh", clock=clock)
    engine.apply("alice", 999)
    engine.apply("carol", 3)

    records = engine.rebuild(HISTORY)

    assert set(records) == {"alice", "bob"}
    assert engine.get("alice").total_all == 35
    assert engine.get("bob").total_month == 7
    assert engine.get("carol").total_all == 3
