"""Tests for ScanHistory."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from vtwatch.engines.scanner.history import DEFAULT_LIMIT, ScanHistory

T0 = datetime(2026, 10, 1, tzinfo=timezone.utc)


def test_default_limit():
    assert DEFAULT_LIMIT == 1000
    assert ScanHistory().limit == 1000


def test_append_keeps_insertion_order(make_result):
    history = ScanHistory(limit=5)
    for name in ("a", "b", "c"):
        history.append(make_result(f"/{name}"))
    assert [r.file_path for r in history.entries()] == ["/a", "/b", "/c"]


def test_oldest_evicted_when_full(make_result):
    history = ScanHistory(limit=2)
    first = make_result("/a")
    assert history.append(first) is None
    assert history.append(make_result("/b")) is None
    assert history.append(make_result("/c")) is first
    assert [r.file_path for r in history.entries()] == ["/b", "/c"]
    assert len(history) == 2


def test_entries_is_a_snapshot(make_result):
    history = ScanHistory()
    history.append(make_result())
    snapshot = history.entries()
    history.clear()
    assert len(snapshot) == 1
    assert len(history) == 0


def test_set_limit_keeps_newest(make_result):
    history = ScanHistory(limit=10)
    history.extend(make_result(f"/{i}") for i in range(6))
    history.set_limit(3)
    assert history.limit == 3
    assert [r.file_path for r in history.entries()] == ["/3", "/4", "/5"]


def test_set_limit_grow(make_result):
    history = ScanHistory(limit=2)
    history.extend(make_result(f"/{i}") for i in range(2))
    history.set_limit(4)
    history.append(make_result("/2"))
    assert len(history) == 3


def test_latest_for_and_last_scanned(make_result):
    history = ScanHistory()
    history.append(make_result("/a", scan_date=T0))
    history.append(make_result("/b", scan_date=T0 + timedelta(hours=1)))
    newest_a = make_result("/a", scan_date=T0 + timedelta(hours=2))
    history.append(newest_a)

    assert history.latest_for("/a") is newest_a
    assert history.latest_for("/missing") is None
    assert history.last_scanned() == {
        "/a": T0 + timedelta(hours=2),
        "/b": T0 + timedelta(hours=1),
    }


def test_invalid_limits():
    with pytest.raises(ValueError):
        ScanHistory(limit=0)
    with pytest.raises(ValueError):
        ScanHistory().set_limit(0)
