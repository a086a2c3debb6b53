from __future__ import annotations

from datetime import datetime

from core.services.analytics import capped_rate, records, trend, weekly_counts, weekly_progress, windows


def test_trend_is_relative_percent_and_zero_without_baseline():
    assert trend(15, 10) == 50.0
    assert trend(5, 10) == -50.0
    assert trend(7, 0) == 0.0


def test_capped_rate_never_exceeds_100():
    assert capped_rate(3, 4) == 75.0
    assert capped_rate(9, 4) == 100.0
    assert capped_rate(1, 0) == 0.0


def test_windows_are_adjacent_and_equal_length():
    now = datetime(2026, 3, 29, 12, 0)
    current, previous = windows("4w", now)
    assert current.end == now
    assert previous.end == current.start
    assert current.end - current.start == previous.end - previous.start
    assert (current.end - current.start).days == 28


def test_unknown_range_defaults_to_four_weeks():
    now = datetime(2026, 3, 29)
    current, _ = windows("bogus", now)
    assert (current.end - current.start).days == 28


def test_weekly_counts_fills_empty_weeks():
    start, end = datetime(2026, 3, 2), datetime(2026, 3, 16)
    stamps = [datetime(2026, 3, 3, 9), datetime(2026, 3, 4, 18), datetime(2026, 3, 10, 7), datetime(2026, 4, 1)]
    rows = records(weekly_counts(stamps, start, end))
    assert [r["count"] for r in rows] == [2, 1, 0]
    assert all(isinstance(r["count"], int) for r in rows)


def test_weekly_counts_empty_input_is_all_zero():
    rows = records(weekly_counts([], datetime(2026, 3, 2), datetime(2026, 3, 9)))
    assert rows and all(r["count"] == 0 for r in rows)


def test_weekly_progress_averages_per_week():
    rows = records(weekly_progress([(datetime(2026, 3, 2), 40), (datetime(2026, 3, 3), 60), (datetime(2026, 3, 10), 90)]))
    assert [(r["average_progress"], r["entries"]) for r in rows] == [(50.0, 2), (90.0, 1)]
    assert records(weekly_progress([])) == []
