from __future__ import annotations

from datetime import datetime

from core.services.progress import build_insights, range_start


def test_no_workouts_gives_single_info_insight():
    insights = build_insights(0, 0, 0)
    assert [i["type"] for i in insights] == ["info"]


def test_high_completion_and_long_streak_are_positive():
    insights = build_insights(90, 8, 10)
    assert [i["type"] for i in insights] == ["positive", "positive"]
    assert "90%" in insights[0]["message"]


def test_low_completion_warns():
    insights = build_insights(30, 0, 10)
    assert insights[0]["type"] == "warning"


def test_middling_completion_says_nothing():
    assert build_insights(65, 2, 10) == []


def test_range_start():
    now = datetime(2026, 3, 29)
    assert range_start("all", now) is None
    assert (now - range_start("6", now)).days == 42
