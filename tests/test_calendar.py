from __future__ import annotations

from datetime import date, datetime

import pytest

from core.errors import BadRequest
from core.services.calendar import (
    add_program_day,
    day_key,
    expected_time,
    parse_drill_id,
    program_day_date,
    routine_drill_id,
)


def _program_day(is_rest: bool, drills: int = 0) -> dict:
    return {
        "is_rest_day": is_rest,
        "drills": [{"id": str(i), "sets": 2} for i in range(drills)],
        "expected_time": drills * 4,
        "completed_drills": 0,
        "total_drills": drills,
    }


def test_program_day_date_offsets_weeks_and_days():
    start = date(2026, 3, 2)
    assert program_day_date(start, 1, 1) == date(2026, 3, 2)
    assert program_day_date(start, 1, 7) == date(2026, 3, 8)
    assert program_day_date(start, 3, 2) == date(2026, 3, 17)
    assert program_day_date(datetime(2026, 3, 2, 18, 30), 2, 1) == date(2026, 3, 9)


def test_day_key_format():
    assert day_key(datetime(2026, 1, 5, 23, 59)) == "2026-01-05"


def test_routine_drill_id_round_trips_through_parser():
    raw = routine_drill_id(12, 5)
    assert raw == "12-routine-5"
    assert parse_drill_id(raw) == (12, 5)
    assert parse_drill_id("44") == (44, None)


@pytest.mark.parametrize("raw", ["abc", "12-routine-x", ""])
def test_parse_drill_id_rejects_malformed(raw):
    with pytest.raises(BadRequest):
        parse_drill_id(raw)


def test_expected_time_is_two_minutes_per_set():
    assert expected_time([{"sets": 3}, {"sets": None}, {}]) == 6


def test_rest_day_only_when_every_program_rests():
    cal: dict = {}
    add_program_day(cal, "2026-03-02", _program_day(True))
    assert cal["2026-03-02"]["is_rest_day"] is True

    add_program_day(cal, "2026-03-02", _program_day(False, drills=2))
    day = cal["2026-03-02"]
    assert day["is_rest_day"] is False
    assert len(day["programs"]) == 2
    assert day["total_drills"] == 2
    assert day["expected_time"] == 8


def test_two_resting_programs_stay_a_rest_day():
    cal: dict = {}
    add_program_day(cal, "2026-03-03", _program_day(True))
    add_program_day(cal, "2026-03-03", _program_day(True))
    assert cal["2026-03-03"]["is_rest_day"] is True
