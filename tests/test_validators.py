from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.validators import (
    LessonScheduleInput,
    ProgramCreateInput,
    ProgressUpdateInput,
    SendMessageInput,
    parse_clock,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2:30 PM", (14, 30)),
        ("12:00 AM", (0, 0)),
        ("12:15 pm", (12, 15)),
        ("09:05", (9, 5)),
        ("23:59", (23, 59)),
    ],
)
def test_parse_clock_accepts_12_and_24_hour_forms(raw, expected):
    assert parse_clock(raw) == expected


@pytest.mark.parametrize("raw", ["", "noon", "13:00 PM", "24:00", "7:60"])
def test_parse_clock_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_clock(raw)


def test_send_message_needs_content_or_attachment():
    with pytest.raises(ValidationError):
        SendMessageInput(content="   ")
    assert SendMessageInput(content="hi").content == "hi"
    assert SendMessageInput(attachment_url="https://blob.test/a.png").attachment_url


def test_send_message_content_capped_at_1000_chars():
    SendMessageInput(content="x" * 1000)
    with pytest.raises(ValidationError):
        SendMessageInput(content="x" * 1001)


def test_program_level_must_be_known():
    with pytest.raises(ValidationError):
        ProgramCreateInput(title="P", level="Sprint", duration=1)
    assert ProgramCreateInput(title="P", level="Whip", duration=1).level == "Whip"


def test_program_week_numbers_unique():
    with pytest.raises(ValidationError):
        ProgramCreateInput(
            title="P",
            level="Drive",
            duration=2,
            weeks=[{"week_number": 1}, {"week_number": 1}],
        )


def test_progress_bounds():
    with pytest.raises(ValidationError):
        ProgressUpdateInput(client_id=1, progress=1001)
    with pytest.raises(ValidationError):
        ProgressUpdateInput(client_id=1, progress=-1)
    assert ProgressUpdateInput(client_id=1, progress=1000).progress == 1000


def test_lesson_time_normalised_to_24h():
    body = LessonScheduleInput(client_id=1, date="2026-03-02", time="2:30 PM")
    assert body.time == "14:30"
    with pytest.raises(ValidationError):
        LessonScheduleInput(client_id=1, date="2026-03-02", time="half past two")
