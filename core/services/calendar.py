"""Project program assignments onto calendar dates.

Week W, day D of a program assigned on ``start`` lands on
``start + (W-1)*7 + (D-1)`` days. Days replaced by a lesson are skipped and
drills that point at a routine expand into the routine's exercises.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.errors import BadRequest
from core.models import (
    Client,
    DrillCompletion,
    ProgramAssignment,
    ProgramDayReplacement,
    ProgramDrill,
    ProgramDrillCompletion,
    Routine,
    VideoAssignment,
)

ROUTINE_MARKER = "-routine-"


def as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def program_day_date(start: date | datetime, week_number: int, day_number: int) -> date:
    return as_date(start) + timedelta(days=(week_number - 1) * 7 + (day_number - 1))


def day_key(value: date | datetime) -> str:
    return as_date(value).strftime("%Y-%m-%d")


def routine_drill_id(drill_id: int, exercise_id: int) -> str:
    return f"{drill_id}{ROUTINE_MARKER}{exercise_id}"


def parse_drill_id(raw: str) -> tuple[int, Optional[int]]:
    """Split "12" or "12-routine-5" into (drill id, exercise id or None)."""
    head, sep, tail = raw.partition(ROUTINE_MARKER)
    try:
        drill_id = int(head)
        exercise_id = int(tail) if sep else None
    except ValueError as exc:
        raise BadRequest(f"Invalid drill id: {raw}") from exc
    return drill_id, exercise_id


def expected_time(drills: Iterable[dict[str, Any]]) -> int:
    return sum((d.get("sets") or 0) * 2 for d in drills)


def _drill_entry(drill: ProgramDrill, completed: bool) -> dict[str, Any]:
    return {
        "id": str(drill.id),
        "title": drill.title,
        "description": drill.description,
        "sets": drill.sets,
        "reps": drill.reps,
        "tempo": drill.tempo,
        "duration": drill.duration,
        "notes": drill.notes,
        "type": drill.type,
        "video_url": drill.video_url,
        "video_id": drill.video_id,
        "video_title": drill.video_title,
        "video_thumbnail": drill.video_thumbnail,
        "superset_id": drill.superset_id,
        "completed": completed,
    }


def expand_drill(drill: ProgramDrill, completed: bool, routine: Routine | None) -> list[dict[str, Any]]:
    """A routine drill becomes one entry per exercise, all sharing the parent's completion."""
    if drill.routine_id is None:
        return [_drill_entry(drill, completed)]
    if routine is None:
        return []
    return [
        {
            "id": routine_drill_id(drill.id, ex.id),
            "title": ex.title,
            "description": ex.description,
            "sets": ex.sets,
            "reps": ex.reps,
            "tempo": ex.tempo,
            "duration": ex.duration,
            "notes": ex.notes,
            "type": ex.type,
            "video_url": ex.video_url,
            "video_id": ex.video_id,
            "video_title": ex.video_title,
            "video_thumbnail": ex.video_thumbnail,
            "routine_id": drill.routine_id,
            "original_drill_id": drill.id,
            "completed": completed,
        }
        for ex in routine.exercises
    ]


def _empty_day(key: str) -> dict[str, Any]:
    return {
        "date": key,
        "programs": [],
        "drills": [],
        "video_assignments": [],
        "is_rest_day": False,
        "expected_time": 0,
        "completed_drills": 0,
        "total_drills": 0,
    }


def add_program_day(calendar: dict[str, dict[str, Any]], key: str, program_data: dict[str, Any]) -> None:
    """Merge one program's day into the calendar; a date is a rest day only if every program rests."""
    entry = calendar.get(key)
    if entry is None:
        entry = _empty_day(key)
        entry["is_rest_day"] = program_data["is_rest_day"]
        calendar[key] = entry
    elif not entry["programs"]:
        entry["is_rest_day"] = program_data["is_rest_day"]
    else:
        entry["is_rest_day"] = entry["is_rest_day"] and program_data["is_rest_day"]
    entry["programs"].append(program_data)
    entry["drills"].extend(program_data["drills"])
    entry["expected_time"] += program_data["expected_time"]
    entry["completed_drills"] += program_data["completed_drills"]
    entry["total_drills"] += program_data["total_drills"]


def build_program_calendar(
    s: Session, client: Client, start: date | None = None, end: date | None = None
) -> dict[str, dict[str, Any]]:
    assignments = s.execute(
        select(ProgramAssignment).where(ProgramAssignment.client_id == client.id).order_by(ProgramAssignment.start_date)
    ).scalars().all()

    plain_done = set(
        s.execute(select(DrillCompletion.drill_id).where(DrillCompletion.client_id == client.id)).scalars().all()
    )
    assignment_done = set(
        s.execute(
            select(ProgramDrillCompletion.drill_id, ProgramDrillCompletion.program_assignment_id).where(
                ProgramDrillCompletion.client_id == client.id
            )
        ).all()
    )
    replaced: dict[int, set[date]] = {}
    for rep in s.execute(select(ProgramDayReplacement).where(ProgramDayReplacement.client_id == client.id)).scalars().all():
        replaced.setdefault(rep.assignment_id, set()).add(as_date(rep.replaced_date))

    routines: dict[int, Routine | None] = {}
    calendar: dict[str, dict[str, Any]] = {}

    for assignment in assignments:
        program = assignment.program
        skipped = replaced.get(assignment.id, set())
        for week in program.weeks:
            for day in week.days:
                when = program_day_date(assignment.start_date, week.week_number, day.day_number)
                if when in skipped:
                    continue
                if (start and when < start) or (end and when > end):
                    continue
                drills: list[dict[str, Any]] = []
                for drill in day.drills:
                    completed = drill.id in plain_done or (drill.id, assignment.id) in assignment_done
                    if drill.routine_id is not None and drill.routine_id not in routines:
                        routines[drill.routine_id] = s.get(Routine, drill.routine_id)
                    drills.extend(expand_drill(drill, completed, routines.get(drill.routine_id) if drill.routine_id else None))
                completed_count = sum(1 for d in drills if d["completed"])
                add_program_day(
                    calendar,
                    day_key(when),
                    {
                        "program_id": program.id,
                        "program_title": program.title,
                        "program_description": program.description,
                        "assignment_id": assignment.id,
                        "week_number": week.week_number,
                        "day_number": day.day_number,
                        "drills": drills,
                        "is_rest_day": day.is_rest_day or not drills,
                        "expected_time": expected_time(drills),
                        "completed_drills": completed_count,
                        "total_drills": len(drills),
                    },
                )

    videos = s.execute(select(VideoAssignment).where(VideoAssignment.client_id == client.id)).scalars().all()
    for va in videos:
        if va.due_date is None:
            continue
        due = as_date(va.due_date)
        if (start and due < start) or (end and due > end):
            continue
        key = day_key(due)
        entry = calendar.setdefault(key, _empty_day(key))
        entry["video_assignments"].append(
            {
                "id": va.id,
                "title": va.video.title,
                "description": va.video.description,
                "video_url": va.video.url,
                "thumbnail_url": va.video.thumbnail,
                "due_date": va.due_date,
                "completed": va.completed,
            }
        )
    return calendar


def scheduled_drill_dates(assignment: ProgramAssignment) -> list[tuple[date, int]]:
    """(date, drill count) for every non-rest day of an assignment."""
    out: list[tuple[date, int]] = []
    for week in assignment.program.weeks:
        for day in week.days:
            if day.is_rest_day or not day.drills:
                continue
            out.append((program_day_date(assignment.start_date, week.week_number, day.day_number), len(day.drills)))
    return out
