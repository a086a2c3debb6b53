from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.errors import BadRequest, NotFound
from core.models import (
    Client,
    DrillCompletion,
    Event,
    ProgramAssignment,
    ProgramDay,
    ProgramDrill,
    ProgramDrillCompletion,
    ProgramWeek,
    RoutineAssignment,
    RoutineExercise,
    RoutineExerciseCompletion,
    User,
    VideoAssignment,
)
from core.services.access import require_client_record
from core.services.calendar import build_program_calendar, parse_drill_id
from core.services.messaging import find_or_create_coach_conversation, post_message, truncate
from core.services.notifications import notify
from core.services.side_effects import SideEffects

logger = logging.getLogger(__name__)

NOTE_PREVIEW_CHARS = 80


def get_my_client_record(s: Session, user_id: str) -> Client:
    return require_client_record(s, user_id)


def get_next_lesson(s: Session, user_id: str, now: datetime | None = None) -> Event | None:
    client = require_client_record(s, user_id)
    return s.execute(
        select(Event)
        .where(Event.client_id == client.id, Event.status == "CONFIRMED", Event.date >= (now or datetime.utcnow()))
        .order_by(Event.date.asc())
        .limit(1)
    ).scalar_one_or_none()


def get_coach_notes(s: Session, user_id: str) -> dict[str, Any]:
    client = require_client_record(s, user_id)
    return {"notes": client.notes or "", "updated_at": client.updated_at}


def get_program_calendar(s: Session, user_id: str, start: date | None = None, end: date | None = None) -> dict[str, Any]:
    client = require_client_record(s, user_id)
    return build_program_calendar(s, client, start, end)


def _client_drill(s: Session, client: Client, drill_id: int) -> ProgramDrill:
    """The drill, provided one of the client's assigned programs contains it."""
    drill = s.execute(
        select(ProgramDrill)
        .join(ProgramDay, ProgramDrill.day_id == ProgramDay.id)
        .join(ProgramWeek, ProgramDay.week_id == ProgramWeek.id)
        .join(ProgramAssignment, ProgramAssignment.program_id == ProgramWeek.program_id)
        .where(ProgramDrill.id == drill_id, ProgramAssignment.client_id == client.id)
        .limit(1)
    ).scalar_one_or_none()
    if drill is None:
        raise NotFound("Drill not found in your assigned programs")
    return drill


def mark_drill_complete(s: Session, user_id: str, raw_drill_id: str, completed: bool) -> dict[str, Any]:
    """Toggle a drill; the routine-expanded id form resolves to its parent drill."""
    client = require_client_record(s, user_id)
    drill_id, _ = parse_drill_id(raw_drill_id)
    drill = _client_drill(s, client, drill_id)
    existing = s.execute(
        select(DrillCompletion).where(DrillCompletion.drill_id == drill.id, DrillCompletion.client_id == client.id)
    ).scalar_one_or_none()
    if completed:
        if existing is None:
            s.add(DrillCompletion(drill_id=drill.id, client_id=client.id))
        client.last_completed_workout = datetime.utcnow()
    elif existing is not None:
        s.delete(existing)
    s.flush()
    logger.info("drill_completion_set", extra={"client_id": client.id, "drill_id": drill.id, "completed": completed})
    return {"success": True, "drill_id": drill.id, "completed": completed}


def mark_program_drill_complete(
    s: Session, user_id: str, drill_id: int, program_assignment_id: int, completed: bool
) -> dict[str, Any]:
    client = require_client_record(s, user_id)
    assignment = s.execute(
        select(ProgramAssignment).where(ProgramAssignment.id == program_assignment_id, ProgramAssignment.client_id == client.id)
    ).scalar_one_or_none()
    if assignment is None:
        raise NotFound("Program assignment not found")
    drill = _client_drill(s, client, drill_id)
    existing = s.execute(
        select(ProgramDrillCompletion).where(
            ProgramDrillCompletion.drill_id == drill.id,
            ProgramDrillCompletion.program_assignment_id == assignment.id,
            ProgramDrillCompletion.client_id == client.id,
        )
    ).scalar_one_or_none()
    if completed:
        if existing is None:
            s.add(ProgramDrillCompletion(drill_id=drill.id, program_assignment_id=assignment.id, client_id=client.id))
        else:
            existing.completed_at = datetime.utcnow()
        client.last_completed_workout = datetime.utcnow()
    elif existing is not None:
        s.delete(existing)
    s.flush()
    return {"success": True, "drill_id": drill.id, "program_assignment_id": assignment.id, "completed": completed}


def mark_routine_exercise_complete(
    s: Session, user_id: str, exercise_id: int, routine_assignment_id: int, completed: bool
) -> dict[str, Any]:
    client = require_client_record(s, user_id)
    assignment = s.execute(
        select(RoutineAssignment).where(RoutineAssignment.id == routine_assignment_id, RoutineAssignment.client_id == client.id)
    ).scalar_one_or_none()
    if assignment is None:
        raise NotFound("Routine assignment not found")
    exercise = s.execute(
        select(RoutineExercise).where(RoutineExercise.id == exercise_id, RoutineExercise.routine_id == assignment.routine_id)
    ).scalar_one_or_none()
    if exercise is None:
        raise NotFound("Exercise not found in this routine")

    existing = s.execute(
        select(RoutineExerciseCompletion).where(
            RoutineExerciseCompletion.routine_assignment_id == assignment.id,
            RoutineExerciseCompletion.exercise_id == exercise.id,
            RoutineExerciseCompletion.client_id == client.id,
        )
    ).scalar_one_or_none()
    if completed and existing is None:
        s.add(RoutineExerciseCompletion(routine_assignment_id=assignment.id, exercise_id=exercise.id, client_id=client.id))
        client.last_completed_workout = datetime.utcnow()
    elif not completed and existing is not None:
        s.delete(existing)
    s.flush()

    done = len(
        s.execute(
            select(RoutineExerciseCompletion.id).where(RoutineExerciseCompletion.routine_assignment_id == assignment.id)
        ).all()
    )
    total = len(assignment.routine.exercises)
    assignment.progress = round(done / total * 100) if total else 0
    assignment.completed_at = datetime.utcnow() if total and done >= total else None
    return {
        "success": True,
        "exercise_id": exercise.id,
        "routine_assignment_id": assignment.id,
        "completed": completed,
        "progress": assignment.progress,
    }


def mark_program_complete(s: Session, user_id: str, assignment_id: int) -> ProgramAssignment:
    client = require_client_record(s, user_id)
    assignment = s.execute(
        select(ProgramAssignment).where(ProgramAssignment.id == assignment_id, ProgramAssignment.client_id == client.id)
    ).scalar_one_or_none()
    if assignment is None:
        raise NotFound("Program assignment not found")
    assignment.progress = 100
    assignment.completed_at = datetime.utcnow()
    client.last_completed_workout = assignment.completed_at
    logger.info("program_completed", extra={"client_id": client.id, "assignment_id": assignment.id})
    return assignment


def mark_video_assignment_complete(s: Session, user_id: str, assignment_id: int, completed: bool) -> VideoAssignment:
    client = require_client_record(s, user_id)
    assignment = s.execute(
        select(VideoAssignment).where(VideoAssignment.id == assignment_id, VideoAssignment.client_id == client.id)
    ).scalar_one_or_none()
    if assignment is None:
        raise NotFound("Video assignment not found")
    assignment.completed = completed
    assignment.completed_at = datetime.utcnow() if completed else None
    return assignment


def send_note_to_coach(s: Session, user_id: str, note: str, effects: SideEffects) -> dict[str, Any]:
    client = require_client_record(s, user_id)
    if not client.coach_id:
        raise BadRequest("You are not linked to a coach yet")
    sender = s.get(User, user_id)
    conv = find_or_create_coach_conversation(s, client.coach_id, user_id)
    msg = post_message(s, conv, sender, note, effects, notify_email=False)
    notify(
        s,
        client.coach_id,
        "MESSAGE",
        f"Note from {client.name}",
        truncate(note, NOTE_PREVIEW_CHARS),
        effects,
        data={"conversation_id": conv.id, "message_id": msg.id, "client_id": client.id},
    )
    logger.info("note_sent_to_coach", extra={"client_id": client.id, "conversation_id": conv.id})
    return {"success": True, "conversation_id": conv.id, "message_id": msg.id}


def get_my_video_assignments(s: Session, user_id: str) -> list[VideoAssignment]:
    client = require_client_record(s, user_id)
    return list(
        s.execute(
            select(VideoAssignment).where(VideoAssignment.client_id == client.id).order_by(VideoAssignment.assigned_at.desc())
        ).scalars().all()
    )


def routine_completion_ids(s: Session, client_id: int, routine_assignment_id: int) -> list[int]:
    return list(
        s.execute(
            select(RoutineExerciseCompletion.exercise_id).where(
                RoutineExerciseCompletion.client_id == client_id,
                RoutineExerciseCompletion.routine_assignment_id == routine_assignment_id,
            )
        ).scalars().all()
    )
