"""Coach-side client management."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Literal, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from core.errors import BadRequest, NotFound
from core.models import (
    Client,
    ClientNote,
    DrillCompletion,
    Event,
    ProgramAssignment,
    ProgramDayReplacement,
    ProgramDrillCompletion,
    RoutineAssignment,
    RoutineExerciseCompletion,
    User,
    VideoAssignment,
)
from core.services.access import owned_client, require_coach
from core.services.calendar import as_date, scheduled_drill_dates
from core.services.messaging import send_welcome_message
from core.services.scheduling import require_open_slot
from core.services.side_effects import SideEffects
from core.services.user_settings import auto_archive_days, find_settings, lesson_minutes
from core.validators import ClientCreateInput, ClientUpdateInput, ReplaceWorkoutInput, parse_clock

logger = logging.getLogger(__name__)

ClientScope = Literal["all", "due_soon", "needs_attention"]

DUE_SOON_DAYS = 7
NEEDS_ATTENTION_DAYS = 7


def auto_archive_inactive(s: Session, coach_id: str, now: datetime | None = None) -> int:
    days = auto_archive_days(s, coach_id)
    if not days:
        return 0
    now = now or datetime.utcnow()
    cutoff = now - timedelta(days=days)
    stale = s.execute(
        select(Client).where(Client.coach_id == coach_id, Client.archived.is_(False), Client.updated_at < cutoff)
    ).scalars().all()
    for client in stale:
        client.archived = True
        client.archived_at = now
    if stale:
        logger.info("clients_auto_archived", extra={"coach_id": coach_id, "count": len(stale)})
    return len(stale)


def list_clients(
    s: Session, user_id: str, archived: bool = False, scope: ClientScope = "all", now: datetime | None = None
) -> list[Client]:
    coach = require_coach(s, user_id, "view clients")
    now = now or datetime.utcnow()
    auto_archive_inactive(s, coach.id, now)
    s.flush()

    q = select(Client).where(Client.coach_id == coach.id, Client.archived.is_(archived))
    if scope == "due_soon":
        q = q.where(Client.next_lesson_date >= now, Client.next_lesson_date <= now + timedelta(days=DUE_SOON_DAYS))
    elif scope == "needs_attention":
        cutoff = now - timedelta(days=NEEDS_ATTENTION_DAYS)
        q = q.where((Client.last_completed_workout.is_(None)) | (Client.last_completed_workout < cutoff))
    return list(s.execute(q.order_by(Client.name)).scalars().all())


def get_client(s: Session, user_id: str, client_id: int) -> Client:
    coach = require_coach(s, user_id, "view clients")
    return owned_client(s, coach.id, client_id)


def create_client(s: Session, user_id: str, body: ClientCreateInput, effects: SideEffects) -> Client:
    coach = require_coach(s, user_id, "create clients")
    prefs = find_settings(s, coach.id)
    if prefs is not None and prefs.require_client_email and not body.email:
        raise BadRequest("Client email is required")

    email = str(body.email) if body.email else None
    client = s.execute(select(Client).where(Client.email == email)).scalars().first() if email else None
    if client is not None:
        client.coach_id = coach.id
        client.archived = False
        client.archived_at = None
        client.name = body.name
        if body.phone is not None:
            client.phone = body.phone
        if body.notes is not None:
            client.notes = body.notes
        logger.info("client_reassigned", extra={"coach_id": coach.id, "client_id": client.id})
    else:
        client = Client(
            coach_id=coach.id,
            name=body.name,
            email=email,
            phone=body.phone,
            notes=body.notes,
            next_lesson_date=body.next_lesson_date,
        )
        s.add(client)
        logger.info("client_created", extra={"coach_id": coach.id})

    if email and client.user_id is None:
        linked = s.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if linked is not None:
            taken = s.execute(select(Client.id).where(Client.user_id == linked.id)).first()
            if taken is None:
                client.user_id = linked.id
    s.flush()

    if client.user_id:
        send_welcome_message(s, coach, client.user_id, effects)
    return client


def update_client(s: Session, user_id: str, client_id: int, body: ClientUpdateInput) -> Client:
    client = get_client(s, user_id, client_id)
    changes = body.model_dump(exclude_unset=True)
    if "email" in changes and changes["email"] is not None:
        changes["email"] = str(changes["email"])
    for key, value in changes.items():
        setattr(client, key, value)
    s.flush()
    return client


# -- notes --


def update_notes(s: Session, user_id: str, client_id: int, notes: str) -> Client:
    client = get_client(s, user_id, client_id)
    client.notes = notes
    s.add(ClientNote(client_id=client.id, coach_id=user_id, content=notes))
    s.flush()
    return client


def get_note_history(s: Session, user_id: str, client_id: int) -> list[ClientNote]:
    client = get_client(s, user_id, client_id)
    return list(
        s.execute(
            select(ClientNote)
            .where(ClientNote.client_id == client.id)
            .order_by(ClientNote.is_pinned.desc(), ClientNote.created_at.desc(), ClientNote.id.desc())
        ).scalars().all()
    )


def toggle_pin_note(s: Session, user_id: str, note_id: int) -> ClientNote:
    coach = require_coach(s, user_id, "pin notes")
    note = s.execute(
        select(ClientNote)
        .join(Client, ClientNote.client_id == Client.id)
        .where(ClientNote.id == note_id, Client.coach_id == coach.id)
    ).scalar_one_or_none()
    if note is None:
        raise NotFound("Note not found")
    note.is_pinned = not note.is_pinned
    return note


# -- lifecycle --


def archive_client(s: Session, user_id: str, client_id: int) -> Client:
    """Archive and drop the client's schedule; all statements share the caller's transaction."""
    client = get_client(s, user_id, client_id)
    client.archived = True
    client.archived_at = datetime.utcnow()
    s.flush()
    removed = {}
    for model in (Event, ProgramAssignment, RoutineAssignment, VideoAssignment):
        result = s.execute(delete(model).where(model.client_id == client.id))
        removed[model.__tablename__] = int(result.rowcount or 0)
    s.expire_all()
    logger.info("client_archived", extra={"client_id": client_id, "removed": removed})
    return s.get(Client, client_id)


def unarchive_client(s: Session, user_id: str, client_id: int) -> Client:
    client = get_client(s, user_id, client_id)
    client.archived = False
    client.archived_at = None
    return client


def delete_client(s: Session, user_id: str, client_id: int) -> None:
    client = get_client(s, user_id, client_id)
    if not client.archived:
        raise BadRequest("Client must be archived before it can be deleted")
    client.coach_id = None
    logger.info("client_deleted", extra={"client_id": client_id, "coach_id": user_id})


# -- programs and compliance --


def get_assigned_programs(s: Session, user_id: str, client_id: int) -> list[ProgramAssignment]:
    client = get_client(s, user_id, client_id)
    return list(
        s.execute(
            select(ProgramAssignment).where(ProgramAssignment.client_id == client.id).order_by(ProgramAssignment.start_date.desc())
        ).scalars().all()
    )


def compliance_rate(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return min(100, round(completed / total * 100))


def get_compliance_data(
    s: Session, user_id: str, client_id: int, period: str = "4", today: date | None = None
) -> dict[str, Any]:
    client = get_client(s, user_id, client_id)
    today = today or datetime.utcnow().date()
    assignments = s.execute(select(ProgramAssignment).where(ProgramAssignment.client_id == client.id)).scalars().all()

    window_start: Optional[date] = None if period == "all" else today - timedelta(weeks=int(period))
    total = 0
    for assignment in assignments:
        for when, count in scheduled_drill_dates(assignment):
            if when > today or (window_start and when < window_start):
                continue
            total += count

    since = datetime.combine(window_start, time.min) if window_start else None
    completed = 0
    for model in (ProgramDrillCompletion, DrillCompletion, RoutineExerciseCompletion):
        q = select(func.count(model.id)).where(model.client_id == client.id)
        if since is not None:
            q = q.where(model.completed_at >= since)
        completed += int(s.execute(q).scalar_one())

    return {"completion_rate": compliance_rate(completed, total), "completed": completed, "total": total, "period": period}


# -- lesson replacements --


def replace_workout_with_lesson(s: Session, user_id: str, client_id: int, body: ReplaceWorkoutInput) -> dict[str, Any]:
    client = get_client(s, user_id, client_id)
    assignment = s.execute(
        select(ProgramAssignment)
        .where(ProgramAssignment.client_id == client.id, ProgramAssignment.program_id == body.program_id)
        .order_by(ProgramAssignment.start_date.desc())
        .limit(1)
    ).scalar_one_or_none()
    if assignment is None:
        raise NotFound("Program assignment not found")

    hour, minute = parse_clock(body.lesson_data.time)
    starts = datetime.combine(body.day_date, time(hour, minute))
    ends = starts + timedelta(minutes=lesson_minutes(s, user_id))
    require_open_slot(s, user_id, starts, ends)
    lesson = Event(
        coach_id=user_id,
        client_id=client.id,
        title=body.lesson_data.title,
        description=body.lesson_data.description,
        date=starts,
        end_time=ends,
        status="CONFIRMED",
    )
    s.add(lesson)
    s.flush()

    replacement = ProgramDayReplacement(
        assignment_id=assignment.id,
        program_id=assignment.program_id,
        client_id=client.id,
        coach_id=user_id,
        replaced_date=datetime.combine(body.day_date, time.min),
        lesson_id=lesson.id,
        replacement_reason="Replaced with lesson",
    )
    s.add(replacement)
    if starts > datetime.utcnow() and (client.next_lesson_date is None or starts < client.next_lesson_date):
        client.next_lesson_date = starts
    s.flush()
    logger.info("workout_replaced_with_lesson", extra={"client_id": client.id, "lesson_id": lesson.id})
    return {"replacement_id": replacement.id, "lesson_id": lesson.id, "replaced_date": as_date(replacement.replaced_date)}


def remove_replacement(s: Session, user_id: str, replacement_id: int) -> None:
    require_coach(s, user_id, "remove lesson replacements")
    replacement = s.execute(
        select(ProgramDayReplacement).where(ProgramDayReplacement.id == replacement_id, ProgramDayReplacement.coach_id == user_id)
    ).scalar_one_or_none()
    if replacement is None:
        raise NotFound("Replacement not found")
    lesson = s.get(Event, replacement.lesson_id) if replacement.lesson_id else None
    s.delete(replacement)
    if lesson is not None:
        s.delete(lesson)
    logger.info("replacement_removed", extra={"replacement_id": replacement_id})
