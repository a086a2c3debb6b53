from __future__ import annotations

import datetime as dt
import logging
from typing import Any

from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from core.config import get_settings
from core.errors import BadRequest, NotFound
from core.models import Client, Event
from core.services.access import get_user, is_coach, owned_client, require_client_record, require_coach
from core.services.notifications import notify
from core.services.scheduling import require_open_slot
from core.services.side_effects import SideEffects
from core.services.user_settings import lesson_minutes
from core.validators import LessonScheduleInput, ReminderCreateInput, parse_clock

logger = logging.getLogger(__name__)

CONFIRM_PURPOSE = "lesson_confirm"
CONFIRM_TOKEN_DAYS = 7


def at_clock(day: dt.date, clock: str) -> dt.datetime:
    hour, minute = parse_clock(clock)
    return dt.datetime.combine(day, dt.time(hour, minute))


def get_upcoming(s: Session, user_id: str, now: dt.datetime | None = None) -> list[Event]:
    now = now or dt.datetime.utcnow()
    user = get_user(s, user_id)
    if is_coach(user):
        q = select(Event).where(Event.coach_id == user.id)
    else:
        client = require_client_record(s, user_id)
        q = select(Event).where(Event.client_id == client.id)
    return list(s.execute(q.where(Event.date >= now).order_by(Event.date.asc(), Event.id.asc())).scalars().all())


def create_reminder(s: Session, user_id: str, body: ReminderCreateInput) -> Event:
    coach = require_coach(s, user_id, "create reminders")
    event = Event(
        coach_id=coach.id,
        client_id=None,
        title=body.title,
        description=body.description,
        date=at_clock(body.date, body.time),
        status="PENDING",
    )
    s.add(event)
    s.flush()
    logger.info("reminder_created", extra={"event_id": event.id, "coach_id": coach.id})
    return event


def schedule_lesson(s: Session, user_id: str, body: LessonScheduleInput, effects: SideEffects) -> Event:
    coach = require_coach(s, user_id, "schedule lessons")
    client = owned_client(s, coach.id, body.client_id)
    starts = at_clock(body.date, body.time)
    ends = starts + dt.timedelta(minutes=lesson_minutes(s, coach.id))
    require_open_slot(s, coach.id, starts, ends)
    event = Event(
        coach_id=coach.id,
        client_id=client.id,
        title=body.title,
        description=body.description,
        date=starts,
        end_time=ends,
        status="CONFIRMED",
    )
    s.add(event)
    if starts > dt.datetime.utcnow() and (client.next_lesson_date is None or starts < client.next_lesson_date):
        client.next_lesson_date = starts
    s.flush()
    if client.user_id:
        notify(
            s,
            client.user_id,
            "LESSON_SCHEDULED",
            "Lesson Scheduled",
            f"{coach.name or 'Your coach'} scheduled \"{event.title}\" on {starts:%Y-%m-%d} at {starts:%H:%M}.",
            effects,
            data={"event_id": event.id},
        )
    logger.info("lesson_scheduled", extra={"event_id": event.id, "client_id": client.id})
    return event


def delete_event(s: Session, user_id: str, event_id: int, effects: SideEffects) -> None:
    coach = require_coach(s, user_id, "delete events")
    event = s.execute(select(Event).where(Event.id == event_id, Event.coach_id == coach.id)).scalar_one_or_none()
    if event is None:
        raise NotFound("Event not found")
    client = s.get(Client, event.client_id) if event.client_id else None
    if client is not None and client.user_id and event.date >= dt.datetime.utcnow():
        notify(
            s,
            client.user_id,
            "LESSON_CANCELLED",
            "Lesson Cancelled",
            f"\"{event.title}\" on {event.date:%Y-%m-%d} has been cancelled.",
            effects,
            data={"event_id": event.id},
        )
    s.delete(event)
    logger.info("event_deleted", extra={"event_id": event_id})


def create_confirmation_token(s: Session, user_id: str, lesson_id: int) -> dict[str, Any]:
    coach = require_coach(s, user_id, "create confirmation links")
    lesson = s.execute(select(Event).where(Event.id == lesson_id, Event.coach_id == coach.id)).scalar_one_or_none()
    if lesson is None:
        raise NotFound("Lesson not found")
    if lesson.client_id is None:
        raise BadRequest("Lesson has no client to confirm it")
    settings = get_settings()
    claims = {
        "purpose": CONFIRM_PURPOSE,
        "lesson_id": lesson.id,
        "client_id": lesson.client_id,
        "coach_id": coach.id,
        "exp": dt.datetime.utcnow() + dt.timedelta(days=CONFIRM_TOKEN_DAYS),
    }
    token = jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return {"token": token, "confirm_url": f"{settings.app_base_url.rstrip('/')}/lesson/confirm/{token}"}


def decode_confirmation_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise BadRequest("Invalid or expired confirmation token") from exc
    if claims.get("purpose") != CONFIRM_PURPOSE:
        raise BadRequest("Invalid or expired confirmation token")
    return claims


def confirm_lesson(s: Session, token: str) -> Event:
    claims = decode_confirmation_token(token)
    lesson = s.execute(
        select(Event).where(
            Event.id == claims.get("lesson_id"),
            Event.client_id == claims.get("client_id"),
            Event.coach_id == claims.get("coach_id"),
        )
    ).scalar_one_or_none()
    if lesson is None:
        raise NotFound("Lesson not found")
    lesson.status = "CONFIRMED"
    logger.info("lesson_confirmed", extra={"event_id": lesson.id})
    return lesson
