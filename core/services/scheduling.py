"""Coach availability and client schedule requests.

Blocked times are slots a coach keeps free of lessons. A schedule request is
a PENDING lesson a client asks for; the coach confirms it or turns it down.
"""

from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from core.errors import BadRequest, Conflict, NotFound
from core.models import BlockedTime, Client, Event
from core.services.access import require_client_record, require_coach
from core.services.notifications import notify
from core.services.side_effects import SideEffects
from core.services.user_settings import lesson_minutes, working_days
from core.validators import BlockedTimeInput, ScheduleChangeInput, parse_clock

logger = logging.getLogger(__name__)

PENDING = "PENDING"
CONFIRMED = "CONFIRMED"


def _when(value: dt.datetime) -> str:
    return f"{value:%b %d, %Y} at {value:%H:%M}"


def _in_range(q, start_col, end_col, start: dt.datetime | None, end: dt.datetime | None):
    if end is not None:
        q = q.where(start_col < end)
    if start is not None:
        q = q.where(end_col > start)
    return q


# -- blocked times --


def blocking_slot(s: Session, coach_id: str, starts: dt.datetime, ends: dt.datetime) -> BlockedTime | None:
    return s.execute(
        select(BlockedTime)
        .where(BlockedTime.coach_id == coach_id, BlockedTime.start_time < ends, BlockedTime.end_time > starts)
        .order_by(BlockedTime.start_time)
        .limit(1)
    ).scalar_one_or_none()


def require_open_slot(s: Session, coach_id: str, starts: dt.datetime, ends: dt.datetime) -> None:
    """Conflict when any part of [starts, ends) falls inside one of the coach's blocked times."""
    blocked = blocking_slot(s, coach_id, starts, ends)
    if blocked is not None:
        raise Conflict(f"The coach is unavailable at this time ({blocked.title})", blocked_time_id=blocked.id)


def _conflicting_lessons(s: Session, coach_id: str, starts: dt.datetime, ends: dt.datetime) -> list[Event]:
    return list(
        s.execute(
            select(Event)
            .where(
                Event.coach_id == coach_id,
                Event.status == CONFIRMED,
                Event.date < ends,
                or_(Event.date >= starts, Event.end_time > starts),
            )
            .order_by(Event.date)
        ).scalars().all()
    )


def list_blocked_times(
    s: Session, user_id: str, start: dt.datetime | None = None, end: dt.datetime | None = None
) -> list[BlockedTime]:
    coach = require_coach(s, user_id, "view blocked times")
    q = _in_range(select(BlockedTime).where(BlockedTime.coach_id == coach.id), BlockedTime.start_time, BlockedTime.end_time, start, end)
    return list(s.execute(q.order_by(BlockedTime.start_time)).scalars().all())


def get_coach_blocked_times(
    s: Session, user_id: str, start: dt.datetime | None = None, end: dt.datetime | None = None
) -> list[BlockedTime]:
    """The calling client's coach's blocked times, so requests can avoid them."""
    client = require_client_record(s, user_id)
    if not client.coach_id:
        return []
    q = _in_range(
        select(BlockedTime).where(BlockedTime.coach_id == client.coach_id), BlockedTime.start_time, BlockedTime.end_time, start, end
    )
    return list(s.execute(q.order_by(BlockedTime.start_time)).scalars().all())


def _check_lessons_clear(s: Session, coach_id: str, body: BlockedTimeInput) -> None:
    lessons = _conflicting_lessons(s, coach_id, body.start_time, body.end_time)
    if lessons:
        raise Conflict(
            "Cannot block time that conflicts with existing lessons. Conflicting lessons: "
            + ", ".join(e.title for e in lessons),
            event_ids=[e.id for e in lessons],
        )


def create_blocked_time(s: Session, user_id: str, body: BlockedTimeInput) -> BlockedTime:
    coach = require_coach(s, user_id, "create blocked times")
    _check_lessons_clear(s, coach.id, body)
    blocked = BlockedTime(coach_id=coach.id, **body.model_dump())
    s.add(blocked)
    s.flush()
    logger.info("blocked_time_created", extra={"blocked_time_id": blocked.id, "coach_id": coach.id})
    return blocked


def _owned_blocked_time(s: Session, coach_id: str, blocked_id: int) -> BlockedTime:
    blocked = s.execute(
        select(BlockedTime).where(BlockedTime.id == blocked_id, BlockedTime.coach_id == coach_id)
    ).scalar_one_or_none()
    if blocked is None:
        raise NotFound("Blocked time not found")
    return blocked


def update_blocked_time(s: Session, user_id: str, blocked_id: int, body: BlockedTimeInput) -> BlockedTime:
    coach = require_coach(s, user_id, "update blocked times")
    blocked = _owned_blocked_time(s, coach.id, blocked_id)
    _check_lessons_clear(s, coach.id, body)
    for field, value in body.model_dump().items():
        setattr(blocked, field, value)
    s.flush()
    logger.info("blocked_time_updated", extra={"blocked_time_id": blocked.id})
    return blocked


def delete_blocked_time(s: Session, user_id: str, blocked_id: int) -> None:
    coach = require_coach(s, user_id, "delete blocked times")
    s.delete(_owned_blocked_time(s, coach.id, blocked_id))
    logger.info("blocked_time_deleted", extra={"blocked_time_id": blocked_id})


# -- schedule requests --


def request_schedule_change(
    s: Session, user_id: str, body: ScheduleChangeInput, effects: SideEffects, now: dt.datetime | None = None
) -> Event:
    client = require_client_record(s, user_id)
    if not client.coach_id:
        raise BadRequest("Client must have an assigned coach to request schedule changes")

    hour, minute = parse_clock(body.time)
    starts = dt.datetime.combine(body.requested_date, dt.time(hour, minute))
    if starts <= (now or dt.datetime.utcnow()):
        raise BadRequest("Cannot request lessons in the past")
    days = working_days(s, client.coach_id)
    if days is not None and f"{starts:%A}" not in days:
        raise BadRequest(f"Coach is not available on {starts:%A}s")

    ends = starts + dt.timedelta(minutes=lesson_minutes(s, client.coach_id))
    require_open_slot(s, client.coach_id, starts, ends)
    taken = s.execute(
        select(Event.id).where(Event.coach_id == client.coach_id, Event.date == starts, Event.status != "CANCELLED")
    ).first()
    if taken is not None:
        raise BadRequest("This time slot is already booked")

    event = Event(
        coach_id=client.coach_id,
        client_id=client.id,
        title=f"Schedule Request - {client.name}",
        description=body.reason or "Client requested schedule change",
        date=starts,
        end_time=ends,
        status=PENDING,
        requested_by_client=True,
    )
    s.add(event)
    s.flush()
    notify(
        s,
        client.coach_id,
        "SCHEDULE_REQUEST",
        "New Schedule Request",
        f"{client.name} has requested a schedule change for {_when(starts)}",
        effects,
        data={"event_id": event.id, "client_id": client.id, "client_name": client.name, "reason": body.reason},
    )
    logger.info("schedule_change_requested", extra={"event_id": event.id, "client_id": client.id})
    return event


def _pending_requests_query(*criteria):
    return (
        select(Event)
        .where(Event.status == PENDING, Event.requested_by_client.is_(True), *criteria)
        .order_by(Event.date.asc(), Event.id.asc())
    )


def get_pending_requests(s: Session, user_id: str) -> list[Event]:
    coach = require_coach(s, user_id, "view pending schedule requests")
    return list(s.execute(_pending_requests_query(Event.coach_id == coach.id)).scalars().all())


def get_my_pending_requests(s: Session, user_id: str) -> list[Event]:
    client = require_client_record(s, user_id)
    return list(s.execute(_pending_requests_query(Event.client_id == client.id)).scalars().all())


def _pending_request(s: Session, coach_id: str, event_id: int) -> Event:
    event = s.execute(_pending_requests_query(Event.id == event_id, Event.coach_id == coach_id)).scalar_one_or_none()
    if event is None:
        raise NotFound("Schedule request not found or already processed")
    return event


def approve_schedule_request(s: Session, user_id: str, event_id: int, effects: SideEffects) -> Event:
    coach = require_coach(s, user_id, "approve schedule requests")
    event = _pending_request(s, coach.id, event_id)
    client = s.get(Client, event.client_id) if event.client_id else None
    # blocked times are only checked against confirmed lessons when created
    require_open_slot(s, coach.id, event.date, event.end_time or event.date + dt.timedelta(minutes=1))

    event.status = CONFIRMED
    event.title = f"Lesson with {(client.name or client.email) if client else 'Client'}"
    if client is not None:
        if event.date > dt.datetime.utcnow() and (client.next_lesson_date is None or event.date < client.next_lesson_date):
            client.next_lesson_date = event.date
        if client.user_id:
            notify(
                s,
                client.user_id,
                "LESSON_SCHEDULED",
                "Schedule Request Approved",
                f"Your schedule request for {_when(event.date)} has been approved!",
                effects,
                data={"event_id": event.id, "coach_id": coach.id, "coach_name": coach.name},
            )
    s.flush()
    logger.info("schedule_request_approved", extra={"event_id": event.id})
    return event


def reject_schedule_request(
    s: Session, user_id: str, event_id: int, reason: str | None, effects: SideEffects
) -> None:
    """Delete the request so the slot is free again and tell the client why."""
    coach = require_coach(s, user_id, "reject schedule requests")
    event = _pending_request(s, coach.id, event_id)
    client = s.get(Client, event.client_id) if event.client_id else None
    if client is not None and client.user_id:
        message = f"Your schedule request for {_when(event.date)} has been declined and the time slot is now available."
        if reason:
            message += f" Reason: {reason}"
        notify(
            s,
            client.user_id,
            "LESSON_CANCELLED",
            "Schedule Request Declined",
            message,
            effects,
            data={"event_id": event.id, "coach_id": coach.id, "coach_name": coach.name, "reason": reason},
        )
    s.delete(event)
    logger.info("schedule_request_rejected", extra={"event_id": event_id})
