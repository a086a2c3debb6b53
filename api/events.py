from __future__ import annotations

from fastapi import APIRouter

from api.deps import DbSession, Principal
from api.schemas import ConfirmationLinkOut, EventOut, SuccessResponse
from core.db import session_scope
from core.services import events
from core.services.side_effects import SideEffects
from core.validators import LessonConfirmInput, LessonScheduleInput, ReminderCreateInput

router = APIRouter(prefix="/events", tags=["events"])


@router.get("/upcoming", response_model=list[EventOut])
def get_upcoming(principal: Principal, db: DbSession):
    return events.get_upcoming(db, principal.user_id)


@router.post("/reminders", response_model=EventOut, status_code=201)
def create_reminder(body: ReminderCreateInput, principal: Principal):
    with session_scope() as s:
        return EventOut.model_validate(events.create_reminder(s, principal.user_id, body))


@router.post("/lessons", response_model=EventOut, status_code=201)
async def schedule_lesson(body: LessonScheduleInput, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        result = EventOut.model_validate(events.schedule_lesson(s, principal.user_id, body, effects))
    await effects.flush()
    return result


@router.post("/confirm", response_model=EventOut)
def confirm_lesson(body: LessonConfirmInput):
    """Public: the signed token is the credential."""
    with session_scope() as s:
        return EventOut.model_validate(events.confirm_lesson(s, body.token))


@router.post("/{lesson_id}/confirmation-link", response_model=ConfirmationLinkOut)
def create_confirmation_token(lesson_id: int, principal: Principal, db: DbSession):
    return events.create_confirmation_token(db, principal.user_id, lesson_id)


@router.delete("/{event_id}", response_model=SuccessResponse)
async def delete_event(event_id: int, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        events.delete_event(s, principal.user_id, event_id, effects)
    await effects.flush()
    return SuccessResponse()
