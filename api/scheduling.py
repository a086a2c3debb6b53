from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter

from api.deps import DbSession, Principal
from api.schemas import BlockedTimeOut, EventOut, SuccessResponse
from core.db import session_scope
from core.services import scheduling
from core.services.side_effects import SideEffects
from core.validators import BlockedTimeInput, ScheduleChangeInput, ScheduleRejectInput

router = APIRouter(prefix="/scheduling", tags=["scheduling"])


@router.get("/blocked-times", response_model=list[BlockedTimeOut])
def list_blocked_times(
    principal: Principal,
    db: DbSession,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
):
    return scheduling.list_blocked_times(db, principal.user_id, start, end)


@router.get("/blocked-times/coach", response_model=list[BlockedTimeOut])
def get_coach_blocked_times(
    principal: Principal,
    db: DbSession,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
):
    return scheduling.get_coach_blocked_times(db, principal.user_id, start, end)


@router.post("/blocked-times", response_model=BlockedTimeOut, status_code=201)
def create_blocked_time(body: BlockedTimeInput, principal: Principal):
    with session_scope() as s:
        return BlockedTimeOut.model_validate(scheduling.create_blocked_time(s, principal.user_id, body))


@router.put("/blocked-times/{blocked_id}", response_model=BlockedTimeOut)
def update_blocked_time(blocked_id: int, body: BlockedTimeInput, principal: Principal):
    with session_scope() as s:
        return BlockedTimeOut.model_validate(scheduling.update_blocked_time(s, principal.user_id, blocked_id, body))


@router.delete("/blocked-times/{blocked_id}", response_model=SuccessResponse)
def delete_blocked_time(blocked_id: int, principal: Principal):
    with session_scope() as s:
        scheduling.delete_blocked_time(s, principal.user_id, blocked_id)
    return SuccessResponse()


@router.post("/requests", response_model=EventOut, status_code=201)
async def request_schedule_change(body: ScheduleChangeInput, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        result = EventOut.model_validate(scheduling.request_schedule_change(s, principal.user_id, body, effects))
    await effects.flush()
    return result


@router.get("/requests/pending", response_model=list[EventOut])
def get_pending_requests(principal: Principal, db: DbSession):
    return scheduling.get_pending_requests(db, principal.user_id)


@router.get("/requests/mine", response_model=list[EventOut])
def get_my_pending_requests(principal: Principal, db: DbSession):
    return scheduling.get_my_pending_requests(db, principal.user_id)


@router.post("/requests/{event_id}/approve", response_model=EventOut)
async def approve_schedule_request(event_id: int, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        result = EventOut.model_validate(scheduling.approve_schedule_request(s, principal.user_id, event_id, effects))
    await effects.flush()
    return result


@router.post("/requests/{event_id}/reject", response_model=SuccessResponse)
async def reject_schedule_request(event_id: int, body: ScheduleRejectInput, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        scheduling.reject_schedule_request(s, principal.user_id, event_id, body.reason, effects)
    await effects.flush()
    return SuccessResponse()
