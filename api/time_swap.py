from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request, Response

from api.deps import DbSession, Principal
from api.ratelimit import limiter
from api.schemas import EventOut, TimeSwapRequestOut
from core.config import get_settings
from core.db import session_scope
from core.services import time_swap
from core.services.side_effects import SideEffects
from core.validators import TimeSwapCreateInput

router = APIRouter(prefix="/time-swaps", tags=["time-swaps"])


@router.post("", response_model=TimeSwapRequestOut, status_code=201)
@limiter.limit(get_settings().message_rate_limit)
async def create_request(request: Request, response: Response, body: TimeSwapCreateInput, principal: Principal):
    del request, response
    effects = SideEffects()
    with session_scope() as s:
        result = TimeSwapRequestOut.model_validate(time_swap.create_request(s, principal.user_id, body, effects))
    await effects.flush()
    return result


@router.get("")
def get_requests(principal: Principal, db: DbSession) -> dict[str, list[dict[str, Any]]]:
    return time_swap.get_requests(db, principal.user_id)


@router.get("/available-events", response_model=list[EventOut])
def get_available_events(principal: Principal, db: DbSession):
    return time_swap.get_available_events(db, principal.user_id)


@router.post("/{request_id}/approve", response_model=TimeSwapRequestOut)
async def approve(request_id: int, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        result = TimeSwapRequestOut.model_validate(time_swap.approve(s, principal.user_id, request_id, effects))
    await effects.flush()
    return result


@router.post("/{request_id}/decline", response_model=TimeSwapRequestOut)
def decline(request_id: int, principal: Principal):
    with session_scope() as s:
        return TimeSwapRequestOut.model_validate(time_swap.decline(s, principal.user_id, request_id))


@router.post("/{request_id}/cancel", response_model=TimeSwapRequestOut)
async def cancel(request_id: int, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        result = TimeSwapRequestOut.model_validate(time_swap.cancel(s, principal.user_id, request_id, effects))
    await effects.flush()
    return result
