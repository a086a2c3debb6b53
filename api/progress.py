from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter

from api.deps import DbSession, Principal, TimeRangeQuery
from api.schemas import ProgressEntryOut, WorkoutOut
from core.db import session_scope
from core.services import progress
from core.services.side_effects import SideEffects
from core.validators import ProgressUpdateInput

router = APIRouter(prefix="/progress", tags=["progress"])


@router.get("")
def get_progress_data(
    principal: Principal, db: DbSession, client_id: Optional[int] = None, time_range: TimeRangeQuery = "4"
) -> dict[str, Any]:
    data = progress.get_progress_data(db, principal.user_id, client_id, time_range)
    return {**data, "entries": [ProgressEntryOut.model_validate(e) for e in data["entries"]]}


@router.get("/history", response_model=list[WorkoutOut])
def get_workout_history(
    principal: Principal, db: DbSession, client_id: Optional[int] = None, time_range: TimeRangeQuery = "4"
):
    return progress.get_workout_history(db, principal.user_id, client_id, time_range)


@router.get("/historical")
def get_historical_data(principal: Principal, db: DbSession, client_id: Optional[int] = None) -> dict[str, Any]:
    return progress.get_historical_data(db, principal.user_id, client_id)


@router.get("/insights")
def get_progress_insights(principal: Principal, db: DbSession, client_id: Optional[int] = None) -> dict[str, Any]:
    return progress.get_progress_insights(db, principal.user_id, client_id)


@router.post("", response_model=ProgressEntryOut, status_code=201)
async def update_progress(body: ProgressUpdateInput, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        result = ProgressEntryOut.model_validate(progress.update_progress(s, principal.user_id, body, effects))
    await effects.flush()
    return result
