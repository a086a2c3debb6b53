from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from api.deps import DbSession, Principal
from api.schemas import WorkoutOut
from core.db import session_scope
from core.services import workouts
from core.services.side_effects import SideEffects
from core.validators import CompletionToggleInput, WorkoutCreateInput

router = APIRouter(prefix="/workouts", tags=["workouts"])


@router.get("/today")
def get_todays_workouts(principal: Principal, db: DbSession) -> dict[str, Any]:
    data = workouts.get_todays_workouts(db, principal.user_id)
    return {**data, "workouts": [WorkoutOut.model_validate(w) for w in data["workouts"]]}


@router.get("/clients/{client_id}", response_model=list[WorkoutOut])
def get_client_workouts(client_id: int, principal: Principal, db: DbSession):
    return workouts.get_client_workouts(db, principal.user_id, client_id)


@router.post("", response_model=WorkoutOut, status_code=201)
async def create_workout(body: WorkoutCreateInput, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        result = WorkoutOut.model_validate(workouts.create_workout(s, principal.user_id, body, effects))
    await effects.flush()
    return result


@router.post("/{workout_id}/complete", response_model=WorkoutOut)
async def mark_complete(workout_id: int, body: CompletionToggleInput, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        result = WorkoutOut.model_validate(workouts.mark_complete(s, principal.user_id, workout_id, body.completed, effects))
    await effects.flush()
    return result
