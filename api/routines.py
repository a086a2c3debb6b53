from __future__ import annotations

from fastapi import APIRouter

from api.deps import DbSession, Principal
from api.schemas import CountResponse, RoutineAssignmentOut, RoutineDeleteOut, RoutineOut, SuccessResponse
from core.db import session_scope
from core.services import routines
from core.services.side_effects import SideEffects
from core.validators import RoutineAssignInput, RoutineCreateInput, RoutineUpdateInput

router = APIRouter(prefix="/routines", tags=["routines"])


@router.get("", response_model=list[RoutineOut])
def list_routines(principal: Principal, db: DbSession):
    return routines.list_routines(db, principal.user_id)


@router.post("", response_model=RoutineOut, status_code=201)
def create_routine(body: RoutineCreateInput, principal: Principal):
    with session_scope() as s:
        return RoutineOut.model_validate(routines.create_routine(s, principal.user_id, body))


@router.delete("/assignments/{assignment_id}", response_model=SuccessResponse)
def unassign(assignment_id: int, principal: Principal):
    with session_scope() as s:
        routines.unassign(s, principal.user_id, assignment_id)
    return SuccessResponse()


@router.get("/clients/{client_id}/assignments", response_model=list[RoutineAssignmentOut])
def get_client_routine_assignments(client_id: int, principal: Principal, db: DbSession):
    return routines.get_client_routine_assignments(db, principal.user_id, client_id)


@router.get("/{routine_id}", response_model=RoutineOut)
def get_routine(routine_id: int, principal: Principal, db: DbSession):
    return routines.get_routine(db, principal.user_id, routine_id)


@router.patch("/{routine_id}", response_model=RoutineOut)
def update_routine(routine_id: int, body: RoutineUpdateInput, principal: Principal):
    with session_scope() as s:
        return RoutineOut.model_validate(routines.update_routine(s, principal.user_id, routine_id, body))


@router.delete("/{routine_id}", response_model=RoutineDeleteOut)
def delete_routine(routine_id: int, principal: Principal):
    with session_scope() as s:
        return routines.delete_routine(s, principal.user_id, routine_id)


@router.post("/{routine_id}/assign", response_model=list[RoutineAssignmentOut], status_code=201)
async def assign_routine(routine_id: int, body: RoutineAssignInput, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        rows = routines.assign_routine(s, principal.user_id, routine_id, body, effects)
        result = [RoutineAssignmentOut.model_validate(r) for r in rows]
    await effects.flush()
    return result


@router.get("/{routine_id}/assignments", response_model=list[RoutineAssignmentOut])
def get_routine_assignments(routine_id: int, principal: Principal, db: DbSession):
    return routines.get_routine_assignments(db, principal.user_id, routine_id)


@router.delete("/{routine_id}/clients/{client_id}", response_model=CountResponse)
def unassign_specific_routine(routine_id: int, client_id: int, principal: Principal):
    with session_scope() as s:
        return CountResponse(count=routines.unassign_specific_routine(s, principal.user_id, routine_id, client_id))
