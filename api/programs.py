from __future__ import annotations

from fastapi import APIRouter

from api.deps import DbSession, Principal
from api.schemas import (
    CategoryCount,
    CountResponse,
    DayOut,
    DrillOut,
    ProgramAssignmentOut,
    ProgramDetailOut,
    ProgramOut,
    ProgramSummaryOut,
    SuccessResponse,
    WeekOut,
)
from core.db import session_scope
from core.services import programs
from core.services.side_effects import SideEffects
from core.validators import (
    AssignmentProgressInput,
    ClientIdsInput,
    DayCreateInput,
    DrillInput,
    DrillUpdateInput,
    ProgramAssignInput,
    ProgramCreateInput,
    ProgramUpdateInput,
    WeekCreateInput,
    WeekUpdateInput,
)

router = APIRouter(prefix="/programs", tags=["programs"])


@router.get("", response_model=list[ProgramSummaryOut])
def list_programs(principal: Principal, db: DbSession):
    return programs.list_programs(db, principal.user_id)


@router.get("/categories", response_model=list[CategoryCount])
def get_categories(principal: Principal, db: DbSession):
    return programs.get_categories(db, principal.user_id)


@router.post("", response_model=ProgramOut, status_code=201)
def create_program(body: ProgramCreateInput, principal: Principal):
    with session_scope() as s:
        return ProgramOut.model_validate(programs.create_program(s, principal.user_id, body))


# ── Structure edits ──


@router.patch("/weeks/{week_id}", response_model=WeekOut)
def update_week(week_id: int, body: WeekUpdateInput, principal: Principal):
    with session_scope() as s:
        return WeekOut.model_validate(programs.update_week(s, principal.user_id, week_id, body))


@router.delete("/weeks/{week_id}", response_model=ProgramOut)
def delete_week(week_id: int, principal: Principal):
    with session_scope() as s:
        return ProgramOut.model_validate(programs.delete_week(s, principal.user_id, week_id))


@router.post("/weeks/{week_id}/days", response_model=DayOut, status_code=201)
def create_day(week_id: int, body: DayCreateInput, principal: Principal):
    with session_scope() as s:
        return DayOut.model_validate(programs.create_day(s, principal.user_id, week_id, body))


@router.post("/days/{day_id}/toggle-rest", response_model=DayOut)
def toggle_rest_day(day_id: int, principal: Principal):
    with session_scope() as s:
        return DayOut.model_validate(programs.toggle_rest_day(s, principal.user_id, day_id))


@router.post("/days/{day_id}/drills", response_model=DrillOut, status_code=201)
def add_exercise(day_id: int, body: DrillInput, principal: Principal):
    with session_scope() as s:
        return DrillOut.model_validate(programs.add_exercise(s, principal.user_id, day_id, body))


@router.patch("/drills/{drill_id}", response_model=DrillOut)
def update_exercise(drill_id: int, body: DrillUpdateInput, principal: Principal):
    with session_scope() as s:
        return DrillOut.model_validate(programs.update_exercise(s, principal.user_id, drill_id, body))


@router.delete("/drills/{drill_id}", response_model=SuccessResponse)
def delete_exercise(drill_id: int, principal: Principal):
    with session_scope() as s:
        programs.delete_exercise(s, principal.user_id, drill_id)
    return SuccessResponse()


@router.patch("/assignments/{assignment_id}/progress", response_model=ProgramAssignmentOut)
def update_assignment_progress(assignment_id: int, body: AssignmentProgressInput, principal: Principal):
    with session_scope() as s:
        row = programs.update_assignment_progress(s, principal.user_id, assignment_id, body.progress)
        return ProgramAssignmentOut.model_validate(row)


# ── Single program ──


@router.get("/{program_id}", response_model=ProgramDetailOut)
def get_program(program_id: int, principal: Principal, db: DbSession):
    return programs.get_program(db, principal.user_id, program_id)


@router.patch("/{program_id}", response_model=ProgramOut)
def update_program(program_id: int, body: ProgramUpdateInput, principal: Principal):
    with session_scope() as s:
        return ProgramOut.model_validate(programs.update_program(s, principal.user_id, program_id, body))


@router.delete("/{program_id}", response_model=SuccessResponse)
def delete_program(program_id: int, principal: Principal):
    with session_scope() as s:
        programs.delete_program(s, principal.user_id, program_id)
    return SuccessResponse()


@router.post("/{program_id}/duplicate", response_model=ProgramOut, status_code=201)
def duplicate_program(program_id: int, principal: Principal):
    with session_scope() as s:
        return ProgramOut.model_validate(programs.duplicate_program(s, principal.user_id, program_id))


@router.post("/{program_id}/weeks", response_model=WeekOut, status_code=201)
def create_week(program_id: int, body: WeekCreateInput, principal: Principal):
    with session_scope() as s:
        return WeekOut.model_validate(programs.create_week(s, principal.user_id, program_id, body))


@router.get("/{program_id}/active-clients", response_model=CountResponse)
def get_active_client_count(program_id: int, principal: Principal, db: DbSession):
    return CountResponse(count=programs.get_active_client_count(db, principal.user_id, program_id))


@router.get("/{program_id}/assignments", response_model=list[ProgramAssignmentOut])
def get_program_assignments(program_id: int, principal: Principal, db: DbSession):
    return programs.get_program_assignments(db, principal.user_id, program_id)


@router.post("/{program_id}/assign", response_model=list[ProgramAssignmentOut], status_code=201)
async def assign_to_clients(program_id: int, body: ProgramAssignInput, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        rows = programs.assign_to_clients(s, principal.user_id, program_id, body, effects)
        result = [ProgramAssignmentOut.model_validate(r) for r in rows]
    await effects.flush()
    return result


@router.post("/{program_id}/unassign", response_model=CountResponse)
def unassign_from_clients(program_id: int, body: ClientIdsInput, principal: Principal):
    with session_scope() as s:
        return CountResponse(count=programs.unassign_from_clients(s, principal.user_id, program_id, body.client_ids))
