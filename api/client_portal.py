from __future__ import annotations

from datetime import date
from typing import Any, Optional

from fastapi import APIRouter

from api.deps import DbSession, Principal
from api.schemas import ClientOut, CoachNotesOut, EventOut, ProgramAssignmentOut, RoutineAssignmentOut, VideoAssignmentOut
from core.db import session_scope
from core.services import client_portal, routines
from core.services.side_effects import SideEffects
from core.validators import (
    CompletionToggleInput,
    DrillCompletionInput,
    NoteToCoachInput,
    ProgramDrillCompletionInput,
    RoutineExerciseCompletionInput,
)

router = APIRouter(prefix="/me", tags=["client-portal"])


@router.get("/client", response_model=ClientOut)
def get_my_client_record(principal: Principal, db: DbSession):
    return client_portal.get_my_client_record(db, principal.user_id)


@router.get("/next-lesson", response_model=Optional[EventOut])
def get_next_lesson(principal: Principal, db: DbSession):
    return client_portal.get_next_lesson(db, principal.user_id)


@router.get("/coach-notes", response_model=CoachNotesOut)
def get_coach_notes(principal: Principal, db: DbSession):
    return client_portal.get_coach_notes(db, principal.user_id)


@router.get("/calendar")
def get_program_calendar(
    principal: Principal,
    db: DbSession,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> dict[str, Any]:
    return client_portal.get_program_calendar(db, principal.user_id, start, end)


@router.post("/drills/complete")
def mark_drill_complete(body: DrillCompletionInput, principal: Principal) -> dict[str, Any]:
    with session_scope() as s:
        return client_portal.mark_drill_complete(s, principal.user_id, body.drill_id, body.completed)


@router.post("/program-drills/complete")
def mark_program_drill_complete(body: ProgramDrillCompletionInput, principal: Principal) -> dict[str, Any]:
    with session_scope() as s:
        return client_portal.mark_program_drill_complete(
            s, principal.user_id, body.drill_id, body.program_assignment_id, body.completed
        )


@router.post("/routine-exercises/complete")
def mark_routine_exercise_complete(body: RoutineExerciseCompletionInput, principal: Principal) -> dict[str, Any]:
    with session_scope() as s:
        return client_portal.mark_routine_exercise_complete(
            s, principal.user_id, body.exercise_id, body.routine_assignment_id, body.completed
        )


@router.post("/programs/{assignment_id}/complete", response_model=ProgramAssignmentOut)
def mark_program_complete(assignment_id: int, principal: Principal):
    with session_scope() as s:
        return ProgramAssignmentOut.model_validate(client_portal.mark_program_complete(s, principal.user_id, assignment_id))


@router.get("/video-assignments", response_model=list[VideoAssignmentOut])
def get_my_video_assignments(principal: Principal, db: DbSession):
    return client_portal.get_my_video_assignments(db, principal.user_id)


@router.post("/video-assignments/{assignment_id}/complete", response_model=VideoAssignmentOut)
def mark_video_assignment_complete(assignment_id: int, body: CompletionToggleInput, principal: Principal):
    with session_scope() as s:
        row = client_portal.mark_video_assignment_complete(s, principal.user_id, assignment_id, body.completed)
        return VideoAssignmentOut.model_validate(row)


@router.get("/routine-assignments", response_model=list[RoutineAssignmentOut])
def get_my_routine_assignments(principal: Principal, db: DbSession):
    return routines.get_my_routine_assignments(db, principal.user_id)


@router.post("/notes", status_code=201)
async def send_note_to_coach(body: NoteToCoachInput, principal: Principal) -> dict[str, Any]:
    effects = SideEffects()
    with session_scope() as s:
        result = client_portal.send_note_to_coach(s, principal.user_id, body.note, effects)
    await effects.flush()
    return result
