from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Query

from api.deps import DbSession, Principal, TimeRangeQuery
from api.schemas import (
    AssignedProgramOut,
    ClientNoteOut,
    ClientOut,
    ComplianceOut,
    ReplacementOut,
    SuccessResponse,
)
from core.db import session_scope
from core.services import clients
from core.services.side_effects import SideEffects
from core.validators import ClientCreateInput, ClientNotesInput, ClientUpdateInput, ReplaceWorkoutInput

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("", response_model=list[ClientOut])
def list_clients(
    principal: Principal,
    archived: bool = False,
    scope: Literal["all", "due_soon", "needs_attention"] = Query("all"),
):
    # listing archives stale clients, so it commits
    with session_scope() as s:
        rows = clients.list_clients(s, principal.user_id, archived=archived, scope=scope)
        return [ClientOut.model_validate(c) for c in rows]


@router.post("", response_model=ClientOut, status_code=201)
async def create_client(body: ClientCreateInput, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        result = ClientOut.model_validate(clients.create_client(s, principal.user_id, body, effects))
    await effects.flush()
    return result


@router.post("/notes/{note_id}/pin", response_model=ClientNoteOut)
def toggle_pin_note(note_id: int, principal: Principal):
    with session_scope() as s:
        return ClientNoteOut.model_validate(clients.toggle_pin_note(s, principal.user_id, note_id))


@router.delete("/replacements/{replacement_id}", response_model=SuccessResponse)
def remove_replacement(replacement_id: int, principal: Principal):
    with session_scope() as s:
        clients.remove_replacement(s, principal.user_id, replacement_id)
    return SuccessResponse()


@router.get("/{client_id}", response_model=ClientOut)
def get_client(client_id: int, principal: Principal, db: DbSession):
    return clients.get_client(db, principal.user_id, client_id)


@router.patch("/{client_id}", response_model=ClientOut)
def update_client(client_id: int, body: ClientUpdateInput, principal: Principal):
    with session_scope() as s:
        return ClientOut.model_validate(clients.update_client(s, principal.user_id, client_id, body))


@router.delete("/{client_id}", response_model=SuccessResponse)
def delete_client(client_id: int, principal: Principal):
    with session_scope() as s:
        clients.delete_client(s, principal.user_id, client_id)
    return SuccessResponse()


@router.put("/{client_id}/notes", response_model=ClientOut)
def update_notes(client_id: int, body: ClientNotesInput, principal: Principal):
    with session_scope() as s:
        return ClientOut.model_validate(clients.update_notes(s, principal.user_id, client_id, body.notes))


@router.get("/{client_id}/notes", response_model=list[ClientNoteOut])
def get_note_history(client_id: int, principal: Principal, db: DbSession):
    return clients.get_note_history(db, principal.user_id, client_id)


@router.post("/{client_id}/archive", response_model=ClientOut)
def archive_client(client_id: int, principal: Principal):
    with session_scope() as s:
        return ClientOut.model_validate(clients.archive_client(s, principal.user_id, client_id))


@router.post("/{client_id}/unarchive", response_model=ClientOut)
def unarchive_client(client_id: int, principal: Principal):
    with session_scope() as s:
        return ClientOut.model_validate(clients.unarchive_client(s, principal.user_id, client_id))


@router.get("/{client_id}/programs", response_model=list[AssignedProgramOut])
def get_assigned_programs(client_id: int, principal: Principal, db: DbSession):
    return clients.get_assigned_programs(db, principal.user_id, client_id)


@router.get("/{client_id}/compliance", response_model=ComplianceOut)
def get_compliance_data(client_id: int, principal: Principal, db: DbSession, period: TimeRangeQuery = "4"):
    return clients.get_compliance_data(db, principal.user_id, client_id, period=period)


@router.post("/{client_id}/replace-workout", response_model=ReplacementOut, status_code=201)
def replace_workout_with_lesson(client_id: int, body: ReplaceWorkoutInput, principal: Principal):
    with session_scope() as s:
        return clients.replace_workout_with_lesson(s, principal.user_id, client_id, body)
