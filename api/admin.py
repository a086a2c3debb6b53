from __future__ import annotations

from fastapi import APIRouter

from api.deps import DbSession, Principal
from api.schemas import AdminStatsOut, LibraryResourceOut, SuccessResponse, UserOut
from core.db import session_scope
from core.services import admin
from core.services.side_effects import SideEffects
from core.validators import AdminStatusInput, LibraryResourceUpdateInput, MasterResourceCreateInput

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/master-library", response_model=list[LibraryResourceOut])
def get_master_library(principal: Principal, db: DbSession):
    """Active master resources; readable by any signed-in user."""
    return admin.get_master_library(db, principal.user_id)


@router.get("/master-library/all", response_model=list[LibraryResourceOut])
def get_master_library_for_admin(principal: Principal, db: DbSession):
    return admin.get_master_library_for_admin(db, principal.user_id)


@router.get("/stats", response_model=AdminStatsOut)
def get_stats(principal: Principal, db: DbSession):
    return admin.get_stats(db, principal.user_id)


@router.post("/master-library", response_model=LibraryResourceOut, status_code=201)
def add_to_master_library(body: MasterResourceCreateInput, principal: Principal):
    with session_scope() as s:
        return LibraryResourceOut.model_validate(admin.add_to_master_library(s, principal.user_id, body))


@router.patch("/master-library/{resource_id}", response_model=LibraryResourceOut)
def update_master_resource(resource_id: int, body: LibraryResourceUpdateInput, principal: Principal):
    with session_scope() as s:
        return LibraryResourceOut.model_validate(admin.update_master_resource(s, principal.user_id, resource_id, body))


@router.post("/master-library/{resource_id}/toggle", response_model=LibraryResourceOut)
def toggle_resource_status(resource_id: int, principal: Principal):
    with session_scope() as s:
        return LibraryResourceOut.model_validate(admin.toggle_resource_status(s, principal.user_id, resource_id))


@router.delete("/master-library/{resource_id}", response_model=SuccessResponse)
async def delete_master_resource(resource_id: int, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        admin.delete_master_resource(s, principal.user_id, resource_id, effects)
    await effects.flush()
    return SuccessResponse()


@router.get("/users", response_model=list[UserOut])
def get_users(principal: Principal, db: DbSession):
    return admin.get_users(db, principal.user_id)


@router.patch("/users/{target_id}/admin", response_model=UserOut)
def update_user_admin_status(target_id: str, body: AdminStatusInput, principal: Principal):
    with session_scope() as s:
        return UserOut.model_validate(admin.update_user_admin_status(s, principal.user_id, target_id, body.is_admin))
