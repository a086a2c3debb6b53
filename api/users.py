from __future__ import annotations

from fastapi import APIRouter, Query
from pydantic import EmailStr

from api.deps import DbSession, Principal
from api.schemas import (
    ClientOut,
    CoachExistsCheck,
    ExistsResponse,
    InviteCodeCheck,
    InviteCodeResponse,
    NotificationOut,
    ProfileOut,
    SuccessResponse,
    UserOut,
)
from core.db import session_scope
from core.services import notifications, users
from core.services.side_effects import SideEffects
from core.validators import InviteCodeInput, RoleUpdateInput

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/role", response_model=ProfileOut)
async def update_role(body: RoleUpdateInput, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        user = users.update_role(s, principal.user_id, principal.email, principal.name, body, effects)
        result = ProfileOut.model_validate(user)
    await effects.flush()
    return result


@router.get("/me", response_model=ProfileOut)
def get_profile(principal: Principal, db: DbSession):
    return users.get_profile(db, principal.user_id)


@router.delete("/me", response_model=SuccessResponse)
def delete_account(principal: Principal):
    with session_scope() as s:
        users.delete_account(s, principal.user_id)
    return SuccessResponse()


@router.post("/invite-code", response_model=InviteCodeResponse)
def generate_invite_code(principal: Principal):
    with session_scope() as s:
        code = users.generate_invite_code(s, principal.user_id)
    return InviteCodeResponse(invite_code=code)


@router.get("/invite-code/{code}", response_model=InviteCodeCheck)
def validate_invite_code(code: str, db: DbSession):
    return users.validate_invite_code(db, code)


@router.post("/invite-code/accept", response_model=ClientOut)
async def auto_assign_via_invite_code(body: InviteCodeInput, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        client = users.auto_assign_via_invite_code(s, principal.user_id, body.invite_code, effects)
        result = ClientOut.model_validate(client)
    await effects.flush()
    return result


@router.get("/coach-exists", response_model=CoachExistsCheck)
def check_coach_exists(db: DbSession, email: EmailStr = Query(...)):
    return users.check_coach_exists(db, str(email))


@router.get("/email-exists", response_model=ExistsResponse)
def check_email_exists(db: DbSession, email: EmailStr = Query(...)):
    return ExistsResponse(exists=users.check_email_exists(db, str(email)))


@router.get("/coaches", response_model=list[UserOut])
def get_coaches(principal: Principal, db: DbSession):
    return users.get_coaches(db)


@router.get("/notifications", response_model=list[NotificationOut])
def get_notifications(
    principal: Principal,
    db: DbSession,
    unread_only: bool = False,
    limit: int = Query(20, ge=1, le=100),
):
    return notifications.get_notifications(db, principal.user_id, limit=limit, unread_only=unread_only)


@router.post("/join-requests/{notification_id}/accept", response_model=ClientOut)
async def accept_client_request(notification_id: int, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        client = users.accept_client_request(s, principal.user_id, notification_id, effects)
        result = ClientOut.model_validate(client)
    await effects.flush()
    return result


@router.post("/join-requests/{notification_id}/reject", response_model=SuccessResponse)
def reject_client_request(notification_id: int, principal: Principal):
    with session_scope() as s:
        users.reject_client_request(s, principal.user_id, notification_id)
    return SuccessResponse()
