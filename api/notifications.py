from __future__ import annotations

from fastapi import APIRouter, Query

from api.deps import DbSession, Principal
from api.schemas import CountResponse, NotificationOut, SuccessResponse
from core.db import session_scope
from core.services import notifications
from core.services.side_effects import SideEffects
from core.validators import IdsInput, NotificationCreateInput

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
def get_notifications(
    principal: Principal,
    db: DbSession,
    limit: int = Query(default=20, ge=1, le=100),
    unread_only: bool = False,
):
    return notifications.get_notifications(db, principal.user_id, limit=limit, unread_only=unread_only)


@router.get("/unread-count", response_model=CountResponse)
def get_unread_count(principal: Principal, db: DbSession):
    return CountResponse(count=notifications.get_unread_count(db, principal.user_id))


@router.post("", response_model=NotificationOut, status_code=201)
async def create_notification(body: NotificationCreateInput, principal: Principal):
    effects = SideEffects()
    with session_scope() as s:
        result = NotificationOut.model_validate(notifications.create_notification(s, principal.user_id, body, effects))
    await effects.flush()
    return result


@router.post("/read-all", response_model=CountResponse)
def mark_all_as_read(principal: Principal):
    with session_scope() as s:
        return CountResponse(count=notifications.mark_all_as_read(s, principal.user_id))


@router.post("/delete", response_model=CountResponse)
def delete_multiple(body: IdsInput, principal: Principal):
    with session_scope() as s:
        return CountResponse(count=notifications.delete_multiple(s, principal.user_id, body.ids))


@router.post("/{notification_id}/read", response_model=NotificationOut)
def mark_as_read(notification_id: int, principal: Principal):
    with session_scope() as s:
        return NotificationOut.model_validate(notifications.mark_as_read(s, principal.user_id, notification_id))


@router.delete("/{notification_id}", response_model=SuccessResponse)
def delete_notification(notification_id: int, principal: Principal):
    with session_scope() as s:
        notifications.delete_notification(s, principal.user_id, notification_id)
    return SuccessResponse()
