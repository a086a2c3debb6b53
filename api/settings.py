from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from api.deps import DbSession, Principal
from api.schemas import ProfileOut, SettingsOut
from core.db import session_scope
from core.services import user_settings
from core.validators import ProfileUpdateInput, SettingsUpdateInput

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=SettingsOut)
def get_settings_row(principal: Principal):
    # first read creates the defaults row
    with session_scope() as s:
        return SettingsOut.model_validate(user_settings.get_or_create_settings(s, principal.user_id))


@router.patch("", response_model=SettingsOut)
def update_settings(body: SettingsUpdateInput, principal: Principal):
    with session_scope() as s:
        return SettingsOut.model_validate(user_settings.update_settings(s, principal.user_id, body))


@router.patch("/profile", response_model=ProfileOut)
def update_profile(body: ProfileUpdateInput, principal: Principal):
    with session_scope() as s:
        return ProfileOut.model_validate(user_settings.update_profile(s, principal.user_id, body))


@router.get("/export")
def export_data(principal: Principal, db: DbSession) -> dict[str, Any]:
    return user_settings.export_data(db, principal.user_id)
