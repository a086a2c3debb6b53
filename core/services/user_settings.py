from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.models import (
    Client,
    Conversation,
    LibraryResource,
    Notification,
    Program,
    User,
    UserSettings,
)
from core.services.access import get_user
from core.validators import ProfileUpdateInput, SettingsUpdateInput

logger = logging.getLogger(__name__)

DEFAULT_LESSON_MINUTES = 60

SETTINGS_FIELDS = (
    "phone",
    "location",
    "bio",
    "avatar_url",
    "email_notifications",
    "push_notifications",
    "sound_notifications",
    "new_client_notifications",
    "message_notifications",
    "schedule_notifications",
    "lesson_reminders_enabled",
    "default_welcome_message",
    "message_retention_days",
    "max_file_size_mb",
    "default_lesson_duration",
    "auto_archive_days",
    "require_client_email",
    "timezone",
    "working_days",
    "two_factor_enabled",
    "compact_sidebar",
    "show_animations",
)


def find_settings(s: Session, user_id: str) -> UserSettings | None:
    return s.execute(select(UserSettings).where(UserSettings.user_id == user_id)).scalar_one_or_none()


def get_or_create_settings(s: Session, user_id: str) -> UserSettings:
    row = find_settings(s, user_id)
    if row is None:
        get_user(s, user_id)
        row = UserSettings(user_id=user_id)
        s.add(row)
        s.flush()
        logger.info("user_settings_created", extra={"user_id": user_id})
    return row


def lesson_minutes(s: Session, coach_id: str) -> int:
    row = find_settings(s, coach_id)
    return row.default_lesson_duration if row and row.default_lesson_duration else DEFAULT_LESSON_MINUTES


def auto_archive_days(s: Session, coach_id: str) -> int | None:
    """Days of inactivity before auto-archive; None until the coach has a settings row."""
    row = find_settings(s, coach_id)
    return row.auto_archive_days if row and row.auto_archive_days else None


def working_days(s: Session, coach_id: str) -> list[str] | None:
    """Weekday names the coach takes lessons on; None means no restriction."""
    row = find_settings(s, coach_id)
    return list(row.working_days) if row and row.working_days else None


def update_settings(s: Session, user_id: str, body: SettingsUpdateInput) -> UserSettings:
    row = get_or_create_settings(s, user_id)
    changes = body.model_dump(exclude_unset=True)
    for key, value in changes.items():
        if key in SETTINGS_FIELDS:
            setattr(row, key, value)
    s.flush()
    logger.info("user_settings_updated", extra={"user_id": user_id, "fields": sorted(changes)})
    return row


def update_profile(s: Session, user_id: str, body: ProfileUpdateInput) -> User:
    user = get_user(s, user_id)
    changes = body.model_dump(exclude_unset=True)
    if changes.get("name"):
        user.name = changes.pop("name")
    else:
        changes.pop("name", None)
    if changes:
        row = get_or_create_settings(s, user_id)
        for key, value in changes.items():
            setattr(row, key, value)
    s.flush()
    return user


def _row_dict(row: Any, *exclude: str) -> dict[str, Any]:
    return {c.key: getattr(row, c.key) for c in row.__table__.columns if c.key not in exclude}


def export_data(s: Session, user_id: str) -> dict[str, Any]:
    """Everything the caller owns, as plain dicts."""
    user = get_user(s, user_id)
    settings_row = find_settings(s, user_id)
    clients = s.execute(select(Client).where(Client.coach_id == user_id)).scalars().all()
    programs = s.execute(select(Program).where(Program.coach_id == user_id)).scalars().all()
    resources = s.execute(select(LibraryResource).where(LibraryResource.coach_id == user_id)).scalars().all()
    notifications = s.execute(
        select(Notification).where(Notification.user_id == user_id).order_by(Notification.created_at.desc())
    ).scalars().all()
    conversations = s.execute(select(Conversation).where(Conversation.coach_id == user_id)).scalars().all()

    return {
        "user": _row_dict(user),
        "settings": _row_dict(settings_row) if settings_row else None,
        "clients": [_row_dict(c) for c in clients],
        "programs": [_row_dict(p) for p in programs],
        "library_resources": [_row_dict(r) for r in resources],
        "notifications": [_row_dict(n) for n in notifications],
        "conversations": [
            {
                **_row_dict(conv),
                "messages": [_row_dict(m) for m in conv.messages],
            }
            for conv in conversations
        ],
        "exported_at": datetime.utcnow(),
    }
