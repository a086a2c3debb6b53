from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from core.errors import Forbidden, NotFound
from core.models import ROLE_CLIENT, Client, Notification, User, UserSettings
from core.services import delivery
from core.services.access import require_coach
from core.services.side_effects import SideEffects
from core.validators import NotificationCreateInput

logger = logging.getLogger(__name__)


def notify(
    s: Session,
    user_id: str,
    type: str,
    title: str,
    message: str,
    effects: SideEffects | None = None,
    data: dict[str, Any] | None = None,
) -> Notification:
    """Store a notification and, when effects are given, queue push and real-time delivery."""
    row = Notification(user_id=user_id, type=type, title=title, message=message, data=data)
    s.add(row)
    s.flush()
    if effects is not None:
        context = {"notification_id": row.id, "user_id": user_id, "type": type}
        prefs = s.execute(select(UserSettings).where(UserSettings.user_id == user_id)).scalar_one_or_none()
        effects.add(
            "realtime.notification",
            delivery.publish_realtime,
            user_id,
            "notification",
            {"id": row.id, "type": type, "title": title, "message": message},
            context=context,
        )
        if prefs is None or prefs.push_notifications:
            effects.add("push.notification", delivery.send_push, user_id, title, message, {"notification_id": row.id}, context=context)
    return row


def get_notifications(s: Session, user_id: str, limit: int = 20, unread_only: bool = False) -> list[Notification]:
    q = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        q = q.where(Notification.is_read.is_(False))
    return list(s.execute(q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)).scalars().all())


def get_unread_count(s: Session, user_id: str) -> int:
    return int(
        s.execute(
            select(func.count(Notification.id)).where(Notification.user_id == user_id, Notification.is_read.is_(False))
        ).scalar_one()
    )


def _own(s: Session, user_id: str, notification_id: int) -> Notification:
    row = s.execute(
        select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
    ).scalar_one_or_none()
    if row is None:
        raise NotFound("Notification not found")
    return row


def mark_as_read(s: Session, user_id: str, notification_id: int) -> Notification:
    row = _own(s, user_id, notification_id)
    row.is_read = True
    return row


def mark_all_as_read(s: Session, user_id: str) -> int:
    result = s.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    return int(result.rowcount or 0)


def delete_notification(s: Session, user_id: str, notification_id: int) -> None:
    s.delete(_own(s, user_id, notification_id))


def delete_multiple(s: Session, user_id: str, ids: list[int]) -> int:
    result = s.execute(delete(Notification).where(Notification.id.in_(ids), Notification.user_id == user_id))
    return int(result.rowcount or 0)


def create_notification(s: Session, user_id: str, body: NotificationCreateInput, effects: SideEffects) -> Notification:
    coach = require_coach(s, user_id, "create notifications")
    target = s.get(User, body.user_id)
    if target is None or target.role != ROLE_CLIENT:
        raise Forbidden("Notifications can only be sent to your clients")
    linked = s.execute(
        select(Client.id).where(Client.user_id == target.id, Client.coach_id == coach.id)
    ).first()
    if linked is None:
        raise Forbidden("Notifications can only be sent to your clients")
    row = notify(s, target.id, body.type, body.title, body.message, effects, data=body.data)
    logger.info("notification_created", extra={"notification_id": row.id, "coach_id": coach.id, "type": body.type})
    return row
