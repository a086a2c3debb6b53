from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from core.errors import Forbidden, NotFound
from core.models import LibraryResource, User
from core.services import delivery
from core.services.access import get_user, require_admin
from core.services.side_effects import SideEffects
from core.validators import LibraryResourceUpdateInput, MasterResourceCreateInput

logger = logging.getLogger(__name__)


def _master(s: Session, resource_id: int) -> LibraryResource:
    resource = s.get(LibraryResource, resource_id)
    if resource is None or not resource.is_master_library:
        raise NotFound("Master resource not found")
    return resource


def get_master_library(s: Session, user_id: str) -> list[LibraryResource]:
    get_user(s, user_id)
    return list(
        s.execute(
            select(LibraryResource)
            .where(LibraryResource.is_master_library.is_(True), LibraryResource.is_active.is_(True))
            .order_by(LibraryResource.created_at.desc(), LibraryResource.id.desc())
        ).scalars().all()
    )


def get_master_library_for_admin(s: Session, user_id: str) -> list[LibraryResource]:
    require_admin(s, user_id)
    return list(
        s.execute(
            select(LibraryResource)
            .where(LibraryResource.is_master_library.is_(True))
            .order_by(LibraryResource.created_at.desc(), LibraryResource.id.desc())
        ).scalars().all()
    )


def get_stats(s: Session, user_id: str) -> dict[str, Any]:
    require_admin(s, user_id)
    return {
        "total_resources": int(s.execute(select(func.count(LibraryResource.id))).scalar_one()),
        "master_library_count": int(
            s.execute(select(func.count(LibraryResource.id)).where(LibraryResource.is_master_library.is_(True))).scalar_one()
        ),
        "active_users": int(s.execute(select(func.count(User.id)).where(User.role.is_not(None))).scalar_one()),
        "total_views": int(s.execute(select(func.coalesce(func.sum(LibraryResource.views), 0))).scalar_one()),
    }


def add_to_master_library(s: Session, user_id: str, body: MasterResourceCreateInput) -> LibraryResource:
    admin = require_admin(s, user_id)
    resource = LibraryResource(coach_id=admin.id, is_master_library=True, is_active=True, **body.model_dump())
    s.add(resource)
    s.flush()
    logger.info("master_resource_added", extra={"resource_id": resource.id, "admin_id": admin.id})
    return resource


def update_master_resource(s: Session, user_id: str, resource_id: int, body: LibraryResourceUpdateInput) -> LibraryResource:
    require_admin(s, user_id)
    resource = _master(s, resource_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(resource, key, value)
    return resource


def toggle_resource_status(s: Session, user_id: str, resource_id: int) -> LibraryResource:
    require_admin(s, user_id)
    resource = _master(s, resource_id)
    resource.is_active = not resource.is_active
    return resource


def delete_master_resource(s: Session, user_id: str, resource_id: int, effects: SideEffects) -> None:
    require_admin(s, user_id)
    resource = _master(s, resource_id)
    if not resource.is_youtube and resource.url:
        effects.add("blob.delete", delivery.delete_blob, resource.url, context={"resource_id": resource.id})
    s.delete(resource)
    logger.info("master_resource_deleted", extra={"resource_id": resource_id})


def get_users(s: Session, user_id: str) -> list[User]:
    require_admin(s, user_id)
    return list(s.execute(select(User).order_by(User.created_at.desc())).scalars().all())


def update_user_admin_status(s: Session, user_id: str, target_id: str, is_admin: bool) -> User:
    require_admin(s, user_id)
    if target_id == user_id:
        raise Forbidden("You cannot change your own admin status")
    target = s.get(User, target_id)
    if target is None:
        raise NotFound("User not found")
    target.is_admin = is_admin
    logger.info("admin_status_changed", extra={"target_id": target_id, "is_admin": is_admin})
    return target
