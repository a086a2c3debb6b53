"""Caller lookups shared by every resource.

Roles live on the user row; the token only says who is calling.
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.errors import BadRequest, Forbidden, NotFound, Unauthorized
from core.models import ROLE_CLIENT, ROLE_COACH, Client, User


def get_user(s: Session, user_id: str) -> User:
    user = s.get(User, user_id)
    if user is None:
        raise Unauthorized("User not found")
    return user


def require_coach(s: Session, user_id: str, action: str = "perform this action") -> User:
    user = s.get(User, user_id)
    if user is None or user.role != ROLE_COACH:
        raise Forbidden(f"Only coaches can {action}")
    return user


def require_admin(s: Session, user_id: str) -> User:
    user = s.get(User, user_id)
    if user is None or not user.is_admin:
        raise Forbidden("Admin access required")
    return user


def require_client_record(s: Session, user_id: str) -> Client:
    client = s.execute(select(Client).where(Client.user_id == user_id)).scalar_one_or_none()
    if client is None:
        raise Forbidden("Only clients can access this endpoint")
    return client


def find_client_record(s: Session, user_id: str) -> Client | None:
    return s.execute(select(Client).where(Client.user_id == user_id)).scalar_one_or_none()


def owned_client(s: Session, coach_id: str, client_id: int) -> Client:
    client = s.execute(select(Client).where(Client.id == client_id, Client.coach_id == coach_id)).scalar_one_or_none()
    if client is None:
        raise NotFound("Client not found or not assigned to you")
    return client


def owned_clients(s: Session, coach_id: str, client_ids: Iterable[int], *, active_only: bool = False) -> list[Client]:
    """All requested clients, or BadRequest if any is not this coach's."""
    wanted = set(client_ids)
    q = select(Client).where(Client.id.in_(wanted), Client.coach_id == coach_id)
    if active_only:
        q = q.where(Client.archived.is_(False))
    rows = list(s.execute(q).scalars().all())
    if len(rows) != len(wanted):
        raise BadRequest("Some clients not found or don't belong to you")
    return rows


def is_role(user: User | None, role: str) -> bool:
    return user is not None and user.role == role


def is_coach(user: User | None) -> bool:
    return is_role(user, ROLE_COACH)


def is_client(user: User | None) -> bool:
    return is_role(user, ROLE_CLIENT)
