from __future__ import annotations

import logging
import secrets
import string
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.errors import BadRequest, NotFound
from core.models import ROLE_CLIENT, ROLE_COACH, Client, Notification, User
from core.services import delivery
from core.services.access import require_coach
from core.services.messaging import send_welcome_message
from core.services.notifications import notify
from core.services.side_effects import SideEffects
from core.validators import RoleUpdateInput

logger = logging.getLogger(__name__)

INVITE_ALPHABET = string.ascii_uppercase + string.digits
MAX_INVITE_ATTEMPTS = 10


def make_invite_code() -> str:
    head = "".join(secrets.choice(INVITE_ALPHABET) for _ in range(6))
    tail = "".join(secrets.choice(INVITE_ALPHABET) for _ in range(4))
    return f"NLS-{head}-{tail}"


def ensure_user(s: Session, user_id: str, email: Optional[str], name: Optional[str]) -> User:
    user = s.get(User, user_id)
    if user is not None:
        return user
    if not email:
        raise BadRequest("Email is required to create user")
    user = User(id=user_id, email=email, name=name)
    s.add(user)
    s.flush()
    logger.info("user_created", extra={"user_id": user_id})
    return user


def _coach_by(s: Session, **criteria) -> User | None:
    q = select(User).where(User.role == ROLE_COACH)
    for column, value in criteria.items():
        q = q.where(getattr(User, column) == value)
    return s.execute(q).scalar_one_or_none()


def _request_to_join(s: Session, user: User, coach: User, effects: SideEffects, *, via_invite_code: bool) -> Client:
    data = {
        "client_user_id": user.id,
        "client_name": user.name,
        "client_email": user.email,
        "requires_approval": True,
    }
    if via_invite_code:
        data["via_invite_code"] = True
    suffix = " using your invite code" if via_invite_code else ""
    notify(
        s,
        coach.id,
        "CLIENT_JOIN_REQUEST",
        "New Athlete Join Request",
        f"{user.name or 'A new athlete'} ({user.email}) has requested to join your coaching program{suffix}.",
        effects,
        data=data,
    )
    effects.add(
        "email.client_join_request",
        delivery.send_email,
        coach.email,
        "New client request",
        f"{user.name or 'New Client'} ({user.email}) would like to join your coaching program.",
        template="new_client_request",
        context={"coach_id": coach.id, "client_user_id": user.id},
    )

    client = s.execute(select(Client).where(Client.user_id == user.id)).scalar_one_or_none()
    if client is None:
        client = Client(user_id=user.id, name=user.name or "New Client", email=user.email, coach_id=None)
        s.add(client)
    else:
        client.name = user.name or "New Client"
        client.email = user.email
        client.coach_id = None
    s.flush()
    logger.info("client_join_requested", extra={"coach_id": coach.id, "client_user_id": user.id})
    return client


def update_role(
    s: Session, user_id: str, email: Optional[str], name: Optional[str], body: RoleUpdateInput, effects: SideEffects
) -> User:
    user = ensure_user(s, user_id, email, name)
    user.role = body.role
    if body.role != ROLE_CLIENT:
        return user

    coach: User | None = None
    via_invite_code = False
    if body.coach_id:
        coach = _coach_by(s, id=body.coach_id)
        if coach is None:
            raise NotFound("Coach not found")
    elif body.invite_code:
        coach = _coach_by(s, invite_code=body.invite_code)
        if coach is None:
            raise NotFound("Invalid invite code. Please check with your coach and try again.")
        via_invite_code = True
    elif body.coach_email:
        coach = _coach_by(s, email=str(body.coach_email))
        if coach is None:
            raise NotFound("No coach found with that email address. Please verify the email and try again.")
    else:
        raise BadRequest("A coach connection is required. Please provide either an invite code or your coach's email address.")

    _request_to_join(s, user, coach, effects, via_invite_code=via_invite_code)
    return user


def generate_invite_code(s: Session, user_id: str) -> str:
    coach = require_coach(s, user_id, "generate invite codes")
    if coach.invite_code:
        return coach.invite_code
    for _ in range(MAX_INVITE_ATTEMPTS):
        code = make_invite_code()
        if s.execute(select(User.id).where(User.invite_code == code)).first() is None:
            coach.invite_code = code
            s.flush()
            return code
    raise BadRequest("Could not generate a unique invite code, please retry")


def validate_invite_code(s: Session, code: str) -> dict[str, Any]:
    coach = _coach_by(s, invite_code=code)
    if coach is None:
        return {"valid": False, "coach": None}
    return {"valid": True, "coach": {"id": coach.id, "name": coach.name, "email": coach.email}}


def check_coach_exists(s: Session, email: str) -> dict[str, Any]:
    coach = _coach_by(s, email=email)
    if coach is None:
        return {"exists": False, "coach": None}
    return {"exists": True, "coach": {"id": coach.id, "name": coach.name, "email": coach.email}}


def auto_assign_via_invite_code(s: Session, user_id: str, invite_code: str, effects: SideEffects) -> Client:
    user = s.get(User, user_id)
    if user is None:
        raise BadRequest("User not found. Please complete sign up first.")
    coach = _coach_by(s, invite_code=invite_code)
    if coach is None:
        raise NotFound("Invalid invite code")
    user.role = ROLE_CLIENT
    return _request_to_join(s, user, coach, effects, via_invite_code=True)


def _join_request(s: Session, coach_id: str, notification_id: int) -> tuple[Notification, Client]:
    note = s.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == coach_id,
            Notification.type == "CLIENT_JOIN_REQUEST",
        )
    ).scalar_one_or_none()
    if note is None:
        raise NotFound("Join request not found")
    client_user_id = (note.data or {}).get("client_user_id")
    client = s.execute(select(Client).where(Client.user_id == client_user_id)).scalar_one_or_none() if client_user_id else None
    if client is None:
        raise NotFound("Client record for this request not found")
    return note, client


def accept_client_request(s: Session, user_id: str, notification_id: int, effects: SideEffects) -> Client:
    coach = require_coach(s, user_id, "accept client requests")
    note, client = _join_request(s, coach.id, notification_id)
    client.coach_id = coach.id
    client.archived = False
    client.archived_at = None
    note.is_read = True
    note.data = {**(note.data or {}), "requires_approval": False, "status": "accepted"}
    s.flush()
    send_welcome_message(s, coach, client.user_id, effects)
    logger.info("client_request_accepted", extra={"coach_id": coach.id, "client_id": client.id})
    return client


def reject_client_request(s: Session, user_id: str, notification_id: int) -> None:
    coach = require_coach(s, user_id, "reject client requests")
    note, client = _join_request(s, coach.id, notification_id)
    if client.coach_id is None:
        s.delete(client)
    note.is_read = True
    note.data = {**(note.data or {}), "requires_approval": False, "status": "rejected"}
    logger.info("client_request_rejected", extra={"coach_id": coach.id, "notification_id": notification_id})


def check_email_exists(s: Session, email: str) -> bool:
    return s.execute(select(User.id).where(User.email == email)).first() is not None


def delete_account(s: Session, user_id: str) -> None:
    user = s.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    for client in s.execute(select(Client).where(Client.user_id == user_id)).scalars().all():
        client.user_id = None
    s.flush()
    s.delete(user)
    logger.info("account_deleted", extra={"user_id": user_id})


def get_coaches(s: Session) -> list[User]:
    return list(s.execute(select(User).where(User.role == ROLE_COACH).order_by(User.name)).scalars().all())


def get_profile(s: Session, user_id: str) -> User:
    user = s.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user
