from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from core.errors import BadRequest, Forbidden, NotFound
from core.models import ROLE_CLIENT, ROLE_COACH, Client, Conversation, Message, User, UserSettings
from core.services import delivery
from core.services.access import require_coach
from core.services.side_effects import SideEffects
from core.validators import SendMessageInput

logger = logging.getLogger(__name__)

WELCOME_PREFIX = "Welcome to NextLevel Coaching!"
EMAIL_PREVIEW_CHARS = 100


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def user_brief(user: User | None) -> dict[str, Any] | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "avatar_url": user.settings.avatar_url if user.settings else None,
    }


def _participant_filter(user_id: str):
    return or_(
        Conversation.coach_id == user_id,
        Conversation.client_id == user_id,
        Conversation.client1_id == user_id,
        Conversation.client2_id == user_id,
    )


def _user_settings(s: Session, user_id: str) -> UserSettings | None:
    return s.execute(select(UserSettings).where(UserSettings.user_id == user_id)).scalar_one_or_none()


def get_participant_conversation(s: Session, user_id: str, conversation_id: int) -> Conversation:
    conv = s.execute(
        select(Conversation).where(Conversation.id == conversation_id, _participant_filter(user_id))
    ).scalar_one_or_none()
    if conv is None:
        raise NotFound("Conversation not found")
    return conv


def find_or_create_coach_conversation(s: Session, coach_id: str, client_user_id: str) -> Conversation:
    conv = s.execute(
        select(Conversation).where(Conversation.coach_id == coach_id, Conversation.client_id == client_user_id)
    ).scalar_one_or_none()
    if conv is None:
        conv = Conversation(type="COACH_CLIENT", coach_id=coach_id, client_id=client_user_id)
        s.add(conv)
        s.flush()
    return conv


def find_or_create_client_conversation(s: Session, user_a: str, user_b: str) -> Conversation:
    conv = s.execute(
        select(Conversation).where(
            Conversation.type == "CLIENT_CLIENT",
            or_(
                (Conversation.client1_id == user_a) & (Conversation.client2_id == user_b),
                (Conversation.client1_id == user_b) & (Conversation.client2_id == user_a),
            ),
        )
    ).scalar_one_or_none()
    if conv is None:
        conv = Conversation(type="CLIENT_CLIENT", client1_id=user_a, client2_id=user_b)
        s.add(conv)
        s.flush()
    return conv


def unread_count(s: Session, user_id: str) -> int:
    return int(
        s.execute(
            select(func.count(Message.id))
            .join(Conversation, Message.conversation_id == Conversation.id)
            .where(_participant_filter(user_id), Message.sender_id != user_id, Message.is_read.is_(False))
        ).scalar_one()
    )


def message_payload(msg: Message) -> dict[str, Any]:
    return {
        "id": msg.id,
        "conversation_id": msg.conversation_id,
        "sender_id": msg.sender_id,
        "content": msg.content,
        "attachment_url": msg.attachment_url,
        "created_at": msg.created_at,
        "requires_acknowledgment": msg.requires_acknowledgment,
    }


def post_message(
    s: Session,
    conv: Conversation,
    sender: User,
    content: str,
    effects: SideEffects,
    *,
    attachment: dict[str, Any] | None = None,
    requires_acknowledgment: bool = False,
    data: dict[str, Any] | None = None,
    notify_email: bool = True,
) -> Message:
    """Persist a message, bump the conversation and queue delivery to the other participants."""
    now = datetime.utcnow()
    msg = Message(
        conversation_id=conv.id,
        sender_id=sender.id,
        content=content,
        requires_acknowledgment=requires_acknowledgment,
        data=data,
        created_at=now,
        **(attachment or {}),
    )
    s.add(msg)
    conv.updated_at = now
    s.flush()

    sender_name = sender.name or sender.email.split("@")[0]
    payload = message_payload(msg)
    for recipient_id in sorted(conv.participant_ids() - {sender.id}):
        context = {"conversation_id": conv.id, "recipient_id": recipient_id}
        prefs = _user_settings(s, recipient_id)
        recipient = s.get(User, recipient_id)
        effects.add("realtime.new_message", delivery.publish_realtime, recipient_id, "new_message", {"message": payload}, context=context)
        if prefs is None or prefs.push_notifications:
            effects.add(
                "push.new_message",
                delivery.send_push,
                recipient_id,
                f"New message from {sender_name}",
                truncate(content or "Sent an attachment", EMAIL_PREVIEW_CHARS),
                {"conversation_id": conv.id},
                context=context,
            )
        if notify_email and recipient is not None and (prefs is None or prefs.email_notifications):
            effects.add(
                "email.new_message",
                delivery.send_email,
                recipient.email,
                f"New message from {sender_name}",
                truncate(content or "Sent an attachment", EMAIL_PREVIEW_CHARS),
                template="new_message",
                context=context,
            )
        effects.add(
            "realtime.unread_count",
            delivery.publish_realtime,
            recipient_id,
            "unread_count",
            {"count": unread_count(s, recipient_id)},
            context=context,
        )
    return msg


def send_welcome_message(s: Session, coach: User, client_user_id: str, effects: SideEffects) -> Message | None:
    """Welcome a newly linked client; no-op once the conversation holds any message."""
    conv = find_or_create_coach_conversation(s, coach.id, client_user_id)
    prefs = _user_settings(s, coach.id)
    coach_name = coach.name or coach.email.split("@")[0] or "Your Coach"
    content = (prefs.default_welcome_message if prefs and prefs.default_welcome_message else None) or (
        f"{WELCOME_PREFIX} Hi there, I'm {coach_name}, your coach. I'm excited to work with you and help you "
        "reach your goals. Feel free to message me anytime with questions, concerns, or just to chat about your progress."
    )
    existing = s.execute(select(Message.id).where(Message.conversation_id == conv.id).limit(1)).first()
    if existing is not None:
        return None
    msg = post_message(s, conv, coach, content, effects, data={"type": "WELCOME"}, notify_email=False)
    logger.info("welcome_message_sent", extra={"coach_id": coach.id, "client_user_id": client_user_id})
    return msg


# -- conversations --


def get_conversations(s: Session, user_id: str, limit: int = 8, offset: int = 0) -> dict[str, Any]:
    total = int(s.execute(select(func.count(Conversation.id)).where(_participant_filter(user_id))).scalar_one())
    rows = s.execute(
        select(Conversation)
        .where(_participant_filter(user_id))
        .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
        .offset(offset)
        .limit(limit)
    ).scalars().all()
    items = [conversation_summary(s, conv, user_id) for conv in rows]
    return {"conversations": items, "total_count": total, "has_more": offset + limit < total}


def conversation_summary(s: Session, conv: Conversation, user_id: str) -> dict[str, Any]:
    last = s.execute(
        select(Message).where(Message.conversation_id == conv.id).order_by(Message.created_at.desc(), Message.id.desc()).limit(1)
    ).scalar_one_or_none()
    return {
        "id": conv.id,
        "type": conv.type,
        "coach": user_brief(s.get(User, conv.coach_id)) if conv.coach_id else None,
        "client": user_brief(s.get(User, conv.client_id)) if conv.client_id else None,
        "client1": user_brief(s.get(User, conv.client1_id)) if conv.client1_id else None,
        "client2": user_brief(s.get(User, conv.client2_id)) if conv.client2_id else None,
        "last_message": message_payload(last) if last else None,
        "unread_count": _conversation_unread(s, conv.id, user_id),
        "updated_at": conv.updated_at,
    }


def _conversation_unread(s: Session, conversation_id: int, user_id: str) -> int:
    return int(
        s.execute(
            select(func.count(Message.id)).where(
                Message.conversation_id == conversation_id,
                Message.sender_id != user_id,
                Message.is_read.is_(False),
            )
        ).scalar_one()
    )


def get_conversation_unread_counts(s: Session, user_id: str) -> dict[int, int]:
    rows = s.execute(
        select(Message.conversation_id, func.count(Message.id))
        .join(Conversation, Message.conversation_id == Conversation.id)
        .where(_participant_filter(user_id), Message.sender_id != user_id, Message.is_read.is_(False))
        .group_by(Message.conversation_id)
    ).all()
    return {int(conv_id): int(count) for conv_id, count in rows}


def get_messages(s: Session, user_id: str, conversation_id: int) -> list[Message]:
    get_participant_conversation(s, user_id, conversation_id)
    messages = list(
        s.execute(
            select(Message).where(Message.conversation_id == conversation_id).order_by(Message.created_at.asc(), Message.id.asc())
        ).scalars().all()
    )
    for msg in messages:
        if msg.sender_id != user_id and not msg.is_read:
            msg.is_read = True
    s.flush()
    return messages


def send_message(s: Session, user_id: str, conversation_id: int, body: SendMessageInput, effects: SideEffects) -> Message:
    conv = get_participant_conversation(s, user_id, conversation_id)
    sender = s.get(User, user_id)
    if sender is None:
        raise NotFound("Sender not found")
    attachment = {
        "attachment_url": body.attachment_url,
        "attachment_type": body.attachment_type,
        "attachment_name": body.attachment_name,
        "attachment_size": body.attachment_size,
    }
    msg = post_message(s, conv, sender, body.content, effects, attachment=attachment)
    logger.info("message_sent", extra={"conversation_id": conv.id, "message_id": msg.id})
    return msg


def create_conversation(s: Session, user_id: str, other_user_id: str) -> Conversation:
    me = s.get(User, user_id)
    other = s.get(User, other_user_id)
    if me is None or other is None or not me.role or not other.role:
        raise BadRequest("Invalid users")
    if me.role == ROLE_COACH and other.role == ROLE_CLIENT:
        coach_id, client_id = me.id, other.id
    elif me.role == ROLE_CLIENT and other.role == ROLE_COACH:
        coach_id, client_id = other.id, me.id
    else:
        raise BadRequest("Can only create conversations between coach and client")
    return find_or_create_coach_conversation(s, coach_id, client_id)


def create_conversation_with_client(s: Session, user_id: str, client_id: int) -> Conversation:
    require_coach(s, user_id, "create conversations with clients")
    client = s.execute(select(Client).where(Client.id == client_id, Client.coach_id == user_id)).scalar_one_or_none()
    if client is None:
        raise NotFound("Client not found or not accessible")
    if not client.user_id:
        placeholder = User(
            id=f"placeholder-client-{client.id}",
            email=client.email or f"client-{client.id}@placeholder.com",
            name=client.name,
            role=ROLE_CLIENT,
        )
        s.add(placeholder)
        s.flush()
        client.user_id = placeholder.id
    return find_or_create_coach_conversation(s, user_id, client.user_id)


def mark_as_read(s: Session, user_id: str, conversation_id: int) -> int:
    get_participant_conversation(s, user_id, conversation_id)
    rows = s.execute(
        select(Message).where(
            Message.conversation_id == conversation_id, Message.sender_id != user_id, Message.is_read.is_(False)
        )
    ).scalars().all()
    for msg in rows:
        msg.is_read = True
    return len(rows)


def delete_conversation(s: Session, user_id: str, conversation_id: int) -> None:
    conv = get_participant_conversation(s, user_id, conversation_id)
    s.delete(conv)
    logger.info("conversation_deleted", extra={"conversation_id": conversation_id})


def acknowledge_message(s: Session, user_id: str, message_id: int) -> Message:
    msg = s.get(Message, message_id)
    if msg is None:
        raise NotFound("Message not found")
    get_participant_conversation(s, user_id, msg.conversation_id)
    if not msg.requires_acknowledgment:
        raise BadRequest("Message does not require acknowledgment")
    msg.is_acknowledged = True
    msg.acknowledged_at = datetime.utcnow()
    msg.acknowledged_by = user_id
    return msg


def send_mass_message(s: Session, user_id: str, client_ids: list[int], body: SendMessageInput, effects: SideEffects) -> dict[str, Any]:
    coach = require_coach(s, user_id, "send mass messages")
    wanted = list(dict.fromkeys(client_ids))
    clients = s.execute(select(Client).where(Client.id.in_(wanted), Client.coach_id == coach.id)).scalars().all()
    if len(clients) != len(wanted):
        raise Forbidden("Some clients do not belong to you")
    by_id = {c.id: c for c in clients}
    attachment = {
        "attachment_url": body.attachment_url,
        "attachment_type": body.attachment_type,
        "attachment_name": body.attachment_name,
        "attachment_size": body.attachment_size,
    }
    results: list[dict[str, Any]] = []
    for client_id in wanted:
        client = by_id[client_id]
        if not client.user_id:
            results.append({"client_id": client_id, "success": False, "error": "Client has no user account"})
            continue
        conv = find_or_create_coach_conversation(s, coach.id, client.user_id)
        msg = post_message(s, conv, coach, body.content, effects, attachment=attachment)
        results.append({"client_id": client_id, "success": True, "message_id": msg.id, "conversation_id": conv.id})
    sent = sum(1 for r in results if r["success"])
    logger.info("mass_message_sent", extra={"coach_id": coach.id, "total_sent": sent, "total_failed": len(results) - sent})
    return {"results": results, "total_sent": sent, "total_failed": len(results) - sent}
