from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, Request, Response

from api.deps import DbSession, Principal
from api.ratelimit import limiter
from api.schemas import ConversationOut, CountResponse, MassMessageOut, MessageOut, SuccessResponse
from core.config import get_settings
from core.db import session_scope
from core.services import messaging
from core.services.side_effects import SideEffects
from core.validators import ConversationCreateInput, ConversationWithClientInput, MassMessageInput, SendMessageInput

router = APIRouter(tags=["messaging"])


@router.get("/conversations")
def get_conversations(
    principal: Principal,
    db: DbSession,
    limit: int = Query(8, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> dict[str, Any]:
    return messaging.get_conversations(db, principal.user_id, limit=limit, offset=offset)


@router.get("/conversations/unread-counts")
def get_conversation_unread_counts(principal: Principal, db: DbSession) -> dict[int, int]:
    return messaging.get_conversation_unread_counts(db, principal.user_id)


@router.get("/conversations/unread-count", response_model=CountResponse)
def get_unread_count(principal: Principal, db: DbSession):
    return CountResponse(count=messaging.unread_count(db, principal.user_id))


@router.post("/conversations", response_model=ConversationOut, status_code=201)
def create_conversation(body: ConversationCreateInput, principal: Principal):
    with session_scope() as s:
        return ConversationOut.model_validate(messaging.create_conversation(s, principal.user_id, body.other_user_id))


@router.post("/conversations/with-client", response_model=ConversationOut, status_code=201)
def create_conversation_with_client(body: ConversationWithClientInput, principal: Principal):
    with session_scope() as s:
        conv = messaging.create_conversation_with_client(s, principal.user_id, body.client_id)
        return ConversationOut.model_validate(conv)


@router.get("/conversations/{conversation_id}")
def get_conversation(conversation_id: int, principal: Principal, db: DbSession) -> dict[str, Any]:
    conv = messaging.get_participant_conversation(db, principal.user_id, conversation_id)
    return messaging.conversation_summary(db, conv, principal.user_id)


@router.delete("/conversations/{conversation_id}", response_model=SuccessResponse)
def delete_conversation(conversation_id: int, principal: Principal):
    with session_scope() as s:
        messaging.delete_conversation(s, principal.user_id, conversation_id)
    return SuccessResponse()


@router.get("/conversations/{conversation_id}/messages", response_model=list[MessageOut])
def get_messages(conversation_id: int, principal: Principal):
    # fetching marks the other side's messages read
    with session_scope() as s:
        return [MessageOut.model_validate(m) for m in messaging.get_messages(s, principal.user_id, conversation_id)]


@router.post("/conversations/{conversation_id}/messages", response_model=MessageOut, status_code=201)
@limiter.limit(get_settings().message_rate_limit)
async def send_message(
    request: Request, response: Response, conversation_id: int, body: SendMessageInput, principal: Principal
):
    del request, response
    effects = SideEffects()
    with session_scope() as s:
        msg = messaging.send_message(s, principal.user_id, conversation_id, body, effects)
        result = MessageOut.model_validate(msg)
    await effects.flush()
    return result


@router.post("/conversations/{conversation_id}/read", response_model=CountResponse)
def mark_as_read(conversation_id: int, principal: Principal):
    with session_scope() as s:
        return CountResponse(count=messaging.mark_as_read(s, principal.user_id, conversation_id))


@router.post("/messages/mass", response_model=MassMessageOut)
@limiter.limit(get_settings().message_rate_limit)
async def send_mass_message(request: Request, response: Response, body: MassMessageInput, principal: Principal):
    del request, response
    effects = SideEffects()
    with session_scope() as s:
        result = messaging.send_mass_message(s, principal.user_id, body.client_ids, body, effects)
    await effects.flush()
    return result


@router.post("/messages/{message_id}/acknowledge", response_model=MessageOut)
def acknowledge_message(message_id: int, principal: Principal):
    with session_scope() as s:
        return MessageOut.model_validate(messaging.acknowledge_message(s, principal.user_id, message_id))
