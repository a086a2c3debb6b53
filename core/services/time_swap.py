"""Client-to-client lesson time swaps.

Requests stay anonymous towards the other client. Approval swaps the two
events' clients and can succeed only once per request.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from core.errors import BadRequest, Conflict, Forbidden, NotFound
from core.models import Client, Event, TimeSwapRequest, User
from core.services.access import require_client_record
from core.services.messaging import find_or_create_client_conversation, post_message
from core.services.notifications import notify
from core.services.side_effects import SideEffects
from core.validators import TimeSwapCreateInput

logger = logging.getLogger(__name__)

PENDING = "PENDING"


def _when(value: datetime) -> str:
    return f"{value:%Y-%m-%d} at {value:%H:%M}"


def _linked_client(s: Session, user_id: str) -> Client:
    client = require_client_record(s, user_id)
    if not client.user_id:
        raise Forbidden("Only clients can access this endpoint")
    return client


def create_request(s: Session, user_id: str, body: TimeSwapCreateInput, effects: SideEffects) -> TimeSwapRequest:
    me = _linked_client(s, user_id)
    if body.requester_event_id == body.target_event_id:
        raise BadRequest("You cannot swap a lesson with itself")

    mine = s.execute(
        select(Event).where(Event.id == body.requester_event_id, Event.client_id == me.id)
    ).scalar_one_or_none()
    if mine is None:
        raise NotFound("Your event not found")
    target_event = s.get(Event, body.target_event_id)
    target_client = s.get(Client, target_event.client_id) if target_event and target_event.client_id else None
    if target_event is None or target_client is None:
        raise NotFound("Target event or client not found")
    if target_client.id == me.id:
        raise BadRequest("You cannot swap with your own lesson")
    if mine.coach_id != target_event.coach_id:
        raise BadRequest("You can only swap lessons with the same coach")
    if not target_client.user_id:
        raise BadRequest("The other client has no account to receive the request")

    existing = s.execute(
        select(TimeSwapRequest.id).where(
            TimeSwapRequest.status == PENDING,
            or_(
                (TimeSwapRequest.requester_id == me.user_id) & (TimeSwapRequest.target_id == target_client.user_id),
                (TimeSwapRequest.requester_id == target_client.user_id) & (TimeSwapRequest.target_id == me.user_id),
            ),
        )
    ).first()
    if existing is not None:
        raise Conflict("A swap request already exists between these clients")

    request = TimeSwapRequest(
        requester_id=me.user_id,
        target_id=target_client.user_id,
        requester_event_id=mine.id,
        target_event_id=target_event.id,
        status=PENDING,
    )
    s.add(request)
    s.flush()

    sender = s.get(User, me.user_id)
    conv = find_or_create_client_conversation(s, me.user_id, target_client.user_id)
    msg = post_message(
        s,
        conv,
        sender,
        f"Another client would like to swap lesson times. They want to swap their lesson on {_when(mine.date)} "
        f"for your lesson on {_when(target_event.date)}.",
        effects,
        requires_acknowledgment=True,
        data={
            "type": "SWAP_REQUEST",
            "swap_request_id": request.id,
            "requester_event_id": mine.id,
            "target_event_id": target_event.id,
            "requester_name": "Another Client",
            "target_event_title": target_event.title,
            "requester_event_date": mine.date.isoformat(),
            "target_event_date": target_event.date.isoformat(),
        },
        notify_email=False,
    )
    notify(
        s,
        target_client.user_id,
        "SCHEDULE_REQUEST",
        "New Swap Request",
        "You have a new time swap request from another client",
        effects,
        data={"conversation_id": conv.id, "message_id": msg.id, "swap_request_id": request.id},
    )
    logger.info("time_swap_requested", extra={"swap_request_id": request.id})
    return request


def request_view(s: Session, request: TimeSwapRequest) -> dict[str, Any]:
    def brief(event_id: int) -> dict[str, Any] | None:
        event = s.get(Event, event_id)
        if event is None:
            return None
        return {"id": event.id, "title": event.title, "date": event.date, "end_time": event.end_time}

    return {
        "id": request.id,
        "status": request.status,
        "requester_id": request.requester_id,
        "target_id": request.target_id,
        "requester_event": brief(request.requester_event_id),
        "target_event": brief(request.target_event_id),
        "created_at": request.created_at,
        "approved_at": request.approved_at,
        "declined_at": request.declined_at,
    }


def get_requests(s: Session, user_id: str) -> dict[str, list[dict[str, Any]]]:
    me = _linked_client(s, user_id)
    sent = s.execute(
        select(TimeSwapRequest).where(TimeSwapRequest.requester_id == me.user_id).order_by(TimeSwapRequest.created_at.desc())
    ).scalars().all()
    received = s.execute(
        select(TimeSwapRequest).where(TimeSwapRequest.target_id == me.user_id).order_by(TimeSwapRequest.created_at.desc())
    ).scalars().all()
    return {"sent": [request_view(s, r) for r in sent], "received": [request_view(s, r) for r in received]}


def _load(s: Session, request_id: int) -> TimeSwapRequest:
    request = s.get(TimeSwapRequest, request_id)
    if request is None:
        raise NotFound("Swap request not found")
    return request


def approve(s: Session, user_id: str, request_id: int, effects: SideEffects) -> TimeSwapRequest:
    me = _linked_client(s, user_id)
    request = _load(s, request_id)
    if request.target_id != me.user_id:
        raise Forbidden("Only the receiving client can approve this request")

    now = datetime.utcnow()
    claimed = s.execute(
        update(TimeSwapRequest)
        .where(TimeSwapRequest.id == request.id, TimeSwapRequest.status == PENDING)
        .values(status="APPROVED", approved_at=now)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        raise BadRequest("Swap request was already processed")
    s.refresh(request)

    requester = s.execute(select(Client).where(Client.user_id == request.requester_id)).scalar_one_or_none()
    requester_event = s.get(Event, request.requester_event_id)
    target_event = s.get(Event, request.target_event_id)
    if requester is None or requester_event is None or target_event is None:
        raise NotFound("Swap request events no longer exist")
    # raising here rolls the claim back with the rest of the transaction
    if requester_event.client_id != requester.id or target_event.client_id != me.id:
        raise Conflict("These lessons have changed hands since the request was made")
    requester_event.client_id = me.id
    target_event.client_id = requester.id

    event_ids = (requester_event.id, target_event.id)
    expired = s.execute(
        update(TimeSwapRequest)
        .where(
            TimeSwapRequest.id != request.id,
            TimeSwapRequest.status == PENDING,
            or_(TimeSwapRequest.requester_event_id.in_(event_ids), TimeSwapRequest.target_event_id.in_(event_ids)),
        )
        .values(status="EXPIRED")
        .execution_options(synchronize_session=False)
    )

    notify(
        s,
        requester_event.coach_id,
        "SCHEDULE_REQUEST",
        "Time Swap Completed",
        "Two clients have automatically switched their lesson times.",
        effects,
        data={
            "swap_request_id": request.id,
            "requester_event_title": requester_event.title,
            "target_event_title": target_event.title,
        },
    )
    conv = find_or_create_client_conversation(s, me.user_id, request.requester_id)
    post_message(
        s,
        conv,
        s.get(User, me.user_id),
        "Great! I've approved your swap request. Our lessons have been automatically swapped.",
        effects,
        data={"type": "SWAP_APPROVAL", "swap_request_id": request.id},
        notify_email=False,
    )
    s.flush()
    logger.info("time_swap_approved", extra={"swap_request_id": request.id, "expired_requests": int(expired.rowcount or 0)})
    return request


def decline(s: Session, user_id: str, request_id: int) -> TimeSwapRequest:
    me = _linked_client(s, user_id)
    request = _load(s, request_id)
    if request.target_id != me.user_id:
        raise Forbidden("Only the receiving client can decline this request")
    if request.status != PENDING:
        raise BadRequest("Swap request was already processed")
    request.status = "DECLINED"
    request.declined_at = datetime.utcnow()
    logger.info("time_swap_declined", extra={"swap_request_id": request.id})
    return request


def cancel(s: Session, user_id: str, request_id: int, effects: SideEffects) -> TimeSwapRequest:
    me = _linked_client(s, user_id)
    request = _load(s, request_id)
    if request.requester_id != me.user_id:
        raise Forbidden("Only the requesting client can cancel this request")
    if request.status != PENDING:
        raise BadRequest("Swap request was already processed")
    request.status = "EXPIRED"

    conv = find_or_create_client_conversation(s, me.user_id, request.target_id)
    post_message(
        s,
        conv,
        s.get(User, me.user_id),
        "Switch request cancelled. Another client has cancelled their request to switch lessons.",
        effects,
        data={"type": "SWAP_CANCELLATION", "swap_request_id": request.id},
        notify_email=False,
    )
    logger.info("time_swap_cancelled", extra={"swap_request_id": request.id})
    return request


def get_available_events(s: Session, user_id: str, now: datetime | None = None) -> list[Event]:
    me = _linked_client(s, user_id)
    if not me.coach_id:
        return []
    return list(
        s.execute(
            select(Event)
            .where(
                Event.coach_id == me.coach_id,
                Event.client_id.is_not(None),
                Event.client_id != me.id,
                Event.date >= (now or datetime.utcnow()),
                Event.status != "CANCELLED",
            )
            .order_by(Event.date)
        ).scalars().all()
    )
