from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from api import (
    admin,
    analytics,
    client_portal,
    clients,
    events,
    library,
    messaging,
    notifications,
    programs,
    progress,
    routines,
    scheduling,
    settings,
    time_swap,
    users,
    workouts,
)
from api.auth import decode_access_token
from api.realtime import manager

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1")

for _module in (
    users,
    clients,
    client_portal,
    programs,
    routines,
    library,
    messaging,
    notifications,
    events,
    scheduling,
    workouts,
    progress,
    analytics,
    settings,
    admin,
    time_swap,
):
    router.include_router(_module.router)


@router.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.websocket("/ws")
async def realtime_ws(websocket: WebSocket, token: str = Query(default="")):
    try:
        principal = decode_access_token(token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    await manager.connect(principal.user_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(principal.user_id, websocket)
