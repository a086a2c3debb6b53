from __future__ import annotations

import json
import logging
from collections import defaultdict
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Open sockets per user id. A user may hold several (tabs, devices)."""

    def __init__(self) -> None:
        self.connections: dict[str, set[WebSocket]] = defaultdict(set)

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.connections[user_id].add(websocket)
        logger.debug("realtime_connected", extra={"user_id": user_id, "sockets": len(self.connections[user_id])})

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        if user_id in self.connections:
            self.connections[user_id].discard(websocket)
            if not self.connections[user_id]:
                del self.connections[user_id]

    def is_online(self, user_id: str) -> bool:
        return bool(self.connections.get(user_id))

    async def send_to_user(self, user_id: str, event: str, payload: dict[str, Any]) -> int:
        """Send one frame to every socket of ``user_id``; returns how many received it."""
        if user_id not in self.connections:
            return 0
        msg = json.dumps({"event": event, "payload": payload}, default=str)
        delivered = 0
        stale: list[WebSocket] = []
        for ws in list(self.connections[user_id]):
            try:
                await ws.send_text(msg)
                delivered += 1
            except Exception:
                stale.append(ws)
        for ws in stale:
            self.disconnect(user_id, ws)
        if stale:
            logger.info("realtime_stale_dropped", extra={"user_id": user_id, "dropped": len(stale)})
        return delivered


manager = ConnectionManager()
