"""In-process hub pushing invalidation events to connected WebSocket clients.

Events are hints only: a client that receives one re-runs the affected
queries. Delivery failures are ignored and never affect a committed mutation.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Dict, Iterable, Set

from fastapi.websockets import WebSocket, WebSocketState

logger = logging.getLogger(__name__)


class EventHub:
    """Tracks active WebSocket connections per user."""

    def __init__(self) -> None:
        self._connections: Dict[int, Set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, user_id: int, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections[user_id].add(websocket)

    async def disconnect(self, user_id: int, websocket: WebSocket) -> None:
        async with self._lock:
            sockets = self._connections.get(user_id)
            if not sockets:
                return
            sockets.discard(websocket)
            if not sockets:
                self._connections.pop(user_id, None)

    async def connection_count(self, user_id: int) -> int:
        async with self._lock:
            return len(self._connections.get(user_id, ()))

    async def publish(self, recipients: Iterable[int], payload: dict) -> None:
        unique_recipients = set(recipients)
        if not unique_recipients:
            return
        async with self._lock:
            targets = [
                (recipient_id, list(self._connections.get(recipient_id, set())))
                for recipient_id in unique_recipients
            ]
        for recipient_id, sockets in targets:
            for socket in sockets:
                if socket.application_state != WebSocketState.CONNECTED:
                    continue
                try:
                    await socket.send_json(payload)
                except RuntimeError:
                    logger.debug("Dropping %s event for user %s", payload.get("type"), recipient_id)
                    continue


event_hub = EventHub()
"""Process-wide hub used by the routers after each commit."""
