"""WebSocket endpoint streaming invalidation events to the authenticated user."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Dict, TypeVar

from fastapi import APIRouter, WebSocket, status
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from app.api.deps import get_user_from_token
from app.config import get_settings
from app.core.errors import Unauthenticated
from app.database import get_db_session
from app.models import User
from app.services import event_hub

router = APIRouter(prefix="/ws", tags=["ws"])

settings = get_settings()

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def safe_send_json(websocket: WebSocket, data: dict[str, Any]) -> bool:
    """Send JSON unless the socket is gone. Returns whether it was sent."""

    if websocket.application_state != WebSocketState.CONNECTED:
        return False
    try:
        await websocket.send_json(data)
        return True
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.debug("Failed to send websocket message: %s", e)
        return False


async def iter_keepalive_messages(
    websocket: WebSocket,
    receiver: Callable[[], Awaitable[T]],
    *,
    timeout_seconds: float | int | None,
    ping_payload: Dict[str, Any] | None = None,
) -> AsyncIterator[T]:
    """Yield messages from *receiver*, sending a ping whenever the client is idle."""

    ping_payload = ping_payload or {"type": "ping"}
    timeout = float(timeout_seconds) if timeout_seconds else 0.0

    while True:
        try:
            if timeout > 0:
                message = await asyncio.wait_for(receiver(), timeout=timeout)
            else:
                message = await receiver()
        except asyncio.TimeoutError:
            if websocket.application_state != WebSocketState.CONNECTED:
                break
            if not await safe_send_json(websocket, ping_payload):
                break
            continue
        except asyncio.CancelledError:  # pragma: no cover - cooperative cancellation
            raise
        except (RuntimeError, WebSocketDisconnect):
            break
        else:
            yield message


async def _resolve_user(websocket: WebSocket) -> User | None:
    token = websocket.query_params.get("token")
    if not token:
        auth_header = websocket.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.removeprefix("Bearer ").strip()
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Missing token")
        return None

    try:
        with get_db_session() as db:
            return get_user_from_token(token, db)
    except Unauthenticated:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid token")
        return None


@router.websocket("/events")
async def websocket_events(websocket: WebSocket) -> None:
    """Stream invalidation events; clients re-run the affected queries."""

    user = await _resolve_user(websocket)
    if user is None:
        return

    await websocket.accept()
    await event_hub.connect(user.id, websocket)
    await safe_send_json(websocket, {"type": "ready", "user_id": user.id})
    try:
        async for raw_message in iter_keepalive_messages(
            websocket,
            websocket.receive_text,
            timeout_seconds=settings.websocket_receive_timeout_seconds,
        ):
            if not raw_message:
                continue
            if raw_message.strip().lower() == "ping":
                await safe_send_json(websocket, {"type": "pong"})
                continue
            try:
                payload = json.loads(raw_message)
            except json.JSONDecodeError:
                await safe_send_json(websocket, {"type": "error", "detail": "Invalid payload"})
                continue
            if isinstance(payload, dict) and payload.get("type") == "ping":
                await safe_send_json(websocket, {"type": "pong"})
    finally:
        await event_hub.disconnect(user.id, websocket)
