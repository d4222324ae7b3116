from __future__ import annotations

from typing import Any

import pytest
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from app.core.security import create_access_token
from app.models import User
from app.services.realtime import EventHub


class DummyWebSocket:
    def __init__(self, *, fail: bool = False) -> None:
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[dict[str, Any]] = []
        self.fail = fail

    async def send_json(self, payload: dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(payload)


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.mark.anyio("asyncio")
async def test_publish_reaches_every_socket_of_each_recipient():
    hub = EventHub()
    first, second, other = DummyWebSocket(), DummyWebSocket(), DummyWebSocket()
    await hub.connect(1, first)
    await hub.connect(1, second)
    await hub.connect(2, other)

    await hub.publish([1, 1], {"type": "friends_changed"})

    assert first.sent == [{"type": "friends_changed"}]
    assert second.sent == [{"type": "friends_changed"}]
    assert other.sent == []
    assert await hub.connection_count(1) == 2


@pytest.mark.anyio("asyncio")
async def test_publish_skips_closed_and_failing_sockets():
    hub = EventHub()
    closed = DummyWebSocket()
    closed.application_state = WebSocketState.DISCONNECTED
    failing = DummyWebSocket(fail=True)
    healthy = DummyWebSocket()
    for socket in (closed, failing, healthy):
        await hub.connect(7, socket)

    await hub.publish([7], {"type": "notifications_changed"})

    assert closed.sent == []
    assert healthy.sent == [{"type": "notifications_changed"}]


@pytest.mark.anyio("asyncio")
async def test_disconnect_forgets_the_socket():
    hub = EventHub()
    socket = DummyWebSocket()
    await hub.connect(3, socket)

    await hub.disconnect(3, socket)
    await hub.disconnect(3, socket)
    await hub.publish([3], {"type": "groups_changed"})

    assert socket.sent == []
    assert await hub.connection_count(3) == 0


def _token_for(session_factory, login: str) -> tuple[int, str]:
    with session_factory() as session:
        user = User(login=login, hashed_password="hashed")
        session.add(user)
        session.commit()
        user_id = user.id
    return user_id, create_access_token({"sub": str(user_id)})


def test_events_socket_handshake_and_ping(client, session_factory):
    user_id, token = _token_for(session_factory, "listener")

    with client.websocket_connect(f"/ws/events?token={token}") as connection:
        assert connection.receive_json() == {"type": "ready", "user_id": user_id}

        connection.send_text("ping")
        assert connection.receive_json() == {"type": "pong"}

        connection.send_json({"type": "ping"})
        assert connection.receive_json() == {"type": "pong"}

        connection.send_text("{not json")
        assert connection.receive_json()["type"] == "error"


def test_events_socket_accepts_bearer_header(client, session_factory):
    user_id, token = _token_for(session_factory, "header-user")

    with client.websocket_connect(
        "/ws/events", headers={"Authorization": f"Bearer {token}"}
    ) as connection:
        assert connection.receive_json()["user_id"] == user_id


@pytest.mark.parametrize("query", ["", "?token=garbage"])
def test_events_socket_rejects_missing_or_invalid_token(client, query):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws/events{query}") as connection:
            connection.receive_json()


def test_mutations_push_invalidation_events(client, session_factory):
    _, sender_token = _token_for(session_factory, "sender")
    receiver_id, receiver_token = _token_for(session_factory, "receiver")

    with client.websocket_connect(f"/ws/events?token={receiver_token}") as connection:
        assert connection.receive_json()["type"] == "ready"

        response = client.post(
            f"/api/users/{receiver_id}/block",
            headers={"Authorization": f"Bearer {sender_token}"},
        )
        assert response.status_code == 201, response.text

        assert connection.receive_json()["type"] == "notifications_changed"
