"""Integration tests exercising API endpoints via FastAPI's TestClient."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient


def register_user(client: TestClient, login: str, password: str) -> dict[str, Any]:
    response = client.post("/api/auth/register", json={"login": login, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


def login_user(client: TestClient, login: str, password: str) -> str:
    response = client.post(
        "/api/auth/login",
        json={"login": login, "password": password},
    )
    assert response.status_code == 200, response.text
    body = response.json()
    return body["access_token"]


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def create_profile(client: TestClient, token: str, user_name: str, **overrides) -> dict[str, Any]:
    payload = {
        "user_name": user_name,
        "name": user_name.title(),
        "gender": "female",
        "birth_date": "1992-04-03",
        "country": "de",
        "spoken_languages": ["en", "de"],
        "learning_languages": ["ja"],
    }
    payload.update(overrides)
    response = client.post("/api/users/me/profile", json=payload, headers=auth_headers(token))
    assert response.status_code == 201, response.text
    return response.json()


def signup(client: TestClient, login: str) -> tuple[int, dict[str, str]]:
    """Register, log in and complete the profile of a user."""

    password = f"{login}-password"
    user = register_user(client, login, password)
    token = login_user(client, login, password)
    create_profile(client, token, login)
    return user["id"], auth_headers(token)


def make_friends(client: TestClient, first: tuple[int, dict], second: tuple[int, dict]) -> None:
    response = client.post(
        "/api/friends/requests", json={"receiver_id": second[0]}, headers=first[1]
    )
    assert response.status_code == 201, response.text
    friendship_id = response.json()["id"]
    response = client.post(f"/api/friends/requests/{friendship_id}/accept", headers=second[1])
    assert response.status_code == 200, response.text


def test_register_and_login_flow(client: TestClient):
    """End-to-end flow for registering and logging in a user."""

    response = client.post("/api/auth/register", json={"login": "alice", "password": "wonderland"})
    assert response.status_code == 201
    data = response.json()
    assert data["login"] == "alice"

    login_response = client.post(
        "/api/auth/login", json={"login": "alice", "password": "wonderland"}
    )
    assert login_response.status_code == 200
    token_data = login_response.json()
    assert token_data["token_type"] == "bearer"
    assert isinstance(token_data["access_token"], str)

    duplicate = client.post("/api/auth/register", json={"login": "alice", "password": "wonderland"})
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "conflict_state"

    wrong = client.post("/api/auth/login", json={"login": "alice", "password": "not-the-one"})
    assert wrong.status_code == 401
    assert wrong.json()["code"] == "unauthenticated"


def test_profile_creation_and_lookup(client: TestClient):
    alice_id, alice = signup(client, "alice")
    bob_id, bob = signup(client, "bob")

    me = client.get("/api/users/me", headers=alice)
    assert me.status_code == 200
    assert me.json()["user_name"] == "alice"
    assert me.json()["country"] == "DE"
    assert me.json()["age_group"] == "18-100"

    availability = client.get(
        "/api/users/username-availability", params={"user_name": "alice"}, headers=bob
    )
    assert availability.json() == {"user_name": "alice", "available": False}

    own = client.get(f"/api/users/{alice_id}/profile", headers=alice).json()
    assert own["ok"] is False

    other = client.get(f"/api/users/{alice_id}/profile", params={"locale": "en"}, headers=bob).json()
    assert other["ok"] is True
    assert other["profile"]["country"] == "\U0001F1E9\U0001F1EA Germany"
    assert other["profile"]["spoken_languages"] == ["English", "German"]
    assert other["profile"]["is_friend"] is False

    missing = client.get("/api/users/9999/profile", headers=bob)
    assert missing.status_code == 404
    assert missing.json()["code"] == "not_found"

    assert bob_id != alice_id


def test_friendship_conversation_and_messages(client: TestClient):
    alice = signup(client, "alice")
    bob = signup(client, "bob")
    make_friends(client, alice, bob)

    friends = client.get("/api/friends", headers=alice[1]).json()
    assert [entry["user_id"] for entry in friends["page"]] == [bob[0]]
    assert friends["is_done"] is True

    response = client.post("/api/conversations", json={"other_user_id": bob[0]}, headers=alice[1])
    assert response.status_code == 201, response.text
    conversation_id = response.json()["conversation_id"]

    response = client.post(
        "/api/messages",
        params={"conversation_id": conversation_id},
        json={"type": "text", "content": "Hallo Bob!"},
        headers=alice[1],
    )
    assert response.status_code == 201, response.text
    message_id = response.json()["message_id"]

    assert client.get("/api/conversations/unread", headers=bob[1]).json() == {"has_unread": True}

    listing = client.get(
        "/api/messages", params={"conversation_id": conversation_id}, headers=bob[1]
    ).json()
    assert [item["message_id"] for item in listing["page"]] == [message_id]
    assert listing["page"][0]["sender"]["sender_name"] == "Alice"

    response = client.post(
        f"/api/messages/{message_id}/correction",
        json={"correction": "Hallo, Bob!"},
        headers=bob[1],
    )
    assert response.status_code == 200, response.text

    response = client.post(
        "/api/messages/read", params={"conversation_id": conversation_id}, headers=bob[1]
    )
    assert response.json() == {"success": True}
    assert client.get("/api/conversations/unread", headers=bob[1]).json() == {"has_unread": False}

    conversations = client.get("/api/conversations", headers=bob[1]).json()
    assert conversations["page"][0]["conversation_id"] == conversation_id
    assert conversations["page"][0]["last_message"]["content"] == "Hallo Bob!"


def test_posts_reactions_and_notifications(client: TestClient):
    alice = signup(client, "alice")
    bob = signup(client, "bob")
    make_friends(client, alice, bob)

    response = client.post("/api/posts", json={"content": "First post"}, headers=alice[1])
    assert response.status_code == 201, response.text
    post_id = response.json()["post_id"]

    feed = client.get("/api/posts/feed", headers=bob[1]).json()
    assert [item["post_id"] for item in feed["page"]] == [post_id]

    reaction = client.post(
        f"/api/posts/{post_id}/reactions", json={"emoji": "\U0001F44D"}, headers=bob[1]
    )
    assert reaction.json() == {"has_reacted": True, "user_reaction": "\U0001F44D"}

    comment = client.post(
        f"/api/posts/{post_id}/comments", json={"content": "Great"}, headers=bob[1]
    )
    assert comment.status_code == 201, comment.text
    comment_id = comment.json()["comment_id"]

    details = client.get(f"/api/posts/{post_id}", headers=alice[1]).json()
    assert details["reactions_count"] == 1
    assert details["comments_count"] == 1

    assert client.get("/api/notifications/unread", headers=alice[1]).json() == {"has_unread": True}
    notifications = client.get("/api/notifications", headers=alice[1]).json()
    assert {item["type"] for item in notifications["page"]} >= {"post_reaction", "post_commented"}
    marked = client.post("/api/notifications/read", headers=alice[1]).json()
    assert marked["updated"] >= 2
    assert client.get("/api/notifications/unread", headers=alice[1]).json() == {"has_unread": False}

    deleted = client.delete(f"/api/comments/{comment_id}", headers=bob[1])
    assert deleted.json() == {"deleted_count": 1}

    forbidden = client.delete(f"/api/posts/{post_id}", headers=bob[1])
    assert forbidden.status_code == 403
    assert forbidden.json()["code"] == "not_authorized"


@pytest.mark.parametrize(
    "path",
    [
        "/api/friends",
        "/api/friends/requests",
        "/api/posts/feed",
        "/api/notifications",
        "/api/users/discover",
    ],
)
def test_anonymous_lists_are_empty(client: TestClient, path: str):
    response = client.get(path)

    assert response.status_code == 200
    assert response.json() == {"page": [], "is_done": True, "continue_cursor": ""}


def test_discover_lists_strangers_but_not_friends(client: TestClient):
    alice = signup(client, "alice")
    bob = signup(client, "bob")
    carol = signup(client, "carol")
    make_friends(client, alice, bob)

    response = client.get("/api/users/discover", params={"learning_language": "ja"}, headers=alice[1])

    assert response.status_code == 200, response.text
    body = response.json()
    assert [card["user_id"] for card in body["page"]] == [carol[0]]
    assert body["page"][0]["learning_languages"] == ["ja"]

    country = client.get("/api/users/me/country", headers=alice[1])
    assert country.json() == {"country": "DE"}
    assert client.get("/api/users/me/country").json() == {"country": None}


def test_anonymous_messages_are_empty(client: TestClient):
    response = client.get("/api/messages", params={"conversation_id": "1-2"})

    assert response.json() == {"page": [], "is_done": True, "continue_cursor": ""}


def test_mutations_require_authentication(client: TestClient):
    response = client.post("/api/posts", json={"content": "anonymous"})

    assert response.status_code == 401
    assert response.json()["code"] == "unauthenticated"

    response = client.get("/api/users/me", headers=auth_headers("not-a-token"))
    assert response.status_code == 401


def test_error_codes_for_rule_violations(client: TestClient):
    alice = signup(client, "alice")
    bob = signup(client, "bob")

    response = client.post("/api/conversations", json={"other_user_id": bob[0]}, headers=alice[1])
    assert response.status_code == 403

    response = client.post("/api/friends/requests", json={"receiver_id": alice[0]}, headers=alice[1])
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_argument"

    response = client.post("/api/friends/requests", json={"receiver_id": bob[0]}, headers=alice[1])
    assert response.status_code == 201
    response = client.post("/api/friends/requests", json={"receiver_id": alice[0]}, headers=bob[1])
    assert response.status_code == 409

    response = client.get("/api/messages", headers=alice[1])
    assert response.status_code == 400


def test_request_validation_and_bad_cursor(client: TestClient):
    alice = signup(client, "alice")

    response = client.post("/api/posts", json={}, headers=alice[1])
    assert response.status_code == 422

    response = client.get("/api/posts/feed", params={"num_items": 0}, headers=alice[1])
    assert response.status_code == 422

    response = client.get("/api/posts/feed", params={"cursor": "garbage"}, headers=alice[1])
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_argument"


def test_health_and_root(client: TestClient):
    assert client.get("/health").json()["status"] == "ok"
    assert client.get("/api/").status_code == 200
