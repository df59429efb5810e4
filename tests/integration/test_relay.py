"""Integration tests for the development relay (FastAPI TestClient)."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from chat_sync.api.v1.routers import ws as ws_router
from chat_sync.app import create_app
from chat_sync.infrastructure.ws.manager import ConnectionManager


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(ws_router, "manager", ConnectionManager())
    return TestClient(create_app())


def _sync(ws) -> None:
    """Round-trip a ping so earlier frames are known to be processed."""
    ws.send_json({"type": "ping"})
    assert ws.receive_json() == {"type": "pong", "data": {}}


def _join(ws, conversation_id: int) -> None:
    ws.send_json({"type": "join-room", "data": {"conversationId": conversation_id}})
    _sync(ws)


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_readyz_counts_connections_and_rooms(client):
    with client.websocket_connect("/ws?userId=1") as ws:
        _join(ws, 5)
        body = client.get("/readyz").json()

    assert body == {"status": "ready", "connections": 1, "rooms": 1}


def test_typing_is_broadcast_to_room_except_sender(client):
    with client.websocket_connect("/ws?userId=1&userName=Ada") as alice, \
            client.websocket_connect("/ws?userId=2&userName=Bo") as bob:
        _join(alice, 5)
        _join(bob, 5)

        alice.send_json({"type": "typing", "data": {"conversationId": 5, "isTyping": True}})
        event = bob.receive_json()
        _sync(alice)

    assert event == {
        "type": "typing",
        "data": {"conversationId": 5, "userId": 1, "userName": "Ada", "isTyping": True},
    }


def test_internal_publish_reaches_room_members_only(client):
    with client.websocket_connect("/ws?userId=1") as inside, \
            client.websocket_connect("/ws?userId=2") as outside:
        _join(inside, 5)
        _join(outside, 6)

        resp = client.post(
            "/internal/events",
            json={"type": "newMessage", "conversationId": 5, "data": {"messageId": 1}},
        )
        event = inside.receive_json()
        _sync(outside)

    assert resp.json() == {"delivered": 1}
    assert event == {"type": "newMessage", "data": {"messageId": 1}}


def test_left_room_stops_receiving(client):
    with client.websocket_connect("/ws?userId=1") as ws:
        _join(ws, 5)
        ws.send_json({"type": "leave-room", "data": {"conversationId": 5}})
        _sync(ws)

        resp = client.post("/internal/events", json={"type": "newMessage", "conversationId": 5})

    assert resp.json() == {"delivered": 0}


@pytest.mark.parametrize(
    "frame, code",
    [
        ("not json", "invalid_payload"),
        ('{"type": "join-room", "data": {}}', "invalid_data"),
        ('{"type": "shout", "data": {}}', "unknown_type"),
    ],
)
def test_bad_frames_get_error_reply(client, frame, code):
    with client.websocket_connect("/ws") as ws:
        ws.send_text(frame)
        reply = ws.receive_json()

    assert reply["type"] == "error"
    assert reply["data"]["code"] == code


def test_internal_publish_reaches_listed_users_outside_the_room(client):
    with client.websocket_connect("/ws?userId=1") as member_in_room, \
            client.websocket_connect("/ws?userId=2") as member_elsewhere:
        _join(member_in_room, 5)
        _join(member_elsewhere, 6)

        resp = client.post(
            "/internal/events",
            json={
                "type": "newMessage",
                "conversationId": 5,
                "userIds": [1, 2],
                "data": {"messageId": 7, "conversationId": 5},
            },
        )
        in_room = member_in_room.receive_json()
        elsewhere = member_elsewhere.receive_json()
        # A pong next proves the room member was not sent a second copy.
        _sync(member_in_room)

    assert resp.json() == {"delivered": 2}
    assert in_room == elsewhere == {
        "type": "newMessage",
        "data": {"messageId": 7, "conversationId": 5},
    }


def test_internal_publish_to_users_only(client):
    with client.websocket_connect("/ws?userId=3") as ws:
        _sync(ws)
        resp = client.post(
            "/internal/events",
            json={"type": "newConversation", "userIds": [3], "data": {"conversationId": 9}},
        )
        event = ws.receive_json()

    assert resp.json() == {"delivered": 1}
    assert event["type"] == "newConversation"


def test_internal_publish_requires_a_target(client):
    resp = client.post("/internal/events", json={"type": "newMessage", "data": {}})

    assert resp.status_code == 422
