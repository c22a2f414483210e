"""HTTP and WebSocket gateway integration tests."""
from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from mediasync.main import app


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


def _register(client: TestClient, uid: str, name: str, email: str | None = None) -> dict[str, str]:
    headers = {"X-User-Id": uid}
    response = client.post("/profiles", json={"display_name": name, "email": email}, headers=headers)
    assert response.status_code == 200
    return headers


def test_requests_without_identity_are_rejected(client):
    assert client.get("/chats").status_code == 401
    assert client.get("/chats", headers={"X-User-Id": "ghost"}).status_code == 401
    assert client.post("/profiles", json={"display_name": "Nobody"}).status_code == 401


def test_profile_is_created_once(client):
    _register(client, "u1", "Uma")
    response = client.post("/profiles", json={"display_name": "Renamed"}, headers={"X-User-Id": "u1"})

    assert response.status_code == 200
    assert response.json()["display_name"] == "Uma"


def test_chat_flow_over_http(client):
    uma = _register(client, "u1", "Uma")
    vic = _register(client, "u2", "Vic")

    found = client.get("/directory", params={"q": "Vi"}, headers=uma)
    assert found.status_code == 200
    assert [entry["uid"] for entry in found.json()] == ["u2"]
    assert client.get("/directory", params={"q": "  "}, headers=uma).json() == []

    opened = client.post("/chats", json={"remote_uid": "u2"}, headers=uma)
    assert opened.status_code == 200
    chat_id = opened.json()["id"]
    assert opened.json()["last_message"]["text"] == "Chat started"

    reopened = client.post("/chats", json={"remote_uid": "u1"}, headers=vic)
    assert reopened.json()["id"] == chat_id

    sent = client.post(f"/chats/{chat_id}/messages", json={"text": "hello vic"}, headers=uma)
    assert sent.status_code == 201
    assert sent.json()["summary_updated"] is True

    messages = client.get(f"/chats/{chat_id}/messages", headers=vic)
    assert [message["text"] for message in messages.json()] == ["hello vic"]

    listing = client.get("/chats", headers=vic).json()
    assert listing[0]["conversation"]["last_message"]["text"] == "hello vic"
    assert listing[0]["other_party"]["name"] == "Uma"


def test_sync_errors_map_to_status_codes(client):
    uma = _register(client, "u1", "Uma")
    _register(client, "u2", "Vic")
    wes = _register(client, "u3", "Wes")
    chat_id = client.post("/chats", json={"remote_uid": "u2"}, headers=uma).json()["id"]

    assert client.post("/chats", json={"remote_uid": "u1"}, headers=uma).status_code == 422
    assert client.post("/chats", json={"remote_uid": "nobody"}, headers=uma).status_code == 404
    assert client.post(f"/chats/{chat_id}/messages", json={"text": "   "}, headers=uma).status_code == 422
    assert client.post(f"/chats/{chat_id}/messages", json={"text": "hi"}, headers=wes).status_code == 403
    assert client.get(f"/chats/{chat_id}/messages", headers=wes).status_code == 403
    assert client.post("/chats/missing/messages", json={"text": "hi"}, headers=uma).status_code == 404


def test_feed_flow_over_http(client):
    uma = _register(client, "u1", "Uma", email="uma@example.com")
    vic = _register(client, "u2", "Vic")

    created = client.post("/posts", json={"content": "hello #foo"}, headers=uma)
    assert created.status_code == 201
    post = created.json()
    assert post["handle"] == "uma"

    client.post("/posts", json={"content": "#foo world"}, headers=vic)
    client.post("/posts", json={"content": "#bar"}, headers=vic)

    feed = client.get("/posts").json()
    assert feed["trends"] == [{"tag": "#foo", "count": 2}, {"tag": "#bar", "count": 1}]
    assert len(feed["posts"]) == 3

    liked = client.post(f"/posts/{post['id']}/like", json={"liked_by": []}, headers=vic)
    assert liked.json()["liked"] is True
    unliked = client.post(f"/posts/{post['id']}/like", json={"liked_by": ["u2"]}, headers=vic)
    assert unliked.json()["liked_by"] == []

    comment = client.post(f"/posts/{post['id']}/comments", json={"content": "nice"}, headers=vic)
    assert comment.status_code == 201

    assert client.delete(f"/posts/{post['id']}", headers=vic).status_code == 403
    assert client.delete(f"/posts/{post['id']}", headers=uma).status_code == 204
    assert client.delete(f"/posts/{post['id']}", headers=uma).status_code == 404


def test_feed_socket_pushes_initial_snapshot(client):
    uma = _register(client, "u1", "Uma")
    client.post("/posts", json={"content": "first #post"}, headers=uma)

    with client.websocket_connect("/ws/feed") as websocket:
        payload = websocket.receive_json()
        assert payload["type"] == "feed"
        assert [item["content"] for item in payload["posts"]] == ["first #post"]
        assert payload["trends"] == [{"tag": "#post", "count": 1}]

        websocket.send_text("ping")
        assert websocket.receive_json() == {"type": "pong"}


def test_conversation_socket_rejects_unknown_users(client):
    with client.websocket_connect("/ws/chats?uid=ghost") as websocket:
        with pytest.raises(WebSocketDisconnect):
            websocket.receive_json()
