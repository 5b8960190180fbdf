# PURPOSE: /ws end to end: auth, initial marker, fan-out, ping/pong and echo.

import pytest
from starlette.websockets import WebSocketDisconnect

TASK = {"title": "ws task", "status": "Pending", "priority": "Low"}


def _token(headers):
    return headers["Authorization"].split()[1]


def test_ws_requires_token(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws"):
            pass
    assert exc.value.code == 1008


def test_ws_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws", headers={"Authorization": "Bearer nope"}):
            pass


def test_ws_ping_pong_and_echo(client, register):
    headers, _ = register("echo@example.com")
    with client.websocket_connect("/ws", headers=headers) as ws:
        assert ws.receive_text() == "update"  # sent on connect
        ws.send_text("ping")
        assert ws.receive_text() == "pong"
        ws.send_text("hello")
        assert ws.receive_text() == "hello"
        ws.send_bytes(b"\x00\x01")
        assert ws.receive_bytes() == b"\x00\x01"


def test_two_channels_each_get_one_update_per_change(client, register):
    headers, _ = register("tabs@example.com")
    with client.websocket_connect("/ws", headers=headers) as tab1, client.websocket_connect(
        f"/ws?token={_token(headers)}"
    ) as tab2:
        assert tab1.receive_text() == "update"
        assert tab2.receive_text() == "update"

        r = client.post("/tasks", json=TASK, headers=headers)
        assert r.status_code == 201

        for ws in (tab1, tab2):
            assert ws.receive_text() == "update"
            # a pong right after proves no second marker was queued
            ws.send_text("ping")
            assert ws.receive_text() == "pong"


def test_update_and_delete_notify_too(client, register):
    headers, _ = register("mut@example.com")
    task = client.post("/tasks", json=TASK, headers=headers).json()
    with client.websocket_connect("/ws", headers=headers) as ws:
        assert ws.receive_text() == "update"
        client.put(f"/tasks/{task['id']}", json={**TASK, "status": "Completed"}, headers=headers)
        assert ws.receive_text() == "update"
        client.delete(f"/tasks/{task['id']}", headers=headers)
        assert ws.receive_text() == "update"


def test_failed_mutation_does_not_notify(client, register):
    headers, _ = register("quiet@example.com")
    with client.websocket_connect("/ws", headers=headers) as ws:
        assert ws.receive_text() == "update"
        assert client.post("/tasks", json={"title": ""}, headers=headers).status_code == 400
        assert client.delete("/tasks/4040", headers=headers).status_code == 404
        ws.send_text("ping")
        assert ws.receive_text() == "pong"


def test_other_users_changes_are_not_pushed(client, register):
    alice, _ = register("alice.ws@example.com")
    bob, _ = register("bob.ws@example.com")
    with client.websocket_connect("/ws", headers=bob) as bob_ws:
        assert bob_ws.receive_text() == "update"
        assert client.post("/tasks", json=TASK, headers=alice).status_code == 201
        bob_ws.send_text("ping")
        assert bob_ws.receive_text() == "pong"


def test_registry_tracks_open_channels(client, register):
    headers, body = register("count@example.com")
    user_id = body["user"]["id"]
    registry = client.app.state.live_registry
    with client.websocket_connect("/ws", headers=headers) as ws:
        assert ws.receive_text() == "update"
        assert registry.connection_count(user_id) == 1
