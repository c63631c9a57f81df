import asyncio

import pytest
from sqlalchemy.exc import SQLAlchemyError
from starlette.websockets import WebSocketDisconnect

from kingdoms.game.chat import post_message, resolve_room
from kingdoms.models.alliance import Alliance, AllianceMember
from kingdoms.models.player import Player
from kingdoms.routes import chat as chat_routes
from kingdoms.routes.chat import ChatHub

from conftest import register_and_login


def token_of(headers):
    return headers["Authorization"].split(" ", 1)[1]


def test_rest_send_and_history(client, player):
    r = client.post(
        "/api/chat/send",
        json={"room": "global", "content": "  Hail, Camelot!  ", "playerId": player["player_id"]},
        headers=player["headers"],
    )
    assert r.status_code == 201, r.text
    assert r.json()["message"]["content"] == "Hail, Camelot!"

    r = client.get("/api/chat/global/messages", headers=player["headers"])
    assert r.status_code == 200
    body = r.json()
    assert body["roomName"] == f"global-{player['kingdom_id']}"
    assert [m["content"] for m in body["messages"]] == ["Hail, Camelot!"]
    assert body["messages"][0]["playerName"] == "Arthur"


def test_history_is_latest_fifty_oldest_first(client, db, player):
    p = db.get(Player, player["player_id"])
    room = resolve_room(db, p, "global")
    for i in range(55):
        post_message(db, room=room, player=p, content=f"msg {i}")
    db.commit()

    messages = client.get("/api/chat/global/messages", headers=player["headers"]).json()["messages"]
    assert len(messages) == 50
    assert messages[0]["content"] == "msg 5"
    assert messages[-1]["content"] == "msg 54"


def test_alliance_room_needs_membership(client, db, player):
    r = client.get("/api/chat/alliance/messages", headers=player["headers"])
    assert r.status_code == 400
    assert r.json()["error"] == "Chat room not available"

    alliance = Alliance(kingdom_id=player["kingdom_id"], name="Round Table")
    db.add(alliance)
    db.flush()
    db.add(AllianceMember(alliance_id=alliance.id, player_id=player["player_id"]))
    db.commit()

    r = client.get("/api/chat/alliance/messages", headers=player["headers"])
    assert r.status_code == 200
    assert r.json()["roomName"] == f"alliance-{alliance.id}"


def test_invalid_room_and_empty_content(client, player):
    r = client.get("/api/chat/tavern/messages", headers=player["headers"])
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid room"

    r = client.post("/api/chat/send", json={"room": "global", "content": "   "}, headers=player["headers"])
    assert r.status_code == 400


def test_send_as_someone_elses_player_is_404(client, player):
    other = register_and_login(client, email="mordred@example.com")
    r = client.post(
        "/api/chat/send",
        json={"room": "global", "content": "hi", "playerId": player["player_id"]},
        headers=other,
    )
    assert r.status_code == 404


def test_socket_join_send_broadcast(client, player):
    with client.websocket_connect(f"/api/socket?token={token_of(player['headers'])}") as ws:
        ws.send_json({"event": "join-room", "room": "global"})
        history = ws.receive_json()
        assert history["event"] == "message-history"
        assert history["room"] == "global"
        assert history["messages"] == []

        ws.send_json({"event": "send-message", "room": "global", "content": "To the Grail!"})
        msg = ws.receive_json()
        assert msg["event"] == "new-message"
        assert msg["message"]["content"] == "To the Grail!"
        assert msg["message"]["playerName"] == "Arthur"

    # Persisted before broadcast
    r = client.get("/api/chat/global/messages", headers=player["headers"])
    assert [m["content"] for m in r.json()["messages"]] == ["To the Grail!"]


class FakeSocket:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send_json(self, payload):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(payload)


def test_hub_broadcasts_to_room_and_drops_dead_sockets():
    hub = ChatHub()
    a, b, dead, elsewhere = FakeSocket(), FakeSocket(), FakeSocket(fail=True), FakeSocket()
    for ws in (a, b, dead):
        hub.join("global-1", ws)
    hub.join("global-2", elsewhere)

    sent = asyncio.run(hub.broadcast("global-1", {"event": "new-message"}))
    assert sent == 2
    assert a.sent == b.sent == [{"event": "new-message"}]
    assert elsewhere.sent == []
    assert dead not in hub.rooms["global-1"]

    hub.leave_all(a)
    hub.leave_all(b)
    assert "global-1" not in hub.rooms


def test_socket_errors(client, player):
    with client.websocket_connect(f"/api/socket?token={token_of(player['headers'])}") as ws:
        ws.send_json({"event": "join-room", "room": "alliance"})
        msg = ws.receive_json()
        assert msg == {"event": "message-error", "room": "alliance", "error": "Chat room not available"}

        ws.send_json({"event": "send-message", "room": "global", "content": ""})
        assert ws.receive_json()["error"] == "Invalid message content"

        ws.send_text("not json")
        assert ws.receive_json()["error"] == "Invalid JSON"

        ws.send_json({"event": "dance"})
        assert ws.receive_json()["error"] == "Unknown event: dance"


def test_socket_history_is_latest_twenty(client, db, player):
    p = db.get(Player, player["player_id"])
    room = resolve_room(db, p, "global")
    for i in range(25):
        post_message(db, room=room, player=p, content=f"msg {i}")
    db.commit()

    with client.websocket_connect(f"/api/socket?token={token_of(player['headers'])}") as ws:
        ws.send_json({"event": "join-room", "room": "global"})
        messages = ws.receive_json()["messages"]
    assert len(messages) == 20
    assert messages[0]["content"] == "msg 5"


def test_socket_rejects_unauthenticated(client, player):
    client.cookies.clear()
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/api/socket") as ws:
            ws.receive_json()


def test_socket_save_failure_reaches_sender_only(client, player, monkeypatch):
    def failing_post(*args, **kwargs):
        raise SQLAlchemyError("database is locked")

    url = f"/api/socket?token={token_of(player['headers'])}"
    with client.websocket_connect(url) as sender, client.websocket_connect(url) as listener:
        for ws in (sender, listener):
            ws.send_json({"event": "join-room", "room": "global"})
            assert ws.receive_json()["event"] == "message-history"

        monkeypatch.setattr("kingdoms.routes.chat.post_message", failing_post)
        sender.send_json({"event": "send-message", "room": "global", "content": "Lost to the mists"})
        assert sender.receive_json() == {"event": "message-error", "room": "global", "error": "Failed to save message"}

        # Next frame the listener sees is the reply to its own event, not a new-message
        listener.send_json({"event": "ping"})
        assert listener.receive_json() == {"event": "message-error", "error": "Unknown event: ping"}

    r = client.get("/api/chat/global/messages", headers=player["headers"])
    assert r.json()["messages"] == []


def test_chat_database_work_runs_in_threadpool(client, player, monkeypatch):
    offloaded = []
    real_run = chat_routes.run_in_threadpool

    async def recording_run(func, *args, **kwargs):
        offloaded.append(func.__name__)
        return await real_run(func, *args, **kwargs)

    monkeypatch.setattr(chat_routes, "run_in_threadpool", recording_run)

    r = client.post("/api/chat/send", json={"room": "global", "content": "Hark"}, headers=player["headers"])
    assert r.status_code == 201, r.text

    with client.websocket_connect(f"/api/socket?token={token_of(player['headers'])}") as ws:
        ws.send_json({"event": "join-room", "room": "global"})
        assert [m["content"] for m in ws.receive_json()["messages"]] == ["Hark"]
        ws.send_json({"event": "send-message", "room": "global", "content": "Hark again"})
        assert ws.receive_json()["event"] == "new-message"

    assert offloaded == ["_save_message", "_socket_player", "_open_room", "_persist_socket_message"]
