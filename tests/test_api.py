import pytest
from fastapi.testclient import TestClient

from main import app


@pytest.fixture
def client():
    with TestClient(app) as client:
        yield client


def join(ws, session_id):
    ws.send_json({"event": "join-session", "data": session_id})


def test_root_and_health(client):
    assert client.get("/").json()["endpoints"]["signaling"] == "/ws"

    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["active_rooms"] == 0
    assert health["connections"] == 0


def test_unknown_room_is_404(client):
    response = client.get("/api/room/nope")
    assert response.status_code == 404
    assert response.json()["message"] == "Room 'nope' not found"


def test_participants_of_unknown_room_is_empty(client):
    response = client.get("/api/room/nope/participants")
    assert response.status_code == 200
    assert response.json() == {"sessionId": "nope", "participants": [], "total": 0}


def test_two_peer_session_scenario(client):
    with client.websocket_connect("/ws") as a, client.websocket_connect("/ws") as b:
        h1 = a.receive_json()["data"]
        h2 = b.receive_json()["data"]

        join(a, "abc")
        assert a.receive_json() == {"event": "users-in-session", "data": [h1]}

        join(b, "abc")
        assert b.receive_json() == {"event": "peer-joined", "data": None}
        assert b.receive_json() == {"event": "users-in-session", "data": [h1, h2]}
        assert a.receive_json() == {"event": "users-in-session", "data": [h1, h2]}

        a.send_json({"event": "signal", "data": {"sessionId": "abc", "data": {"type": "offer"}}})
        assert b.receive_json() == {"event": "signal", "data": {"type": "offer"}}

        b.send_json({"event": "signal", "data": {"sessionId": "abc", "data": {"type": "answer"}}})
        assert a.receive_json() == {"event": "signal", "data": {"type": "answer"}}

        room = client.get("/api/room/abc").json()
        assert room == {
            "sessionId": "abc",
            "numParticipants": 2,
            "participants": [h1, h2],
            "state": "two_joined",
        }

        # transport-level disconnect, no leave-session
        a.close()
        assert b.receive_json() == {"event": "peer-disconnected", "data": h1}
        assert b.receive_json() == {"event": "users-in-session", "data": [h2]}

        participants = client.get("/api/room/abc/participants").json()
        assert participants == {"sessionId": "abc", "participants": [h2], "total": 1}

        b.send_json({"event": "leave-session", "data": "abc"})
        # round trip through the socket so the leave has been handled
        join(b, "other")
        assert b.receive_json() == {"event": "users-in-session", "data": [h2]}

        assert client.get("/api/room/abc").status_code == 404
        rooms = client.get("/api/rooms").json()
        assert rooms["total"] == 1
        assert rooms["rooms"][0]["sessionId"] == "other"


def test_chat_is_relayed_to_peer(client):
    with client.websocket_connect("/ws") as a, client.websocket_connect("/ws") as b:
        a.receive_json()
        b.receive_json()
        join(a, "s1")
        a.receive_json()
        join(b, "s1")
        b.receive_json()
        b.receive_json()
        a.receive_json()

        message = {"sessionId": "s1", "user": "Grace", "text": "ready?", "avatar": None, "time": "2026-10-19T10:00:00Z"}
        b.send_json({"event": "chat-message", "data": message})
        assert a.receive_json() == {"event": "chat-message", "data": message}


def test_malformed_frames_keep_connection_open(client):
    with client.websocket_connect("/ws") as ws:
        handle = ws.receive_json()["data"]
        ws.send_text("definitely not json")
        ws.send_json({"event": "unknown"})
        join(ws, "abc")
        assert ws.receive_json() == {"event": "users-in-session", "data": [handle]}


def test_unexpected_error_returns_json_500(monkeypatch, caplog):
    def broken_snapshot():
        raise RuntimeError("registry unavailable")

    with TestClient(app, raise_server_exceptions=False) as client:
        with monkeypatch.context() as patch, caplog.at_level("ERROR", logger="main"):
            patch.setattr(app.state.coordinator, "rooms_snapshot", broken_snapshot)
            response = client.get("/api/rooms")

    assert response.status_code == 500
    assert response.json() == {
        "error": "Internal server error",
        "message": "An unexpected error occurred"
    }
    assert "GET /api/rooms" in caplog.text
    assert "registry unavailable" in caplog.text
