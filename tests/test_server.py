"""Tests for the WebSocket/REST transcription server."""

import json

import pytest

try:
    from fastapi.testclient import TestClient
    _HAS_TESTCLIENT = True
except ImportError:
    _HAS_TESTCLIENT = False

try:
    from fingerspell.server import app, state
    _HAS_SERVER = True
except ImportError:
    _HAS_SERVER = False

from fingerspell.config import FingerspellConfig
from handshapes import make_a, make_b, make_open_palm

pytestmark = pytest.mark.skipif(
    not (_HAS_TESTCLIENT and _HAS_SERVER),
    reason="fastapi not installed"
)


def frame_msg(*hands):
    return {"type": "frame", "hands": [h.tolist() for h in hands]}


@pytest.fixture
def client():
    config = FingerspellConfig()
    config.tracker.commit_threshold = 2
    state.configure(config)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    state.configure(FingerspellConfig())


class TestRESTEndpoints:
    def test_api_status(self, client):
        resp = client.get("/api/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["transcript"] == ""
        assert data["last_symbol"] == "?"
        assert data["commit_threshold"] == 2
        assert data["last_result"] is None

    def test_api_transcript(self, client):
        resp = client.get("/api/transcript")
        assert resp.json() == {"transcript": ""}

    def test_api_symbols(self, client):
        data = client.get("/api/symbols").json()
        assert data["symbols"] == ["L", "F", "B", "C", "A"]
        assert data["unknown"] == "?"

    def test_api_reset(self, client):
        for _ in range(3):
            state.pipeline.process_landmarks([make_b()])
        assert state.pipeline.transcript == "B"

        resp = client.post("/api/reset")
        assert resp.status_code == 200
        assert resp.json() == {"status": "cleared", "transcript": ""}
        assert client.get("/api/transcript").json() == {"transcript": ""}

    def test_reset_twice(self, client):
        assert client.post("/api/reset").json() == client.post("/api/reset").json()


class TestWebSocket:
    def test_ws_connect(self, client):
        with client.websocket_connect("/ws") as ws:
            msg = ws.receive_json()
            assert msg["type"] == "connected"
            assert msg["commit_threshold"] == 2
            assert "A" in msg["symbols"]

    def test_ws_frame_result(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json(frame_msg(make_a()))
            msg = ws.receive_json()
            assert msg["type"] == "result"
            assert msg["symbol"] == "A"
            assert msg["status"] == "changed"
            assert msg["hands_detected"] == 1

    def test_ws_no_hand(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "frame", "hands": []})
            msg = ws.receive_json()
            assert msg["status"] == "no_hand"
            assert msg["status_text"].startswith("No Hand Detected")

    def test_ws_commit(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            for _ in range(2):
                ws.send_json(frame_msg(make_b()))
                ws.receive_json()

            ws.send_json(frame_msg(make_b()))
            commit = ws.receive_json()
            result = ws.receive_json()
            assert commit == {"type": "commit", "symbol": "B", "transcript": "B"}
            assert result["type"] == "result"
            assert result["committed"] == "B"

        assert client.get("/api/transcript").json() == {"transcript": "B"}

    def test_ws_reset(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            for _ in range(3):
                ws.send_json(frame_msg(make_b()))
            ws.send_json({"type": "reset"})
            messages = [ws.receive_json() for _ in range(5)]
            assert messages[-1] == {"type": "reset", "transcript": ""}
        assert state.pipeline.transcript == ""

    def test_ws_ping(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "ping"})
            assert ws.receive_json()["type"] == "pong"

    def test_ws_invalid_json_keeps_connection(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("{not json")
            assert ws.receive_json()["type"] == "error"
            ws.send_json({"type": "ping"})
            assert ws.receive_json()["type"] == "pong"

    def test_ws_unknown_type(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "dance"})
            assert ws.receive_json()["type"] == "error"

    def test_ws_malformed_hand_is_unknown(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "frame", "hands": [[[0.1, 0.2]] * 5]})
            msg = ws.receive_json()
            assert msg["symbol"] == "?"
            assert msg["hands_detected"] == 1

    def test_ws_oversized_coordinate_keeps_connection(self, client):
        rows = make_a().tolist()
        rows[0][0] = 10**400
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text(json.dumps({"type": "frame", "hands": [rows]}))
            msg = ws.receive_json()
            assert msg["symbol"] == "?"
            ws.send_json({"type": "ping"})
            assert ws.receive_json()["type"] == "pong"

    def test_ws_unrecognized_hand(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json(frame_msg(make_open_palm()))
            msg = ws.receive_json()
            assert msg["status"] == "unrecognized"
            assert msg["status_text"] == "Sign not recognized."
