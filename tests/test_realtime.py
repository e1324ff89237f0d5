"""Tests for the revalidation WebSocket and system endpoints."""
from __future__ import annotations

import os

from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_slika.db")

from slika.main import app  # noqa: E402


def test_revalidation_socket_answers_ping():
    with TestClient(app) as client:
        with client.websocket_connect("/ws/revalidate") as websocket:
            websocket.send_text('{"type": "ping"}')
            assert websocket.receive_json() == {"type": "pong"}

            health = client.get("/health").json()
            assert health == {"status": "ok", "revalidation_subscribers": 1}

        assert client.get("/api").json()["service"] == "Slika API"
