"""In-memory WebSocket fan-out for view revalidation notices."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class WebSocketManager:
    """Tracks connected subscribers and pushes JSON payloads to all of them."""

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    @property
    def subscriber_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections.add(websocket)

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections.discard(websocket)

    async def broadcast(self, message: dict[str, Any]) -> int:
        """Send ``message`` to every subscriber; return how many received it."""

        payload = json.dumps(message, default=str)
        async with self._lock:
            targets = list(self._connections)
        delivered = 0
        for connection in targets:
            try:
                await connection.send_text(payload)
                delivered += 1
            except Exception:
                logger.debug("Dropping unreachable revalidation subscriber %s", connection.client)
                await self.disconnect(connection)
        return delivered


revalidation_manager = WebSocketManager()


__all__ = ["revalidation_manager", "WebSocketManager"]
