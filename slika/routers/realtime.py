"""WebSocket endpoint that pushes view revalidation notices."""
from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..services.realtime import revalidation_manager

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws/revalidate")
async def revalidation_updates(websocket: WebSocket) -> None:
    """Keep a subscriber connected; ``ping`` is answered with ``pong``."""

    await revalidation_manager.connect(websocket)
    logger.info("Revalidation socket connected from %s", websocket.client)
    try:
        while True:
            try:
                raw = await websocket.receive_text()
            except WebSocketDisconnect:
                break

            try:
                payload = json.loads(raw)
            except json.JSONDecodeError:
                payload = {"type": raw}

            message_type = str(payload.get("type") or "").lower() if isinstance(payload, dict) else ""
            if message_type == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
    finally:
        await revalidation_manager.disconnect(websocket)
        logger.info("Revalidation socket disconnected from %s", websocket.client)


__all__ = ["router"]
