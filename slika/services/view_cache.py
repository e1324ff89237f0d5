"""Cached public view payloads keyed by the front-end path that renders them.

Every mutation names the views it makes stale through :meth:`ViewCache.invalidate`.
Invalidation drops the cached payloads and, when an event loop is running,
broadcasts a ``revalidate`` notice to WebSocket subscribers so clients can
refetch.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, TypeVar

from .realtime import WebSocketManager, revalidation_manager

logger = logging.getLogger(__name__)

T = TypeVar("T")

HOME_PATH = "/"


def item_path(item_id: int) -> str:
    return f"/pin/{item_id}"


def profile_path(username: str) -> str:
    return f"/profile/{username}"


class ViewCache:
    def __init__(self, manager: WebSocketManager | None = None) -> None:
        self._entries: dict[str, Any] = {}
        self._lock = threading.Lock()
        self._manager = manager
        self._pending: set[asyncio.Task[None]] = set()

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._entries

    def get(self, path: str) -> Any | None:
        with self._lock:
            return self._entries.get(path)

    def set(self, path: str, value: Any) -> None:
        with self._lock:
            self._entries[path] = value

    def get_or_build(self, path: str, builder: Callable[[], T]) -> T:
        """Return the cached payload for ``path``, building and storing it on a miss."""

        cached = self.get(path)
        if cached is not None:
            return cached
        value = builder()
        self.set(path, value)
        return value

    def invalidate(self, *paths: str) -> list[str]:
        """Drop the cached payloads for ``paths`` and announce the revalidation."""

        unique = list(dict.fromkeys(path for path in paths if path))
        if not unique:
            return []
        with self._lock:
            for path in unique:
                self._entries.pop(path, None)
        logger.debug("Revalidated views: %s", ", ".join(unique))
        self._announce(unique)
        return unique

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _announce(self, paths: list[str]) -> None:
        if self._manager is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Called outside the server (scripts, direct service calls)
            return
        task = loop.create_task(self._broadcast({"type": "revalidate", "paths": paths}))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _broadcast(self, message: dict[str, Any]) -> None:
        try:
            await self._manager.broadcast(message)
        except Exception:  # pragma: no cover - best effort logging
            logger.exception("Failed to broadcast revalidation notice")


view_cache = ViewCache(revalidation_manager)


__all__ = ["HOME_PATH", "ViewCache", "item_path", "profile_path", "view_cache"]
