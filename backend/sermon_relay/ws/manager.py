from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


def envelope(event: str, payload: Optional[dict] = None) -> dict:
    return {"event": event, "payload": payload or {}}


class ConnectionManager:
    """Tracks WebSocket connections by id and groups them per room.

    In-memory and single-process only.
    """

    def __init__(self) -> None:
        self._sockets: Dict[str, WebSocket] = {}
        self._room_to_ids: Dict[str, Set[str]] = {}

    async def connect(self, connection_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self._sockets[connection_id] = websocket

    def disconnect(self, connection_id: str) -> None:
        self._sockets.pop(connection_id, None)
        for room_id in list(self._room_to_ids):
            self.leave_group(room_id, connection_id)

    def join_group(self, room_id: str, connection_id: str) -> None:
        if room_id not in self._room_to_ids:
            self._room_to_ids[room_id] = set()
        self._room_to_ids[room_id].add(connection_id)

    def leave_group(self, room_id: str, connection_id: str) -> None:
        ids = self._room_to_ids.get(room_id)
        if not ids:
            return
        ids.discard(connection_id)
        if not ids:
            # Cleanup empty room sets to avoid unbounded growth
            self._room_to_ids.pop(room_id, None)

    def group(self, room_id: str) -> Set[str]:
        return set(self._room_to_ids.get(room_id, set()))

    async def send(self, connection_id: str, event: str, payload: Optional[Dict[str, Any]] = None) -> None:
        ws = self._sockets.get(connection_id)
        if ws is None:
            return
        try:
            await ws.send_json(envelope(event, payload))
        except Exception:
            # If sending fails, drop the socket; its receive loop performs the leave
            logger.warning("Dropping unreachable socket", extra={"connection_id": connection_id, "event": event})
            self.disconnect(connection_id)

    async def broadcast(
        self,
        room_id: str,
        event: str,
        payload: Optional[Dict[str, Any]] = None,
        exclude: Optional[str] = None,
    ) -> None:
        for connection_id in self.group(room_id):
            if connection_id != exclude:
                await self.send(connection_id, event, payload)
