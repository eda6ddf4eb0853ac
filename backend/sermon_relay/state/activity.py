from __future__ import annotations

from typing import Dict

from sermon_relay.core.exceptions import Unauthorized
from sermon_relay.state.room_manager import RoomRegistry


class TranscriptionActivity:
    """Per-room gate deciding whether incoming speech is processed at all.

    Only the room's current preacher may flip the gate. Rooms default to
    inactive.
    """

    def __init__(self, registry: RoomRegistry) -> None:
        self._registry = registry
        self._room_to_active: Dict[str, bool] = {}

    def start(self, room_code: str, connection_id: str) -> None:
        self._authorize(room_code, connection_id, "start transcription")
        self._room_to_active[room_code] = True

    def stop(self, room_code: str, connection_id: str) -> None:
        self._authorize(room_code, connection_id, "stop transcription")
        self._room_to_active[room_code] = False

    def is_active(self, room_code: str) -> bool:
        return self._room_to_active.get(room_code, False)

    def clear(self, room_code: str) -> None:
        self._room_to_active.pop(room_code, None)

    def _authorize(self, room_code: str, connection_id: str, action: str) -> None:
        if not self._registry.is_preacher_of(connection_id, room_code):
            raise Unauthorized(connection_id, action)
