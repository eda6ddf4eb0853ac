from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional, Set

Role = Literal["preacher", "listener"]

PREACHER: Role = "preacher"
LISTENER: Role = "listener"


@dataclass
class Connection:
    id: str
    room_code: str
    # decided once at join time, never re-derived
    role: Role
    language: Optional[str] = None
    joined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_preacher(self) -> bool:
        return self.role == PREACHER


class RoomRegistry:
    """In-memory room membership for a single process.

    Tracks which connection sits in which room, with which role and which
    preferred language. A connection id is a member of at most one room.
    """

    def __init__(self, source_language: str = "en") -> None:
        self.source_language = source_language
        self._connections: Dict[str, Connection] = {}
        self._room_to_members: Dict[str, Set[str]] = {}

    def join(self, connection_id: str, room_code: str, language: Optional[str]) -> Role:
        """Add the connection to the room and return its role.

        The first connection into an empty room becomes the preacher, everyone
        after that is a listener. A connection already joined elsewhere is
        moved out of its previous room first.
        """
        if connection_id in self._connections:
            self.leave(connection_id)

        members = self._room_to_members.setdefault(room_code, set())
        role: Role = PREACHER if not members else LISTENER
        members.add(connection_id)
        self._connections[connection_id] = Connection(
            id=connection_id,
            room_code=room_code,
            role=role,
            language=language,
        )
        return role

    def leave(self, connection_id: str) -> Optional[Connection]:
        """Remove the connection from its room.

        Returns the removed connection, or None when it was not joined. The
        room entry is dropped once its last member leaves; callers check
        ``is_empty`` to tear down room-scoped state.
        """
        conn = self._connections.pop(connection_id, None)
        if conn is None:
            return None
        members = self._room_to_members.get(conn.room_code)
        if members is not None:
            members.discard(connection_id)
            if not members:
                self._room_to_members.pop(conn.room_code, None)
        return conn

    def is_empty(self, room_code: str) -> bool:
        return room_code not in self._room_to_members

    def connection(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def role_of(self, connection_id: str) -> Optional[Role]:
        conn = self._connections.get(connection_id)
        return conn.role if conn else None

    def language_of(self, connection_id: str) -> Optional[str]:
        conn = self._connections.get(connection_id)
        return conn.language if conn else None

    def room_of(self, connection_id: str) -> Optional[str]:
        conn = self._connections.get(connection_id)
        return conn.room_code if conn else None

    def members(self, room_code: str) -> List[Connection]:
        ids = self._room_to_members.get(room_code, set())
        return [self._connections[cid] for cid in ids if cid in self._connections]

    def preacher_of(self, room_code: str) -> Optional[Connection]:
        for conn in self.members(room_code):
            if conn.is_preacher:
                return conn
        return None

    def is_preacher_of(self, connection_id: str, room_code: str) -> bool:
        conn = self._connections.get(connection_id)
        return conn is not None and conn.is_preacher and conn.room_code == room_code

    def languages_requested(self, room_code: str) -> Set[str]:
        languages = {self.source_language}
        for conn in self.members(room_code):
            if conn.role == LISTENER and conn.language:
                languages.add(conn.language)
        return languages

    def rooms(self) -> List[str]:
        return list(self._room_to_members)
