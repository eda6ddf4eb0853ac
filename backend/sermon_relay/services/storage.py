"""Storage backends for rooms, listeners and transcript records."""

from __future__ import annotations

import logging
import random
import string
from typing import Any, Dict, List, Optional

import httpx

from sermon_relay.core.exceptions import StorageError
from sermon_relay.schemas.room import Listener, Room, TranscriptRecord
from sermon_relay.services.interfaces import StorageClient

logger = logging.getLogger(__name__)

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
ROOM_CODE_LENGTH = 8
ROOM_CODE_ATTEMPTS = 10
DEFAULT_PAGE_SIZE = 50


def generate_room_code() -> str:
    return "".join(random.choices(ROOM_CODE_ALPHABET, k=ROOM_CODE_LENGTH))


async def generate_unique_room_code(storage: StorageClient) -> str:
    """Draw room codes until one is not taken by an active room."""
    for _ in range(ROOM_CODE_ATTEMPTS):
        code = generate_room_code()
        if await storage.get_room_by_code(code) is None:
            return code
    raise StorageError("generate_unique_room_code")


class InMemoryStorage(StorageClient):
    """Process-local storage. Used for local development and tests."""

    def __init__(self) -> None:
        self._rooms: Dict[int, Room] = {}
        self._listeners: List[Listener] = []
        self._transcripts: List[TranscriptRecord] = []
        self._next_id = 1

    def _new_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    async def create_room(self, room_code: str) -> Room:
        room = Room(id=self._new_id(), room_code=room_code)
        self._rooms[room.id] = room
        return room

    async def get_room_by_code(self, room_code: str) -> Optional[Room]:
        for room in self._rooms.values():
            if room.room_code == room_code and room.is_active:
                return room
        return None

    async def list_active_rooms(self, limit: int = DEFAULT_PAGE_SIZE) -> List[Room]:
        active = [r for r in self._rooms.values() if r.is_active]
        active.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return active[:limit]

    async def end_room(self, room_code: str) -> None:
        for room in self._rooms.values():
            if room.room_code == room_code:
                room.is_active = False

    async def add_listener(self, room_id: int, preferred_language: str) -> Listener:
        listener = Listener(id=self._new_id(), room_id=room_id, preferred_language=preferred_language)
        self._listeners.append(listener)
        return listener

    async def get_listeners_by_room(self, room_id: int) -> List[Listener]:
        return [l for l in self._listeners if l.room_id == room_id]

    async def remove_listener(self, listener_id: int) -> bool:
        remaining = [l for l in self._listeners if l.id != listener_id]
        removed = len(remaining) != len(self._listeners)
        self._listeners = remaining
        return removed

    async def save_transcript(
        self,
        room_id: int,
        original_text: str,
        translated_text: Optional[str],
        language: str,
    ) -> TranscriptRecord:
        record = TranscriptRecord(
            id=self._new_id(),
            room_id=room_id,
            original_text=original_text,
            translated_text=translated_text,
            language=language,
        )
        self._transcripts.append(record)
        return record

    async def get_transcripts_by_room(
        self,
        room_id: int,
        language: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[TranscriptRecord]:
        records = [
            t for t in self._transcripts
            if t.room_id == room_id and (language is None or t.language == language)
        ]
        if offset:
            return records[offset:offset + (limit or DEFAULT_PAGE_SIZE)]
        if limit is not None:
            return records[:limit]
        return records

    async def get_transcript(self, transcript_id: int) -> Optional[TranscriptRecord]:
        for record in self._transcripts:
            if record.id == transcript_id:
                return record
        return None

    async def delete_transcript(self, transcript_id: int) -> None:
        self._transcripts = [t for t in self._transcripts if t.id != transcript_id]

    async def delete_transcripts_by_room(self, room_id: int) -> None:
        self._transcripts = [t for t in self._transcripts if t.room_id != room_id]

    async def search_transcripts(
        self,
        query: str,
        room_id: Optional[int] = None,
        language: Optional[str] = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> List[TranscriptRecord]:
        needle = query.lower()
        matches = []
        for record in reversed(self._transcripts):
            if room_id is not None and record.room_id != room_id:
                continue
            if language is not None and record.language != language:
                continue
            haystacks = (record.original_text, record.translated_text or "")
            if any(needle in h.lower() for h in haystacks):
                matches.append(record)
        return matches[:limit]


class SupabaseStorage(StorageClient):
    """Supabase tables reached through the PostgREST HTTP API."""

    ROOMS = "sermon_rooms"
    LISTENERS = "listeners"
    TRANSCRIPTS = "transcripts"

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def from_credentials(cls, url: str, key: str, timeout: float = 10.0) -> "SupabaseStorage":
        if not url or not key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set for the supabase backend")
        client = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={
                "apikey": key,
                "Authorization": f"Bearer {key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )
        return cls(client)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _select(self, table: str, params: Dict[str, str], operation: str) -> List[Dict[str, Any]]:
        try:
            response = await self._client.get(f"/{table}", params={"select": "*", **params})
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.exception("Supabase select failed", extra={"table": table, "operation": operation})
            raise StorageError(operation, e) from e
        return response.json()

    async def _insert(self, table: str, row: Dict[str, Any], operation: str) -> Dict[str, Any]:
        try:
            response = await self._client.post(
                f"/{table}",
                json=row,
                headers={"Prefer": "return=representation"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.exception("Supabase insert failed", extra={"table": table, "operation": operation})
            raise StorageError(operation, e) from e
        rows = response.json()
        if not rows:
            raise StorageError(operation, ValueError("insert returned no rows"))
        return rows[0]

    async def _delete(self, table: str, params: Dict[str, str], operation: str) -> List[Dict[str, Any]]:
        try:
            response = await self._client.delete(
                f"/{table}",
                params=params,
                headers={"Prefer": "return=representation"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.exception("Supabase delete failed", extra={"table": table, "operation": operation})
            raise StorageError(operation, e) from e
        return response.json()

    async def create_room(self, room_code: str) -> Room:
        row = await self._insert(self.ROOMS, {"room_code": room_code, "is_active": True}, "create_room")
        return Room.model_validate(row)

    async def get_room_by_code(self, room_code: str) -> Optional[Room]:
        rows = await self._select(
            self.ROOMS,
            {"room_code": f"eq.{room_code}", "is_active": "eq.true", "limit": "1"},
            "get_room_by_code",
        )
        return Room.model_validate(rows[0]) if rows else None

    async def list_active_rooms(self, limit: int = DEFAULT_PAGE_SIZE) -> List[Room]:
        rows = await self._select(
            self.ROOMS,
            {"is_active": "eq.true", "order": "created_at.desc", "limit": str(limit)},
            "list_active_rooms",
        )
        return [Room.model_validate(r) for r in rows]

    async def end_room(self, room_code: str) -> None:
        try:
            response = await self._client.patch(
                f"/{self.ROOMS}",
                params={"room_code": f"eq.{room_code}"},
                json={"is_active": False},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.exception("Supabase update failed", extra={"table": self.ROOMS, "operation": "end_room"})
            raise StorageError("end_room", e) from e

    async def add_listener(self, room_id: int, preferred_language: str) -> Listener:
        row = await self._insert(
            self.LISTENERS,
            {"room_id": room_id, "preferred_language": preferred_language},
            "add_listener",
        )
        return Listener.model_validate(row)

    async def get_listeners_by_room(self, room_id: int) -> List[Listener]:
        rows = await self._select(
            self.LISTENERS,
            {"room_id": f"eq.{room_id}", "order": "joined_at.asc"},
            "get_listeners_by_room",
        )
        return [Listener.model_validate(r) for r in rows]

    async def remove_listener(self, listener_id: int) -> bool:
        rows = await self._delete(self.LISTENERS, {"id": f"eq.{listener_id}"}, "remove_listener")
        return bool(rows)

    async def save_transcript(
        self,
        room_id: int,
        original_text: str,
        translated_text: Optional[str],
        language: str,
    ) -> TranscriptRecord:
        row = await self._insert(
            self.TRANSCRIPTS,
            {
                "room_id": room_id,
                "original_text": original_text,
                "translated_text": translated_text,
                "language": language,
            },
            "save_transcript",
        )
        return TranscriptRecord.model_validate(row)

    async def get_transcripts_by_room(
        self,
        room_id: int,
        language: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[TranscriptRecord]:
        params = {"room_id": f"eq.{room_id}", "order": "created_at.asc"}
        if language:
            params["language"] = f"eq.{language}"
        if offset:
            params["offset"] = str(offset)
            params["limit"] = str(limit or DEFAULT_PAGE_SIZE)
        elif limit is not None:
            params["limit"] = str(limit)
        rows = await self._select(self.TRANSCRIPTS, params, "get_transcripts_by_room")
        return [TranscriptRecord.model_validate(r) for r in rows]

    async def get_transcript(self, transcript_id: int) -> Optional[TranscriptRecord]:
        rows = await self._select(
            self.TRANSCRIPTS,
            {"id": f"eq.{transcript_id}", "limit": "1"},
            "get_transcript",
        )
        return TranscriptRecord.model_validate(rows[0]) if rows else None

    async def delete_transcript(self, transcript_id: int) -> None:
        await self._delete(self.TRANSCRIPTS, {"id": f"eq.{transcript_id}"}, "delete_transcript")

    async def delete_transcripts_by_room(self, room_id: int) -> None:
        await self._delete(self.TRANSCRIPTS, {"room_id": f"eq.{room_id}"}, "delete_transcripts_by_room")

    async def search_transcripts(
        self,
        query: str,
        room_id: Optional[int] = None,
        language: Optional[str] = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> List[TranscriptRecord]:
        # PostgREST takes * as the ilike wildcard; quoting keeps commas in the query intact.
        escaped = query.replace("\\", "\\\\").replace('"', '\\"')
        pattern = f'"*{escaped}*"'
        params = {
            "or": f"(original_text.ilike.{pattern},translated_text.ilike.{pattern})",
            "order": "created_at.desc",
            "limit": str(limit),
        }
        if room_id is not None:
            params["room_id"] = f"eq.{room_id}"
        if language:
            params["language"] = f"eq.{language}"
        rows = await self._select(self.TRANSCRIPTS, params, "search_transcripts")
        return [TranscriptRecord.model_validate(r) for r in rows]
