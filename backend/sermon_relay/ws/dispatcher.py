from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError

from sermon_relay.core.exceptions import (
    InvalidAudioError,
    RoomNotFound,
    TranscriptionError,
    Unauthorized,
)
from sermon_relay.schemas import events
from sermon_relay.schemas.room import Room, RoomStats
from sermon_relay.services.fanout import recipients_for, translate_all
from sermon_relay.services.interfaces import StorageClient, Transcriber, Translator
from sermon_relay.services.session_store import SessionStore
from sermon_relay.state.activity import TranscriptionActivity
from sermon_relay.state.room_manager import LISTENER, RoomRegistry
from sermon_relay.ws.manager import ConnectionManager

logger = logging.getLogger(__name__)

# reply sent to the sender when a handler fails unexpectedly
FAILURE_MESSAGES = {
    events.JOIN_ROOM: "Failed to join room",
    events.LEAVE_ROOM: "Failed to leave room",
    events.TRANSCRIPT_TEXT: "Failed to process transcript",
    events.AUDIO_CHUNK: "Failed to process audio",
    events.START_TRANSCRIPTION: "Failed to start transcription",
    events.STOP_TRANSCRIPTION: "Failed to stop transcription",
    events.ROOM_ENDED: "Failed to end room",
}


def user_joined_payload(role: str, language: str) -> Dict[str, Any]:
    """Announces a listener's language; a preacher's is left out."""
    payload: Dict[str, Any] = {"role": role}
    if role == LISTENER:
        payload["language"] = language
    return payload


class EventDispatcher:
    """Owns all live room state and turns client events into replies and broadcasts.

    Everything runs on one event loop. Handlers may interleave at await
    points, so transcript processing for a room is serialized with a per-room
    lock: deltas are persisted and pushed in the order they arrived.
    """

    def __init__(
        self,
        manager: ConnectionManager,
        storage: StorageClient,
        transcriber: Transcriber,
        translator: Translator,
        source_language: str = "en",
        audio_buffer_chunks: int = 10,
        max_audio_chunk_bytes: int = 25 * 1024 * 1024,
    ) -> None:
        self.manager = manager
        self.storage = storage
        self.transcriber = transcriber
        self.translator = translator
        self.source_language = source_language
        self.max_audio_chunk_bytes = max_audio_chunk_bytes

        self.registry = RoomRegistry(source_language=source_language)
        self.activity = TranscriptionActivity(self.registry)
        self.sessions = SessionStore(max_chunks=audio_buffer_chunks)
        self._room_locks: Dict[str, asyncio.Lock] = {}

        self._handlers: Dict[str, Callable[[str, Any], Awaitable[None]]] = {
            events.JOIN_ROOM: self.join_room,
            events.LEAVE_ROOM: self.leave_room,
            events.TRANSCRIPT_TEXT: self.transcript_text,
            events.AUDIO_CHUNK: self.audio_chunk,
            events.START_TRANSCRIPTION: self.start_transcription,
            events.STOP_TRANSCRIPTION: self.stop_transcription,
            events.ROOM_ENDED: self.room_ended,
        }

    async def dispatch(self, connection_id: str, event: str, raw_payload: Optional[dict]) -> None:
        """Validate and route one inbound event. Never raises."""
        model = events.PAYLOADS.get(event)
        if model is None:
            await self.manager.send(connection_id, events.ERROR, {"message": f"Unknown event '{event}'"})
            return
        try:
            payload = model.model_validate(raw_payload or {})
        except ValidationError:
            logger.warning("Invalid payload", extra={"connection_id": connection_id, "event": event})
            await self.manager.send(connection_id, events.ERROR, {"message": f"Invalid payload for '{event}'"})
            return

        try:
            await self._handlers[event](connection_id, payload)
        except Unauthorized as e:
            logger.warning(
                "Unauthorized event",
                extra={"connection_id": connection_id, "event": event, "room_code": payload.roomCode},
            )
            await self.manager.send(connection_id, events.ERROR, {"message": str(e)})
        except RoomNotFound:
            await self.manager.send(connection_id, events.ERROR, {"message": "Room not found"})
        except InvalidAudioError as e:
            await self.manager.send(connection_id, events.ERROR, {"message": str(e)})
        except Exception:
            logger.exception(
                "Event handler failed",
                extra={"connection_id": connection_id, "event": event, "room_code": payload.roomCode},
            )
            await self.manager.send(connection_id, events.ERROR, {"message": FAILURE_MESSAGES[event]})

    async def disconnect(self, connection_id: str) -> None:
        """Implicit leave for a closed socket. Never raises."""
        try:
            await self._leave(connection_id)
        except Exception:
            logger.exception("Cleanup after disconnect failed", extra={"connection_id": connection_id})
        finally:
            self.manager.disconnect(connection_id)
        logger.info("Client disconnected", extra={"connection_id": connection_id})

    # -- membership -----------------------------------------------------------

    async def join_room(self, connection_id: str, payload: events.JoinRoomPayload) -> None:
        room_code = payload.roomCode
        try:
            room = await self._resolve_room(room_code)
        except RoomNotFound:
            await self.manager.send(
                connection_id, events.ROOM_JOINED, {"success": False, "message": "Room not found"}
            )
            return

        if self.registry.room_of(connection_id) is not None:
            await self._leave(connection_id)

        role = self.registry.join(connection_id, room_code, payload.language)
        self.manager.join_group(room_code, connection_id)

        if role == LISTENER:
            try:
                await self.storage.add_listener(room.id, payload.language)
            except Exception:
                logger.exception(
                    "Failed to add listener to database",
                    extra={"room_code": room_code, "language": payload.language},
                )

        await self.manager.send(connection_id, events.ROOM_JOINED, {"success": True, "role": role})
        await self.manager.broadcast(
            room_code,
            events.USER_JOINED,
            user_joined_payload(role, payload.language),
            exclude=connection_id,
        )
        logger.info(
            "User joined room",
            extra={"connection_id": connection_id, "room_code": room_code, "role": role},
        )

    async def leave_room(self, connection_id: str, payload: events.RoomPayload) -> None:
        if self.registry.room_of(connection_id) != payload.roomCode:
            return
        await self._leave(connection_id)

    async def _leave(self, connection_id: str) -> None:
        conn = self.registry.leave(connection_id)
        if conn is None:
            return
        room_code = conn.room_code
        self.manager.leave_group(room_code, connection_id)

        if self.registry.is_empty(room_code):
            # nobody left to speak or listen: drop all room-scoped state
            self.activity.clear(room_code)
            self.sessions.end_session(room_code)
            lock = self._room_locks.get(room_code)
            if lock is not None and not lock.locked():
                self._room_locks.pop(room_code, None)

        await self.manager.broadcast(room_code, events.USER_LEFT, {"role": conn.role})
        logger.info(
            "User left room",
            extra={"connection_id": connection_id, "room_code": room_code, "role": conn.role},
        )

    # -- transcription gate ---------------------------------------------------

    async def start_transcription(self, connection_id: str, payload: events.RoomPayload) -> None:
        room_code = payload.roomCode
        self.activity.start(room_code, connection_id)
        self.sessions.start_session(room_code)
        await self.manager.broadcast(room_code, events.TRANSCRIPTION_STARTED, {"roomCode": room_code})
        logger.info("Transcription started", extra={"room_code": room_code})

    async def stop_transcription(self, connection_id: str, payload: events.RoomPayload) -> None:
        room_code = payload.roomCode
        self.activity.stop(room_code, connection_id)
        self.sessions.end_session(room_code)
        await self.manager.broadcast(room_code, events.TRANSCRIPTION_STOPPED, {"roomCode": room_code})
        logger.info("Transcription stopped", extra={"room_code": room_code})

    async def room_ended(self, connection_id: str, payload: events.RoomPayload) -> None:
        await self.relay_room_ended(payload.roomCode)

    async def relay_room_ended(self, room_code: str) -> None:
        logger.info("Room ended", extra={"room_code": room_code})
        await self.manager.broadcast(room_code, events.ROOM_ENDED, {})

    # -- speech -----------------------------------------------------------------

    async def transcript_text(self, connection_id: str, payload: events.TranscriptTextPayload) -> None:
        room_code = payload.roomCode
        self._require_preacher(connection_id, room_code, "send transcript")
        if not self.activity.is_active(room_code):
            return
        text = payload.text.strip()
        if not text:
            logger.warning("Empty text received", extra={"room_code": room_code})
            return
        async with self._lock(room_code):
            await self._fan_out(room_code, text)

    async def audio_chunk(self, connection_id: str, payload: events.AudioChunkPayload) -> None:
        room_code = payload.roomCode
        self._require_preacher(connection_id, room_code, "send audio")
        if not self.activity.is_active(room_code):
            return
        chunk = self._decode_audio(payload.audio)

        async with self._lock(room_code):
            if self.sessions.get(room_code) is None:
                # transcription was stopped while this chunk waited for the lock
                return
            session = self.sessions.append_audio(room_code, chunk)
            try:
                fresh = await self.transcriber.transcribe(session.buffered_audio())
            except TranscriptionError:
                logger.warning("Transcription failed for chunk", extra={"room_code": room_code})
                await self.manager.send(
                    connection_id, events.ERROR, {"message": FAILURE_MESSAGES[events.AUDIO_CHUNK]}
                )
                return
            if not fresh:
                return
            delta = SessionStore.advance(session, fresh)
            if not delta:
                return
            await self._fan_out(room_code, delta)

    async def _fan_out(self, room_code: str, text: str) -> None:
        room = await self._resolve_room(room_code)
        languages = self.registry.languages_requested(room_code)
        translations = await translate_all(text, languages, self.translator, self.source_language)

        for language in sorted(translations, key=lambda lang: (lang != self.source_language, lang)):
            translated = None if language == self.source_language else translations[language]
            try:
                record = await self.storage.save_transcript(room.id, text, translated, language)
            except Exception:
                logger.exception(
                    "Failed to save transcript",
                    extra={"room_code": room_code, "language": language},
                )
                continue

            message = record.model_dump(mode="json")
            for conn in recipients_for(self.registry.members(room_code), language):
                await self.manager.send(conn.id, events.NEW_TRANSCRIPT, message)

    # -- helpers --------------------------------------------------------------

    async def _resolve_room(self, room_code: str) -> Room:
        room = await self.storage.get_room_by_code(room_code)
        if room is None:
            raise RoomNotFound(room_code)
        return room

    def _require_preacher(self, connection_id: str, room_code: str, action: str) -> None:
        if not self.registry.is_preacher_of(connection_id, room_code):
            raise Unauthorized(connection_id, action)

    def _decode_audio(self, encoded: str) -> bytes:
        if "," in encoded:
            # data URL as produced by FileReader.readAsDataURL
            encoded = encoded.split(",", 1)[1]
        try:
            chunk = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidAudioError("not valid base64") from e
        if not chunk:
            raise InvalidAudioError("empty")
        if len(chunk) > self.max_audio_chunk_bytes:
            raise InvalidAudioError("too large")
        return chunk

    def _lock(self, room_code: str) -> asyncio.Lock:
        lock = self._room_locks.get(room_code)
        if lock is None:
            lock = asyncio.Lock()
            self._room_locks[room_code] = lock
        return lock

    def room_stats(self, room_code: str) -> RoomStats:
        return RoomStats(
            listenerCount=len(self.registry.members(room_code)),
            isTranscribing=self.activity.is_active(room_code),
        )

    def all_room_stats(self) -> Dict[str, RoomStats]:
        return {code: self.room_stats(code) for code in self.registry.rooms()}
