"""Payloads of client -> server WebSocket events.

Every frame on the socket is ``{"event": <name>, "payload": {...}}``; the
payload is validated against the model registered for the event name.
"""

from __future__ import annotations

from typing import Dict, Type

from pydantic import BaseModel, Field, field_validator

JOIN_ROOM = "join-room"
LEAVE_ROOM = "leave-room"
TRANSCRIPT_TEXT = "transcript-text"
AUDIO_CHUNK = "audio-chunk"
START_TRANSCRIPTION = "start-transcription"
STOP_TRANSCRIPTION = "stop-transcription"
ROOM_ENDED = "room-ended"

# server -> client
ROOM_JOINED = "room-joined"
USER_JOINED = "user-joined"
USER_LEFT = "user-left"
NEW_TRANSCRIPT = "new-transcript"
TRANSCRIPTION_STARTED = "transcription-started"
TRANSCRIPTION_STOPPED = "transcription-stopped"
ERROR = "error"


class RoomPayload(BaseModel):
    roomCode: str = Field(min_length=1)

    @field_validator("roomCode")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.strip().upper()


class JoinRoomPayload(RoomPayload):
    language: str = "en"

    @field_validator("language")
    @classmethod
    def _lower(cls, value: str) -> str:
        return value.strip().lower()


class TranscriptTextPayload(RoomPayload):
    text: str = ""


class AudioChunkPayload(RoomPayload):
    # base64 encoded bytes as produced by MediaRecorder on the client
    audio: str


PAYLOADS: Dict[str, Type[RoomPayload]] = {
    JOIN_ROOM: JoinRoomPayload,
    LEAVE_ROOM: RoomPayload,
    TRANSCRIPT_TEXT: TranscriptTextPayload,
    AUDIO_CHUNK: AudioChunkPayload,
    START_TRANSCRIPTION: RoomPayload,
    STOP_TRANSCRIPTION: RoomPayload,
    ROOM_ENDED: RoomPayload,
}
