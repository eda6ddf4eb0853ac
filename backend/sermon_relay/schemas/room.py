from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Room(BaseModel):
    id: int
    room_code: str
    created_at: datetime = Field(default_factory=_utcnow)
    is_active: bool = True


class TranscriptRecord(BaseModel):
    """One persisted emission of a delta in one language.

    ``translated_text`` is None when ``language`` is the source language.
    """

    id: int
    room_id: int
    original_text: str
    translated_text: Optional[str] = None
    language: str
    created_at: datetime = Field(default_factory=_utcnow)


class Listener(BaseModel):
    id: int
    room_id: int
    preferred_language: str
    joined_at: datetime = Field(default_factory=_utcnow)


class RoomStats(BaseModel):
    listenerCount: int = 0
    isTranscribing: bool = False


class CreateRoomResponse(BaseModel):
    roomCode: str
    room: Room


class RoomInfo(BaseModel):
    room: Room
    listeners: List[Listener]
    stats: RoomStats


class SuccessResponse(BaseModel):
    success: bool
    message: str


class TranscriptList(BaseModel):
    transcripts: List[TranscriptRecord]


class ListenerList(BaseModel):
    listeners: List[Listener]


class AllRoomStats(BaseModel):
    rooms: Dict[str, RoomStats]


class RoomList(BaseModel):
    rooms: List[Room]


class TranscriptDetail(BaseModel):
    transcript: TranscriptRecord


class TranscriptSearchRequest(BaseModel):
    query: str = Field(min_length=1)
    roomId: Optional[int] = None
    language: Optional[str] = None
    limit: int = Field(default=50, ge=1)


class TranscriptSearchResult(BaseModel):
    transcripts: List[TranscriptRecord]
    query: str
    count: int


class TranscriptStats(BaseModel):
    totalTranscripts: int = 0
    languageBreakdown: Dict[str, int] = Field(default_factory=dict)
    firstTranscript: Optional[datetime] = None
    lastTranscript: Optional[datetime] = None


class TranscriptStatsResponse(BaseModel):
    stats: TranscriptStats
