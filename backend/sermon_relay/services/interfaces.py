"""Abstract interfaces for the collaborators the relay core talks to."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from sermon_relay.schemas.room import Listener, Room, TranscriptRecord


class StorageClient(ABC):
    """Persistent store for rooms, listeners and transcript records."""

    @abstractmethod
    async def create_room(self, room_code: str) -> Room:
        pass

    @abstractmethod
    async def get_room_by_code(self, room_code: str) -> Optional[Room]:
        """
        Looks up an active room.

        Returns:
            The room, or None when no active room has this code.

        Raises:
            StorageError: If the backend call fails.
        """
        pass

    @abstractmethod
    async def list_active_rooms(self, limit: int = 50) -> List[Room]:
        """Returns active rooms, newest first."""
        pass

    @abstractmethod
    async def end_room(self, room_code: str) -> None:
        pass

    @abstractmethod
    async def add_listener(self, room_id: int, preferred_language: str) -> Listener:
        pass

    @abstractmethod
    async def get_listeners_by_room(self, room_id: int) -> List[Listener]:
        pass

    @abstractmethod
    async def remove_listener(self, listener_id: int) -> bool:
        """Deletes a listener record. Returns False when it did not exist."""
        pass

    @abstractmethod
    async def save_transcript(
        self,
        room_id: int,
        original_text: str,
        translated_text: Optional[str],
        language: str,
    ) -> TranscriptRecord:
        pass

    @abstractmethod
    async def get_transcripts_by_room(
        self,
        room_id: int,
        language: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[TranscriptRecord]:
        """
        Returns the room's transcript records, oldest first.

        Args:
            language: Only records in this language.
            limit: Page size. Defaults to 50 when only ``offset`` is given.
            offset: Number of records to skip.
        """
        pass

    @abstractmethod
    async def get_transcript(self, transcript_id: int) -> Optional[TranscriptRecord]:
        pass

    @abstractmethod
    async def delete_transcript(self, transcript_id: int) -> None:
        pass

    @abstractmethod
    async def delete_transcripts_by_room(self, room_id: int) -> None:
        pass

    @abstractmethod
    async def search_transcripts(
        self,
        query: str,
        room_id: Optional[int] = None,
        language: Optional[str] = None,
        limit: int = 50,
    ) -> List[TranscriptRecord]:
        """Case-insensitive substring match over original and translated text, newest first."""
        pass


class Transcriber(ABC):
    """Speech-to-text backend."""

    @abstractmethod
    async def transcribe(self, audio_data: bytes) -> str:
        """
        Transcribes a complete audio clip.

        Args:
            audio_data: Raw container bytes (WebM from the browser recorder).

        Returns:
            The full transcript of the clip.

        Raises:
            TranscriptionError: If transcription fails.
        """
        pass


class Translator(ABC):
    """Machine translation backend."""

    @abstractmethod
    async def translate(self, text: str, target_language: str) -> str:
        """
        Raises:
            TranslationError: If translation fails.
        """
        pass
