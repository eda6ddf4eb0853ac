from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

DEFAULT_MAX_CHUNKS = 10


def extract_delta(previous: str, fresh: str) -> str:
    """Return the text ``fresh`` adds on top of ``previous``.

    The first literal occurrence of ``previous`` is removed from ``fresh`` and
    the remainder is trimmed. When the provider re-segmented or corrected
    earlier words, ``previous`` is not found and ``fresh`` comes back whole.
    """
    return fresh.replace(previous, "", 1).strip()


@dataclass
class SpeakingSession:
    key: str
    transcript: str = ""
    audio_chunks: List[bytes] = field(default_factory=list)
    last_activity_s: float = field(default_factory=time.monotonic)

    def buffered_audio(self) -> bytes:
        return b"".join(self.audio_chunks)


class SessionStore:
    """Running transcript and recent audio for each live speaking session.

    Sessions are keyed by room code so a room never has more than one.
    Starting a session on a key that already has one resets it.
    """

    def __init__(self, max_chunks: int = DEFAULT_MAX_CHUNKS) -> None:
        self.max_chunks = max_chunks
        self._key_to_session: Dict[str, SpeakingSession] = {}

    def start_session(self, key: str) -> SpeakingSession:
        session = SpeakingSession(key=key)
        self._key_to_session[key] = session
        return session

    def end_session(self, key: str) -> None:
        self._key_to_session.pop(key, None)

    def get(self, key: str) -> Optional[SpeakingSession]:
        return self._key_to_session.get(key)

    def active_keys(self) -> List[str]:
        return list(self._key_to_session)

    def append_audio(self, key: str, chunk: bytes) -> SpeakingSession:
        """Buffer a chunk, keeping only the most recent ``max_chunks``.

        Raises KeyError when no session is running under ``key``.
        """
        session = self._key_to_session[key]
        session.audio_chunks.append(chunk)
        if len(session.audio_chunks) > self.max_chunks:
            session.audio_chunks = session.audio_chunks[-self.max_chunks:]
        session.last_activity_s = time.monotonic()
        return session

    @staticmethod
    def advance(session: SpeakingSession, fresh: str) -> str:
        """Store ``fresh`` as the session's full transcript and return the delta.

        A blank ``fresh`` is no new content and leaves the stored transcript alone.
        """
        if not fresh.strip():
            return ""
        delta = extract_delta(session.transcript, fresh)
        session.transcript = fresh
        session.last_activity_s = time.monotonic()
        return delta
