"""Pytest configuration and fixtures."""
import asyncio
import os

import pytest

# Keep the module-level app off real backends
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("OPENAI_API_KEY", "test-key")

from sermon_relay.core.exceptions import TranscriptionError, TranslationError
from sermon_relay.services.interfaces import Transcriber, Translator
from sermon_relay.services.storage import InMemoryStorage
from sermon_relay.ws.dispatcher import EventDispatcher
from sermon_relay.ws.manager import ConnectionManager

ROOM_CODE = "ABC12345"


class FakeWebSocket:
    """Records every JSON frame the server sends."""

    def __init__(self):
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        self.sent.append(data)

    def events(self, name=None):
        return [m for m in self.sent if name is None or m["event"] == name]

    def payloads(self, name):
        return [m["payload"] for m in self.events(name)]


class FakeTranslator(Translator):
    """Prefixes the text with the language code; fails for languages in ``failing``.

    ``delays`` maps a text to seconds to sleep before answering.
    """

    def __init__(self, source_language="en"):
        self.source_language = source_language
        self.failing = set()
        self.calls = []
        self.delays = {}

    async def translate(self, text, target_language):
        self.calls.append((text, target_language))
        if text in self.delays:
            await asyncio.sleep(self.delays[text])
        if target_language in self.failing:
            raise TranslationError(target_language, RuntimeError("provider down"))
        if target_language == self.source_language:
            return text
        return f"[{target_language}] {text}"


class FakeTranscriber(Transcriber):
    """Returns scripted full transcripts in order; an Exception entry is raised."""

    def __init__(self):
        self.script = []
        self.received = []

    async def transcribe(self, audio_data):
        self.received.append(audio_data)
        result = self.script.pop(0) if self.script else ""
        if isinstance(result, Exception):
            raise TranscriptionError(len(audio_data), result)
        return result


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def translator():
    return FakeTranslator()


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def dispatcher(storage, transcriber, translator):
    return EventDispatcher(
        manager=ConnectionManager(),
        storage=storage,
        transcriber=transcriber,
        translator=translator,
        source_language="en",
    )


@pytest.fixture
async def room(storage):
    return await storage.create_room(ROOM_CODE)


@pytest.fixture
def connect(dispatcher):
    """Open a fake socket under the given connection id."""

    async def _connect(connection_id):
        ws = FakeWebSocket()
        await dispatcher.manager.connect(connection_id, ws)
        return ws

    return _connect
