from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI

from sermon_relay.api.rooms import router as rooms_router
from sermon_relay.api.transcripts import router as transcripts_router
from sermon_relay.core.config import Settings, get_settings
from sermon_relay.core.logging import setup_logging
from sermon_relay.services.interfaces import StorageClient, Transcriber, Translator
from sermon_relay.services.openai_service import OpenAITranscriber, OpenAITranslator
from sermon_relay.services.storage import InMemoryStorage, SupabaseStorage
from sermon_relay.ws.dispatcher import EventDispatcher
from sermon_relay.ws.manager import ConnectionManager
from sermon_relay.ws.routes import router as ws_router


def build_storage(settings: Settings) -> StorageClient:
    if settings.storage_backend == "supabase":
        return SupabaseStorage.from_credentials(
            settings.supabase_url, settings.supabase_key, timeout=settings.storage_timeout_s
        )
    return InMemoryStorage()


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[StorageClient] = None,
    transcriber: Optional[Transcriber] = None,
    translator: Optional[Translator] = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    storage = storage or build_storage(settings)
    if transcriber is None or translator is None:
        client = AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.openai_timeout_s)
        transcriber = transcriber or OpenAITranscriber(
            client,
            model=settings.transcription_model,
            language=settings.source_language,
            temperature=settings.transcription_temperature,
        )
        translator = translator or OpenAITranslator(
            client,
            model=settings.translation_model,
            source_language=settings.source_language,
            temperature=settings.translation_temperature,
            max_tokens=settings.translation_max_tokens,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if isinstance(storage, SupabaseStorage):
            await storage.aclose()

    app = FastAPI(title="Sermon Relay", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.storage = storage
    app.state.dispatcher = EventDispatcher(
        manager=ConnectionManager(),
        storage=storage,
        transcriber=transcriber,
        translator=translator,
        source_language=settings.source_language,
        audio_buffer_chunks=settings.audio_buffer_chunks,
        max_audio_chunk_bytes=settings.max_audio_chunk_bytes,
    )

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(rooms_router)
    app.include_router(transcripts_router)
    app.include_router(ws_router)
    return app


app = create_app()
