"""Application settings loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the relay process. All secrets come from the environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = "INFO"
    cors_origins: List[str] = []

    # Speech
    source_language: str = "en"
    audio_buffer_chunks: int = 10
    max_audio_chunk_bytes: int = 25 * 1024 * 1024

    # OpenAI
    openai_api_key: str = ""
    transcription_model: str = "whisper-1"
    transcription_temperature: float = 0.2
    translation_model: str = "gpt-3.5-turbo"
    translation_temperature: float = 0.3
    translation_max_tokens: int = 1000
    openai_timeout_s: float = 30.0

    # Storage
    storage_backend: Literal["memory", "supabase"] = "memory"
    supabase_url: str = ""
    supabase_key: str = ""
    storage_timeout_s: float = 10.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
