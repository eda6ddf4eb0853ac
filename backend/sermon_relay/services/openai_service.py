"""OpenAI implementations of the Transcriber and Translator interfaces."""

from __future__ import annotations

import logging
from typing import List

from openai import AsyncOpenAI
from openai.types.chat import ChatCompletionMessageParam

from sermon_relay.core.exceptions import TranscriptionError, TranslationError
from sermon_relay.services.interfaces import Transcriber, Translator
from sermon_relay.services.languages import get_language_name

logger = logging.getLogger(__name__)


def translation_prompt(language_name: str) -> str:
    return (
        f"You are a professional translator. Translate the given text to {language_name}. "
        "Maintain the original meaning, tone, and context. "
        f"If the text is already in {language_name}, return it as is. "
        "Only return the translated text, no explanations or additional content."
    )


class OpenAITranscriber(Transcriber):
    """Whisper transcription of buffered WebM audio."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "whisper-1",
        language: str = "en",
        temperature: float = 0.2,
    ) -> None:
        self._client = client
        self._model = model
        self._language = language
        self._temperature = temperature

    async def transcribe(self, audio_data: bytes) -> str:
        try:
            transcription = await self._client.audio.transcriptions.create(
                file=("audio.webm", audio_data, "audio/webm"),
                model=self._model,
                language=self._language,
                response_format="text",
                temperature=self._temperature,
            )
        except Exception as e:
            logger.exception("Whisper transcription failed", extra={"size": len(audio_data)})
            raise TranscriptionError(len(audio_data), e) from e

        # response_format="text" yields a bare string
        text = transcription if isinstance(transcription, str) else getattr(transcription, "text", "")
        return (text or "").strip()


class OpenAITranslator(Translator):
    """Chat-completion based translation."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "gpt-3.5-turbo",
        source_language: str = "en",
        temperature: float = 0.3,
        max_tokens: int = 1000,
    ) -> None:
        self._client = client
        self._model = model
        self._source_language = source_language
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def translate(self, text: str, target_language: str) -> str:
        if target_language == self._source_language:
            return text

        messages: List[ChatCompletionMessageParam] = [
            {"role": "system", "content": translation_prompt(get_language_name(target_language))},
            {"role": "user", "content": text},
        ]
        try:
            completion = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except Exception as e:
            logger.exception("Translation request failed", extra={"language": target_language})
            raise TranslationError(target_language, e) from e

        translated = completion.choices[0].message.content if completion.choices else None
        if not translated or not translated.strip():
            raise TranslationError(target_language, ValueError("No translation received"))
        return translated.strip()
