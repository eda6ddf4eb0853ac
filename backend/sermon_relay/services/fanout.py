"""Which languages a delta goes out in, and who receives each variant."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List

from sermon_relay.services.interfaces import Translator
from sermon_relay.state.room_manager import Connection

logger = logging.getLogger(__name__)


async def translate_all(
    text: str,
    languages: Iterable[str],
    translator: Translator,
    source_language: str,
) -> Dict[str, str]:
    """Translate ``text`` into every language, concurrently.

    The source language maps to ``text`` itself. A language whose translation
    fails falls back to the untranslated text so the other languages are
    never held back by it.
    """
    targets = sorted(set(languages))
    pending = [lang for lang in targets if lang != source_language]

    results = await asyncio.gather(
        *(translator.translate(text, lang) for lang in pending),
        return_exceptions=True,
    )

    translations: Dict[str, str] = {}
    if source_language in targets:
        translations[source_language] = text
    for lang, result in zip(pending, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.warning(
                "Translation failed, sending source text",
                extra={"language": lang, "error": str(result)},
            )
            translations[lang] = text
        else:
            translations[lang] = result
    return translations


def recipients_for(connections: Iterable[Connection], language: str) -> List[Connection]:
    """The preacher sees every variant; a listener only its own language."""
    return [
        conn
        for conn in connections
        if conn.is_preacher or conn.language == language
    ]
