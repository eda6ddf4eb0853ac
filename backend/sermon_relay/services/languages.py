"""
Languages offered to listeners, keyed by ISO 639-1 code.
"""

SUPPORTED_LANGUAGES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese",
    "ar": "Arabic",
    "hi": "Hindi",
}


def get_language_name(code: str) -> str:
    """Get the display name for a language code."""
    return SUPPORTED_LANGUAGES.get(code, code.upper())
