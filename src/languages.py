"""
src/languages.py
=================
Supported target languages — VoiceBridge

The eleven Sarvam locale codes a clip can be translated into. Source
language is always auto-detected by speech-to-text.
"""

SUPPORTED_LANGUAGES: dict[str, str] = {
    "bn-IN": "Bengali",
    "en-IN": "English",
    "gu-IN": "Gujarati",
    "hi-IN": "Hindi",
    "kn-IN": "Kannada",
    "ml-IN": "Malayalam",
    "mr-IN": "Marathi",
    "od-IN": "Odia",  # Sarvam uses "od-IN" for Odia
    "pa-IN": "Punjabi",
    "ta-IN": "Tamil",
    "te-IN": "Telugu",
}

DEFAULT_SOURCE_LANGUAGE = "hi-IN"


def is_supported(language_code: str) -> bool:
    """Return True if *language_code* is one of the supported target locales."""
    return language_code in SUPPORTED_LANGUAGES
