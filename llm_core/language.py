"""
Response language validation.

LanguageGuard answers one question -- is this response in the language the
caller asked for? -- and builds the prompts used to steer a model back to
it. Detection is delegated to a LanguageDetector; the default one wraps
langdetect with a fixed seed so the same text always classifies the same way.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol, Sequence, runtime_checkable

from langdetect import DetectorFactory, detect
from langdetect.lang_detect_exception import LangDetectException

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

REFUSAL_PHRASES: tuple[str, ...] = (
    "i can only respond in",
    "i cannot respond in",
    "i can't respond in",
    "i am only able to respond in",
    "i'm only able to respond in",
    "i am unable to respond in",
    "i'm unable to respond in",
)

LANGUAGE_NAMES: dict[str, str] = {
    "ar": "Arabic",
    "cs": "Czech",
    "da": "Danish",
    "de": "German",
    "el": "Greek",
    "en": "English",
    "es": "Spanish",
    "fi": "Finnish",
    "fr": "French",
    "he": "Hebrew",
    "hi": "Hindi",
    "hu": "Hungarian",
    "id": "Indonesian",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "nl": "Dutch",
    "no": "Norwegian",
    "pl": "Polish",
    "pt": "Portuguese",
    "ro": "Romanian",
    "ru": "Russian",
    "sv": "Swedish",
    "th": "Thai",
    "tr": "Turkish",
    "uk": "Ukrainian",
    "vi": "Vietnamese",
    "zh": "Chinese",
}

CORRECTION_PROMPT = """Your previous answer was not written in {language}.

Original request:
{prompt}

Your previous answer:
---
{response}
---

Rewrite the answer so that it says the same thing, entirely in {language}.
Keep code blocks and identifiers unchanged. Respond only in {language}."""


@runtime_checkable
class LanguageDetector(Protocol):
    def detect(self, text: str) -> str | None:
        """Return a language code, or None when the text has no usable signal."""
        ...


class LangDetectDetector:
    """langdetect-backed detector."""

    _seed_lock = threading.Lock()

    def __init__(self, seed: int = 0) -> None:
        with self._seed_lock:
            DetectorFactory.seed = seed

    def detect(self, text: str) -> str | None:
        if not text.strip():
            return None
        try:
            return detect(text)
        except LangDetectException:
            return None


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(_primary(code), code)


class LanguageGuard:

    def __init__(
        self,
        detector: LanguageDetector | None = None,
        default_language: str = DEFAULT_LANGUAGE,
        refusal_phrases: Sequence[str] = REFUSAL_PHRASES,
    ) -> None:
        self._detector = detector or LangDetectDetector()
        self._default = _primary(default_language)
        self._refusals = tuple(p.lower() for p in refusal_phrases)

    @property
    def default_language(self) -> str:
        return self._default

    def is_default(self, language: str) -> bool:
        return _primary(language) == self._default

    def is_expected_language(self, response: str, expected_language: str) -> bool:
        if self.is_default(expected_language):
            return True

        lowered = response.lower()
        if any(phrase in lowered for phrase in self._refusals):
            logger.info(
                "Response contains a language refusal (expected %s)",
                expected_language,
            )
            return False

        detected = self._detector.detect(response)
        if detected is None:
            # Nothing to classify (code, numbers, empty text)
            return True
        matched = _primary(detected) == _primary(expected_language)
        if not matched:
            logger.info(
                "Response language mismatch: expected %s, detected %s",
                expected_language,
                detected,
            )
        return matched

    def enhance_prompt(self, prompt: str, expected_language: str) -> str:
        return f"{prompt}\n\nPlease respond in {language_name(expected_language)}."

    def build_correction_prompt(
        self, prompt: str, response: str, expected_language: str
    ) -> str:
        return CORRECTION_PROMPT.format(
            language=language_name(expected_language),
            prompt=prompt,
            response=response,
        )


def _primary(code: str) -> str:
    """'zh-cn' -> 'zh', 'EN_us' -> 'en'."""
    return code.strip().lower().replace("_", "-").split("-", 1)[0]
