"""Language detection used by language-based handoffs."""

from __future__ import annotations

import logging

from langdetect import DetectorFactory, detect_langs
from langdetect.lang_detect_exception import LangDetectException

logger = logging.getLogger(__name__)

# langdetect is randomized unless seeded.
DetectorFactory.seed = 0

CONFIDENCE_THRESHOLD = 0.5

LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "ja": "Japanese",
}

SPANISH_MARKERS = ("¿", "¡", "ñ", "ó", "á", "é", "í", "ú")
SPANISH_WORDS = ("hola", "como", "estas", "gracias", "buenos", "dias", "adios", "por favor", "ayuda")


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)


def matches_heuristics(text: str, code: str) -> bool:
    if code != "es":
        return False
    if any(marker in text for marker in SPANISH_MARKERS):
        return True
    lowered = text.lower()
    return any(word in lowered for word in SPANISH_WORDS)


def detect_language(text: str) -> tuple[str | None, float]:
    """Return the most likely language code and its probability."""
    try:
        candidates = detect_langs(text)
    except LangDetectException:
        logger.debug("Language detection failed for input of length %s", len(text))
        return None, 0.0
    if not candidates:
        return None, 0.0
    best = candidates[0]
    return best.lang, float(best.prob)


def is_language(text: str, code: str, threshold: float = CONFIDENCE_THRESHOLD) -> bool:
    if not text:
        return False
    if matches_heuristics(text, code):
        return True
    detected, confidence = detect_language(text)
    return detected == code and confidence > threshold
