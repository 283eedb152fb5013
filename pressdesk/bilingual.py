"""
Bilingual text primitives.

Every text-bearing field in a report is a ``BilingualText``. AI output is
coerced into one with ``normalize_bilingual`` so that both languages are
always present as strings, even when the model ignores the bilingual
contract and returns a bare string, a partial object, or nothing at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

LANGUAGES = ("en", "zh")

LANGUAGE_NAMES = {
    "en": "English",
    "zh": "Chinese (Simplified)",
}


def primary_language(language: str) -> str:
    """
    Resolve a UI language selection to the language content is written in.

    "en" selects English; "zh" and "both" select Chinese.
    """
    return "en" if language == "en" else "zh"


def other_language(language: str) -> str:
    return "zh" if primary_language(language) == "en" else "en"


@dataclass(frozen=True)
class BilingualText:
    """A piece of text in English and Chinese."""

    en: str = ""
    zh: str = ""

    def get(self, language: str) -> str:
        return self.zh if primary_language(language) == "zh" else self.en

    def with_text(self, language: str, text: str) -> BilingualText:
        """Return a copy with one language replaced."""
        if primary_language(language) == "zh":
            return BilingualText(en=self.en, zh=text)
        return BilingualText(en=text, zh=self.zh)

    def prefer(self, *order: str) -> str:
        """First non-empty value following the given language order."""
        for language in order or LANGUAGES:
            value = self.get(language)
            if value:
                return value
        return ""

    def is_empty(self) -> bool:
        return not self.en and not self.zh

    def to_dict(self) -> Dict[str, str]:
        return {"en": self.en, "zh": self.zh}


EMPTY = BilingualText()


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def normalize_bilingual(value: Any, language: str = "en") -> BilingualText:
    """
    Coerce arbitrary AI output into a complete ``BilingualText``.

    Args:
        value: None, a bare string, a mapping with optional "en"/"zh" keys,
            or an existing BilingualText
        language: Language selected for the requesting operation. A bare
            string is assigned to it and the other language is left empty.

    Returns:
        BilingualText with both languages set (possibly to "")
    """
    if value is None:
        return EMPTY
    if isinstance(value, BilingualText):
        return value
    if isinstance(value, str):
        return BilingualText().with_text(language, value)
    if isinstance(value, dict):
        return BilingualText(
            en=_coerce_text(value.get("en")),
            zh=_coerce_text(value.get("zh")),
        )
    return EMPTY


def normalize_bilingual_list(values: Any, language: str = "en") -> List[BilingualText]:
    """Normalize each element of an array-valued bilingual field."""
    if not isinstance(values, list):
        return []
    return [normalize_bilingual(v, language) for v in values]
