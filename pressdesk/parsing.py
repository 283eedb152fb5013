"""
Parsing helpers for model output.

Gemini often wraps JSON in Markdown code fences even when asked not to;
those are stripped before parsing. Parse failures are raised as
``InvalidResponseError`` carrying the raw text for debugging.
"""

from __future__ import annotations

import json
import re
from typing import Any, Tuple

from .services.errors import InvalidResponseError

_FENCE_OPEN = re.compile(r"^```(?:json|JSON)?\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")
_TITLE_PREFIX = re.compile(r"^\s*TITLE\s*:", re.IGNORECASE)
_SUBTITLE_PREFIX = re.compile(r"^\s*SUBTITLE\s*:", re.IGNORECASE)

MAX_RAW_PREVIEW = 500


def clean_json_text(text: str) -> str:
    """Strip surrounding whitespace and ```json fences."""
    if not text:
        return ""
    clean = text.strip()
    clean = _FENCE_OPEN.sub("", clean)
    clean = _FENCE_CLOSE.sub("", clean)
    return clean.strip()


def parse_json_response(text: str, what: str = "response") -> Any:
    """
    Parse model output as JSON.

    Args:
        text: Raw model text
        what: Name of the operation, used in the error message

    Raises:
        InvalidResponseError: If the text is empty or not valid JSON
    """
    clean = clean_json_text(text)
    if not clean:
        raise InvalidResponseError(f"Empty {what} from AI", raw_text=text)
    try:
        return json.loads(clean)
    except ValueError as e:
        raise InvalidResponseError(
            f"AI returned invalid JSON for {what}: {e}", raw_text=text
        ) from e


def preview(text: str) -> str:
    if text is None:
        return ""
    return text if len(text) <= MAX_RAW_PREVIEW else text[:MAX_RAW_PREVIEW] + "..."


def parse_title_response(text: str) -> Tuple[str, str]:
    """
    Split a title draft into (title, subtitle).

    ``TITLE:`` / ``SUBTITLE:`` prefixed lines win. Without them, a long
    multi-line answer is read as "first line is the title, the rest is the
    subtitle"; anything else is all title.
    """
    text = (text or "").strip()
    title = text
    subtitle = ""
    found_title = False

    for line in text.split("\n"):
        if _TITLE_PREFIX.match(line):
            title = _TITLE_PREFIX.sub("", line, count=1).strip()
            found_title = True
        elif _SUBTITLE_PREFIX.match(line):
            subtitle = _SUBTITLE_PREFIX.sub("", line, count=1).strip()

    if not found_title and len(text) > 50 and "\n" in text:
        lines = text.split("\n")
        title = lines[0].strip()
        remainder = " ".join(line.strip() for line in lines[1:] if line.strip())
        subtitle = subtitle or remainder

    return title, subtitle
