"""
JSON import/export bundles.

Two documents are exchanged as files:

- ``{"aiContext": {...}}``: brand and author settings. Older exports used
  ``{"settings": {...}}``; both are accepted on import.
- ``{"reportData": {"entries": [...], "settings": {...}, "draft": {...}}}``:
  the working entries, event context and draft.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from .models.report import ContextSettings, ReportDraft, TripEntry

logger = logging.getLogger(__name__)

AI_CONTEXT_KEYS = [
    "persona",
    "tone",
    "brandLogo",
    "brandName",
    "brandLocation",
    "authorName",
    "authorRole",
    "websiteUrl",
    "twitterUrl",
    "telegramUrl",
]

REPORT_SETTINGS_KEYS = [
    "eventContexts",
    "keyThemes",
    "referenceUrls",
    "referenceContent",
    "referenceStyle",
]


class InvalidBundleError(ValueError):
    """Import file is not JSON or has none of the expected top-level keys."""


def _load(document: Union[str, bytes, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(document, dict):
        return document
    try:
        data = json.loads(document)
    except ValueError as e:
        raise InvalidBundleError(f"Import file is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidBundleError("Import file must contain a JSON object")
    return data


def export_ai_context(settings: ContextSettings) -> Dict[str, Any]:
    return {"aiContext": settings.to_dict(AI_CONTEXT_KEYS)}


def import_settings(settings: ContextSettings, document: Union[str, bytes, Dict[str, Any]]) -> ContextSettings:
    """
    Apply an ``aiContext`` (or legacy ``settings``) bundle on top of ``settings``.

    Keys absent from the bundle keep their current values.

    Raises:
        InvalidBundleError: Neither key present
    """
    data = _load(document)
    payload = data.get("aiContext")
    if not isinstance(payload, dict):
        payload = data.get("settings")
    if not isinstance(payload, dict):
        raise InvalidBundleError("Invalid settings file: expected an 'aiContext' or 'settings' object")
    logger.info("Importing settings (%d keys)", len(payload))
    return settings.merged(payload)


def export_report_data(
    entries: List[TripEntry], settings: ContextSettings, draft: ReportDraft
) -> Dict[str, Any]:
    return {
        "reportData": {
            "entries": [e.to_dict() for e in entries],
            "settings": settings.to_dict(REPORT_SETTINGS_KEYS),
            "draft": draft.to_dict(),
        }
    }


def import_report_data(
    document: Union[str, bytes, Dict[str, Any]],
    settings: ContextSettings,
) -> Tuple[Optional[List[TripEntry]], ContextSettings, Optional[ReportDraft]]:
    """
    Read a ``reportData`` bundle.

    Returns:
        (entries, settings, draft). ``entries`` and ``draft`` are None when
        the bundle does not carry them, so the caller keeps its own.

    Raises:
        InvalidBundleError: No ``reportData`` object
    """
    data = _load(document)
    payload = data.get("reportData")
    if not isinstance(payload, dict):
        raise InvalidBundleError("Invalid entries file: expected a 'reportData' object")

    entries = None
    raw_entries = payload.get("entries")
    if isinstance(raw_entries, list):
        entries = [TripEntry.from_dict(e) for e in raw_entries if isinstance(e, dict)]

    raw_settings = payload.get("settings")
    if isinstance(raw_settings, dict):
        settings = settings.merged(raw_settings)

    draft = None
    raw_draft = payload.get("draft")
    if isinstance(raw_draft, dict):
        draft = ReportDraft.from_dict(raw_draft)

    return entries, settings, draft
