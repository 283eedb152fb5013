"""Domain models for pressdesk."""

from .report import (
    ContextSettings,
    GeneratedReport,
    GenerationMode,
    Highlight,
    PublishedReport,
    ReportDraft,
    TripEntry,
    new_id,
    now_ms,
)
from .responses import (
    ContextListResponse,
    HighlightPayload,
    ReportPayload,
    UrlAnalysisResponse,
)

__all__ = [
    "ContextListResponse",
    "ContextSettings",
    "GeneratedReport",
    "GenerationMode",
    "Highlight",
    "HighlightPayload",
    "PublishedReport",
    "ReportDraft",
    "ReportPayload",
    "TripEntry",
    "UrlAnalysisResponse",
    "new_id",
    "now_ms",
]
