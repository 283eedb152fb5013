"""
Pydantic models for the JSON shapes expected back from Gemini.

Each AI operation that asks for JSON validates the parsed payload against
one of these models. A payload of the wrong shape (for example a list where
an object was requested) is an invalid response, not something to guess at.
Text fields are typed ``Any`` on purpose: their contents are reconciled by
the bilingual normalizer afterwards.
"""
from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator


class UrlAnalysisResponse(BaseModel):
    """Structured extraction of a reference URL."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    content: str = Field("", description="Summary of what the page says")
    style: str = Field("", description="Writing style of the page")
    suggested_contexts: List[str] = Field(
        default_factory=list, alias="suggestedContexts",
        description="Event context lines worth adding to the settings",
    )
    suggested_themes: str = Field(
        "", alias="suggestedThemes", description="Themes suggested by the page"
    )

    @field_validator("content", "style", "suggested_themes", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("suggested_contexts", mode="before")
    @classmethod
    def _drop_non_strings(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [v for v in value if isinstance(v, str) and v.strip()]
        return value


class ContextListResponse(RootModel[List[str]]):
    """Refined event contexts: a JSON array of strings."""


class HighlightPayload(BaseModel):
    """One highlight as returned by the model, before normalization."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: Any = None
    description: Any = None
    location: Any = None
    related_entry_id: Any = Field(None, alias="relatedEntryId")
    id: Any = None


class ReportPayload(BaseModel):
    """A GeneratedReport-shaped document, before normalization."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: Any = None
    subtitle: Any = None
    executive_summary: Any = Field(None, alias="executiveSummary")
    key_takeaways: Any = Field(None, alias="keyTakeaways")
    conclusion: Any = None
    highlights: List[HighlightPayload] = Field(default_factory=list)

    @field_validator("highlights", mode="before")
    @classmethod
    def _only_object_highlights(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [h for h in value if isinstance(h, dict)]
