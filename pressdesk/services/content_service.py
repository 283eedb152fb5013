"""
Content assist operations: URL analysis, context/theme refinement and the
per-entry helpers (caption, PR copy, headline, generated image) plus
section drafts.

All calls go through ``PromptRunner`` and therefore the retry wrapper.
Upstream failures propagate to the caller; only the documented degraded
paths (URL analysis falling back to raw text) return partial data.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..models.report import ContextSettings, TripEntry
from ..models.responses import ContextListResponse, UrlAnalysisResponse
from ..parsing import clean_json_text, parse_json_response, parse_title_response, preview
from ..prompts import (
    build_caption_prompt,
    build_entry_copy_prompt,
    build_entry_image_prompt,
    build_refine_contexts_prompt,
    build_refine_themes_prompt,
    build_section_draft_prompt,
    build_url_analysis_prompt,
)
from .errors import EmptyInputError, InvalidResponseError
from .runner import PromptRunner

logger = logging.getLogger(__name__)


class ContentService:
    """Smaller AI helpers used while assembling a report."""

    def __init__(self, runner: Optional[PromptRunner] = None, config: Optional[Dict[str, Any]] = None):
        self.runner = runner or PromptRunner(config=config)

    def analyze_url(self, url: str, language: str) -> UrlAnalysisResponse:
        """
        Extract content, style and suggestions from a reference URL.

        When the answer is not valid JSON the raw text is kept as ``content``
        rather than discarded.
        """
        url = (url or "").strip()
        if not url:
            return UrlAnalysisResponse()

        text = self.runner.run_text(build_url_analysis_prompt(url, language))
        if not text:
            return UrlAnalysisResponse()
        try:
            return UrlAnalysisResponse.model_validate(parse_json_response(text, "url analysis"))
        except (InvalidResponseError, ValidationError) as e:
            logger.warning("URL analysis for %s was not structured JSON (%s); keeping raw text", url, e)
            return UrlAnalysisResponse(content=clean_json_text(text))

    def refine_contexts(self, settings: ContextSettings, language: str) -> List[str]:
        """
        Ask for a cleaned-up list of event contexts.

        Raises:
            InvalidResponseError: Answer is not a JSON array of strings
        """
        parsed = self.runner.run_json(build_refine_contexts_prompt(settings, language), "context refinement")
        try:
            contexts = ContextListResponse.model_validate(parsed).root
        except ValidationError as e:
            raise InvalidResponseError(
                "Context refinement did not return an array of strings", raw_text=preview(str(parsed))
            ) from e
        return [c.strip() for c in contexts if c.strip()]

    def refine_themes(self, settings: ContextSettings, language: str) -> str:
        return self.runner.run_text(build_refine_themes_prompt(settings, language))

    def generate_entry_caption(self, images: List[str], language: str, settings: ContextSettings) -> str:
        if not images:
            return ""
        return self.runner.run_text(build_caption_prompt(images, language, settings))

    def generate_entry_copy(
        self,
        note: str,
        caption: str,
        language: str,
        settings: ContextSettings,
        title: Optional[str] = None,
    ) -> str:
        if not note and not caption:
            raise EmptyInputError("PR copy needs a note or a visual analysis")
        return self.runner.run_text(build_entry_copy_prompt(note, caption, language, settings, title))

    def generate_entry_image(self, description: str, settings: ContextSettings) -> str:
        """Generate an illustrative photo; returns a data URL or "" when no image came back."""
        if not description:
            return ""
        response = self.runner.run(build_entry_image_prompt(description, settings))
        if not response.images:
            logger.warning("Image model returned no image (text: %r)", preview(response.text))
        return response.first_image_data_url()

    def generate_entry_title(self, entry: TripEntry, language: str, settings: ContextSettings) -> str:
        headline = self.generate_section_draft("entryTitle", [entry], language, settings)
        return headline.strip().strip("\"'\u201c\u201d")

    def generate_section_draft(
        self,
        section: str,
        entries: List[TripEntry],
        language: str,
        settings: ContextSettings,
    ) -> str:
        """Free-text draft for a report section (raw text; see ``draft_title``)."""
        return self.runner.run_text(build_section_draft_prompt(section, entries, language, settings))

    def draft_title(self, entries: List[TripEntry], language: str, settings: ContextSettings) -> Tuple[str, str]:
        """Draft and split a title answer into (title, subtitle)."""
        return parse_title_response(self.generate_section_draft("title", entries, language, settings))
