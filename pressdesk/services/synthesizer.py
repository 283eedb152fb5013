"""
Report synthesizer: entries + settings + draft -> bilingual GeneratedReport.

Three generation modes:

- creative: write the whole report in the selected language and translate
  every field into the other one.
- zh_to_en / en_to_zh: translate the existing draft and entry copy. The
  source language is fixed by the mode and its text is never changed.

Whatever the model returns is reconciled into a complete bilingual
document. Unparsable or wrongly shaped JSON is an ``InvalidResponseError``;
missing fields are filled with empty text and are not an error.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from ..bilingual import BilingualText, normalize_bilingual, primary_language
from ..models.report import (
    ContextSettings,
    GeneratedReport,
    GenerationMode,
    Highlight,
    ReportDraft,
    TripEntry,
)
from ..models.responses import HighlightPayload, ReportPayload
from ..prompts import (
    build_creative_report_prompt,
    build_translation_payload,
    build_translation_prompt,
)
from .errors import EmptyInputError, InvalidResponseError
from .runner import PromptRunner

logger = logging.getLogger(__name__)


class SynthesisState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def _entry_id(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        return str(value)
    return None


def align_highlights(highlights: List[Highlight], entries: List[TripEntry]) -> List[Highlight]:
    """
    Order highlights to follow ``entries``.

    Highlights are matched by ``related_entry_id`` first. A highlight with a
    missing, unknown or already-claimed id takes the entry at its own
    position if that entry is still unclaimed. Highlights that match no entry
    are kept after the matched ones. Entries without a highlight get none:
    no placeholder is invented.
    """
    positions = {entry.id: i for i, entry in enumerate(entries)}
    claimed: Dict[str, Highlight] = {}
    pending: List[tuple] = []

    for index, highlight in enumerate(highlights):
        rid = highlight.related_entry_id
        if rid in positions and rid not in claimed:
            claimed[rid] = highlight
        else:
            pending.append((index, highlight))

    unmatched: List[Highlight] = []
    for index, highlight in pending:
        if index < len(entries) and entries[index].id not in claimed:
            highlight.related_entry_id = entries[index].id
            claimed[entries[index].id] = highlight
        else:
            unmatched.append(highlight)

    if unmatched:
        logger.warning(
            "%d highlight(s) could not be matched to an entry; keeping them last",
            len(unmatched),
        )
    missing = len(entries) - len(claimed)
    if missing > 0:
        logger.warning("AI returned no highlight for %d of %d entries", missing, len(entries))

    ordered = [claimed[e.id] for e in entries if e.id in claimed]
    return ordered + unmatched


class ReportSynthesizer:
    """
    Orchestrates one report generation.

    ``state`` follows IDLE -> REQUESTING -> SUCCEEDED | FAILED for the most
    recent call; ``last_error`` keeps the failure for diagnostics.
    """

    def __init__(self, runner: Optional[PromptRunner] = None, config: Optional[Dict[str, Any]] = None):
        self.runner = runner or PromptRunner(config=config)
        self.state = SynthesisState.IDLE
        self.last_error: Optional[Exception] = None

    def generate(
        self,
        entries: List[TripEntry],
        language: str,
        settings: ContextSettings,
        draft: Optional[ReportDraft] = None,
        mode: Union[GenerationMode, str] = GenerationMode.CREATIVE,
    ) -> GeneratedReport:
        """
        Generate a bilingual report.

        Args:
            entries: Entries in display order
            language: Selected UI language ("en", "zh" or "both")
            settings: Context settings for the prompts
            draft: Existing draft (reference in creative mode, source text
                in translation modes)
            mode: GenerationMode or its string value

        Returns:
            GeneratedReport with both languages on every text field

        Raises:
            EmptyInputError: No entries and no event contexts (no API call made)
            InvalidResponseError: Model answer was not usable JSON
            GeminiAPIError: Upstream failure that survived the retry wrapper
        """
        mode = GenerationMode(mode)
        self.last_error = None

        if not entries and not settings.event_contexts:
            self.state = SynthesisState.FAILED
            self.last_error = EmptyInputError("Add entries or event context before generating")
            raise self.last_error

        self.state = SynthesisState.REQUESTING
        try:
            if mode.is_translation:
                report = self._translate(entries, settings, draft, mode)
            else:
                report = self._create(entries, language, settings, draft)
        except Exception as e:
            self.state = SynthesisState.FAILED
            self.last_error = e
            logger.error("Error generating report (mode=%s): %s", mode.value, e)
            raise

        self.state = SynthesisState.SUCCEEDED
        logger.info(
            "Generated report (mode=%s): %d highlight(s) for %d entries",
            mode.value, len(report.highlights), len(entries),
        )
        return report

    @staticmethod
    def _validate(parsed: Any) -> ReportPayload:
        try:
            return ReportPayload.model_validate(parsed)
        except ValidationError as e:
            raise InvalidResponseError(
                f"AI response does not match the report shape: {e.error_count()} error(s)",
                raw_text=str(parsed)[:500],
            ) from e

    # ------------------------------------------------------------------
    # Creative mode
    # ------------------------------------------------------------------

    def _create(
        self,
        entries: List[TripEntry],
        language: str,
        settings: ContextSettings,
        draft: Optional[ReportDraft],
    ) -> GeneratedReport:
        prompt = build_creative_report_prompt(entries, language, settings, draft)
        payload = self._validate(self.runner.run_json(prompt, "report"))
        fallback = primary_language(language)

        highlights = [self._creative_highlight(h, fallback) for h in payload.highlights]

        return GeneratedReport(
            title=normalize_bilingual(payload.title, fallback),
            subtitle=normalize_bilingual(payload.subtitle, fallback),
            executive_summary=normalize_bilingual(payload.executive_summary, fallback),
            key_takeaways=[
                normalize_bilingual(k, fallback)
                for k in (payload.key_takeaways if isinstance(payload.key_takeaways, list) else [])
            ],
            conclusion=normalize_bilingual(payload.conclusion, fallback),
            highlights=align_highlights(highlights, entries),
        )

    @staticmethod
    def _creative_highlight(h: HighlightPayload, fallback: str) -> Highlight:
        return Highlight(
            title=normalize_bilingual(h.title, fallback),
            description=normalize_bilingual(h.description, fallback),
            location=normalize_bilingual(h.location, fallback),
            related_entry_id=_entry_id(h.related_entry_id) or _entry_id(h.id),
        )

    # ------------------------------------------------------------------
    # Translation modes
    # ------------------------------------------------------------------

    def _translate(
        self,
        entries: List[TripEntry],
        settings: ContextSettings,
        draft: Optional[ReportDraft],
        mode: GenerationMode,
    ) -> GeneratedReport:
        source = mode.source_language
        target = mode.target_language
        draft = draft or ReportDraft()

        prompt = build_translation_prompt(build_translation_payload(entries, draft, mode), mode)
        payload = self._validate(self.runner.run_json(prompt, "translation"))

        def reconcile(value: Any, existing: BilingualText, may_infer: bool = False) -> BilingualText:
            # Source text is never rewritten; a target without a source is
            # only accepted where inference is allowed (the title).
            translated = normalize_bilingual(value, target)
            source_text = existing.get(source) or (translated.get(source) if may_infer else "")
            if source_text or may_infer:
                target_text = translated.get(target) or existing.get(target)
            else:
                target_text = existing.get(target)
            return BilingualText().with_text(source, source_text).with_text(target, target_text)

        # The payload only carried takeaways with source text, in draft order;
        # the others pass through unchanged.
        ai_takeaways = iter(payload.key_takeaways if isinstance(payload.key_takeaways, list) else [])
        key_takeaways = [
            reconcile(next(ai_takeaways, None), existing) if existing.get(source) else existing
            for existing in draft.key_takeaways
        ]

        by_id: Dict[str, HighlightPayload] = {}
        for h in payload.highlights:
            hid = _entry_id(h.id) or _entry_id(h.related_entry_id)
            if hid and hid not in by_id:
                by_id[hid] = h

        brand_location = settings.brand_location or ""
        highlights: List[Highlight] = []
        for i, entry in enumerate(entries):
            h = by_id.get(entry.id)
            if h is None and i < len(payload.highlights):
                h = payload.highlights[i]
            h = h or HighlightPayload()

            location = normalize_bilingual(h.location, target)
            if location.is_empty():
                location = BilingualText(en=brand_location, zh=brand_location)

            highlights.append(Highlight(
                title=reconcile(h.title, BilingualText().with_text(source, entry.ai_title or "")),
                description=reconcile(h.description, BilingualText().with_text(source, entry.ai_copy or "")),
                location=location,
                related_entry_id=entry.id,
            ))

        return GeneratedReport(
            title=reconcile(payload.title, draft.title, may_infer=True),
            subtitle=reconcile(payload.subtitle, draft.subtitle),
            executive_summary=reconcile(payload.executive_summary, draft.executive_summary),
            key_takeaways=key_takeaways,
            conclusion=reconcile(payload.conclusion, draft.conclusion),
            highlights=highlights,
        )
