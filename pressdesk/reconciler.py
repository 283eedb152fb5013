"""
Draft / entry reconciliation.

Pure functions that move content between the working draft, the entry list,
generated reports and published reports. Nothing is mutated in place: every
function returns new values for the caller to swap in.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Dict, List, Optional, Set, Tuple

from .bilingual import BilingualText
from .models.report import (
    ContextSettings,
    GeneratedReport,
    Highlight,
    PublishedReport,
    ReportDraft,
    TripEntry,
    new_id,
    now_ms,
)
from .models.responses import UrlAnalysisResponse


def apply_generated_report(report: GeneratedReport) -> ReportDraft:
    """The new working draft after a successful generation (whole-document overwrite)."""
    return report.draft_only()


def restore_from_published(report: PublishedReport) -> Tuple[ReportDraft, List[TripEntry]]:
    """
    Rebuild a draft and an entry list from a published report.

    This is lossy: user notes and captions are not stored in a report, so
    every restored entry has an empty ``note``. ``ai_copy`` / ``ai_title``
    come from the highlight (English preferred) and images from
    ``embedded_images``.
    """
    draft = report.draft_only()
    entries: List[TripEntry] = []
    seen: Set[str] = set()
    stamp = now_ms()
    for highlight in report.highlights:
        images = list(highlight.embedded_images or [])
        entry_id = highlight.related_entry_id
        if not entry_id or entry_id in seen:
            entry_id = new_id()
        seen.add(entry_id)
        entries.append(TripEntry(
            id=entry_id,
            note="",
            images=images,
            hero_image_indices=[0] if len(images) == 1 else [],
            ai_caption="",
            ai_copy=highlight.description.prefer("en", "zh"),
            ai_title=highlight.title.prefer("en", "zh"),
            timestamp=stamp,
        ))
    return draft, entries


def build_published_report(
    report: GeneratedReport,
    entries: List[TripEntry],
    settings: ContextSettings,
    publish_date: Optional[int] = None,
) -> PublishedReport:
    """
    Freeze a generated report for the gallery.

    The cover image is the first image of the first entry that has one;
    each highlight embeds the images of its related entry.
    """
    by_id: Dict[str, TripEntry] = {e.id: e for e in entries}

    cover_image = next((e.images[0] for e in entries if e.images), None)

    highlights: List[Highlight] = []
    for h in report.highlights:
        entry = by_id.get(h.related_entry_id) if h.related_entry_id else None
        if entry is not None and entry.images:
            highlights.append(replace(h, embedded_images=list(entry.images)))
        else:
            highlights.append(replace(h))

    return PublishedReport(
        title=report.title,
        subtitle=report.subtitle,
        executive_summary=report.executive_summary,
        key_takeaways=list(report.key_takeaways),
        conclusion=report.conclusion,
        highlights=highlights,
        id=new_id(),
        publish_date=publish_date if publish_date is not None else now_ms(),
        cover_image=cover_image,
        author_name=settings.author_name,
        author_role=settings.author_role,
    )


def merge_url_analysis(
    settings: ContextSettings, url: str, analysis: UrlAnalysisResponse
) -> ContextSettings:
    """
    Fold a URL analysis into the settings.

    The URL is appended, content and style are appended under a
    ``[Source: url]`` header, suggested contexts are added without
    duplicates (order kept) and suggested themes are appended.
    """
    url = url.strip()
    header = f"[Source: {url}]\n"

    def _append(existing: str, addition: str) -> str:
        return (existing + "\n\n" if existing else "") + header + addition

    contexts = list(dict.fromkeys(settings.event_contexts + analysis.suggested_contexts))
    themes = (settings.key_themes + " " if settings.key_themes else "") + analysis.suggested_themes

    return replace(
        settings,
        reference_urls=settings.reference_urls + [url],
        reference_content=_append(settings.reference_content, analysis.content),
        reference_style=_append(settings.reference_style, analysis.style),
        event_contexts=contexts,
        key_themes=themes.strip(),
    )


def append_themes_to_summary(draft: ReportDraft, themes: str) -> ReportDraft:
    """Append the key themes to the executive summary in both languages, once."""
    if not themes:
        return draft

    def _append(current: str) -> str:
        if not current:
            return themes
        if themes in current:
            return current
        return current + "\n\n" + themes

    summary = draft.executive_summary
    return replace(
        draft,
        executive_summary=BilingualText(en=_append(summary.en), zh=_append(summary.zh)),
    )


def global_replace(
    find: str,
    replacement: str,
    settings: ContextSettings,
    entries: List[TripEntry],
    draft: ReportDraft,
) -> Tuple[ContextSettings, List[TripEntry], ReportDraft]:
    """
    Find/replace (regular expression) across settings text, entries and draft.

    Raises:
        ValueError: Empty or invalid pattern
    """
    if not find:
        raise ValueError("Nothing to find")
    try:
        pattern = re.compile(find)
    except re.error as e:
        raise ValueError(f"Invalid pattern: {e}") from e

    def sub(text: Optional[str]) -> Optional[str]:
        return pattern.sub(replacement, text) if text else text

    def sub_bi(value: BilingualText) -> BilingualText:
        return BilingualText(en=sub(value.en) or "", zh=sub(value.zh) or "")

    new_settings = replace(
        settings,
        event_contexts=[sub(c) or "" for c in settings.event_contexts],
        key_themes=sub(settings.key_themes) or "",
        tone=sub(settings.tone) or "",
        persona=sub(settings.persona) or "",
        reference_content=sub(settings.reference_content) or "",
        reference_style=sub(settings.reference_style) or "",
        author_name=sub(settings.author_name) or "",
        author_role=sub(settings.author_role) or "",
        brand_name=sub(settings.brand_name) or "",
        brand_location=sub(settings.brand_location) or "",
    )
    new_entries = [
        replace(
            e,
            note=sub(e.note) or "",
            ai_title=sub(e.ai_title),
            ai_caption=sub(e.ai_caption),
            ai_copy=sub(e.ai_copy),
        )
        for e in entries
    ]
    new_draft = ReportDraft(
        title=sub_bi(draft.title),
        subtitle=sub_bi(draft.subtitle),
        executive_summary=sub_bi(draft.executive_summary),
        key_takeaways=[sub_bi(k) for k in draft.key_takeaways],
        conclusion=sub_bi(draft.conclusion),
    )
    return new_settings, new_entries, new_draft
