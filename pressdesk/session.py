"""
Workspace session: the entries, settings, draft and current report an
editor works on, plus the operations that change them.

AI calls run outside the state lock. A per-entry result is applied only if
the entry still exists when the call returns; otherwise it is discarded.
Report generation replaces the draft and current report only on success.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, Iterator, List, Optional, Set, Union

import requests

from . import bundles
from .bilingual import primary_language
from .config import get_config
from .models.report import (
    ContextSettings,
    GeneratedReport,
    GenerationMode,
    PublishedReport,
    ReportDraft,
    TripEntry,
)
from .models.responses import UrlAnalysisResponse
from .reconciler import (
    append_themes_to_summary,
    apply_generated_report,
    build_published_report,
    global_replace,
    merge_url_analysis,
    restore_from_published,
)
from .services.content_service import ContentService
from .services.errors import EmptyInputError, GenerationError
from .services.gemini_client import GeminiAPIError
from .services.synthesizer import ReportSynthesizer
from .storage import ReportStore

logger = logging.getLogger(__name__)

DRAFT_SECTIONS = ("title", "executiveSummary", "conclusion")

# Failures of an AI call that are reported to the user rather than treated as bugs
AI_FAILURES = (GenerationError, GeminiAPIError, requests.RequestException, ValueError)


class SessionError(Exception):
    """An operation on the session could not be carried out."""


class GenerationFailed(SessionError):
    """Report generation failed; the working state was left untouched."""

    def __init__(self, message: str = "Failed to generate report."):
        super().__init__(message)


class UnknownEntryError(SessionError):
    pass


class UnknownReportError(SessionError):
    pass


class ConfirmationRequired(SessionError):
    """The operation overwrites unsaved work and was not confirmed."""


class Session:
    """One editor's workspace."""

    def __init__(
        self,
        store: Optional[ReportStore] = None,
        content: Optional[ContentService] = None,
        synthesizer: Optional[ReportSynthesizer] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.config = config or get_config()
        self.store = store
        self.content = content or ContentService(config=self.config)
        self.synthesizer = synthesizer or ReportSynthesizer(config=self.config)

        defaults = self.config.get("default_settings") or {}
        if store is not None:
            self.settings = store.load_settings(defaults)
        else:
            self.settings = ContextSettings.from_dict(defaults)

        self.entries: List[TripEntry] = []
        self.draft = ReportDraft()
        self.report: Optional[GeneratedReport] = None
        self.language = "en"

        self._lock = threading.RLock()
        self._pending: Dict[str, Set[str]] = {}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _index_of(self, entry_id: str) -> int:
        for i, entry in enumerate(self.entries):
            if entry.id == entry_id:
                return i
        raise UnknownEntryError(f"No entry with id {entry_id}")

    def get_entry(self, entry_id: str) -> TripEntry:
        with self._lock:
            return self.entries[self._index_of(entry_id)]

    def _replace_entry(self, entry: TripEntry) -> TripEntry:
        with self._lock:
            self.entries[self._index_of(entry.id)] = entry
        return entry

    def _set_settings(self, settings: ContextSettings) -> ContextSettings:
        with self._lock:
            self.settings = settings
        if self.store is not None:
            self.store.save_settings(settings)
        return settings

    @contextmanager
    def _tracking(self, entry_id: str, operation: str) -> Iterator[None]:
        with self._lock:
            self._pending.setdefault(entry_id, set()).add(operation)
        try:
            yield
        finally:
            with self._lock:
                ops = self._pending.get(entry_id, set())
                ops.discard(operation)
                if not ops:
                    self._pending.pop(entry_id, None)

    def pending_operations(self, entry_id: str) -> Set[str]:
        """AI operations currently running for an entry."""
        with self._lock:
            return set(self._pending.get(entry_id, set()))

    def _apply_result(self, entry_id: str, operation: str, **changes: Any) -> Optional[TripEntry]:
        with self._lock:
            try:
                index = self._index_of(entry_id)
            except UnknownEntryError:
                logger.info("Entry %s was removed during %s; discarding result", entry_id, operation)
                return None
            updated = replace(self.entries[index], **changes)
            self.entries[index] = updated
            return updated

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def add_entry(self, note: str = "", images: Optional[List[str]] = None) -> TripEntry:
        images = [img for img in (images or []) if img]
        if not (note or "").strip() and not images:
            raise SessionError("An entry needs a note or at least one image")
        entry = TripEntry.create(note=note or "", images=images)
        with self._lock:
            self.entries.append(entry)
        return entry

    def remove_entry(self, entry_id: str) -> None:
        with self._lock:
            del self.entries[self._index_of(entry_id)]

    def update_entry(self, entry_id: str, data: Dict[str, Any]) -> TripEntry:
        """Apply camelCase fields from ``data``; the id cannot change."""
        with self._lock:
            current = self.entries[self._index_of(entry_id)]
            merged = current.to_dict()
            merged.update(data)
            merged["id"] = current.id
            updated = TripEntry.from_dict(merged)
            return self._replace_entry(updated)

    def reorder_entries(self, entry_ids: List[str]) -> List[TripEntry]:
        with self._lock:
            by_id = {e.id: e for e in self.entries}
            if sorted(entry_ids) != sorted(by_id) or len(set(entry_ids)) != len(entry_ids):
                raise SessionError("Reorder must list every entry id exactly once")
            self.entries = [by_id[i] for i in entry_ids]
            return list(self.entries)

    def add_images(self, entry_id: str, images: List[str]) -> TripEntry:
        with self._lock:
            return self._replace_entry(self.get_entry(entry_id).with_images_added(images))

    def remove_image(self, entry_id: str, index: int) -> TripEntry:
        with self._lock:
            return self._replace_entry(self.get_entry(entry_id).with_image_removed(index))

    def toggle_hero(self, entry_id: str, index: int) -> TripEntry:
        with self._lock:
            return self._replace_entry(self.get_entry(entry_id).with_hero_toggled(index))

    # ------------------------------------------------------------------
    # Per-entry AI operations
    # ------------------------------------------------------------------

    def caption_entry(self, entry_id: str) -> Optional[TripEntry]:
        entry = self.get_entry(entry_id)
        with self._tracking(entry_id, "caption"):
            caption = self.content.generate_entry_caption(entry.images, self.language, self.settings)
        return self._apply_result(entry_id, "caption", ai_caption=caption)

    def copy_entry(self, entry_id: str) -> Optional[TripEntry]:
        entry = self.get_entry(entry_id)
        if not entry.note and not entry.ai_caption:
            raise EmptyInputError("Need a note or visual analysis first")
        with self._tracking(entry_id, "copy"):
            copy = self.content.generate_entry_copy(
                entry.note, entry.ai_caption or "", self.language, self.settings, entry.ai_title
            )
        return self._apply_result(entry_id, "copy", ai_copy=copy)

    def title_entry(self, entry_id: str) -> Optional[TripEntry]:
        entry = self.get_entry(entry_id)
        with self._tracking(entry_id, "title"):
            title = self.content.generate_entry_title(entry, self.language, self.settings)
        return self._apply_result(entry_id, "title", ai_title=title)

    def image_entry(self, entry_id: str) -> Optional[TripEntry]:
        """Generate an illustrative image from the entry's copy, note or caption."""
        entry = self.get_entry(entry_id)
        description = entry.ai_copy or entry.note or entry.ai_caption
        if not description:
            raise EmptyInputError("Need copy, a note or a caption to illustrate")
        with self._tracking(entry_id, "image"):
            image = self.content.generate_entry_image(description, self.settings)
        if not image:
            return self.get_entry(entry_id)
        with self._lock:
            try:
                current = self.entries[self._index_of(entry_id)]
            except UnknownEntryError:
                logger.info("Entry %s was removed during image; discarding result", entry_id)
                return None
            return self._replace_entry(current.with_images_added([image]))

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def update_settings(self, data: Dict[str, Any]) -> ContextSettings:
        return self._set_settings(self.settings.merged(data))

    def analyze_url(self, url: str) -> UrlAnalysisResponse:
        """Analyze a reference URL and fold the result into the settings."""
        url = (url or "").strip()
        if not url:
            raise SessionError("No URL given")
        analysis = self.content.analyze_url(url, self.language)
        self._set_settings(merge_url_analysis(self.settings, url, analysis))
        return analysis

    def refine_contexts(self) -> ContextSettings:
        contexts = self.content.refine_contexts(self.settings, self.language)
        if not contexts:
            return self.settings
        return self._set_settings(replace(self.settings, event_contexts=contexts))

    def refine_themes(self) -> ContextSettings:
        themes = self.content.refine_themes(self.settings, self.language)
        if not themes:
            return self.settings
        return self._set_settings(replace(self.settings, key_themes=themes))

    def replace_all(self, find: str, replacement: str) -> None:
        """Regex find/replace across settings, entries and the draft."""
        with self._lock:
            settings, entries, draft = global_replace(
                find, replacement, self.settings, self.entries, self.draft
            )
            self.entries = entries
            self.draft = draft
        self._set_settings(settings)

    # ------------------------------------------------------------------
    # Draft
    # ------------------------------------------------------------------

    def update_draft(self, data: Dict[str, Any]) -> ReportDraft:
        with self._lock:
            merged = self.draft.to_dict()
            merged.update(data)
            self.draft = ReportDraft.from_dict(merged)
            return self.draft

    def draft_section(self, section: str) -> ReportDraft:
        """
        Draft one section in the selected language.

        The title section fills both ``title`` and ``subtitle``; the other
        language of each field is kept.
        """
        if section not in DRAFT_SECTIONS:
            raise SessionError(f"Unknown draft section: {section}")
        if not self.entries and not self.settings.event_contexts:
            raise EmptyInputError("Please add entries or context first")

        language = primary_language(self.language)
        if section == "title":
            title, subtitle = self.content.draft_title(self.entries, self.language, self.settings)
            with self._lock:
                self.draft = replace(
                    self.draft,
                    title=self.draft.title.with_text(language, title),
                    subtitle=self.draft.subtitle.with_text(language, subtitle),
                )
        else:
            text = self.content.generate_section_draft(section, self.entries, self.language, self.settings)
            attr = ReportDraft.SECTION_KEYS[section]
            with self._lock:
                self.draft = replace(self.draft, **{attr: getattr(self.draft, attr).with_text(language, text)})
        return self.draft

    def import_themes_to_draft(self) -> ReportDraft:
        with self._lock:
            self.draft = append_themes_to_summary(self.draft, self.settings.key_themes)
            return self.draft

    # ------------------------------------------------------------------
    # Report
    # ------------------------------------------------------------------

    def generate(
        self, language: str, mode: Union[GenerationMode, str] = GenerationMode.CREATIVE
    ) -> GeneratedReport:
        """
        Generate a report and make it the new draft.

        Raises:
            SessionError: Unknown generation mode.
            EmptyInputError: No entries and no event contexts (no AI call made).
            GenerationFailed: Any other failure; entries, draft and the
                current report are unchanged and the cause is chained.
        """
        try:
            mode = GenerationMode(mode)
        except ValueError:
            raise SessionError(f"Unknown generation mode: {mode}") from None

        self.language = language
        with self._lock:
            entries = list(self.entries)
            settings = self.settings
            draft = self.draft
        try:
            report = self.synthesizer.generate(entries, language, settings, draft, mode)
        except EmptyInputError:
            raise
        except AI_FAILURES as e:
            logger.error(f"Report generation failed: {e}")
            raise GenerationFailed() from e

        with self._lock:
            self.report = report
            self.draft = apply_generated_report(report)
        return report

    def update_report(self, data: Dict[str, Any]) -> GeneratedReport:
        """Replace the current report with an edited copy and sync the draft."""
        report = GeneratedReport.from_dict(data)
        with self._lock:
            self.report = report
            self.draft = apply_generated_report(report)
        return report

    def _require_store(self) -> ReportStore:
        if self.store is None:
            raise SessionError("No report store configured")
        return self.store

    def publish(self) -> PublishedReport:
        if self.report is None:
            raise SessionError("Nothing to publish: generate a report first")
        store = self._require_store()
        with self._lock:
            published = build_published_report(self.report, self.entries, self.settings)
        store.save(published)
        return published

    def list_reports(self) -> List[PublishedReport]:
        return self._require_store().load_all()

    def get_report(self, report_id: str) -> PublishedReport:
        report = self._require_store().get(report_id)
        if report is None:
            raise UnknownReportError(f"No published report with id {report_id}")
        return report

    def load_report(self, report_id: str, confirm: bool = False) -> PublishedReport:
        """
        Load a published report back into the workspace.

        Overwrites the draft, and the entries when the report has highlights.
        """
        if not confirm:
            raise ConfirmationRequired("Loading this report will overwrite your current draft. Continue?")
        report = self.get_report(report_id)
        draft, entries = restore_from_published(report)
        with self._lock:
            self.report = report
            self.draft = draft
            if entries:
                self.entries = entries
        return report

    def delete_report(self, report_id: str) -> None:
        if not self._require_store().delete(report_id):
            raise UnknownReportError(f"No published report with id {report_id}")

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    def export_settings(self) -> Dict[str, Any]:
        return bundles.export_ai_context(self.settings)

    def import_settings(self, document: Union[str, bytes, Dict[str, Any]]) -> ContextSettings:
        return self._set_settings(bundles.import_settings(self.settings, document))

    def export_report_data(self) -> Dict[str, Any]:
        with self._lock:
            return bundles.export_report_data(self.entries, self.settings, self.draft)

    def import_report_data(self, document: Union[str, bytes, Dict[str, Any]]) -> None:
        entries, settings, draft = bundles.import_report_data(document, self.settings)
        with self._lock:
            if entries is not None:
                self.entries = entries
            if draft is not None:
                self.draft = draft
        self._set_settings(settings)

    def snapshot(self) -> Dict[str, Any]:
        """Whole workspace state as JSON-ready data."""
        with self._lock:
            return {
                "language": self.language,
                "entries": [e.to_dict() for e in self.entries],
                "settings": self.settings.to_dict(),
                "draft": self.draft.to_dict(),
                "report": self.report.to_dict() if self.report is not None else None,
                "pending": {k: sorted(v) for k, v in self._pending.items()},
            }
