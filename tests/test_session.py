"""
Tests for the workspace session.

Covers:
- Entry management and per-entry AI helpers
- Generation success/failure (failure never touches existing state)
- Publishing, loading (confirmed) and deleting reports
- Settings autosave and bundles
"""

import threading

import pytest

from pressdesk.bilingual import BilingualText
from pressdesk.models import ReportDraft
from pressdesk.services.errors import EmptyInputError, InvalidResponseError
from pressdesk.services.gemini_client import GeminiFatalError
from pressdesk.session import (
    ConfirmationRequired,
    GenerationFailed,
    Session,
    SessionError,
    UnknownEntryError,
    UnknownReportError,
)


def _report_json(entry_ids):
    return {
        "title": {"en": "Launch Week", "zh": "发布周"},
        "subtitle": {"en": "Sub", "zh": "副"},
        "executiveSummary": {"en": "Summary", "zh": "摘要"},
        "keyTakeaways": [{"en": "One", "zh": "一"}],
        "conclusion": {"en": "End", "zh": "结"},
        "highlights": [
            {"title": {"en": f"H{i}", "zh": f"亮{i}"}, "description": {"en": "d", "zh": "描"},
             "location": {"en": "SG", "zh": "新"}, "relatedEntryId": eid}
            for i, eid in enumerate(entry_ids)
        ],
    }


class TestEntries:

    def test_add_requires_note_or_images(self, session):
        with pytest.raises(SessionError):
            session.add_entry(note="   ")
        entry = session.add_entry(images=["img"])
        assert entry.hero_image_indices == [0]

    def test_update_keeps_id(self, session):
        entry = session.add_entry(note="n")
        updated = session.update_entry(entry.id, {"id": "hijack", "note": "changed", "aiTitle": "T"})
        assert updated.id == entry.id
        assert updated.note == "changed"
        assert updated.ai_title == "T"

    def test_remove_unknown(self, session):
        with pytest.raises(UnknownEntryError):
            session.remove_entry("missing")

    def test_reorder(self, session):
        a = session.add_entry(note="a")
        b = session.add_entry(note="b")
        assert [e.id for e in session.reorder_entries([b.id, a.id])] == [b.id, a.id]
        with pytest.raises(SessionError):
            session.reorder_entries([a.id])

    def test_images_and_hero(self, session):
        entry = session.add_entry(note="n")
        session.add_images(entry.id, ["a", "b", "c"])
        session.toggle_hero(entry.id, 2)
        updated = session.remove_image(entry.id, 0)
        assert updated.images == ["b", "c"]
        assert updated.hero_image_indices == [1]


class TestEntryOperations:

    def test_caption(self, session, fake_client):
        entry = session.add_entry(images=["data:image/png;base64,QUJD"])
        fake_client.queue("A stage.")
        assert session.caption_entry(entry.id).ai_caption == "A stage."
        assert session.pending_operations(entry.id) == set()

    def test_copy_needs_input(self, session, fake_client):
        entry = session.add_entry(images=["img"])
        with pytest.raises(EmptyInputError):
            session.copy_entry(entry.id)
        assert fake_client.call_count == 0

    def test_copy_and_title(self, session, fake_client):
        entry = session.add_entry(note="CEO keynote")
        fake_client.queue("Our CEO opened the summit.", "Bold Opening")
        assert session.copy_entry(entry.id).ai_copy == "Our CEO opened the summit."
        assert session.title_entry(entry.id).ai_title == "Bold Opening"

    def test_image_is_appended(self, session, fake_client):
        from pressdesk.services.gemini_client import GeminiResponse
        entry = session.add_entry(note="CEO keynote")
        fake_client.queue(GeminiResponse(images=[("image/png", "UE5H")]))
        assert session.image_entry(entry.id).images == ["data:image/png;base64,UE5H"]

    def test_result_discarded_when_entry_removed(self, session, fake_client):
        entry = session.add_entry(note="CEO keynote")
        started = threading.Event()
        release = threading.Event()
        original = fake_client.generate_content

        def slow_generate(contents, model=None, **kwargs):
            started.set()
            release.wait(5)
            return original(contents, model=model, **kwargs)

        fake_client.generate_content = slow_generate
        fake_client.queue("Too late")
        results = []
        worker = threading.Thread(target=lambda: results.append(session.copy_entry(entry.id)))
        worker.start()
        assert started.wait(5)
        assert session.pending_operations(entry.id) == {"copy"}

        session.remove_entry(entry.id)
        release.set()
        worker.join(5)

        assert results == [None]
        assert session.entries == []

    def test_failure_clears_pending(self, session, fake_client):
        entry = session.add_entry(note="n")
        fake_client.queue(GeminiFatalError("HTTP 400", 400))
        with pytest.raises(GeminiFatalError):
            session.copy_entry(entry.id)
        assert session.pending_operations(entry.id) == set()


class TestGenerate:

    def test_success_replaces_draft(self, session, fake_client):
        entry = session.add_entry(note="Keynote")
        fake_client.queue(_report_json([entry.id]))

        report = session.generate("en")

        assert session.report is report
        assert session.draft.title == BilingualText(en="Launch Week", zh="发布周")
        assert session.language == "en"

    def test_invalid_json_leaves_state_untouched(self, session, fake_client):
        entry = session.add_entry(note="Keynote")
        session.update_draft({"title": {"en": "Mine", "zh": "我的"}})
        draft_before = session.draft
        entries_before = list(session.entries)
        fake_client.queue("{broken")

        with pytest.raises(GenerationFailed) as exc_info:
            session.generate("en")

        assert str(exc_info.value) == "Failed to generate report."
        assert isinstance(exc_info.value.__cause__, InvalidResponseError)
        assert session.draft == draft_before
        assert session.entries == entries_before
        assert session.entries[0].id == entry.id
        assert session.report is None

    def test_empty_workspace_rejected_without_call(self, session, fake_client):
        session.update_settings({"eventContexts": []})
        with pytest.raises(EmptyInputError):
            session.generate("en")
        assert fake_client.call_count == 0
        assert session.report is None

    def test_unknown_mode_is_input_error(self, session, fake_client):
        session.add_entry(note="Keynote")
        with pytest.raises(SessionError) as exc_info:
            session.generate("en", "poetry")
        assert not isinstance(exc_info.value, GenerationFailed)
        assert fake_client.call_count == 0

    def test_translation_keeps_target_only_takeaways(self, session, fake_client):
        session.add_entry(note="Keynote")
        session.update_draft({"keyTakeaways": [{"zh": "要点"}, {"en": "English-only point"}]})
        fake_client.queue({"keyTakeaways": [{"en": "Point", "zh": "要点"}]})

        session.generate("en", "zh_to_en")

        assert session.draft.key_takeaways == [
            BilingualText(en="Point", zh="要点"),
            BilingualText(en="English-only point"),
        ]


class TestSettingsOperations:

    def test_settings_autosave(self, session, store):
        session.update_settings({"brandName": "Acme"})
        assert store.load_settings().brand_name == "Acme"

    def test_analyze_url_merges(self, session, fake_client, store):
        fake_client.queue({"content": "Facts", "style": "Formal", "suggestedContexts": ["Summit"], "suggestedThemes": "AI"})

        session.analyze_url("https://example.com")

        assert session.settings.reference_urls == ["https://example.com"]
        assert "Summit" in session.settings.event_contexts
        assert store.load_settings().reference_urls == ["https://example.com"]

    def test_refine_contexts_empty_answer_keeps_old(self, session, fake_client):
        session.update_settings({"eventContexts": ["a"]})
        fake_client.queue([])
        assert session.refine_contexts().event_contexts == ["a"]

    def test_draft_title_section(self, session, fake_client):
        session.add_entry(note="Keynote")
        session.language = "zh"
        fake_client.queue("TITLE: 发布周\nSUBTITLE: 精彩一周")

        draft = session.draft_section("title")

        assert draft.title == BilingualText(en="", zh="发布周")
        assert draft.subtitle == BilingualText(en="", zh="精彩一周")

    def test_draft_section_requires_input(self, session, fake_client):
        session.update_settings({"eventContexts": []})
        with pytest.raises(EmptyInputError):
            session.draft_section("conclusion")
        assert fake_client.call_count == 0

    def test_unknown_section(self, session):
        with pytest.raises(SessionError):
            session.draft_section("footer")

    def test_replace_all(self, session, store):
        session.add_entry(note="Acme booth")
        session.update_settings({"brandName": "Acme"})
        session.replace_all("Acme", "Globex")
        assert session.entries[0].note == "Globex booth"
        assert store.load_settings().brand_name == "Globex"


class TestPublishing:

    def test_publish_requires_report(self, session):
        with pytest.raises(SessionError):
            session.publish()

    def test_publish_load_delete(self, session, fake_client, store):
        entry = session.add_entry(note="Keynote", images=["img"])
        session.update_settings({"authorName": "Lee"})
        fake_client.queue(_report_json([entry.id]))
        session.generate("en")

        published = session.publish()

        assert store.get(published.id).cover_image == "img"
        assert published.author_name == "Lee"

        session.update_draft({"title": {"en": "Other"}})
        with pytest.raises(ConfirmationRequired):
            session.load_report(published.id)
        assert session.draft.title.en == "Other"

        session.load_report(published.id, confirm=True)
        assert session.draft.title.en == "Launch Week"
        assert session.entries[0].id == entry.id
        assert session.entries[0].note == ""
        assert session.entries[0].images == ["img"]

        session.delete_report(published.id)
        with pytest.raises(UnknownReportError):
            session.delete_report(published.id)


class TestBundles:

    def test_report_data_round_trip(self, session, store, config):
        session.add_entry(note="Keynote")
        session.update_draft({"title": {"en": "T", "zh": "题"}})
        bundle = session.export_report_data()

        other = Session(store=store, content=session.content, synthesizer=session.synthesizer, config=config)
        other.import_report_data(bundle)

        assert [e.note for e in other.entries] == ["Keynote"]
        assert other.draft == ReportDraft(title=BilingualText(en="T", zh="题"))

    def test_import_settings_legacy_key(self, session):
        session.import_settings({"settings": {"brandName": "Acme"}})
        assert session.settings.brand_name == "Acme"
