"""Tests for prompt builders."""

import json

import pytest

from pressdesk.bilingual import BilingualText
from pressdesk.models import ContextSettings, GenerationMode, ReportDraft, TripEntry
from pressdesk.prompts import (
    JSON_MIME_TYPE,
    build_caption_prompt,
    build_creative_report_prompt,
    build_entry_image_prompt,
    build_refine_contexts_prompt,
    build_section_draft_prompt,
    build_translation_payload,
    build_translation_prompt,
    build_url_analysis_prompt,
)


@pytest.fixture
def entries():
    return [
        TripEntry(id="e1", note="Keynote speech", ai_title="Opening keynote", ai_copy="We opened the summit."),
        TripEntry(id="e2", note="Booth visit", ai_caption="A crowded booth"),
    ]


@pytest.fixture
def settings():
    return ContextSettings(
        persona="PR director",
        tone="Confident",
        brand_name="Acme",
        brand_location="Singapore",
        event_contexts=["Tech Week 2025"],
        key_themes="AI, growth",
    )


class TestCreativePrompt:

    def test_requests_json_and_lists_entry_ids(self, entries, settings):
        prompt = build_creative_report_prompt(entries, "en", settings)

        assert prompt.response_mime_type == JSON_MIME_TYPE
        assert prompt.expects_json
        assert "(ID: e1)" in prompt.text
        assert "(ID: e2)" in prompt.text
        assert "relatedEntryId" in prompt.text
        assert "Tech Week 2025" in prompt.text

    def test_primary_language_follows_selection(self, entries, settings):
        en = build_creative_report_prompt(entries, "en", settings).text
        zh = build_creative_report_prompt(entries, "zh", settings).text
        both = build_creative_report_prompt(entries, "both", settings).text

        assert "PRIMARILY in English" in en
        assert "Chinese (Simplified) translation" in en
        assert "PRIMARILY in Chinese (Simplified)" in zh
        assert "PRIMARILY in Chinese (Simplified)" in both

    def test_draft_is_included_as_reference(self, entries, settings):
        draft = ReportDraft(title=BilingualText(en="Draft title", zh="草稿标题"))
        prompt = build_creative_report_prompt(entries, "en", settings, draft)
        assert "Draft title" in prompt.text
        assert "草稿标题" in prompt.text


class TestTranslationPayload:

    def test_only_source_fields_are_sent(self, entries):
        draft = ReportDraft(
            title=BilingualText(zh="标题", en="Old English"),
            subtitle=BilingualText(en="only english"),
            key_takeaways=[BilingualText(zh="要点"), BilingualText(en="skip me")],
        )

        payload = build_translation_payload(entries, draft, GenerationMode.ZH_TO_EN)

        assert payload["title"] == {"zh": "标题"}
        assert payload["subtitle"] == {}
        assert payload["executiveSummary"] == {}
        assert payload["keyTakeaways"] == [{"zh": "要点"}]

    def test_highlights_keep_ids_and_entry_copy(self, entries):
        payload = build_translation_payload(entries, ReportDraft(), GenerationMode.EN_TO_ZH)

        assert payload["highlights"] == [
            {"id": "e1", "title": {"en": "Opening keynote"}, "description": {"en": "We opened the summit."}},
            {"id": "e2", "title": {}, "description": {}},
        ]

    def test_creative_mode_rejected(self, entries):
        with pytest.raises(ValueError):
            build_translation_payload(entries, ReportDraft(), GenerationMode.CREATIVE)

    def test_prompt_embeds_payload(self, entries):
        payload = build_translation_payload(entries, ReportDraft(title=BilingualText(zh="标题")), GenerationMode.ZH_TO_EN)
        prompt = build_translation_prompt(payload, GenerationMode.ZH_TO_EN)

        assert prompt.response_mime_type == JSON_MIME_TYPE
        assert json.dumps(payload, ensure_ascii=False) in prompt.text
        assert 'from "zh"' in prompt.text
        assert 'to "en"' in prompt.text


class TestOtherPrompts:

    def test_url_analysis_uses_search_without_json_mime(self):
        prompt = build_url_analysis_prompt("https://example.com/news", "zh")
        assert prompt.tools == [{"google_search": {}}]
        assert prompt.response_mime_type is None
        assert "https://example.com/news" in prompt.text
        assert "Chinese (Simplified)" in prompt.text

    def test_refine_contexts_wants_json_array(self, settings):
        prompt = build_refine_contexts_prompt(settings, "en")
        assert prompt.expects_json
        assert "- Tech Week 2025" in prompt.text

    def test_caption_puts_images_before_text(self, settings):
        prompt = build_caption_prompt(["data:image/png;base64,QUJD"], "en", settings)
        parts = prompt.contents()
        assert parts[0] == {"inline_data": {"mime_type": "image/png", "data": "QUJD"}}
        assert "text" in parts[-1]

    def test_entry_image_prompt_wants_image(self, settings):
        prompt = build_entry_image_prompt("A keynote on stage", settings)
        assert prompt.wants_image
        assert prompt.image_config == {"aspectRatio": "16:9"}
        assert "Singapore" in prompt.text

    def test_title_section_asks_for_prefixed_lines(self, entries, settings):
        prompt = build_section_draft_prompt("title", entries, "en", settings)
        assert "TITLE:" in prompt.text
        assert "SUBTITLE:" in prompt.text

    def test_unknown_section(self, entries, settings):
        with pytest.raises(ValueError):
            build_section_draft_prompt("footer", entries, "en", settings)
