"""Tests for the content assist operations."""

import pytest

from pressdesk.models import ContextSettings, TripEntry
from pressdesk.services.content_service import ContentService
from pressdesk.services.errors import EmptyInputError, InvalidResponseError
from pressdesk.services.gemini_client import GeminiResponse


@pytest.fixture
def service(runner):
    return ContentService(runner=runner)


@pytest.fixture
def settings():
    return ContextSettings(event_contexts=["Launch in Singapore"], key_themes="AI")


class TestAnalyzeUrl:

    def test_structured_answer(self, service, fake_client):
        fake_client.queue({
            "content": "Facts",
            "style": "Formal",
            "suggestedContexts": ["Summit 2025", "", 7],
            "suggestedThemes": "AI, growth",
        })

        result = service.analyze_url(" https://example.com ", "en")

        assert result.content == "Facts"
        assert result.style == "Formal"
        assert result.suggested_contexts == ["Summit 2025"]
        assert result.suggested_themes == "AI, growth"
        assert fake_client.calls[0]["tools"] == [{"google_search": {}}]

    def test_unstructured_answer_kept_as_content(self, service, fake_client):
        fake_client.queue("The page describes a product launch.")

        result = service.analyze_url("https://example.com", "en")

        assert result.content == "The page describes a product launch."
        assert result.suggested_contexts == []

    def test_empty_url_makes_no_call(self, service, fake_client):
        assert service.analyze_url("  ", "en").content == ""
        assert fake_client.call_count == 0


class TestRefinement:

    def test_refine_contexts(self, service, fake_client, settings):
        fake_client.queue([" Launch event in Singapore ", "", "Keynote by CEO"])
        assert service.refine_contexts(settings, "en") == ["Launch event in Singapore", "Keynote by CEO"]

    def test_refine_contexts_wrong_shape(self, service, fake_client, settings):
        fake_client.queue({"contexts": ["a"]})
        with pytest.raises(InvalidResponseError):
            service.refine_contexts(settings, "en")

    def test_refine_contexts_invalid_json(self, service, fake_client, settings):
        fake_client.queue("- a\n- b")
        with pytest.raises(InvalidResponseError):
            service.refine_contexts(settings, "en")

    def test_refine_themes_is_plain_text(self, service, fake_client, settings):
        fake_client.queue("  AI, community, growth \n")
        assert service.refine_themes(settings, "en") == "AI, community, growth"


class TestEntryHelpers:

    def test_caption_sends_images(self, service, fake_client, settings):
        fake_client.queue("A speaker on stage.")

        caption = service.generate_entry_caption(["data:image/jpeg;base64,QUJD"], "en", settings)

        assert caption == "A speaker on stage."
        parts = fake_client.calls[0]["contents"]
        assert parts[0]["inline_data"]["data"] == "QUJD"

    def test_caption_without_images_makes_no_call(self, service, fake_client, settings):
        assert service.generate_entry_caption([], "en", settings) == ""
        assert fake_client.call_count == 0

    def test_copy_requires_note_or_caption(self, service, fake_client, settings):
        with pytest.raises(EmptyInputError):
            service.generate_entry_copy("", "", "en", settings)
        assert fake_client.call_count == 0

    def test_copy(self, service, fake_client, settings):
        fake_client.queue("Our CEO opened the summit.")
        assert service.generate_entry_copy("CEO keynote", "", "en", settings, title="Opening") == "Our CEO opened the summit."
        assert "Opening" in fake_client.calls[0]["contents"]

    def test_title_strips_quotes(self, service, fake_client, settings):
        fake_client.queue('"A Bold Beginning"')
        entry = TripEntry(id="e1", note="Keynote")
        assert service.generate_entry_title(entry, "en", settings) == "A Bold Beginning"

    def test_image_uses_image_model(self, service, fake_client, settings, config):
        fake_client.queue(GeminiResponse(text="", images=[("image/png", "UE5H")]))

        image = service.generate_entry_image("CEO on stage", settings)

        assert image == "data:image/png;base64,UE5H"
        assert fake_client.calls[0]["model"] == config["models"]["image"]

    def test_image_missing_returns_empty(self, service, fake_client, settings):
        fake_client.queue("I cannot draw that.")
        assert service.generate_entry_image("CEO on stage", settings) == ""


class TestSectionDrafts:

    def test_draft_title_splits_lines(self, service, fake_client, settings):
        fake_client.queue("TITLE: Singapore Launch\nSUBTITLE: A week of firsts")
        assert service.draft_title([], "en", settings) == ("Singapore Launch", "A week of firsts")

    def test_section_draft_is_raw_text(self, service, fake_client, settings):
        fake_client.queue("We closed the week with momentum.")
        assert service.generate_section_draft("conclusion", [], "en", settings) == "We closed the week with momentum."
