"""Tests for the Gemini REST client (requests mocked, no network)."""

from unittest.mock import MagicMock

import pytest
import requests

from pressdesk.services.gemini_client import (
    GeminiClient,
    GeminiFatalError,
    GeminiResponse,
    GeminiRetryableError,
    inline_image_part,
    split_data_url,
)


def _response(status_code=200, body=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = body if body is not None else {}
    response.text = text
    return response


def _client(response):
    session = MagicMock()
    session.post.return_value = response
    return GeminiClient(api_key="test-key", session=session), session


class TestGenerateContent:

    def test_posts_to_model_endpoint_with_key(self):
        client, session = _client(_response(body={
            "candidates": [{"content": {"parts": [{"text": "hello"}]}}]
        }))

        result = client.generate_content("Say hello", model="gemini-test", response_mime_type="application/json")

        assert result.text == "hello"
        args, kwargs = session.post.call_args
        assert args[0].endswith("/gemini-test:generateContent")
        assert kwargs["headers"]["x-goog-api-key"] == "test-key"
        assert kwargs["json"]["contents"][0]["parts"] == [{"text": "Say hello"}]
        assert kwargs["json"]["generationConfig"] == {"responseMimeType": "application/json"}

    def test_tools_and_image_config_are_sent(self):
        client, session = _client(_response(body={"candidates": []}))

        client.generate_content("x", tools=[{"google_search": {}}], image_config={"aspectRatio": "16:9"})

        payload = session.post.call_args.kwargs["json"]
        assert payload["tools"] == [{"google_search": {}}]
        assert payload["generationConfig"] == {"imageConfig": {"aspectRatio": "16:9"}}

    def test_text_parts_joined_and_images_collected(self):
        client, _ = _client(_response(body={"candidates": [{"content": {"parts": [
            {"text": "part one, "},
            {"text": "thinking...", "thought": True},
            {"text": "part two"},
            {"inlineData": {"mimeType": "image/png", "data": "AAAA"}},
        ]}}]}))

        result = client.generate_content("x")

        assert result.text == "part one, part two"
        assert result.images == [("image/png", "AAAA")]
        assert result.first_image_data_url() == "data:image/png;base64,AAAA"

    def test_rate_limit_is_retryable(self):
        client, _ = _client(_response(429, body={"error": {"status": "RESOURCE_EXHAUSTED", "message": "slow down"}}))

        with pytest.raises(GeminiRetryableError) as exc_info:
            client.generate_content("x")

        assert exc_info.value.status_code == 429
        assert "RESOURCE_EXHAUSTED" in str(exc_info.value)

    def test_server_error_is_retryable(self):
        client, _ = _client(_response(503, body={"error": {"status": "UNAVAILABLE", "message": "busy"}}))
        with pytest.raises(GeminiRetryableError):
            client.generate_content("x")

    def test_bad_request_is_fatal(self):
        client, _ = _client(_response(400, body={"error": {"status": "INVALID_ARGUMENT", "message": "bad"}}))
        with pytest.raises(GeminiFatalError) as exc_info:
            client.generate_content("x")
        assert exc_info.value.status_code == 400

    def test_blocked_prompt_is_fatal(self):
        client, _ = _client(_response(body={"promptFeedback": {"blockReason": "SAFETY"}}))
        with pytest.raises(GeminiFatalError, match="SAFETY"):
            client.generate_content("x")

    def test_timeout_is_retryable(self):
        session = MagicMock()
        session.post.side_effect = requests.exceptions.Timeout("read timed out")
        client = GeminiClient(api_key="k", session=session)

        with pytest.raises(GeminiRetryableError, match="timeout"):
            client.generate_content("x")

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        client = GeminiClient(session=MagicMock())
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            client.generate_content("x")


class TestDataUrls:

    def test_split_data_url(self):
        assert split_data_url("data:image/webp;base64,QUJD") == ("image/webp", "QUJD")

    def test_bare_base64_assumed_jpeg(self):
        assert split_data_url("QUJD") == ("image/jpeg", "QUJD")

    def test_inline_image_part(self):
        assert inline_image_part("data:image/png;base64,QUJD") == {
            "inline_data": {"mime_type": "image/png", "data": "QUJD"}
        }

    def test_empty_response_has_no_image(self):
        assert GeminiResponse().first_image_data_url() == ""
