"""
Direct Google AI Studio API client for Gemini text and image generation.

Uses the REST API directly (no SDK dependency). One call per method: the
caller decides about retries (see ``services.retry``).

Models:
- gemini-2.5-flash - text, JSON and vision (captions)
- gemini-2.5-flash-image - image generation
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import requests


class GeminiAPIError(Exception):
    """Base error for Gemini API calls."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GeminiRetryableError(GeminiAPIError):
    """Transient error (rate limit, server error, timeout)."""
    pass


class GeminiFatalError(GeminiAPIError):
    """Non-retryable error (auth failure, bad request, blocked prompt)."""
    pass


Part = Dict[str, Any]


@dataclass
class GeminiResponse:
    """Text and inline images extracted from a generateContent response."""
    text: str = ""
    images: List[Tuple[str, str]] = field(default_factory=list)  # (mime_type, base64)
    raw: Dict[str, Any] = field(default_factory=dict)

    def first_image_data_url(self) -> str:
        if not self.images:
            return ""
        mime_type, data = self.images[0]
        return f"data:{mime_type};base64,{data}"


def split_data_url(data_url: str) -> Tuple[str, str]:
    """
    Split a ``data:<mime>;base64,<payload>`` string.

    Bare base64 payloads are accepted and assumed to be JPEG.

    Returns:
        Tuple of (mime_type, base64_data)
    """
    if data_url.startswith("data:") and "," in data_url:
        header, data = data_url.split(",", 1)
        mime_type = header[5:].split(";", 1)[0] or "image/jpeg"
        return mime_type, data
    return "image/jpeg", data_url


def inline_image_part(data_url: str) -> Part:
    mime_type, data = split_data_url(data_url)
    return {"inline_data": {"mime_type": mime_type, "data": data}}


def text_part(text: str) -> Part:
    return {"text": text}


class GeminiClient:
    """
    Direct Google AI Studio API client.

    Uses REST API instead of SDK for simpler dependency management.
    """

    # API endpoint template
    API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"

    MODEL_TEXT = "gemini-2.5-flash"
    MODEL_IMAGE = "gemini-2.5-flash-image"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Tuple[float, float] = (10, 120),
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize Gemini client.

        Args:
            api_key: Google AI Studio API key. If None, reads from GEMINI_API_KEY env var.
            timeout: (connect_timeout, read_timeout) in seconds
            session: Optional requests session (connection reuse, tests)
        """
        self._api_key = api_key
        self.timeout = timeout
        self._session = session

    @property
    def api_key(self) -> str:
        """Get API key, loading from env if needed."""
        if self._api_key is None:
            self._api_key = os.environ.get("GEMINI_API_KEY")
            if not self._api_key:
                raise ValueError("GEMINI_API_KEY not set")
        return self._api_key

    def _get_endpoint(self, model: str) -> str:
        """Get API endpoint for a model."""
        return f"{self.API_BASE}/{model}:generateContent"

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Pull ``error.status`` and ``error.message`` out of an error body."""
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            return response.text[:200]
        status = error.get("status") or ""
        message = error.get("message") or ""
        return f"{status}: {message}".strip(": ")

    def _classify_error(self, status_code: int, response: requests.Response) -> GeminiAPIError:
        """
        Classify API error as retryable or fatal.

        Rate limits and server errors are retryable; auth and bad requests are not.
        """
        error_msg = f"HTTP {status_code}: {self._error_message(response)}"

        if status_code == 429 or 500 <= status_code < 600:
            return GeminiRetryableError(error_msg, status_code)
        if 400 <= status_code < 500:
            return GeminiFatalError(error_msg, status_code)
        # Unknown - assume retryable
        return GeminiRetryableError(error_msg, status_code)

    def _post(self, url: str, **kwargs: Any) -> requests.Response:
        poster = self._session.post if self._session is not None else requests.post
        return poster(url, **kwargs)

    def generate_content(
        self,
        contents: Union[str, List[Part]],
        model: Optional[str] = None,
        response_mime_type: Optional[str] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
        image_config: Optional[Dict[str, Any]] = None,
    ) -> GeminiResponse:
        """
        Make a single generateContent call.

        Args:
            contents: Prompt text, or a list of parts (text and inline images)
            model: Model to use (default: MODEL_TEXT)
            response_mime_type: e.g. "application/json" for JSON answers
            tools: Optional tool declarations (e.g. Google Search grounding)
            image_config: Optional image generation settings

        Returns:
            GeminiResponse with the concatenated text and any inline images

        Raises:
            GeminiRetryableError: For transient errors
            GeminiFatalError: For non-retryable errors
        """
        model = model or self.MODEL_TEXT
        parts = [text_part(contents)] if isinstance(contents, str) else list(contents)

        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": parts}],
        }
        generation_config: Dict[str, Any] = {}
        if response_mime_type:
            generation_config["responseMimeType"] = response_mime_type
        if image_config:
            generation_config["imageConfig"] = image_config
        if generation_config:
            payload["generationConfig"] = generation_config
        if tools:
            payload["tools"] = tools

        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

        try:
            response = self._post(
                self._get_endpoint(model),
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise GeminiRetryableError(f"Request timeout: {e}")
        except requests.exceptions.ConnectionError as e:
            raise GeminiRetryableError(f"Connection error: {e}")
        except requests.exceptions.RequestException as e:
            raise GeminiRetryableError(f"Network error: {e}")

        if not response.ok:
            raise self._classify_error(response.status_code, response)

        try:
            data = response.json()
        except ValueError as e:
            raise GeminiRetryableError(f"Invalid JSON envelope: {e}")

        return self._parse_response(data)

    @staticmethod
    def _parse_response(data: Dict[str, Any]) -> GeminiResponse:
        candidates = data.get("candidates") or []
        if not candidates:
            # Check for safety block
            if "promptFeedback" in data:
                feedback = data.get("promptFeedback") or {}
                block_reason = feedback.get("blockReason", "unknown")
                raise GeminiFatalError(f"Request blocked: {block_reason}")
            return GeminiResponse(raw=data)

        content = candidates[0].get("content") or {}
        texts: List[str] = []
        images: List[Tuple[str, str]] = []
        for part in content.get("parts") or []:
            if "text" in part and not part.get("thought"):
                texts.append(part["text"])
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                images.append((mime_type, inline["data"]))

        return GeminiResponse(text="".join(texts), images=images, raw=data)
