"""
Execute a ``Prompt`` against Gemini through the retry wrapper.

Both the report synthesizer and the content assist service go through
``PromptRunner`` so every upstream call gets the same backoff policy.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

from ..config import get_config, get_retry_settings
from ..parsing import parse_json_response, preview
from ..prompts import Prompt
from .errors import InvalidResponseError
from .gemini_client import GeminiClient, GeminiResponse
from .retry import with_retry

logger = logging.getLogger(__name__)


class PromptRunner:
    """Runs prompts with the configured models and retry budget."""

    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        config: Optional[Dict[str, Any]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or get_config()
        models = self.config.get("models") or {}
        self.text_model = models.get("text", GeminiClient.MODEL_TEXT)
        self.image_model = models.get("image", GeminiClient.MODEL_IMAGE)

        if client is None:
            timeout_cfg = self.config.get("request_timeout_seconds") or {}
            client = GeminiClient(
                timeout=(
                    float(timeout_cfg.get("connect", 10)),
                    float(timeout_cfg.get("read", 120)),
                )
            )
        self.client = client
        self.retry = get_retry_settings(self.config)
        self._sleep = sleep

    def run(self, prompt: Prompt) -> GeminiResponse:
        """One logical call: may hit the API several times on rate limits."""
        model = self.image_model if prompt.wants_image else self.text_model
        contents = prompt.contents() if prompt.images else prompt.text

        def call() -> GeminiResponse:
            return self.client.generate_content(
                contents,
                model=model,
                response_mime_type=prompt.response_mime_type,
                tools=prompt.tools,
                image_config=prompt.image_config,
            )

        return with_retry(
            call,
            retries=int(self.retry["retries"]),
            delay=self.retry["delay"],
            jitter=self.retry["jitter"],
            sleep=self._sleep,
        )

    def run_text(self, prompt: Prompt) -> str:
        return (self.run(prompt).text or "").strip()

    def run_json(self, prompt: Prompt, what: str) -> Any:
        """
        Run a prompt and parse its answer as JSON.

        Raises:
            InvalidResponseError: Unparsable answer (never retried)
        """
        text = self.run(prompt).text
        try:
            return parse_json_response(text, what)
        except InvalidResponseError:
            logger.error("Invalid JSON from AI for %s: %r", what, preview(text))
            raise
