"""
Generation error taxonomy.

Transient upstream failures are retried by ``with_retry`` and only surface
as ``GeminiAPIError`` once the budget is spent. Everything here is raised
by pressdesk itself and is never retried.
"""

from __future__ import annotations

from typing import Optional


class GenerationError(Exception):
    """Base class for failures of an AI-backed operation."""


class InvalidResponseError(GenerationError):
    """Model output could not be parsed or had the wrong JSON shape."""

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text


class EmptyInputError(GenerationError):
    """Nothing to generate from; rejected before any API call."""
