"""
Pytest configuration and fixtures for the pressdesk test suite.

This module provides reusable fixtures for:
- A scripted Gemini client (no network, no API key)
- A PromptRunner whose backoff sleeps are recorded instead of slept
- A temporary SQLite report store
- A Session wired to the fakes, and a Flask test client around it
"""

import json
import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path to import pressdesk.* and app
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app import create_app  # noqa: E402
from pressdesk.config import load_config  # noqa: E402
from pressdesk.services.content_service import ContentService  # noqa: E402
from pressdesk.services.gemini_client import GeminiResponse  # noqa: E402
from pressdesk.services.runner import PromptRunner  # noqa: E402
from pressdesk.services.synthesizer import ReportSynthesizer  # noqa: E402
from pressdesk.session import Session  # noqa: E402
from pressdesk.storage import ReportStore  # noqa: E402


class FakeGeminiClient:
    """
    Stand-in for GeminiClient that replays queued outcomes in order.

    An outcome may be a GeminiResponse, a str (response text), a dict/list
    (serialized to JSON text) or an exception instance (raised).
    """

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [])
        self.calls = []

    def queue(self, *outcomes):
        self.outcomes.extend(outcomes)

    def generate_content(self, contents, model=None, **kwargs):
        self.calls.append({"contents": contents, "model": model, **kwargs})
        if not self.outcomes:
            raise AssertionError("Unexpected Gemini call")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, GeminiResponse):
            return outcome
        if isinstance(outcome, (dict, list)):
            return GeminiResponse(text=json.dumps(outcome, ensure_ascii=False))
        return GeminiResponse(text=outcome)

    @property
    def call_count(self):
        return len(self.calls)


@pytest.fixture
def config(monkeypatch):
    """Packaged defaults only (ignores any PRESSDESK_CONFIG in the environment)."""
    monkeypatch.delenv("PRESSDESK_CONFIG", raising=False)
    return load_config()


@pytest.fixture
def fake_client():
    return FakeGeminiClient()


@pytest.fixture
def sleeps():
    """Backoff waits requested by the retry wrapper, in seconds."""
    return []


@pytest.fixture
def runner(fake_client, config, sleeps):
    return PromptRunner(client=fake_client, config=config, sleep=sleeps.append)


@pytest.fixture
def store(tmp_path):
    return ReportStore(tmp_path / "pressdesk.db")


@pytest.fixture
def session(store, runner, config):
    return Session(
        store=store,
        content=ContentService(runner=runner),
        synthesizer=ReportSynthesizer(runner=runner),
        config=config,
    )


@pytest.fixture
def app(session, config):
    """Flask app around the fake-backed session."""
    return create_app({'TESTING': True}, session=session)


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()
