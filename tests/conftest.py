"""
Global test configuration: environment isolation, markers and shared fakes.
"""

import json
import logging
import os
from typing import Any

import pytest

from video_copilot.client.provider import GenerationRequest
from video_copilot.client.rate_limiter import RateLimiter
from video_copilot.client.retry import RetryPolicy
from video_copilot.core.schemas import CATEGORY_SCHEMA_REGISTRY
from video_copilot.core.types import VideoAnalysisInput
from video_copilot.orchestrator import CategoryOrchestrator

_CATEGORY_BY_SCHEMA = {schema: name for name, schema in CATEGORY_SCHEMA_REGISTRY.items()}


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_gemini_env(request, monkeypatch):
    """Ensure a clean GEMINI_* environment for each test.

    Escape hatch: mark a test with @pytest.mark.allow_env_pollution to keep
    the current environment unchanged.
    """
    if request.node.get_closest_marker("allow_env_pollution") or (
        "api" in request.node.keywords
    ):
        return

    for key in list(os.environ.keys()):
        if key.startswith("GEMINI_"):
            monkeypatch.delenv(key, raising=False)
    # Telemetry stays off unless a test opts in
    monkeypatch.delenv("VIDEO_COPILOT_TELEMETRY", raising=False)
    monkeypatch.delenv("DEBUG", raising=False)


# --- Logging Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Sets the log level for noisy external libraries to WARNING."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)


def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "integration: Component integration tests with fake providers",
        "api: Real API integration tests (requires API key)",
        "allow_env_pollution: Keep GEMINI_* variables from the real environment",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


def pytest_collection_modifyitems(config, items):  # noqa: ARG001
    """Automatically skip API tests when API key is unavailable."""
    if not (os.getenv("GEMINI_API_KEY") and os.getenv("ENABLE_API_TESTS")):
        skip_api = pytest.mark.skip(
            reason="API tests require GEMINI_API_KEY and ENABLE_API_TESTS=1",
        )
        for item in items:
            if "api" in item.keywords:
                item.add_marker(skip_api)


# --- Core Fixtures ---


@pytest.fixture
def mock_api_key():
    """Provide a consistent, fake API key for tests."""
    return "test_api_key_12345_67890_abcdef_ghijkl"


@pytest.fixture
def video_input():
    """A small input that passes every content check."""
    return VideoAnalysisInput(
        video_id="vid-001",
        duration=180.0,
        transcription="Welcome back. Today we fix the three biggest editing mistakes.",
    )


def make_document(category: str, **overrides: Any) -> dict[str, Any]:
    """A minimal camelCase response that validates for ``category``."""
    doc = {
        "category": category,
        "summary": f"{category} looks solid overall.",
        "overallScore": 0.8,
        "issues": [
            {
                "id": f"{category}-1",
                "timestamp": {"start": 1, "end": 4},
                "category": category,
                "severity": "major",
                "title": "Slow intro",
                "description": "The first seconds repeat the title.",
                "issue": "Viewers wait for the payoff",
                "recommendation": "Open on the result",
                "confidence": 0.8,
            }
        ],
        "strengths": ["Clear voice"],
        "priorityActions": ["Tighten the intro"],
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def document_factory():
    return make_document


class ScriptedProvider:
    """In-memory ``ModelProvider`` driven by a per-category script.

    Each script entry is a list of outcomes consumed in order; the last one
    repeats. An outcome is response text or an exception to raise. Categories
    without a script answer with ``make_document``. Requests against a model
    in ``unavailable_models`` fail the way the real API does for unknown
    models, and model probes (requests without a schema) answer ``"ok"``.
    """

    def __init__(
        self,
        script: dict[str, list[Any]] | None = None,
        *,
        unavailable_models: tuple[str, ...] = (),
    ):
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.unavailable_models = unavailable_models
        self.calls: list[tuple[str, str | None]] = []

    def calls_for(self, category: str) -> int:
        return sum(1 for _model, cat in self.calls if cat == category)

    async def generate(self, *, model_name: str, request: GenerationRequest) -> str:
        category = _CATEGORY_BY_SCHEMA.get(request.response_schema)
        self.calls.append((model_name, category))
        if model_name in self.unavailable_models:
            raise RuntimeError(f"404 NOT_FOUND. models/{model_name} is not found")
        if category is None:
            return "ok"
        outcomes = self.script.get(category)
        if not outcomes:
            return json.dumps(make_document(category))
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def scripted_provider():
    return ScriptedProvider


class RecordingSleep:
    """Async sleep stand-in that records requested seconds and returns at once."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def make_orchestrator(recording_sleep):
    """Orchestrator wired for tests: no pacing, deterministic jitter, fast sleeps."""

    def _make(provider, **kwargs: Any) -> CategoryOrchestrator:
        kwargs.setdefault("rate_limiter", RateLimiter(0, sleep=recording_sleep))
        kwargs.setdefault(
            "retry_policy",
            RetryPolicy(max_retries=2, base_delay_ms=1000, max_delay_ms=8000),
        )
        kwargs.setdefault("fallback_models", ("gemini-primary", "gemini-backup"))
        return CategoryOrchestrator(
            provider, sleep=recording_sleep, random_fn=lambda: 0.5, **kwargs
        )

    return _make
