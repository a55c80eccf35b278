"""Shared pytest fixtures for codelens tests.

Fixtures are organized by category:
- Time fixtures: Fake clock and recording sleep for cache and retry tests
- Source fixtures: Sample code and in-memory repositories
- LLM fixtures: Model responses and scripted clients
"""

import json
from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest

from codelens.cache import AnalysisCache
from codelens.errors import ContentSourceError
from codelens.llm.client import LLMResponse
from codelens.models.llm_config import LLMConfig
from codelens.models.repository import RepoRef
from codelens.pipeline import AnalysisPipeline
from codelens.sources.base import ContentSource, RemoteFile

# =============================================================================
# Time Fixtures
# =============================================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def clock() -> FakeClock:
    """Return a fake clock starting at t=1000."""
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    """Return a sleep function that records delays instead of waiting."""
    return RecordingSleep()


# =============================================================================
# Source Fixtures
# =============================================================================


@pytest.fixture
def python_source() -> str:
    """Return a short Python module with an unclosed file handle."""
    return '''"""Sample module."""

import os


def read_config(path):
    handle = open(path)
    data = handle.read()
    return data
'''


@pytest.fixture
def javascript_source() -> str:
    """Return a short JavaScript module."""
    return """function greet(name) {
    console.log("Hello, " + nme);
}

module.exports = { greet };
"""


class InMemorySource(ContentSource):
    """Content source backed by a dict of path -> bytes.

    Paths listed in `failing` raise ContentSourceError on fetch.
    """

    def __init__(self, files: dict[str, bytes], failing: set[str] | None = None) -> None:
        super().__init__(name="memory")
        self.files = files
        self.failing = failing or set()
        self.fetched: list[str] = []

    def list_files(self, repo_ref: RepoRef) -> list[RemoteFile]:
        return [RemoteFile(path=p, size=len(c)) for p, c in self.files.items()]

    def fetch_file_content(self, repo_ref: RepoRef, path: str) -> bytes:
        self.fetched.append(path)
        if path in self.failing or path not in self.files:
            raise ContentSourceError("Failed to fetch", path=path)
        return self.files[path]


@pytest.fixture
def memory_source_factory() -> Callable[..., InMemorySource]:
    """Return a factory for in-memory content sources."""
    return InMemorySource


@pytest.fixture
def repo_ref() -> RepoRef:
    """Return a sample repository reference."""
    return RepoRef(owner="octocat", repo="hello-world", ref="main")


# =============================================================================
# LLM Fixtures
# =============================================================================


def build_model_payload(
    errors: list[dict[str, Any]] | None = None,
    suggestions: list[dict[str, Any]] | None = None,
    **summary: Any,
) -> dict[str, Any]:
    """Build a model response payload in the requested JSON shape."""
    return {
        "errors": errors or [],
        "suggestions": suggestions or [],
        "codeMetrics": {
            "complexity": "low",
            "maintainability": "good",
            "testability": "fair",
            "performance": "good",
            "security": "fair",
        },
        "summary": {"codeQuality": "good", "confidence": "high", **summary},
    }


@pytest.fixture
def model_payload() -> dict[str, Any]:
    """Return a payload with two findings and one suggestion."""
    return build_model_payload(
        errors=[
            {
                "line": 7,
                "column": 14,
                "word": "open",
                "type": "resource_leak",
                "level": "performance",
                "message": "File handle is never closed",
                "severity": "high",
            },
            {
                "line": 3,
                "type": "unused_import",
                "level": "syntax",
                "message": "os is imported but unused",
                "severity": "low",
            },
        ],
        suggestions=[
            {
                "line": 7,
                "type": "refactor",
                "level": "performance",
                "message": "Use a context manager",
                "fix": "with open(path) as handle:",
                "reasoning": "Closes the file on every path",
            }
        ],
        # Self-reported counts are wrong on purpose
        totalErrors=99,
        criticalErrors=5,
    )


@pytest.fixture
def model_response_text(model_payload: dict[str, Any]) -> str:
    """Return the payload wrapped in a Markdown fence, as models often reply."""
    return f"```json\n{json.dumps(model_payload, indent=2)}\n```"


def make_litellm_response(content: str, model: str = "gemini-1.5-flash") -> MagicMock:
    """Create a mock LiteLLM completion response."""
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content), finish_reason="stop")]
    response.model = model
    response.usage = MagicMock(prompt_tokens=100, completion_tokens=50, total_tokens=150)
    return response


@pytest.fixture
def litellm_response_factory() -> Callable[..., MagicMock]:
    """Return a factory for mock LiteLLM responses."""
    return make_litellm_response


@pytest.fixture
def gemini_config() -> LLMConfig:
    """Return a Gemini configuration with a test key."""
    return LLMConfig(provider="gemini", model="gemini-1.5-flash", api_key="test-key")


class ScriptedClient:
    """LLM client stand-in that replays scripted outcomes.

    Each outcome is either response text or an exception to raise.
    The last outcome repeats once the script is exhausted.
    """

    def __init__(self, outcomes: list[str | Exception]) -> None:
        self.outcomes = list(outcomes)
        self.prompts: list[str] = []

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        self.prompts.append(prompt)
        index = min(len(self.prompts) - 1, len(self.outcomes) - 1)
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return LLMResponse(content=outcome, model="scripted")


@pytest.fixture
def scripted_client_factory() -> Callable[..., ScriptedClient]:
    """Return a factory for scripted LLM clients."""
    return ScriptedClient


@pytest.fixture
def pipeline_factory(clock: FakeClock) -> Callable[..., AnalysisPipeline]:
    """Return a factory building a pipeline around a client with a fake-clock cache."""

    def factory(client: Any, max_file_size: int = 500_000, **cache_kwargs: Any) -> AnalysisPipeline:
        cache = AnalysisCache(clock=clock, **cache_kwargs)
        return AnalysisPipeline(client, cache, max_file_size=max_file_size)

    return factory
