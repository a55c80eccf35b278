"""Integration tests for the LiteLLM client and its retry policy.

litellm.completion is patched; everything above it (error translation,
backoff, pipeline degradation) runs for real.
"""

from unittest.mock import patch

import litellm
import pytest

from codelens.cache import AnalysisCache
from codelens.errors import ConfigurationError
from codelens.llm.client import (
    AuthError,
    EmptyResponseError,
    LLMClient,
    ProviderTerminalError,
    ProviderTransientError,
    RateLimitError,
    classify_failure,
    create_client,
)
from codelens.models.llm_config import LLMConfig
from codelens.pipeline import AnalysisPipeline


def rate_limit_error() -> Exception:
    return litellm.exceptions.RateLimitError(
        message="Resource exhausted", llm_provider="gemini", model="gemini-1.5-flash"
    )


def server_error() -> Exception:
    return litellm.exceptions.InternalServerError(
        message="Backend error", llm_provider="gemini", model="gemini-1.5-flash"
    )


class TestCompletionRequest:
    """Tests for the request sent to LiteLLM."""

    def test_request_parameters(self, gemini_config, litellm_response_factory, sleep) -> None:
        """Test model routing, deterministic sampling, and message layout."""
        client = LLMClient(gemini_config, sleep=sleep)

        with patch("litellm.completion", return_value=litellm_response_factory("{}")) as mock:
            response = client.complete("review this", system_prompt="you are a reviewer")

        kwargs = mock.call_args.kwargs
        assert kwargs["model"] == "gemini/gemini-1.5-flash"
        assert kwargs["temperature"] == 0
        assert kwargs["top_k"] == 1
        assert kwargs["api_key"] == "test-key"
        assert kwargs["messages"] == [
            {"role": "system", "content": "you are a reviewer"},
            {"role": "user", "content": "review this"},
        ]
        assert response.content == "{}"
        assert response.attempts == 1
        assert response.usage["total_tokens"] == 150

    def test_ollama_uses_api_base(self, litellm_response_factory, sleep) -> None:
        """Test Ollama requests go to the configured server without a key."""
        client = LLMClient(LLMConfig(provider="ollama", model="llama3"), sleep=sleep)

        with patch("litellm.completion", return_value=litellm_response_factory("{}")) as mock:
            client.complete("x")

        kwargs = mock.call_args.kwargs
        assert kwargs["model"] == "ollama/llama3"
        assert kwargs["api_base"] == "http://localhost:11434"
        assert "api_key" not in kwargs


class TestRetryPolicy:
    """Tests for exponential backoff on transient failures."""

    def test_rate_limit_then_success(self, gemini_config, litellm_response_factory, sleep) -> None:
        """Test one 429 is retried after backoff_base seconds."""
        client = LLMClient(gemini_config, sleep=sleep)

        with patch(
            "litellm.completion",
            side_effect=[rate_limit_error(), litellm_response_factory("{}")],
        ) as mock:
            response = client.complete("x")

        assert mock.call_count == 2
        assert sleep.calls == [1.0]
        assert response.attempts == 2

    def test_server_errors_exhaust_retries(self, gemini_config, sleep) -> None:
        """Test persistent 5xx makes 1 + max_retries calls with doubling delays."""
        client = LLMClient(gemini_config, sleep=sleep)

        with patch("litellm.completion", side_effect=server_error()) as mock:
            with pytest.raises(ProviderTransientError):
                client.complete("x")

        assert mock.call_count == 3
        assert sleep.calls == [1.0, 2.0]

    def test_persistent_rate_limit(self, sleep) -> None:
        """Test a persistent 429 surfaces as RateLimitError."""
        config = LLMConfig(api_key="k", max_retries=1, backoff_base=0.5)
        client = LLMClient(config, sleep=sleep)

        with patch("litellm.completion", side_effect=rate_limit_error()):
            with pytest.raises(RateLimitError) as exc_info:
                client.complete("x")

        assert exc_info.value.status_code == 429
        assert sleep.calls == [0.5]

    def test_connection_error_is_transient(
        self, gemini_config, litellm_response_factory, sleep
    ) -> None:
        """Test connection failures are retried."""
        error = litellm.exceptions.APIConnectionError(
            message="connection reset", llm_provider="gemini", model="gemini-1.5-flash"
        )
        client = LLMClient(gemini_config, sleep=sleep)

        with patch("litellm.completion", side_effect=[error, litellm_response_factory("{}")]):
            assert client.complete("x").attempts == 2

    def test_auth_error_not_retried(self, gemini_config, sleep) -> None:
        """Test authentication failures raise immediately."""
        error = litellm.exceptions.AuthenticationError(
            message="API key not valid", llm_provider="gemini", model="gemini-1.5-flash"
        )
        client = LLMClient(gemini_config, sleep=sleep)

        with patch("litellm.completion", side_effect=error) as mock:
            with pytest.raises(AuthError):
                client.complete("x")

        assert mock.call_count == 1
        assert sleep.calls == []

    def test_bad_request_is_terminal(self, gemini_config, sleep) -> None:
        """Test other 4xx responses are not retried."""
        error = litellm.exceptions.BadRequestError(
            message="prompt too long", model="gemini-1.5-flash", llm_provider="gemini"
        )
        client = LLMClient(gemini_config, sleep=sleep)

        with patch("litellm.completion", side_effect=error) as mock:
            with pytest.raises(ProviderTerminalError):
                client.complete("x")

        assert mock.call_count == 1

    def test_backoff_delay(self, gemini_config) -> None:
        """Test the delay doubles per attempt."""
        client = LLMClient(gemini_config)

        assert [client.backoff_delay(n) for n in range(3)] == [1.0, 2.0, 4.0]


class TestEmptyResponse:
    """Tests for responses without text."""

    @pytest.mark.parametrize("content", ["", "   \n", None])
    def test_empty_content(self, gemini_config, litellm_response_factory, sleep, content) -> None:
        """Test blank content raises EmptyResponseError."""
        client = LLMClient(gemini_config, sleep=sleep)
        response = litellm_response_factory("placeholder")
        response.choices[0].message.content = content

        with patch("litellm.completion", return_value=response):
            with pytest.raises(EmptyResponseError):
                client.complete("x")

    def test_no_choices(self, gemini_config, litellm_response_factory, sleep) -> None:
        """Test a response with no choices raises EmptyResponseError."""
        response = litellm_response_factory("x")
        response.choices = []
        client = LLMClient(gemini_config, sleep=sleep)

        with patch("litellm.completion", return_value=response):
            with pytest.raises(EmptyResponseError):
                client.complete("x")

    def test_choice_without_message(self, gemini_config, litellm_response_factory, sleep) -> None:
        """Test a choice whose message is None raises EmptyResponseError."""
        response = litellm_response_factory("x")
        response.choices[0].message = None
        client = LLMClient(gemini_config, sleep=sleep)

        with patch("litellm.completion", return_value=response):
            with pytest.raises(EmptyResponseError):
                client.complete("x")


class TestCreateClient:
    """Tests for create_client()."""

    def test_missing_key(self) -> None:
        """Test a missing credential fails before any call."""
        with patch("litellm.completion") as mock:
            with pytest.raises(ConfigurationError):
                create_client(LLMConfig(provider="claude", model="claude-3-haiku"))

        mock.assert_not_called()

    def test_disabled(self) -> None:
        """Test a disabled provider cannot be used."""
        with pytest.raises(ConfigurationError, match="disabled"):
            create_client(LLMConfig(api_key="k", enabled=False))

    def test_returns_client(self, gemini_config) -> None:
        """Test a valid configuration builds a client."""
        assert isinstance(create_client(gemini_config), LLMClient)


class TestClassifyFailure:
    """Tests for classify_failure()."""

    def test_rate_limit(self) -> None:
        """Test RateLimitError maps to rate_limit."""
        assert classify_failure(RateLimitError("slow down")) == "rate_limit"

    def test_quota_message(self) -> None:
        """Test quota wording maps to quota_exceeded."""
        assert classify_failure(ProviderTerminalError("Daily quota reached")) == "quota_exceeded"

    def test_other(self) -> None:
        """Test anything else is an api_error."""
        assert classify_failure(AuthError("bad key")) == "api_error"


class TestPipelineWithClient:
    """End-to-end single-file analysis through the real client."""

    def test_findings_from_fenced_response(
        self,
        gemini_config,
        litellm_response_factory,
        model_response_text,
        python_source,
        sleep,
        clock,
    ) -> None:
        """Test a fenced model reply becomes a validated, cached result."""
        pipeline = AnalysisPipeline(LLMClient(gemini_config, sleep=sleep), AnalysisCache(clock=clock))

        with patch(
            "litellm.completion", return_value=litellm_response_factory(model_response_text)
        ) as mock:
            first = pipeline.analyze_one(python_source, "config_reader.py")
            second = pipeline.analyze_one(python_source, "config_reader.py")

        assert mock.call_count == 1
        assert second == first
        assert first.summary.total_errors == 2
        assert "7:     handle = open(path)" in first.errors[0].context

    def test_exhausted_rate_limit_degrades(
        self, gemini_config, python_source, sleep, clock
    ) -> None:
        """Test a persistent 429 yields a rate_limit result that is not cached."""
        pipeline = AnalysisPipeline(LLMClient(gemini_config, sleep=sleep), AnalysisCache(clock=clock))

        with patch("litellm.completion", side_effect=rate_limit_error()) as mock:
            result = pipeline.analyze_one(python_source, "app.py")

        assert mock.call_count == 3
        assert result.degraded is True
        assert result.errors[0].type == "rate_limit"
        assert result.errors[0].severity == "medium"
        assert len(pipeline.cache) == 0
