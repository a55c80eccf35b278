"""Unified LLM client wrapper using LiteLLM.

Provides a consistent interface for multiple LLM providers and owns the
external-call protocol: exponential-backoff retry for transient failures
(HTTP 429, 5xx, connection errors) and typed terminal failures for
everything else. Temperature is fixed at 0 for reproducibility.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import litellm

from codelens.errors import ConfigurationError
from codelens.models.llm_config import LLMConfig

logger = logging.getLogger(__name__)


# =============================================================================
# Errors
# =============================================================================


class LLMError(Exception):
    """Base exception for LLM-related errors.

    Attributes:
        status_code: HTTP status reported by the provider, if any
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ProviderTransientError(LLMError):
    """Provider failure that may succeed on retry (5xx, connection, timeout)."""

    pass


class RateLimitError(ProviderTransientError):
    """Provider rejected the request with HTTP 429."""

    pass


class ProviderTerminalError(LLMError):
    """Provider failure that will not succeed on retry (4xx other than 429)."""

    pass


class AuthError(ProviderTerminalError):
    """Provider rejected the credential."""

    pass


class EmptyResponseError(ProviderTerminalError):
    """Provider returned a successful response without any text."""

    pass


def classify_failure(error: BaseException) -> str:
    """Classify a terminal failure for the degraded result.

    Args:
        error: Exception that ended the generation call

    Returns:
        "rate_limit", "quota_exceeded", or "api_error"
    """
    if isinstance(error, RateLimitError):
        return "rate_limit"

    message = str(error).lower()
    if "429" in message:
        return "rate_limit"
    if "quota" in message or "limit" in message:
        return "quota_exceeded"
    return "api_error"


# =============================================================================
# Client
# =============================================================================


@dataclass
class LLMResponse:
    """Response from LLM completion.

    Attributes:
        content: Generated text content
        model: Model that generated the response
        usage: Token usage statistics
        finish_reason: Reason for completion (stop, length, etc.)
        attempts: Number of requests made, including the successful one
    """

    content: str
    model: str
    usage: dict[str, int] = field(default_factory=dict)
    finish_reason: str | None = None
    attempts: int = 1


class LLMClient:
    """Unified LLM client using LiteLLM.

    Supports multiple providers through a single interface:
    - Gemini (Google)
    - Claude (Anthropic)
    - Ollama (local)
    - Bedrock (AWS)

    Retry policy: attempt n (0-based) that fails transiently waits
    backoff_base * 2**n seconds before attempt n + 1, up to max_retries
    retries. Terminal failures are raised immediately.
    """

    def __init__(
        self,
        config: LLMConfig,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize LLM client with configuration.

        Args:
            config: LLM configuration with provider, model, and credentials
            sleep: Function used to wait between attempts (injectable for tests)
        """
        self.config = config
        self._sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        """Delay in seconds after failed attempt number `attempt` (0-based)."""
        return self.config.backoff_base * (2**attempt)

    def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion from the LLM.

        Args:
            prompt: User prompt for the LLM
            system_prompt: Optional system prompt
            max_tokens: Override max_tokens from config

        Returns:
            LLMResponse with generated content

        Raises:
            RateLimitError: If HTTP 429 persists after all retries
            ProviderTransientError: If 5xx/connection failures persist after all retries
            AuthError: If the provider rejects the credential
            EmptyResponseError: If the provider returns no text
            ProviderTerminalError: For any other non-retryable failure
        """
        messages: list[dict[str, str]] = []

        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        messages.append({"role": "user", "content": prompt})

        # temperature=0 selects the highest probability token; top_k=1 pins it
        completion_kwargs: dict[str, Any] = {
            "model": self.config.get_litellm_model_name(),
            "messages": messages,
            "temperature": 0,
            "max_tokens": max_tokens or self.config.max_tokens,
            "timeout": self.config.timeout,
        }
        if self.config.api_key:
            completion_kwargs["api_key"] = self.config.api_key

        if self.config.provider == "ollama":
            completion_kwargs["api_base"] = self.config.api_base
            completion_kwargs["top_k"] = 1
        elif self.config.provider in {"claude", "gemini"}:
            completion_kwargs["top_k"] = 1

        total_attempts = self.config.max_retries + 1
        attempt = 0
        while True:
            try:
                response = litellm.completion(**completion_kwargs)
            except Exception as e:
                error = self._translate_error(e)
                retryable = isinstance(error, ProviderTransientError)
                if not retryable or attempt >= self.config.max_retries:
                    logger.error(
                        "LLM request failed after %d attempt(s): %s",
                        attempt + 1,
                        error,
                    )
                    raise error from e

                delay = self.backoff_delay(attempt)
                logger.warning(
                    "LLM request failed (attempt %d/%d): %s. Retrying in %.1fs",
                    attempt + 1,
                    total_attempts,
                    error,
                    delay,
                )
                self._sleep(delay)
                attempt += 1
                continue

            return self._build_response(response, attempts=attempt + 1)

    def _build_response(self, response: Any, attempts: int) -> LLMResponse:
        """Extract content and usage from a LiteLLM response.

        Raises:
            EmptyResponseError: If the response carries no text
        """
        choices = getattr(response, "choices", None) or []
        if not choices:
            raise EmptyResponseError(f"Empty response from {self.config.provider}")

        choice = choices[0]
        message = getattr(choice, "message", None)
        if message is None:
            raise EmptyResponseError(f"Empty response from {self.config.provider}")
        content = getattr(message, "content", None) or ""
        if not content.strip():
            raise EmptyResponseError(f"Empty response from {self.config.provider}")

        usage = {}
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": response.usage.prompt_tokens or 0,
                "completion_tokens": response.usage.completion_tokens or 0,
                "total_tokens": response.usage.total_tokens or 0,
            }

        return LLMResponse(
            content=content,
            model=getattr(response, "model", None) or self.config.model,
            usage=usage,
            finish_reason=choice.finish_reason,
            attempts=attempts,
        )

    def _translate_error(self, exc: Exception) -> LLMError:
        """Map a LiteLLM or transport exception onto the client taxonomy.

        Args:
            exc: Exception raised by litellm.completion

        Returns:
            Typed LLMError (transient errors are retried by the caller)
        """
        provider = self.config.provider
        status = getattr(exc, "status_code", None)
        if not isinstance(status, int):
            status = None

        if isinstance(exc, litellm.exceptions.RateLimitError) or status == 429:
            return RateLimitError(
                f"Rate limit exceeded for {provider} (HTTP 429): {exc}",
                status_code=429,
            )

        if isinstance(exc, litellm.exceptions.AuthenticationError) or status in (401, 403):
            return AuthError(
                f"Authentication failed for {provider}: {exc}",
                status_code=status,
            )

        if isinstance(exc, (litellm.exceptions.APIConnectionError, litellm.exceptions.Timeout)):
            return ProviderTransientError(
                f"Connection failed to {provider}: {exc}",
                status_code=status,
            )

        if isinstance(
            exc,
            (litellm.exceptions.ServiceUnavailableError, litellm.exceptions.InternalServerError),
        ) or (status is not None and status >= 500):
            return ProviderTransientError(
                f"Server error from {provider} (HTTP {status}): {exc}",
                status_code=status,
            )

        return ProviderTerminalError(f"LLM completion failed: {exc}", status_code=status)


def create_client(
    config: LLMConfig,
    sleep: Callable[[float], None] = time.sleep,
) -> LLMClient:
    """Create an LLM client from configuration.

    Args:
        config: LLM configuration
        sleep: Wait function used between retries

    Returns:
        Configured LLMClient instance

    Raises:
        ConfigurationError: If LLM is disabled or the provider credential is absent
    """
    if not config.enabled:
        raise ConfigurationError("LLM analysis is disabled in configuration")

    config.require_credentials()

    for warning in config.validate():
        logger.warning("LLM config: %s", warning)

    return LLMClient(config, sleep=sleep)
