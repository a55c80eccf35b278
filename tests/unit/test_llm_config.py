"""Unit tests for LLMConfig entity validation."""

import pytest

from codelens.errors import ConfigurationError
from codelens.models.llm_config import VALID_PROVIDERS, LLMConfig


class TestLLMConfig:
    """Tests for LLMConfig entity."""

    def test_defaults(self) -> None:
        """Test the default provider and retry policy."""
        config = LLMConfig()

        assert config.provider == "gemini"
        assert config.model == "gemini-1.5-flash"
        assert config.temperature == 0.0
        assert config.max_retries == 2
        assert config.backoff_base == 1.0
        assert config.enabled is True

    def test_create_claude_config(self) -> None:
        """Test creating a Claude provider configuration."""
        config = LLMConfig(provider="claude", model="claude-3-5-sonnet", api_key="test-key")

        assert config.provider == "claude"
        assert config.api_key == "test-key"
        assert config.credential_env_var == "ANTHROPIC_API_KEY"

    def test_ollama_gets_default_api_base(self) -> None:
        """Test Ollama falls back to the local server URL."""
        config = LLMConfig(provider="ollama", model="llama3")

        assert config.api_base == "http://localhost:11434"
        assert config.is_local is True

    def test_provider_is_normalized(self) -> None:
        """Test provider names are case-insensitive."""
        assert LLMConfig(provider="  Gemini ").provider == "gemini"

    def test_invalid_provider(self) -> None:
        """Test an unknown provider is rejected."""
        with pytest.raises(ValueError, match="Invalid provider"):
            LLMConfig(provider="openai-unknown")

    def test_empty_model(self) -> None:
        """Test an empty model identifier is rejected."""
        with pytest.raises(ValueError, match="Model identifier"):
            LLMConfig(model="   ")

    def test_nonzero_temperature_rejected(self) -> None:
        """Test temperature must stay at zero."""
        with pytest.raises(ValueError, match="Temperature must be 0"):
            LLMConfig(temperature=0.7)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_tokens": 0},
            {"max_retries": -1},
            {"backoff_base": -0.5},
            {"timeout": 0},
        ],
    )
    def test_invalid_numbers(self, kwargs) -> None:
        """Test out-of-range numeric settings are rejected."""
        with pytest.raises(ValueError):
            LLMConfig(**kwargs)

    def test_valid_providers(self) -> None:
        """Test the supported provider set."""
        assert VALID_PROVIDERS == {"gemini", "claude", "ollama", "bedrock"}


class TestCredentials:
    """Tests for LLMConfig.require_credentials()."""

    def test_gemini_without_key(self) -> None:
        """Test a cloud provider without a key raises ConfigurationError."""
        with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
            LLMConfig(provider="gemini").require_credentials()

    def test_gemini_with_key(self) -> None:
        """Test a configured key passes."""
        LLMConfig(provider="gemini", api_key="k").require_credentials()

    @pytest.mark.parametrize("provider", ["ollama", "bedrock"])
    def test_keyless_providers(self, provider: str) -> None:
        """Test Ollama and Bedrock do not need an API key."""
        LLMConfig(provider=provider, model="m").require_credentials()


class TestValidateWarnings:
    """Tests for LLMConfig.validate()."""

    def test_no_warnings_for_defaults(self) -> None:
        """Test the default configuration is warning-free."""
        assert LLMConfig().validate() == []

    def test_small_max_tokens_warns(self) -> None:
        """Test a small token budget is flagged."""
        warnings = LLMConfig(max_tokens=500).validate()

        assert any("max_tokens" in w for w in warnings)

    def test_zero_retries_warns(self) -> None:
        """Test disabling retries is flagged."""
        warnings = LLMConfig(max_retries=0).validate()

        assert any("max_retries" in w for w in warnings)

    def test_bad_ollama_url_warns(self) -> None:
        """Test a scheme-less Ollama URL is flagged."""
        warnings = LLMConfig(provider="ollama", model="m", api_base="localhost:11434").validate()

        assert any("api_base" in w for w in warnings)


class TestSerialization:
    """Tests for to_dict/from_dict and model naming."""

    def test_round_trip(self) -> None:
        """Test from_dict(to_dict()) preserves the configuration."""
        config = LLMConfig(provider="claude", model="claude-3-haiku", api_key="k", max_retries=4)

        assert LLMConfig.from_dict(config.to_dict()) == config

    def test_from_dict_defaults(self) -> None:
        """Test missing keys fall back to defaults and empty keys become None."""
        config = LLMConfig.from_dict({"api_key": ""})

        assert config.provider == "gemini"
        assert config.api_key is None

    @pytest.mark.parametrize(
        "provider,model,expected",
        [
            ("gemini", "gemini-1.5-flash", "gemini/gemini-1.5-flash"),
            ("claude", "claude-3-haiku", "anthropic/claude-3-haiku"),
            ("ollama", "llama3", "ollama/llama3"),
            ("bedrock", "anthropic.claude-v2", "bedrock/anthropic.claude-v2"),
        ],
    )
    def test_litellm_model_name(self, provider: str, model: str, expected: str) -> None:
        """Test provider prefixes for LiteLLM routing."""
        assert LLMConfig(provider=provider, model=model).get_litellm_model_name() == expected
