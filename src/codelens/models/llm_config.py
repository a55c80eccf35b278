"""LLM Configuration entity for codelens.

Defines the configuration for the generation provider used for code review.
Supports multiple providers through LiteLLM: Gemini, Claude, Ollama, and Bedrock.
"""

from dataclasses import dataclass, field

from codelens.errors import ConfigurationError

# Valid LLM providers
VALID_PROVIDERS = frozenset({"gemini", "claude", "ollama", "bedrock"})

# Environment variable holding each cloud provider's credential
CREDENTIAL_ENV_VARS = {
    "gemini": "GEMINI_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
}

DEFAULT_PROVIDER = "gemini"
DEFAULT_MODEL = "gemini-1.5-flash"


@dataclass
class LLMConfig:
    """Configuration for the LLM provider.

    Attributes:
        provider: LLM provider (gemini, claude, ollama, bedrock)
        model: Model identifier (e.g., "gemini-1.5-flash")
        api_key: API key (not required for Ollama or Bedrock)
        api_base: API base URL (required for Ollama)
        temperature: Temperature setting (must be 0 for reproducibility)
        max_tokens: Maximum response tokens
        max_retries: Retries after the first attempt for transient failures
        backoff_base: First retry delay in seconds (doubles per retry)
        timeout: Per-request timeout in seconds
        enabled: Whether LLM analysis is enabled
    """

    provider: str = DEFAULT_PROVIDER
    model: str = DEFAULT_MODEL
    api_key: str | None = None
    api_base: str | None = None
    temperature: float = field(default=0.0)
    max_tokens: int = field(default=4000)
    max_retries: int = field(default=2)
    backoff_base: float = field(default=1.0)
    timeout: float = field(default=120.0)
    enabled: bool = field(default=True)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        # Normalize provider to lowercase
        self.provider = self.provider.lower().strip()

        if self.provider not in VALID_PROVIDERS:
            raise ValueError(
                f"Invalid provider '{self.provider}'. "
                f"Must be one of: {sorted(VALID_PROVIDERS)}"
            )

        if not self.model or not self.model.strip():
            raise ValueError("Model identifier cannot be empty")
        self.model = self.model.strip()

        # Reviews of identical content must be comparable run to run
        if self.temperature != 0.0:
            raise ValueError(
                f"Temperature must be 0 for reproducible analysis. Got: {self.temperature}"
            )

        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive. Got: {self.max_tokens}")

        if self.max_retries < 0:
            raise ValueError(f"max_retries cannot be negative. Got: {self.max_retries}")

        if self.backoff_base < 0:
            raise ValueError(f"backoff_base cannot be negative. Got: {self.backoff_base}")

        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive. Got: {self.timeout}")

        if self.provider == "ollama" and not self.api_base:
            self.api_base = "http://localhost:11434"

    @property
    def is_local(self) -> bool:
        """Return True if using a local LLM (no source leaves the machine)."""
        return self.provider == "ollama"

    @property
    def credential_env_var(self) -> str | None:
        """Environment variable conventionally holding the provider credential."""
        return CREDENTIAL_ENV_VARS.get(self.provider)

    def require_credentials(self) -> None:
        """Ensure the provider credential is present.

        Bedrock uses AWS credentials from the environment and Ollama needs
        none, so only Gemini and Claude are checked here.

        Raises:
            ConfigurationError: If a cloud provider has no API key
        """
        if self.provider in CREDENTIAL_ENV_VARS and not self.api_key:
            raise ConfigurationError(
                f"API key required for {self.provider}. "
                f"Set llm.api_key or the {self.credential_env_var} environment variable"
            )

    def validate(self) -> list[str]:
        """Validate configuration and return warnings.

        Returns:
            List of warning messages (empty if no warnings)
        """
        warnings: list[str] = []

        # Findings lists are long; small budgets truncate the JSON payload
        if self.max_tokens < 1000:
            warnings.append(
                f"max_tokens is set to {self.max_tokens}, which may truncate responses"
            )

        if (
            self.provider == "ollama"
            and self.api_base
            and not self.api_base.startswith(("http://", "https://"))
        ):
            warnings.append(
                f"api_base '{self.api_base}' does not start with http:// or https://"
            )

        if self.max_retries == 0:
            warnings.append("max_retries is 0; rate-limited requests will not be retried")

        return warnings

    def to_dict(self) -> dict[str, str | int | float | bool | None]:
        """Convert to dictionary for serialization.

        Returns:
            Dictionary representation of the configuration
        """
        return {
            "provider": self.provider,
            "model": self.model,
            "api_key": self.api_key,
            "api_base": self.api_base,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "max_retries": self.max_retries,
            "backoff_base": self.backoff_base,
            "timeout": self.timeout,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, str | int | float | bool | None]) -> "LLMConfig":
        """Create LLMConfig from dictionary.

        Args:
            data: Dictionary with configuration values

        Returns:
            LLMConfig instance
        """
        return cls(
            provider=str(data.get("provider") or DEFAULT_PROVIDER),
            model=str(data.get("model") or DEFAULT_MODEL),
            api_key=data.get("api_key") if data.get("api_key") else None,  # type: ignore[arg-type]
            api_base=data.get("api_base") if data.get("api_base") else None,  # type: ignore[arg-type]
            temperature=float(data.get("temperature", 0.0)),  # type: ignore[arg-type]
            max_tokens=int(data.get("max_tokens", 4000)),  # type: ignore[arg-type]
            max_retries=int(data.get("max_retries", 2)),  # type: ignore[arg-type]
            backoff_base=float(data.get("backoff_base", 1.0)),  # type: ignore[arg-type]
            timeout=float(data.get("timeout", 120.0)),  # type: ignore[arg-type]
            enabled=bool(data.get("enabled", True)),
        )

    def get_litellm_model_name(self) -> str:
        """Get the model name in LiteLLM format.

        Returns:
            Model name formatted for LiteLLM
        """
        if self.provider == "ollama":
            return f"ollama/{self.model}"
        elif self.provider == "bedrock":
            return f"bedrock/{self.model}"
        elif self.provider == "gemini":
            return f"gemini/{self.model}"
        else:
            # Claude uses anthropic/ prefix in LiteLLM
            return f"anthropic/{self.model}"
