"""codelens configuration system.

Configuration is YAML-based, with environment variable overrides applied
after the file is read. Supports environment variable substitution (${VAR})
in config files.

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.codelens/config.yaml
3. ./codelens.yaml
"""

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from codelens.models.llm_config import CREDENTIAL_ENV_VARS, LLMConfig

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class CacheConfig:
    """Result cache configuration.

    Attributes:
        ttl_seconds: Lifetime of a cached result
        max_entries: Entries kept before the oldest are evicted
        sweep_interval: Seconds between background sweeps of expired entries
    """

    ttl_seconds: float = 600
    max_entries: int = 500
    sweep_interval: float = 900

    def __post_init__(self) -> None:
        """Validate cache configuration."""
        if self.ttl_seconds <= 0:
            raise ValueError(f"cache.ttl_seconds must be positive (got {self.ttl_seconds})")
        if self.max_entries <= 0:
            raise ValueError(f"cache.max_entries must be positive (got {self.max_entries})")
        if self.sweep_interval <= 0:
            raise ValueError(
                f"cache.sweep_interval must be positive (got {self.sweep_interval})"
            )


@dataclass
class AnalysisConfig:
    """Analysis limits.

    Attributes:
        max_file_size: Largest analyzable file in bytes
        max_batch_files: Most files per batch request
        pacing_delay: Seconds to wait between files in a batch
        max_listed_files: Most files returned when listing a repository
    """

    max_file_size: int = 500_000
    max_batch_files: int = 20
    pacing_delay: float = 0.2
    max_listed_files: int = 1000

    def __post_init__(self) -> None:
        """Validate analysis limits."""
        if self.max_file_size <= 0:
            raise ValueError(
                f"analysis.max_file_size must be positive (got {self.max_file_size})"
            )
        if self.max_batch_files <= 0:
            raise ValueError(
                f"analysis.max_batch_files must be positive (got {self.max_batch_files})"
            )
        if self.pacing_delay < 0:
            raise ValueError(
                f"analysis.pacing_delay cannot be negative (got {self.pacing_delay})"
            )
        if self.max_listed_files <= 0:
            raise ValueError(
                f"analysis.max_listed_files must be positive (got {self.max_listed_files})"
            )


@dataclass
class GitHubConfig:
    """GitHub access.

    Attributes:
        token: Personal access token (raises the API rate limit)
        api_base: REST API root
        timeout: Request timeout in seconds
    """

    token: str | None = None
    api_base: str = "https://api.github.com"
    timeout: float = 30


@dataclass
class HistoryConfig:
    """Analysis history persistence.

    Attributes:
        enabled: Whether completed analyses are recorded
        path: History file location
    """

    enabled: bool = True
    path: str = ".codelens/analysis_history.json"


@dataclass
class CodelensConfig:
    """Top-level codelens configuration.

    Attributes:
        llm: Generation provider settings
        cache: Result cache settings
        analysis: Size and batch limits
        github: GitHub access
        history: History persistence
    """

    llm: LLMConfig = field(default_factory=LLMConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)

    # Runtime metadata (set by load_config)
    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path


# =============================================================================
# Environment Variable Substitution
# =============================================================================


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax for environment variable substitution.
    Example: ${GEMINI_API_KEY} -> value of GEMINI_API_KEY

    Args:
        value: Config value (string, dict, list, or other)

    Returns:
        Value with environment variables substituted

    Raises:
        ValueError: If a referenced variable is not set
    """
    if isinstance(value, str):
        pattern = re.compile(r"\$\{([^}]+)\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable not set: {var_name}")
            return env_value

        return pattern.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]

    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find configuration file in standard locations.

    Search order:
    1. ./.codelens/config.yaml
    2. ./codelens.yaml

    Args:
        start_path: Starting directory for search (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    start_path = start_path.resolve()

    candidates = [
        start_path / ".codelens" / "config.yaml",
        start_path / "codelens.yaml",
    ]

    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a config section as a dict (empty if absent or null)."""
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    return section


def load_config_from_dict(data: dict[str, Any]) -> CodelensConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        CodelensConfig instance

    Raises:
        ValueError: If a value is invalid or a referenced variable is unset
    """
    data = substitute_env_vars(data)

    config = CodelensConfig()

    if "llm" in data:
        config.llm = LLMConfig.from_dict(_section(data, "llm"))

    if "cache" in data:
        cache_data = _section(data, "cache")
        config.cache = CacheConfig(
            ttl_seconds=cache_data.get("ttl_seconds", config.cache.ttl_seconds),
            max_entries=cache_data.get("max_entries", config.cache.max_entries),
            sweep_interval=cache_data.get("sweep_interval", config.cache.sweep_interval),
        )

    if "analysis" in data:
        analysis_data = _section(data, "analysis")
        defaults = config.analysis
        config.analysis = AnalysisConfig(
            max_file_size=analysis_data.get("max_file_size", defaults.max_file_size),
            max_batch_files=analysis_data.get("max_batch_files", defaults.max_batch_files),
            pacing_delay=analysis_data.get("pacing_delay", defaults.pacing_delay),
            max_listed_files=analysis_data.get("max_listed_files", defaults.max_listed_files),
        )

    if "github" in data:
        github_data = _section(data, "github")
        config.github = GitHubConfig(
            token=github_data.get("token") or None,
            api_base=github_data.get("api_base", config.github.api_base),
            timeout=github_data.get("timeout", config.github.timeout),
        )

    if "history" in data:
        history_data = _section(data, "history")
        config.history = HistoryConfig(
            enabled=history_data.get("enabled", True),
            path=history_data.get("path", config.history.path),
        )

    return config


def _env_number(env: Mapping[str, str], name: str, convert: type) -> Any:
    """Read a numeric environment override, or None when unset."""
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return convert(raw)
    except ValueError as e:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from e


def apply_env_overrides(
    config: CodelensConfig,
    env: Mapping[str, str] | None = None,
) -> CodelensConfig:
    """Apply environment variable overrides on top of file configuration.

    Provider credentials (GEMINI_API_KEY, ANTHROPIC_API_KEY) fill in
    llm.api_key only when the file does not set one. CODELENS_* variables
    always win over the file.

    Args:
        config: Configuration loaded from file (or defaults)
        env: Environment mapping (defaults to os.environ)

    Returns:
        New CodelensConfig with overrides applied
    """
    if env is None:
        env = os.environ

    llm_data: dict[str, Any] = config.llm.to_dict()
    if env.get("CODELENS_PROVIDER"):
        llm_data["provider"] = env["CODELENS_PROVIDER"]
    if env.get("CODELENS_MODEL"):
        llm_data["model"] = env["CODELENS_MODEL"]

    max_retries = _env_number(env, "CODELENS_MAX_RETRIES", int)
    if max_retries is not None:
        llm_data["max_retries"] = max_retries
    backoff_base = _env_number(env, "CODELENS_BACKOFF_BASE", float)
    if backoff_base is not None:
        llm_data["backoff_base"] = backoff_base

    provider = str(llm_data["provider"]).lower().strip()
    credential_var = CREDENTIAL_ENV_VARS.get(provider)
    if not llm_data.get("api_key") and credential_var and env.get(credential_var):
        llm_data["api_key"] = env[credential_var]

    cache = config.cache
    ttl = _env_number(env, "CODELENS_CACHE_TTL", float)
    max_entries = _env_number(env, "CODELENS_CACHE_MAX_ENTRIES", int)
    cache_config = CacheConfig(
        ttl_seconds=ttl if ttl is not None else cache.ttl_seconds,
        max_entries=max_entries if max_entries is not None else cache.max_entries,
        sweep_interval=cache.sweep_interval,
    )

    analysis = config.analysis
    max_file_size = _env_number(env, "CODELENS_MAX_FILE_SIZE", int)
    max_batch_files = _env_number(env, "CODELENS_MAX_BATCH_FILES", int)
    pacing_delay = _env_number(env, "CODELENS_PACING_DELAY", float)
    analysis_config = AnalysisConfig(
        max_file_size=max_file_size if max_file_size is not None else analysis.max_file_size,
        max_batch_files=(
            max_batch_files if max_batch_files is not None else analysis.max_batch_files
        ),
        pacing_delay=pacing_delay if pacing_delay is not None else analysis.pacing_delay,
        max_listed_files=analysis.max_listed_files,
    )

    github_config = GitHubConfig(
        token=config.github.token or env.get("GITHUB_TOKEN") or None,
        api_base=config.github.api_base,
        timeout=config.github.timeout,
    )

    return CodelensConfig(
        llm=LLMConfig.from_dict(llm_data),
        cache=cache_config,
        analysis=analysis_config,
        github=github_config,
        history=config.history,
        _config_path=config.config_path,
    )


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
    env: Mapping[str, str] | None = None,
) -> CodelensConfig:
    """Load configuration from file and environment.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for config file if not specified
        env: Environment mapping for overrides (defaults to os.environ)

    Returns:
        CodelensConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
        ValueError: If a configured value is invalid
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path = config_path
    elif auto_discover:
        found_path = find_config_file()
    else:
        found_path = None

    if found_path is not None:
        with open(found_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {found_path}")
        config = load_config_from_dict(data)
        config._config_path = found_path
    else:
        config = CodelensConfig()

    return apply_env_overrides(config, env)


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return '''# codelens configuration

# Generation provider
llm:
  provider: "gemini"          # gemini, claude, ollama, bedrock
  model: "gemini-1.5-flash"
  # api_key: "${GEMINI_API_KEY}"   # or set GEMINI_API_KEY / ANTHROPIC_API_KEY
  # api_base: "http://localhost:11434"  # Ollama server URL
  temperature: 0              # must be 0 so repeated reviews are comparable
  max_tokens: 4000
  max_retries: 2              # retries for HTTP 429, 5xx, and connection errors
  backoff_base: 1.0           # first retry waits 1s, then 2s, 4s, ...
  timeout: 120

# Result cache (in memory, per process)
cache:
  ttl_seconds: 600
  max_entries: 500
  sweep_interval: 900

# Analysis limits
analysis:
  max_file_size: 500000       # bytes
  max_batch_files: 20
  pacing_delay: 0.2           # seconds between files in a batch
  max_listed_files: 1000

# GitHub access (token raises the API rate limit from 60 to 5000 requests/hour)
github:
  # token: "${GITHUB_TOKEN}"
  api_base: "https://api.github.com"
  timeout: 30

# Analysis history
history:
  enabled: true
  path: ".codelens/analysis_history.json"
'''
