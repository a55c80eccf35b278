"""Unit tests for configuration loading."""

from pathlib import Path

import pytest
import yaml

from codelens.config import (
    AnalysisConfig,
    CacheConfig,
    CodelensConfig,
    apply_env_overrides,
    create_default_config,
    find_config_file,
    load_config,
    load_config_from_dict,
    substitute_env_vars,
)


class TestSubstituteEnvVars:
    """Tests for ${VAR} substitution."""

    def test_substitutes_nested_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test strings inside dicts and lists are substituted."""
        monkeypatch.setenv("CL_TEST_KEY", "secret")

        result = substitute_env_vars({"a": "${CL_TEST_KEY}", "b": ["x-${CL_TEST_KEY}", 3]})

        assert result == {"a": "secret", "b": ["x-secret", 3]}

    def test_missing_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test an unset variable raises ValueError."""
        monkeypatch.delenv("CL_TEST_MISSING", raising=False)

        with pytest.raises(ValueError, match="CL_TEST_MISSING"):
            substitute_env_vars("${CL_TEST_MISSING}")


class TestLoadConfigFromDict:
    """Tests for load_config_from_dict()."""

    def test_empty_dict_gives_defaults(self) -> None:
        """Test an empty mapping yields the default configuration."""
        config = load_config_from_dict({})

        assert config.llm.provider == "gemini"
        assert config.cache.ttl_seconds == 600
        assert config.analysis.max_batch_files == 20
        assert config.history.enabled is True

    def test_sections_override_defaults(self) -> None:
        """Test present keys override and absent keys keep defaults."""
        config = load_config_from_dict(
            {
                "llm": {"provider": "claude", "model": "claude-3-haiku"},
                "cache": {"ttl_seconds": 60},
                "analysis": {"max_batch_files": 5},
                "github": {"token": "gh"},
                "history": {"enabled": False},
            }
        )

        assert config.llm.provider == "claude"
        assert config.cache.ttl_seconds == 60
        assert config.cache.max_entries == 500
        assert config.analysis.max_batch_files == 5
        assert config.analysis.max_file_size == 500_000
        assert config.github.token == "gh"
        assert config.history.enabled is False

    def test_null_section_is_empty(self) -> None:
        """Test a section written as null uses defaults."""
        assert load_config_from_dict({"cache": None}).cache == CacheConfig()

    def test_non_mapping_section(self) -> None:
        """Test a scalar section is rejected."""
        with pytest.raises(ValueError, match="must be a mapping"):
            load_config_from_dict({"cache": 5})

    @pytest.mark.parametrize(
        "data",
        [
            {"cache": {"ttl_seconds": 0}},
            {"analysis": {"max_file_size": -1}},
            {"analysis": {"pacing_delay": -0.1}},
            {"llm": {"temperature": 0.5}},
        ],
    )
    def test_invalid_values(self, data) -> None:
        """Test invalid values raise ValueError."""
        with pytest.raises(ValueError):
            load_config_from_dict(data)


class TestEnvOverrides:
    """Tests for apply_env_overrides()."""

    def test_credential_fills_missing_key(self) -> None:
        """Test GEMINI_API_KEY supplies the key when the file has none."""
        config = apply_env_overrides(CodelensConfig(), env={"GEMINI_API_KEY": "from-env"})

        assert config.llm.api_key == "from-env"

    def test_file_key_wins_over_credential(self) -> None:
        """Test an explicit file key is not replaced."""
        base = load_config_from_dict({"llm": {"api_key": "from-file"}})

        config = apply_env_overrides(base, env={"GEMINI_API_KEY": "from-env"})

        assert config.llm.api_key == "from-file"

    def test_provider_switch_uses_matching_credential(self) -> None:
        """Test the credential variable follows the overridden provider."""
        config = apply_env_overrides(
            CodelensConfig(),
            env={
                "CODELENS_PROVIDER": "claude",
                "CODELENS_MODEL": "claude-3-haiku",
                "ANTHROPIC_API_KEY": "anthropic",
                "GEMINI_API_KEY": "gemini",
            },
        )

        assert config.llm.provider == "claude"
        assert config.llm.api_key == "anthropic"

    def test_numeric_overrides(self) -> None:
        """Test CODELENS_* numbers override every section."""
        config = apply_env_overrides(
            CodelensConfig(),
            env={
                "CODELENS_MAX_RETRIES": "5",
                "CODELENS_BACKOFF_BASE": "0.5",
                "CODELENS_CACHE_TTL": "30",
                "CODELENS_CACHE_MAX_ENTRIES": "10",
                "CODELENS_MAX_FILE_SIZE": "1000",
                "CODELENS_MAX_BATCH_FILES": "3",
                "CODELENS_PACING_DELAY": "0",
            },
        )

        assert config.llm.max_retries == 5
        assert config.llm.backoff_base == 0.5
        assert config.cache.ttl_seconds == 30
        assert config.cache.max_entries == 10
        assert config.analysis == AnalysisConfig(
            max_file_size=1000, max_batch_files=3, pacing_delay=0.0
        )

    def test_blank_numbers_ignored(self) -> None:
        """Test empty override values leave the configuration unchanged."""
        config = apply_env_overrides(CodelensConfig(), env={"CODELENS_CACHE_TTL": " "})

        assert config.cache.ttl_seconds == 600

    def test_invalid_number(self) -> None:
        """Test a non-numeric override names the variable."""
        with pytest.raises(ValueError, match="CODELENS_MAX_RETRIES"):
            apply_env_overrides(CodelensConfig(), env={"CODELENS_MAX_RETRIES": "many"})

    def test_github_token(self) -> None:
        """Test GITHUB_TOKEN fills the GitHub token."""
        config = apply_env_overrides(CodelensConfig(), env={"GITHUB_TOKEN": "ghp"})

        assert config.github.token == "ghp"


class TestLoadConfig:
    """Tests for file discovery and load_config()."""

    def test_find_config_prefers_dot_directory(self, tmp_path: Path) -> None:
        """Test .codelens/config.yaml wins over codelens.yaml."""
        (tmp_path / ".codelens").mkdir()
        (tmp_path / ".codelens" / "config.yaml").write_text("{}")
        (tmp_path / "codelens.yaml").write_text("{}")

        assert find_config_file(tmp_path) == (tmp_path / ".codelens" / "config.yaml").resolve()

    def test_find_config_none(self, tmp_path: Path) -> None:
        """Test no file is found in an empty directory."""
        assert find_config_file(tmp_path) is None

    def test_load_explicit_file(self, tmp_path: Path) -> None:
        """Test loading an explicit YAML file records its path."""
        path = tmp_path / "custom.yaml"
        path.write_text("llm:\n  provider: ollama\n  model: llama3\n")

        config = load_config(path, env={})

        assert config.llm.provider == "ollama"
        assert config.config_path == path

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        """Test a missing explicit path raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml", env={})

    def test_non_mapping_file(self, tmp_path: Path) -> None:
        """Test a YAML list at the top level is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="mapping"):
            load_config(path, env={})

    def test_no_discovery(self) -> None:
        """Test auto_discover=False returns defaults."""
        config = load_config(auto_discover=False, env={})

        assert config.config_path is None
        assert config.llm.api_key is None

    def test_default_config_template_loads(self) -> None:
        """Test the init template is valid YAML producing the defaults."""
        data = yaml.safe_load(create_default_config())
        config = load_config_from_dict(data)

        assert config.llm.provider == "gemini"
        assert config.cache == CacheConfig()
        assert config.analysis == AnalysisConfig()
