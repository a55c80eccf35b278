"""Preflight validation.

Checks that the analysis can run before any file is submitted: the LiteLLM
package is importable, the configured provider accepts the credential (or
the local server answers), and optionally that the GitHub API is reachable.
"""

import importlib.util
import os
from dataclasses import dataclass, field
from typing import Any

import requests

from codelens.models.llm_config import CREDENTIAL_ENV_VARS, LLMConfig


@dataclass
class ToolCheck:
    """Result of checking a single dependency.

    Attributes:
        name: Dependency name
        available: Whether it is usable
        version: Version if known
        required: Whether a failure blocks analysis
        location: Module path or URL checked
        message: Human-readable status
    """

    name: str
    available: bool
    version: str | None = None
    required: bool = True
    location: str | None = None
    message: str = ""


@dataclass
class PreflightResult:
    """Result of preflight validation.

    Attributes:
        success: Whether every required check passed
        checks: Individual check results
        errors: Messages for failed required checks
        warnings: Messages for failed optional checks
    """

    success: bool = True
    checks: list[ToolCheck] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_check(self, check: ToolCheck) -> None:
        """Add a check result."""
        self.checks.append(check)

        if check.available:
            return
        if check.required:
            self.success = False
            self.errors.append(f"{check.name}: {check.message}")
        else:
            self.warnings.append(f"{check.name}: {check.message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "success": self.success,
            "checks": [
                {
                    "name": c.name,
                    "available": c.available,
                    "version": c.version,
                    "required": c.required,
                    "location": c.location,
                    "message": c.message,
                }
                for c in self.checks
            ],
            "errors": self.errors,
            "warnings": self.warnings,
        }


class PreflightChecker:
    """Validates the analysis environment.

    Usage:
        checker = PreflightChecker()
        result = checker.check_all(config.llm)
        if not result.success:
            raise typer.Exit(1)
    """

    def __init__(self, timeout: float = 10) -> None:
        """Initialize preflight checker.

        Args:
            timeout: Timeout in seconds for network checks
        """
        self.timeout = timeout

    def check_litellm(self, required: bool = True) -> ToolCheck:
        """Check that the LiteLLM package is importable."""
        spec = importlib.util.find_spec("litellm")
        if spec is None:
            return ToolCheck(
                name="litellm",
                available=False,
                required=required,
                message="Install with: pip install litellm",
            )

        version = None
        try:
            from importlib.metadata import version as package_version

            version = package_version("litellm")
        except Exception:
            version = None

        return ToolCheck(
            name="litellm",
            available=True,
            version=version,
            required=required,
            location=spec.origin,
            message="Unified LLM interface",
        )

    def check_ollama_server(self, api_base: str) -> ToolCheck:
        """Check that an Ollama server answers at api_base."""
        try:
            response = requests.get(f"{api_base.rstrip('/')}/api/version", timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            return ToolCheck(
                name="ollama",
                available=False,
                location=api_base,
                message=f"Ollama not responding at {api_base}: {e}",
            )

        if response.status_code != 200:
            return ToolCheck(
                name="ollama",
                available=False,
                location=api_base,
                message=f"Ollama returned HTTP {response.status_code} at {api_base}",
            )

        try:
            version = response.json().get("version")
        except ValueError:
            version = None

        return ToolCheck(
            name="ollama",
            available=True,
            version=version,
            location=api_base,
            message="Local LLM server (source never leaves the machine)",
        )

    def _check_cloud_connectivity(self, config: LLMConfig) -> ToolCheck:
        """Send a minimal completion to verify the credential works."""
        import litellm

        model_name = config.get_litellm_model_name()
        try:
            litellm.completion(
                model=model_name,
                messages=[{"role": "user", "content": "Say ok"}],
                max_tokens=5,
                temperature=0,
                api_key=config.api_key,
                timeout=self.timeout,
            )
        except litellm.exceptions.AuthenticationError:
            return ToolCheck(
                name=config.provider,
                available=False,
                message=f"Invalid API key. Check {config.credential_env_var or 'llm.api_key'}",
            )
        except Exception as e:
            return ToolCheck(
                name=config.provider,
                available=False,
                message=f"{config.provider} API connection failed: {e}",
            )

        return ToolCheck(
            name=config.provider,
            available=True,
            location=model_name,
            message=f"{config.provider} API verified (model: {config.model})",
        )

    def check_llm_provider(self, config: LLMConfig, connectivity: bool = True) -> ToolCheck:
        """Check that the configured provider can be used.

        Args:
            config: LLM configuration
            connectivity: Whether to make a live call for cloud providers

        Returns:
            ToolCheck result
        """
        if config.provider == "ollama":
            return self.check_ollama_server(config.api_base or "http://localhost:11434")

        if config.provider == "bedrock":
            has_keys = bool(
                os.environ.get("AWS_ACCESS_KEY_ID") and os.environ.get("AWS_SECRET_ACCESS_KEY")
            )
            has_profile = bool(os.environ.get("AWS_PROFILE"))
            if not (has_keys or has_profile):
                return ToolCheck(
                    name="bedrock",
                    available=False,
                    message="AWS credentials required (AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY or AWS_PROFILE)",
                )
            if not connectivity:
                return ToolCheck(name="bedrock", available=True, message="AWS credentials found")
            return self._check_cloud_connectivity(config)

        if config.provider in CREDENTIAL_ENV_VARS and not config.api_key:
            return ToolCheck(
                name=config.provider,
                available=False,
                message=f"API key required. Set llm.api_key or {config.credential_env_var}",
            )

        if not connectivity:
            return ToolCheck(
                name=config.provider,
                available=True,
                message="API key configured (connectivity not tested)",
            )

        return self._check_cloud_connectivity(config)

    def check_github(self, api_base: str = "https://api.github.com", token: str | None = None) -> ToolCheck:
        """Check that the GitHub API is reachable and report the remaining quota."""
        headers = {"Accept": "application/vnd.github.v3+json"}
        if token:
            headers["Authorization"] = f"token {token}"

        url = f"{api_base.rstrip('/')}/rate_limit"
        try:
            response = requests.get(url, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            return ToolCheck(
                name="github",
                available=False,
                required=False,
                location=api_base,
                message=f"GitHub API unreachable: {e}",
            )

        if response.status_code == 401:
            return ToolCheck(
                name="github",
                available=False,
                required=False,
                location=api_base,
                message="GitHub token rejected. Check GITHUB_TOKEN",
            )

        if response.status_code != 200:
            return ToolCheck(
                name="github",
                available=False,
                required=False,
                location=api_base,
                message=f"GitHub API returned HTTP {response.status_code}",
            )

        remaining = response.headers.get("X-RateLimit-Remaining", "unknown")
        auth = "authenticated" if token else "unauthenticated"
        return ToolCheck(
            name="github",
            available=True,
            required=False,
            location=api_base,
            message=f"GitHub API reachable ({auth}, {remaining} requests remaining)",
        )

    def check_all(
        self,
        llm_config: LLMConfig,
        check_github: bool = False,
        github_api_base: str = "https://api.github.com",
        github_token: str | None = None,
        connectivity: bool = True,
    ) -> PreflightResult:
        """Run all preflight checks.

        Args:
            llm_config: LLM configuration
            check_github: Whether to check GitHub API reachability
            github_api_base: GitHub API root
            github_token: GitHub token, if configured
            connectivity: Whether to make a live provider call

        Returns:
            PreflightResult with all check results
        """
        result = PreflightResult()

        litellm_check = self.check_litellm(required=True)
        result.add_check(litellm_check)

        if not llm_config.enabled:
            result.warnings.append("LLM analysis is disabled in configuration")
        elif litellm_check.available:
            result.add_check(self.check_llm_provider(llm_config, connectivity=connectivity))

        if check_github:
            result.add_check(self.check_github(github_api_base, github_token))

        return result
