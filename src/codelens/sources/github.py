"""GitHub content source.

Reads repositories through the GitHub REST API:
- GET /repos/{owner}/{repo} for the default branch
- GET /repos/{owner}/{repo}/git/trees/{ref}?recursive=1 for the file list
- GET /repos/{owner}/{repo}/contents/{path}?ref={ref} for file content

Unauthenticated requests are limited to 60 per hour; pass a token to raise
the limit.
"""

import base64
import binascii
import logging
from typing import Any
from urllib.parse import quote

import requests

from codelens import __version__
from codelens.errors import ContentSourceError
from codelens.models.repository import RepoRef
from codelens.sources.base import ContentSource, RemoteFile

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.github.com"
DEFAULT_TIMEOUT = 30


class GitHubContentSource(ContentSource):
    """Content source backed by the GitHub REST API."""

    def __init__(
        self,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
        api_base: str = DEFAULT_API_BASE,
    ) -> None:
        """Initialize the GitHub source.

        Args:
            token: Personal access token (optional)
            timeout: Per-request timeout in seconds
            session: requests session to use (a new one by default)
            api_base: API root URL (GitHub Enterprise uses a different one)
        """
        super().__init__(name="github")
        self.token = token
        self.timeout = timeout
        self.api_base = api_base.rstrip("/")
        self.session = session or requests.Session()
        self._default_branches: dict[str, str] = {}

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": f"codelens/{__version__}",
        }
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def _get(self, url: str, params: dict[str, Any] | None = None, path: str | None = None) -> Any:
        """GET a GitHub API URL and return the decoded JSON body.

        Raises:
            ContentSourceError: On transport failure, rate limiting, or non-2xx status
        """
        logger.debug("GitHub request: %s", url)
        try:
            response = self.session.get(
                url,
                headers=self._headers(),
                params=params,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise ContentSourceError(f"GitHub API timeout: {e}", path=path) from e
        except requests.exceptions.RequestException as e:
            raise ContentSourceError(f"GitHub API request failed: {e}", path=path) from e

        if response.status_code == 403 and "rate limit" in response.text.lower():
            reset = response.headers.get("X-RateLimit-Reset")
            logger.warning("GitHub rate limit exceeded (resets at %s)", reset or "unknown")
            raise ContentSourceError("GitHub API rate limit exceeded", path=path)

        if response.status_code == 404:
            raise ContentSourceError("Not found on GitHub", path=path or url)

        if response.status_code >= 400:
            raise ContentSourceError(
                f"GitHub API returned HTTP {response.status_code}",
                path=path or url,
            )

        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is not None:
            logger.debug("GitHub API requests remaining: %s", remaining)

        try:
            return response.json()
        except ValueError as e:
            raise ContentSourceError("GitHub API returned invalid JSON", path=path) from e

    def _repo_url(self, repo_ref: RepoRef) -> str:
        return f"{self.api_base}/repos/{repo_ref.owner}/{repo_ref.repo}"

    def resolve_ref(self, repo_ref: RepoRef) -> str:
        """Return the ref to read from, looking up the default branch if unset."""
        if repo_ref.ref:
            return repo_ref.ref

        cached = self._default_branches.get(repo_ref.full_name)
        if cached:
            return cached

        data = self._get(self._repo_url(repo_ref))
        branch = data.get("default_branch") if isinstance(data, dict) else None
        if not branch:
            raise ContentSourceError(f"Could not resolve default branch for {repo_ref.full_name}")

        self._default_branches[repo_ref.full_name] = branch
        logger.debug("Default branch for %s is %s", repo_ref.full_name, branch)
        return branch

    def list_files(self, repo_ref: RepoRef) -> list[RemoteFile]:
        ref = self.resolve_ref(repo_ref)
        data = self._get(
            f"{self._repo_url(repo_ref)}/git/trees/{quote(ref, safe='')}",
            params={"recursive": "1"},
        )
        if not isinstance(data, dict):
            raise ContentSourceError(f"Unexpected tree response for {repo_ref.full_name}")

        if data.get("truncated"):
            logger.warning("File tree for %s was truncated by GitHub", repo_ref.full_name)

        files = [
            RemoteFile(path=item["path"], size=int(item.get("size") or 0))
            for item in data.get("tree", [])
            if item.get("type") == "blob" and item.get("path")
        ]
        logger.info("Retrieved %d files from %s@%s", len(files), repo_ref.full_name, ref)
        return files

    def fetch_file_content(self, repo_ref: RepoRef, path: str) -> bytes:
        ref = self.resolve_ref(repo_ref)
        data = self._get(
            f"{self._repo_url(repo_ref)}/contents/{quote(path)}",
            params={"ref": ref},
            path=path,
        )

        if not isinstance(data, dict) or data.get("type") != "file":
            raise ContentSourceError("Path is not a file", path=path)

        if data.get("encoding") != "base64":
            raise ContentSourceError(
                f"Unsupported content encoding: {data.get('encoding')!r}",
                path=path,
            )

        try:
            return base64.b64decode(data.get("content") or "")
        except (binascii.Error, ValueError) as e:
            raise ContentSourceError("Could not decode file content", path=path) from e
