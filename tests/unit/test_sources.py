"""Unit tests for repository content sources."""

import base64
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests

from codelens.errors import ContentSourceError
from codelens.models.repository import RepoRef
from codelens.sources import GitHubContentSource, LocalDirectorySource, RemoteFile


def make_response(status: int = 200, body: Any = None, text: str = "", headers=None) -> MagicMock:
    """Create a mock requests.Response."""
    response = MagicMock()
    response.status_code = status
    response.text = text
    response.headers = headers or {}
    response.json.return_value = body
    return response


def routed_session(routes: dict[str, MagicMock]) -> MagicMock:
    """Create a session whose get() answers by URL suffix."""
    session = MagicMock(spec=requests.Session)

    def get(url: str, **kwargs: Any) -> MagicMock:
        for suffix, response in routes.items():
            if url.endswith(suffix):
                return response
        raise AssertionError(f"Unexpected URL: {url}")

    session.get.side_effect = get
    return session


class TestGitHubContentSource:
    """Tests for the GitHub REST source."""

    def test_list_files_resolves_default_branch(self) -> None:
        """Test the default branch is looked up once and blobs are listed."""
        session = routed_session(
            {
                "/repos/octocat/hello-world": make_response(body={"default_branch": "trunk"}),
                "/git/trees/trunk": make_response(
                    body={
                        "tree": [
                            {"path": "src", "type": "tree"},
                            {"path": "src/app.py", "type": "blob", "size": 120},
                            {"path": "README.md", "type": "blob", "size": 40},
                        ]
                    }
                ),
            }
        )
        source = GitHubContentSource(session=session)
        ref = RepoRef("octocat", "hello-world")

        files = source.list_files(ref)
        source.resolve_ref(ref)

        assert files == [RemoteFile("src/app.py", 120), RemoteFile("README.md", 40)]
        repo_calls = [c for c in session.get.call_args_list if c.args[0].endswith("hello-world")]
        assert len(repo_calls) == 1

    def test_fetch_decodes_base64(self, repo_ref) -> None:
        """Test file content is base64-decoded and the ref is passed."""
        encoded = base64.b64encode(b"print('hi')\n").decode("ascii")
        session = routed_session(
            {
                "/contents/src/app.py": make_response(
                    body={"type": "file", "encoding": "base64", "content": encoded}
                )
            }
        )
        source = GitHubContentSource(session=session)

        content = source.fetch_file_content(repo_ref, "src/app.py")

        assert content == b"print('hi')\n"
        assert session.get.call_args.kwargs["params"] == {"ref": "main"}

    def test_token_sent_as_authorization(self, repo_ref) -> None:
        """Test a configured token is sent with each request."""
        session = routed_session({"/git/trees/main": make_response(body={"tree": []})})

        GitHubContentSource(token="ghp_x", session=session).list_files(repo_ref)

        headers = session.get.call_args.kwargs["headers"]
        assert headers["Authorization"] == "token ghp_x"
        assert headers["User-Agent"].startswith("codelens/")

    def test_rate_limit(self, repo_ref) -> None:
        """Test a 403 rate-limit response becomes ContentSourceError."""
        session = routed_session(
            {
                "/contents/a.py": make_response(
                    403, text="API rate limit exceeded for 1.2.3.4", headers={"X-RateLimit-Reset": "1"}
                )
            }
        )

        with pytest.raises(ContentSourceError, match="rate limit"):
            GitHubContentSource(session=session).fetch_file_content(repo_ref, "a.py")

    def test_not_found(self, repo_ref) -> None:
        """Test a 404 names the missing path."""
        session = routed_session({"/contents/gone.py": make_response(404, text="Not Found")})

        with pytest.raises(ContentSourceError) as exc_info:
            GitHubContentSource(session=session).fetch_file_content(repo_ref, "gone.py")

        assert exc_info.value.path == "gone.py"

    def test_server_error(self, repo_ref) -> None:
        """Test other HTTP errors raise with the status code."""
        session = routed_session({"/git/trees/main": make_response(502)})

        with pytest.raises(ContentSourceError, match="HTTP 502"):
            GitHubContentSource(session=session).list_files(repo_ref)

    def test_transport_failure(self, repo_ref) -> None:
        """Test requests exceptions become ContentSourceError."""
        session = MagicMock(spec=requests.Session)
        session.get.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(ContentSourceError, match="request failed"):
            GitHubContentSource(session=session).list_files(repo_ref)

    def test_directory_path_rejected(self, repo_ref) -> None:
        """Test fetching a directory listing raises ContentSourceError."""
        session = routed_session({"/contents/src": make_response(body=[{"name": "a.py"}])})

        with pytest.raises(ContentSourceError, match="not a file"):
            GitHubContentSource(session=session).fetch_file_content(repo_ref, "src")


class TestLocalDirectorySource:
    """Tests for the local filesystem source."""

    @pytest.fixture
    def checkout(self, tmp_path: Path) -> Path:
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "app.py").write_text("x = 1\n")
        (tmp_path / "README.md").write_text("# hi\n")
        (tmp_path / "node_modules" / "dep").mkdir(parents=True)
        (tmp_path / "node_modules" / "dep" / "index.js").write_text("module.exports = 1;\n")
        return tmp_path

    def test_list_files_skips_excluded_directories(self, checkout: Path, repo_ref) -> None:
        """Test files are listed relative to the root, sorted, without vendored code."""
        files = LocalDirectorySource(checkout).list_files(repo_ref)

        assert [f.path for f in files] == ["README.md", "src/app.py"]
        assert files[1].size == 6

    def test_fetch_file_content(self, checkout: Path, repo_ref) -> None:
        """Test content is read as bytes."""
        assert LocalDirectorySource(checkout).fetch_file_content(repo_ref, "src/app.py") == b"x = 1\n"

    def test_missing_file(self, checkout: Path, repo_ref) -> None:
        """Test a missing path raises ContentSourceError."""
        with pytest.raises(ContentSourceError, match="not found"):
            LocalDirectorySource(checkout).fetch_file_content(repo_ref, "nope.py")

    def test_path_escape_refused(self, checkout: Path, repo_ref) -> None:
        """Test paths outside the root are refused."""
        (checkout.parent / "secret.txt").write_text("s")

        with pytest.raises(ContentSourceError, match="escapes"):
            LocalDirectorySource(checkout).fetch_file_content(repo_ref, "../secret.txt")

    def test_root_must_be_directory(self, tmp_path: Path) -> None:
        """Test a non-directory root is rejected."""
        with pytest.raises(ContentSourceError):
            LocalDirectorySource(tmp_path / "missing")
