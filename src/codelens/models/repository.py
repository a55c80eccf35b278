"""Repository reference entities.

RepoRef identifies a repository on the content source (owner/repo plus an
optional branch or commit). FileMeta describes one analyzable file in it.
"""

import re
from dataclasses import dataclass
from typing import Any

from codelens.errors import InputError

_GITHUB_PREFIXES = (
    "https://github.com/",
    "http://github.com/",
    "git@github.com:",
    "github.com/",
)

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


@dataclass(frozen=True)
class RepoRef:
    """Reference to a repository on the content source.

    Attributes:
        owner: Repository owner (user or organization)
        repo: Repository name
        ref: Branch, tag, or commit SHA (None means the default branch)
    """

    owner: str
    repo: str
    ref: str | None = None

    def __post_init__(self) -> None:
        """Validate owner and repository names."""
        for label, value in (("owner", self.owner), ("repository", self.repo)):
            if not value or not _NAME_PATTERN.match(value):
                raise InputError(f"Invalid {label} name: {value!r}")

    @property
    def full_name(self) -> str:
        """Return "owner/repo"."""
        return f"{self.owner}/{self.repo}"

    def with_ref(self, ref: str | None) -> "RepoRef":
        """Return a copy pointing at another branch or commit."""
        return RepoRef(owner=self.owner, repo=self.repo, ref=ref)

    @classmethod
    def parse(cls, value: str, ref: str | None = None) -> "RepoRef":
        """Create a RepoRef from "owner/repo" or a GitHub URL.

        Accepts https, ssh and bare "github.com/..." forms, with or without
        a trailing ".git". A "/tree/<branch>" suffix sets the ref unless one
        is given explicitly.

        Args:
            value: Repository string
            ref: Optional branch or commit override

        Returns:
            RepoRef instance

        Raises:
            InputError: If the string is not a recognizable repository reference
        """
        if not value or not value.strip():
            raise InputError("Repository reference is required")

        text = value.strip()
        for prefix in _GITHUB_PREFIXES:
            if text.startswith(prefix):
                text = text[len(prefix):]
                break

        text = text.rstrip("/")
        if text.endswith(".git"):
            text = text[: -len(".git")]

        parts = text.split("/")
        if len(parts) < 2:
            raise InputError(
                f"Invalid repository reference: {value}. Expected owner/repo or a GitHub URL"
            )

        owner, repo = parts[0], parts[1]
        if ref is None and len(parts) >= 4 and parts[2] == "tree":
            ref = "/".join(parts[3:])

        return cls(owner=owner, repo=repo, ref=ref)

    def __str__(self) -> str:
        if self.ref:
            return f"{self.full_name}@{self.ref}"
        return self.full_name


@dataclass
class FileMeta:
    """Analyzable file listed from a repository.

    Attributes:
        path: Path relative to the repository root (forward slashes)
        size: Size in bytes as reported by the content source
        language: Language label from the classifier
    """

    path: str
    size: int
    language: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "path": self.path,
            "size": self.size,
            "language": self.language,
        }
