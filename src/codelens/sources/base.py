"""Abstract base class for repository content sources.

A content source:
1. Lists the files of a repository (path and size)
2. Fetches the raw bytes of one file
3. Raises ContentSourceError for every failure it cannot recover from
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from codelens.models.repository import RepoRef


@dataclass(frozen=True)
class RemoteFile:
    """File entry reported by a content source.

    Attributes:
        path: Path relative to the repository root (forward slashes)
        size: Size in bytes
    """

    path: str
    size: int


class ContentSource(ABC):
    """Interface for reading repository content.

    Attributes:
        name: Source identifier (e.g., "github", "local")
    """

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    def list_files(self, repo_ref: RepoRef) -> list[RemoteFile]:
        """List every file in the repository.

        Args:
            repo_ref: Repository and optional branch

        Returns:
            All file entries (directories excluded), in source order

        Raises:
            ContentSourceError: If the listing fails
        """
        pass

    @abstractmethod
    def fetch_file_content(self, repo_ref: RepoRef, path: str) -> bytes:
        """Fetch the raw content of one file.

        Args:
            repo_ref: Repository and optional branch
            path: Repository-relative path

        Returns:
            File bytes

        Raises:
            ContentSourceError: If the file cannot be read
        """
        pass
