"""Local directory content source.

Treats a checked-out directory as the repository. The RepoRef is used only
to name the report; all paths resolve under the configured root.
"""

import logging
from pathlib import Path

from codelens.errors import ContentSourceError
from codelens.language import EXCLUDED_DIRECTORIES
from codelens.models.repository import RepoRef
from codelens.sources.base import ContentSource, RemoteFile

logger = logging.getLogger(__name__)


class LocalDirectorySource(ContentSource):
    """Content source reading from the local filesystem."""

    def __init__(self, root: Path | str) -> None:
        super().__init__(name="local")
        self.root = Path(root).resolve()
        if not self.root.is_dir():
            raise ContentSourceError("Not a directory", path=str(root))

    def _resolve(self, path: str) -> Path:
        """Resolve a repository path, refusing anything outside the root."""
        candidate = (self.root / path).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise ContentSourceError("Path escapes repository root", path=path)
        return candidate

    def list_files(self, repo_ref: RepoRef) -> list[RemoteFile]:
        files: list[RemoteFile] = []
        for file_path in sorted(self.root.rglob("*")):
            relative = file_path.relative_to(self.root)
            if any(part in EXCLUDED_DIRECTORIES for part in relative.parts[:-1]):
                continue
            if not file_path.is_file():
                continue
            try:
                size = file_path.stat().st_size
            except OSError as e:
                logger.debug("Could not stat %s: %s", file_path, e)
                continue
            files.append(RemoteFile(path=relative.as_posix(), size=size))

        logger.info("Found %d files under %s", len(files), self.root)
        return files

    def fetch_file_content(self, repo_ref: RepoRef, path: str) -> bytes:
        file_path = self._resolve(path)
        if not file_path.is_file():
            raise ContentSourceError("File not found", path=path)
        try:
            return file_path.read_bytes()
        except OSError as e:
            raise ContentSourceError(f"Could not read file: {e}", path=path) from e
