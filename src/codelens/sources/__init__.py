"""Repository content sources.

Sources list and fetch files for batch analysis. New sources implement
ContentSource and need no changes elsewhere.
"""

from codelens.sources.base import ContentSource, RemoteFile
from codelens.sources.github import GitHubContentSource
from codelens.sources.local import LocalDirectorySource

__all__ = [
    "ContentSource",
    "GitHubContentSource",
    "LocalDirectorySource",
    "RemoteFile",
]
