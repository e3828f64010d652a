"""Port: repository fetcher — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Any, Protocol

from repo_explorer.domain.entities import BinaryContent, RepoMetadata, TreeEntry
from repo_explorer.domain.value_objects import RepoRef


class ContentFetcher(Protocol):
    """The only collaborator the indexer needs: single-file content."""

    async def fetch_file_content(
        self, ref: RepoRef, path: str, branch: str
    ) -> str | BinaryContent:
        """Return decoded text, or :class:`BinaryContent` for binary files.

        Must raise ``FileNotFoundInRepoError`` for missing paths.
        """
        ...


class RepoFetcher(ContentFetcher, Protocol):
    """Abstract contract for fetching GitHub repository data."""

    async def fetch_metadata(self, ref: RepoRef) -> RepoMetadata:
        """Return high-level repository metadata."""
        ...

    async def fetch_tree(self, ref: RepoRef, branch: str) -> list[TreeEntry]:
        """Return the recursive file tree for the given branch."""
        ...

    async def fetch_readme(self, ref: RepoRef, branch: str) -> str:
        """Return the README text, trying the usual file names."""
        ...

    async def fetch_package_json(self, ref: RepoRef, branch: str) -> dict[str, Any]:
        """Return the parsed root ``package.json``."""
        ...
