"""Port: pull requests — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol

from repo_explorer.domain.entities import PullRequest, PullRequestFile
from repo_explorer.domain.value_objects import RepoRef


class PullRequestFetcher(Protocol):
    """Abstract contract for reading a repository's pull requests."""

    async def fetch_pull_requests(
        self, ref: RepoRef, state: str = "all", per_page: int = 30
    ) -> list[PullRequest]:
        ...

    async def fetch_pull_request(self, ref: RepoRef, number: int) -> PullRequest:
        ...

    async def fetch_pull_request_files(
        self, ref: RepoRef, number: int
    ) -> list[PullRequestFile]:
        ...
