"""Port: issue search — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from repo_explorer.domain.entities import GitHubIssue

if TYPE_CHECKING:
    from repo_explorer.services.issue_query import IssueSearchParams


class IssueSearcher(Protocol):
    """Abstract contract for searching open issues (pull requests excluded)."""

    async def search_issues(self, params: IssueSearchParams) -> list[GitHubIssue]:
        ...
