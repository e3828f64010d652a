"""Port: profile persistence and the issue-result cache."""

from __future__ import annotations

from typing import Protocol

from repo_explorer.domain.entities import GitHubIssue, UserProfile


class ProfileStore(Protocol):
    """Synchronous user-profile storage with its own expiry policy."""

    def get(self) -> UserProfile | None:
        ...

    def set(self, profile: UserProfile) -> UserProfile:
        ...

    def clear(self) -> None:
        ...


class IssueCache(Protocol):
    """Short-lived cache of searched issues keyed by profile hash."""

    def get(self, profile_hash: str) -> list[GitHubIssue] | None:
        ...

    def set(self, issues: list[GitHubIssue], profile_hash: str) -> None:
        ...

    def clear(self) -> None:
        ...
