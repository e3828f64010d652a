"""Shared fakes and fixtures."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone

import pytest

from repo_explorer.domain.entities import (
    BinaryContent,
    GitHubIssue,
    IssueLabel,
    RepoMetadata,
    TreeEntry,
    UserProfile,
)
from repo_explorer.domain.exceptions import (
    ContentExtractionError,
    FileNotFoundInRepoError,
)
from repo_explorer.domain.value_objects import RepoRef

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


SHOP_FILES: dict[str, str] = {
    "src/auth/session.ts": "export function login(user) { return user }",
    "src/auth/middleware.ts": "import jwt from 'jsonwebtoken'\nexport const guard = (req) => req",
    "src/payments/checkout.ts": "export async function pay(amount) {}",
    "src/api/routes.ts": "export const router = 1",
    "src/lib/format.ts": "export const fmt = (x) => x",
    "tests/app.test.ts": "describe('app', () => {})",
}


def blobs(*paths: str) -> list[TreeEntry]:
    return [TreeEntry(path=p, type="blob") for p in paths]


class FakeRepoFetcher:
    """In-memory stand-in for the GitHub adapter."""

    def __init__(
        self,
        files: dict[str, str] | None = None,
        *,
        extra_tree: list[TreeEntry] | None = None,
        failing: tuple[str, ...] = (),
        binary: tuple[str, ...] = (),
        default_branch: str = "main",
        delays: dict[str, float] | None = None,
    ) -> None:
        self.files = dict(files or {})
        self.extra_tree = list(extra_tree or [])
        self.failing = set(failing)
        self.binary = set(binary)
        self.default_branch = default_branch
        self.delays = delays or {}
        self.content_calls: list[str] = []
        self.tree_calls = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self.on_fetch = None

    async def fetch_metadata(self, ref: RepoRef) -> RepoMetadata:
        return RepoMetadata(owner=ref.owner, repo=ref.repo, default_branch=self.default_branch)

    async def fetch_tree(self, ref: RepoRef, branch: str) -> list[TreeEntry]:
        self.tree_calls += 1
        return blobs(*self.files) + self.extra_tree

    async def fetch_file_content(self, ref: RepoRef, path: str, branch: str):
        self.content_calls.append(path)
        if self.on_fetch is not None:
            self.on_fetch(path)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(path, 0))
        finally:
            self.in_flight -= 1

        if path in self.failing:
            raise ContentExtractionError(f"boom: {path}")
        if path in self.binary:
            return BinaryContent(path=path, download_url=f"https://example.test/{path}")
        if path not in self.files:
            raise FileNotFoundInRepoError(path)
        return self.files[path]

    async def fetch_readme(self, ref: RepoRef, branch: str) -> str:
        return self.files.get("README.md", "")

    async def fetch_package_json(self, ref: RepoRef, branch: str) -> dict:
        return json.loads(self.files.get("package.json", "{}"))


class InMemoryProfileStore:
    def __init__(self, profile: UserProfile | None = None) -> None:
        self.profile = profile

    def get(self) -> UserProfile | None:
        return self.profile

    def set(self, profile: UserProfile) -> UserProfile:
        self.profile = profile
        return profile

    def clear(self) -> None:
        self.profile = None


class InMemoryIssueCache:
    def __init__(self) -> None:
        self.entries: dict[str, list[GitHubIssue]] = {}

    def get(self, profile_hash: str) -> list[GitHubIssue] | None:
        return self.entries.get(profile_hash)

    def set(self, issues: list[GitHubIssue], profile_hash: str) -> None:
        self.entries[profile_hash] = list(issues)

    def clear(self) -> None:
        self.entries.clear()


def make_issue(
    number: int,
    title: str,
    *,
    labels: tuple[str, ...] = (),
    comments: int = 1,
    updated_days_ago: float = 30,
    body: str | None = None,
    now: datetime = NOW,
) -> GitHubIssue:
    from datetime import timedelta

    return GitHubIssue(
        id=1000 + number,
        number=number,
        title=title,
        body=body,
        labels=tuple(IssueLabel(name=name) for name in labels),
        comments=comments,
        updated_at=now - timedelta(days=updated_days_ago),
    )


@pytest.fixture
def shop_fetcher() -> FakeRepoFetcher:
    return FakeRepoFetcher(
        SHOP_FILES,
        extra_tree=[
            TreeEntry(path="src", type="tree"),
            TreeEntry(path="node_modules/left-pad/index.js", type="blob"),
            TreeEntry(path="dist/bundle.js", type="blob"),
            TreeEntry(path="README.md", type="blob"),
        ],
    )
