from __future__ import annotations

import dataclasses
from datetime import timedelta
from pathlib import Path

from repo_explorer.domain.entities import (
    IssueRepo,
    KnowledgeLevel,
    TechStackEntry,
    UserProfile,
)
from repo_explorer.infrastructure.profile_store import JsonFileIssueCache, JsonFileProfileStore

from conftest import NOW, make_issue


class Clock:
    def __init__(self) -> None:
        self.now = NOW

    def __call__(self):
        return self.now


PROFILE = UserProfile(
    skills=("Python",),
    tech_stack=(TechStackEntry("Python", KnowledgeLevel.INTERMEDIATE),),
)


def test_profile_round_trip(tmp_path: Path) -> None:
    clock = Clock()
    store = JsonFileProfileStore(tmp_path / "profile.json", clock=clock)

    saved = store.set(PROFILE)
    loaded = store.get()

    assert saved.last_updated == NOW
    assert loaded is not None
    assert loaded.skills == ("Python",)
    assert loaded.tech_stack[0].name == "Python"
    assert loaded.tech_stack[0].knowledge_level is KnowledgeLevel.INTERMEDIATE
    assert loaded.last_updated == NOW


def test_missing_profile(tmp_path: Path) -> None:
    store = JsonFileProfileStore(tmp_path / "nothing.json")

    assert store.get() is None
    assert store.update(has_completed=True) is None
    assert not store.has_completed()


def test_expired_profile_is_discarded(tmp_path: Path) -> None:
    clock = Clock()
    path = tmp_path / "profile.json"
    store = JsonFileProfileStore(path, ttl=timedelta(days=30), clock=clock)
    store.set(PROFILE)

    clock.now = NOW + timedelta(days=31)

    assert store.get() is None
    assert not path.exists()


def test_corrupt_profile_reads_as_missing(tmp_path: Path) -> None:
    path = tmp_path / "profile.json"
    path.write_text("{not json")

    assert JsonFileProfileStore(path).get() is None


def test_update_and_clear(tmp_path: Path) -> None:
    clock = Clock()
    store = JsonFileProfileStore(tmp_path / "profile.json", clock=clock)
    store.set(PROFILE)
    clock.now = NOW + timedelta(hours=1)

    updated = store.update(has_completed=True)

    assert updated is not None and updated.has_completed
    assert updated.last_updated == NOW + timedelta(hours=1)
    assert store.has_completed()

    store.clear()
    store.clear()
    assert store.get() is None


def test_issue_cache(tmp_path: Path) -> None:
    clock = Clock()
    cache = JsonFileIssueCache(tmp_path / "issues.json", ttl=timedelta(hours=1), clock=clock)
    issue = make_issue(1, "Fix Python bug", labels=("good first issue",), updated_days_ago=2)
    issue_with_repo = dataclasses.replace(make_issue(2, "Another"), repo=IssueRepo("acme", "shop"))

    cache.set([issue, issue_with_repo], "hash-a")
    cached = cache.get("hash-a")

    assert cached is not None
    assert [i.number for i in cached] == [1, 2]
    assert cached[0].labels[0].name == "good first issue"
    assert cached[0].updated_at == issue.updated_at
    assert cached[1].repo == IssueRepo("acme", "shop")


def test_issue_cache_invalidation(tmp_path: Path) -> None:
    clock = Clock()
    cache = JsonFileIssueCache(tmp_path / "issues.json", clock=clock)
    cache.set([make_issue(1, "x")], "hash-a")

    assert cache.get("hash-b") is None
    assert cache.get("hash-a") is None

    cache.set([make_issue(1, "x")], "hash-a")
    clock.now = NOW + timedelta(hours=2)
    assert cache.get("hash-a") is None
