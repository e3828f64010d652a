"""Issue search query construction.

Only the *first* language and the *first* label make it into the query:
GitHub search rejects or mis-ranks long OR-combinations, so a narrow query
that returns something beats a precise one that returns nothing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from repo_explorer.domain.entities import KnowledgeLevel, TechStackEntry

_REPO_FILTER_RE = re.compile(r"github\.com/([^/]+/[^/]+)|^([^/]+/[^/]+)$")

SEARCH_LABELS: dict[KnowledgeLevel, tuple[str, ...]] = {
    KnowledgeLevel.BEGINNER: (
        "good first issue",
        "good-first-issue",
        "beginner-friendly",
        "beginner",
        "easy",
        "starter",
        "newcomer",
    ),
    KnowledgeLevel.INTERMEDIATE: ("help wanted", "help-wanted", "enhancement", "feature"),
    KnowledgeLevel.ADVANCED: ("help wanted", "complex", "architecture", "refactor"),
    KnowledgeLevel.EXPERT: (
        "help wanted",
        "hard",
        "complex",
        "architecture",
        "performance",
        "security",
    ),
}

_COMMENT_FILTERS: dict[KnowledgeLevel, str] = {
    KnowledgeLevel.BEGINNER: "comments:<5",
    KnowledgeLevel.INTERMEDIATE: "comments:2..15",
}


@dataclass(frozen=True, slots=True)
class IssueSearchParams:
    """What to search for; ``repo_filter`` is ignored when ``search_all_repos``."""

    languages: tuple[str, ...] = ()
    labels: tuple[str, ...] = ()
    knowledge_level: KnowledgeLevel = KnowledgeLevel.BEGINNER
    per_page: int = 10
    sort: str = "updated"
    repo_filter: str | None = None
    search_all_repos: bool = False

    @property
    def effective_repo_filter(self) -> str | None:
        return None if self.search_all_repos else self.repo_filter

    def cache_key(self) -> tuple[object, ...]:
        return (
            self.languages,
            self.labels,
            self.knowledge_level,
            self.per_page,
            self.sort,
            self.effective_repo_filter,
        )


def labels_for_knowledge_level(level: KnowledgeLevel) -> tuple[str, ...]:
    return SEARCH_LABELS.get(level, ("good first issue",))


def effective_knowledge_level(tech_stack: Iterable[TechStackEntry]) -> KnowledgeLevel:
    """Highest level across the tech stack (``beginner`` when empty)."""
    return KnowledgeLevel.max_level(t.knowledge_level for t in tech_stack)


def normalize_repo_filter(value: str) -> str | None:
    """``owner/repo`` from a URL or short reference, ``None`` if unrecognised."""
    match = _REPO_FILTER_RE.search(value.strip())
    if not match:
        return None
    repo = match.group(1) or match.group(2)
    return re.sub(r"\.git$", "", repo)


def build_issue_query(params: IssueSearchParams) -> str:
    """Render *params* as a GitHub issue-search ``q`` string."""
    parts = ["is:issue", "is:open", "no:assignee"]

    repo_filter = params.effective_repo_filter
    if repo_filter:
        repo = normalize_repo_filter(repo_filter)
        if repo:
            parts.append(f"repo:{repo}")

    if params.languages:
        parts.append(f"language:{params.languages[0]}")

    level_labels = labels_for_knowledge_level(params.knowledge_level)
    labels = list(dict.fromkeys([*params.labels, *level_labels]))
    if labels:
        parts.append(f'label:"{labels[0]}"')

    comment_filter = _COMMENT_FILTERS.get(params.knowledge_level)
    if comment_filter:
        parts.append(comment_filter)

    return " ".join(parts)
