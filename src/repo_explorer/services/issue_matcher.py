"""Rank candidate issues against a user's skill profile."""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from typing import Sequence

from repo_explorer.domain.entities import (
    GitHubIssue,
    IssueMatchResult,
    KnowledgeLevel,
    UserProfile,
)

# ── Weights ─────────────────────────────────────────────────────────────────

_SKILL_POINTS = 10
_TECH_POINTS = 8
_LABEL_POINTS = 5
_STALE_AFTER_DAYS = 90
_STALE_PENALTY = 2
_RECENT_WITHIN_DAYS = 7
_RECENT_BONUS = 2
_DISCUSSION_RANGE = (2, 10)
_DISCUSSION_BONUS = 3
_FRESH_BONUS = 1
_BEGINNER_BONUS = 5

APPROPRIATE_LABELS: dict[KnowledgeLevel, tuple[str, ...]] = {
    KnowledgeLevel.BEGINNER: ("good first", "beginner", "easy", "starter", "newcomer"),
    KnowledgeLevel.INTERMEDIATE: ("help wanted", "enhancement", "feature"),
    KnowledgeLevel.ADVANCED: ("help wanted", "complex", "refactor"),
    KnowledgeLevel.EXPERT: ("complex", "architecture", "performance", "security"),
}


def days_since(moment: datetime, now: datetime) -> int:
    """Whole days between *moment* and *now*, rounded up."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return math.ceil(abs((now - moment).total_seconds()) / 86_400)


def score_issue(
    issue: GitHubIssue, profile: UserProfile, now: datetime | None = None
) -> IssueMatchResult:
    """Score a single issue; the result may be zero or negative."""
    now = now or datetime.now(timezone.utc)
    score = 0
    reasons: list[str] = []

    text = f"{issue.title} {issue.body or ''}".lower()

    skill_matches = [s for s in profile.skills if s and s.lower() in text]
    if skill_matches:
        score += _SKILL_POINTS * len(skill_matches)
        reasons.append(f"Matches your skills: {', '.join(skill_matches)}")

    for tech in profile.tech_stack:
        if tech.name and tech.name.lower() in text:
            score += _TECH_POINTS
            reasons.append(f"Matches {tech.name} ({tech.knowledge_level.value} level)")

    labels = [label.name.lower() for label in issue.labels]
    level = profile.max_knowledge_level
    wanted = APPROPRIATE_LABELS[level]
    label_matches = [name for name in labels if any(w in name for w in wanted)]
    if label_matches:
        score += _LABEL_POINTS * len(label_matches)
        reasons.append(f"Difficulty matches your level ({level.value})")

    age = days_since(issue.updated_at, now)
    if age > _STALE_AFTER_DAYS:
        score -= _STALE_PENALTY
    elif age < _RECENT_WITHIN_DAYS:
        score += _RECENT_BONUS
        reasons.append("Recently active")

    low, high = _DISCUSSION_RANGE
    if low <= issue.comments <= high:
        score += _DISCUSSION_BONUS
        reasons.append("Active discussion")
    elif issue.comments == 0:
        score += _FRESH_BONUS
        reasons.append("Fresh issue")

    good_first = any("good" in name and "first" in name for name in labels)
    if level is KnowledgeLevel.BEGINNER and good_first:
        score += _BEGINNER_BONUS
        reasons.append("Great for beginners")

    return IssueMatchResult(issue=issue, match_score=score, match_reasons=tuple(reasons))


def match_issues_with_profile(
    issues: Sequence[GitHubIssue],
    profile: UserProfile,
    *,
    now: datetime | None = None,
) -> list[IssueMatchResult]:
    """Positive-scoring issues, best match first (ties keep input order)."""
    now = now or datetime.now(timezone.utc)
    results = [score_issue(issue, profile, now) for issue in issues]
    results = [r for r in results if r.match_score > 0]
    results.sort(key=lambda r: r.match_score, reverse=True)
    return results


def generate_profile_hash(profile: UserProfile) -> str:
    """Stable key for caching search results per profile."""
    data = {
        "skills": sorted(profile.skills),
        "techStack": sorted(
            f"{t.name}:{t.knowledge_level.value}" for t in profile.tech_stack
        ),
    }
    return json.dumps(data, separators=(",", ":"))
