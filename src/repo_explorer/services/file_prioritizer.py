"""Fetch-priority scoring for source files.

Only used to decide which files are worth a content request when the
repository holds more source files than the fetch budget allows.
"""

from __future__ import annotations

from typing import Sequence

from repo_explorer.domain.entities import TreeEntry

# ── Heuristic weight constants ──────────────────────────────────────────────

_SRC_BONUS = 10
_MAX_DEPTH_BONUS = 10
_DOMAIN_HINTS = ("auth", "api", "payment")
_DOMAIN_BONUS = 5
_SHARED_CODE_HINTS = ("util", "helper", "lib")
_SHARED_CODE_BONUS = 3
_TEST_HINTS = ("test", "spec")
_TEST_PENALTY = 2


def path_depth(path: str) -> int:
    """Number of ``/``-separated segments (root files have depth 1)."""
    return len(path.split("/"))


def priority_score(path: str) -> int:
    """Integer importance of *path*; higher is fetched first."""
    lower = path.lower()
    score = 0

    if "src/" in lower:
        score += _SRC_BONUS

    score += max(0, _MAX_DEPTH_BONUS - path_depth(lower))

    if any(hint in lower for hint in _DOMAIN_HINTS):
        score += _DOMAIN_BONUS
    if any(hint in lower for hint in _SHARED_CODE_HINTS):
        score += _SHARED_CODE_BONUS
    if any(hint in lower for hint in _TEST_HINTS):
        score -= _TEST_PENALTY

    return score


def prioritize_files(entries: Sequence[TreeEntry]) -> list[TreeEntry]:
    """Return *entries* sorted by descending priority; ties keep tree order."""
    return sorted(entries, key=lambda entry: priority_score(entry.path), reverse=True)
