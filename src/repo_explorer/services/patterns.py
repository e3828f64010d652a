"""Category keyword table and the first-match category detector.

The same table drives file classification at index time and domain
detection at query time, so a query mentioning a category keyword always
lands in the bucket files with that keyword were filed under.
"""

from __future__ import annotations

from typing import Iterable

from repo_explorer.domain.entities import FileCategory

# Priority order matters: the first category with any hit wins.
CATEGORY_KEYWORDS: dict[FileCategory, tuple[str, ...]] = {
    FileCategory.AUTH: (
        "auth", "login", "session", "jwt", "token", "password", "credential",
    ),
    FileCategory.PAYMENT: (
        "payment", "stripe", "checkout", "billing", "subscription", "invoice",
    ),
    FileCategory.API: (
        "api", "endpoint", "route", "controller", "handler", "request", "response",
    ),
    FileCategory.DATABASE: (
        "database", "schema", "migration", "model", "prisma", "sql", "query",
    ),
    FileCategory.TESTING: (
        "test", "spec", "mock", "__tests__", "e2e", "unit", "integration",
    ),
    FileCategory.CONFIG: (
        "config", "env", "settings", ".config", "setup", "dotenv",
    ),
}

ALL_PATTERN_KEYWORDS: tuple[str, ...] = tuple(
    keyword for keywords in CATEGORY_KEYWORDS.values() for keyword in keywords
)


def matches_pattern(text: str, patterns: Iterable[str]) -> bool:
    """Return *True* if any pattern is a substring of lowercased *text*."""
    lower = text.lower()
    return any(pattern in lower for pattern in patterns)


def match_category(text: str) -> FileCategory | None:
    """First category whose keywords occur in *text*, or ``None``."""
    lower = text.lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if matches_pattern(lower, keywords):
            return category
    return None


def detect_category(path: str, content: str) -> FileCategory:
    """Classify a file from its path and content; ``other`` when nothing matches."""
    return match_category(f"{path} {content or ''}") or FileCategory.OTHER
