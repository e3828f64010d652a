"""Map free text onto a ranked slice of a RepoIndex."""

from __future__ import annotations

import dataclasses
import logging
from enum import Enum

from repo_explorer.domain.entities import (
    FileMetadata,
    IndexBucket,
    RepoIndex,
    bucket_for,
)
from repo_explorer.services.file_prioritizer import path_depth
from repo_explorer.services.patterns import match_category

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
_MIN_TOKEN_LENGTH = 3


class QueryIntent(str, Enum):
    FIND = "find"
    MODIFY = "modify"
    ADD = "add"
    UNDERSTAND = "understand"


_INTENT_WORDS: list[tuple[QueryIntent, tuple[str, ...]]] = [
    (QueryIntent.FIND, ("where", "find", "locate")),
    (QueryIntent.MODIFY, ("modify", "change", "update", "edit")),
    (QueryIntent.ADD, ("add", "create", "implement", "new")),
]


def extract_intent(query: str) -> QueryIntent:
    """What the user wants to do; ``understand`` when nothing else fits."""
    lower = query.lower()
    for intent, words in _INTENT_WORDS:
        if any(word in lower for word in words):
            return intent
    return QueryIntent.UNDERSTAND


def extract_domain(query: str) -> IndexBucket | None:
    """Bucket the query is about, or ``None`` to search every bucket."""
    category = match_category(query)
    return bucket_for(category) if category is not None else None


def query_tokens(query: str) -> list[str]:
    return [t for t in query.lower().split() if len(t) >= _MIN_TOKEN_LENGTH]


def calculate_relevance(file: FileMetadata, query: str, intent: QueryIntent) -> int:
    """Heuristic relevance of *file* to *query*."""
    score = 0
    path = file.path.lower()
    functions = [f.lower() for f in file.functions]

    # Keyword overlap
    for token in query_tokens(query):
        if token in path:
            score += 15
        if any(token in keyword for keyword in file.keywords):
            score += 10
        if any(token in name for name in functions):
            score += 5

    # Intent
    if intent is QueryIntent.FIND:
        if file.exports:
            score += 20
        if len(file.functions) > 3:
            score += 10
    elif intent in (QueryIntent.MODIFY, QueryIntent.ADD):
        if "node_modules" not in path:
            score += 20
        if "src/" in path:
            score += 10

    # General importance
    if "src/" in path:
        score += 10
    if len(file.imports) > 3:
        score += 10
    if path_depth(path) < 4:
        score += 5
    if "index" in path or "main" in path:
        score += 5

    return score


def resolve_query(
    query: str, index: RepoIndex, *, limit: int = DEFAULT_LIMIT
) -> list[FileMetadata]:
    """Return up to *limit* scored copies of the most relevant indexed files."""
    intent = extract_intent(query)
    domain = extract_domain(query)
    logger.info(
        "Resolving %r (intent=%s, domain=%s)",
        query, intent.value, domain.value if domain else "all",
    )

    candidates = index.all_files() if domain is None else index.bucket(domain)
    if not candidates:
        logger.warning("No files found for domain: %s", domain.value if domain else "all")
        return []

    scored = [
        dataclasses.replace(f, score=calculate_relevance(f, query, intent))
        for f in candidates
    ]
    scored.sort(key=lambda f: f.score or 0, reverse=True)
    results = scored[: max(0, limit)]

    logger.info("Found %d relevant files", len(results))
    return results
