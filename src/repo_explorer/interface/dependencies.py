"""FastAPI dependency injection wiring."""

from __future__ import annotations

from datetime import timedelta

import httpx

from repo_explorer.infrastructure.config import Settings, get_settings
from repo_explorer.infrastructure.github_rest_adapter import GitHubRestAdapter
from repo_explorer.infrastructure.profile_store import (
    JsonFileIssueCache,
    JsonFileProfileStore,
)
from repo_explorer.services.explore_repo import (
    IssueRecommender,
    RepoExplorer,
    RepoSession,
)
from repo_explorer.services.repo_indexer import RepoIndexer

_http_client: httpx.AsyncClient | None = None
_github_adapter: GitHubRestAdapter | None = None
_explorer: RepoExplorer | None = None


async def startup(settings: Settings | None = None) -> None:
    """Initialise shared resources — called from the lifespan context manager."""
    global _http_client, _github_adapter, _explorer  # noqa: PLW0603

    settings = settings or get_settings()
    _http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.request_timeout_seconds))

    token = settings.github_token.get_secret_value() if settings.github_token else None
    _github_adapter = GitHubRestAdapter(
        client=_http_client,
        token=token,
        api_url=settings.github_api_url,
        search_cache_ttl=settings.search_cache_ttl_seconds,
        max_retries=settings.search_max_retries,
        base_delay=settings.search_base_delay_seconds,
    )
    indexer = RepoIndexer(
        _github_adapter,
        max_files=settings.max_index_files,
        batch_size=settings.index_batch_size,
        retain_content=settings.retain_file_content,
    )
    # One session per process: the explored repository outlives a request.
    _explorer = RepoExplorer(
        _github_adapter,
        indexer,
        RepoSession(),
        tree_max_depth=settings.tree_max_depth,
        default_limit=settings.max_query_results,
    )


async def shutdown() -> None:
    """Release shared resources."""
    global _http_client, _github_adapter, _explorer  # noqa: PLW0603

    if _explorer:
        _explorer.cancel()
        _explorer = None
    _github_adapter = None
    if _http_client:
        await _http_client.aclose()
        _http_client = None


def get_github() -> GitHubRestAdapter:
    assert _github_adapter is not None, "startup() was not called"
    return _github_adapter


def get_explorer() -> RepoExplorer:
    assert _explorer is not None, "startup() was not called"
    return _explorer


def get_profile_store() -> JsonFileProfileStore:
    settings = get_settings()
    return JsonFileProfileStore(
        settings.profile_path, ttl=timedelta(days=settings.profile_ttl_days)
    )


def get_issue_cache() -> JsonFileIssueCache:
    settings = get_settings()
    return JsonFileIssueCache(
        settings.issue_cache_path, ttl=timedelta(minutes=settings.issue_cache_ttl_minutes)
    )


def get_recommender() -> IssueRecommender:
    return IssueRecommender(get_github(), get_profile_store(), get_issue_cache())
