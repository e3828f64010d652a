"""Explore-repository use cases.

:class:`RepoSession` is the explicit application state (which repository is
loaded, its index and tree diagram).  :class:`RepoExplorer` drives the
load → index → query lifecycle against it, and :class:`IssueRecommender`
turns the stored profile into ranked issue suggestions.  The scoring
functions underneath stay stateless and receive everything as arguments.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from repo_explorer.domain.entities import (
    FileMetadata,
    IssueMatchResult,
    RepoIndex,
)
from repo_explorer.domain.exceptions import (
    NoRepositoryLoadedError,
    ProfileNotFoundError,
)
from repo_explorer.domain.ports.issue_searcher import IssueSearcher
from repo_explorer.domain.ports.profile_store import IssueCache, ProfileStore
from repo_explorer.domain.ports.repo_fetcher import RepoFetcher
from repo_explorer.domain.value_objects import CancellationToken, RepoRef
from repo_explorer.services.issue_matcher import (
    generate_profile_hash,
    match_issues_with_profile,
)
from repo_explorer.services.issue_query import (
    IssueSearchParams,
    effective_knowledge_level,
)
from repo_explorer.services.query_resolver import DEFAULT_LIMIT, resolve_query
from repo_explorer.services.repo_indexer import RepoIndexer
from repo_explorer.services.tree_diagram import generate_tree_diagram

logger = logging.getLogger(__name__)


@dataclass
class RepoSession:
    """Mutable state of the currently explored repository."""

    current_repo: str | None = None
    current_branch: str = "main"
    repo_index: RepoIndex = field(default_factory=RepoIndex.empty)
    tree_structure: str = ""
    is_indexing: bool = False
    error: str | None = None

    def is_loaded(self, repo: str, branch: str) -> bool:
        """Same repository@branch already indexed with at least one file.

        GitHub owner and repository names are case-insensitive.
        """
        return (
            self.current_repo is not None
            and self.current_repo.casefold() == repo.casefold()
            and self.current_branch == branch
            and not self.repo_index.is_empty
        )

    def load(self, repo: str, branch: str, index: RepoIndex, tree_structure: str) -> None:
        """Swap in a completely built index in one step."""
        self.current_repo = repo
        self.current_branch = branch
        self.repo_index = index
        self.tree_structure = tree_structure
        self.is_indexing = False
        self.error = None

    def clear(self) -> None:
        self.current_repo = None
        self.current_branch = "main"
        self.repo_index = RepoIndex.empty()
        self.tree_structure = ""
        self.is_indexing = False
        self.error = None


class RepoExplorer:
    """Loads repositories into a :class:`RepoSession` and answers queries."""

    def __init__(
        self,
        fetcher: RepoFetcher,
        indexer: RepoIndexer,
        session: RepoSession | None = None,
        tree_max_depth: int = 4,
        default_limit: int = DEFAULT_LIMIT,
    ) -> None:
        self._fetcher = fetcher
        self._indexer = indexer
        self.session = session if session is not None else RepoSession()
        self._tree_max_depth = tree_max_depth
        self._default_limit = default_limit
        self._active_token: CancellationToken | None = None

    async def load_repo(
        self,
        repo: str,
        branch: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> RepoSession:
        """Fetch, index and install *repo* unless it is already loaded."""
        ref = RepoRef.parse(repo)

        if branch is None:
            metadata = await self._fetcher.fetch_metadata(ref)
            branch = metadata.default_branch

        if self.session.is_loaded(ref.full_name, branch):
            logger.info("Repo %s@%s already loaded from cache", ref.full_name, branch)
            return self.session

        if self._active_token is not None:
            self._active_token.cancel(f"superseded by {ref.full_name}@{branch}")
        token = cancel_token or CancellationToken()
        self._active_token = token

        self.session.is_indexing = True
        self.session.error = None
        logger.info("Loading repo %s@%s", ref.full_name, branch)

        try:
            tree = await self._fetcher.fetch_tree(ref, branch)
            index = await self._indexer.build(tree, ref.owner, ref.repo, branch, token)
            diagram = generate_tree_diagram([entry.path for entry in tree], self._tree_max_depth)
            token.raise_if_cancelled()
        except Exception as exc:
            logger.error("Failed to load repo %s: %s", ref.full_name, exc)
            if self._active_token is token:
                self.session.is_indexing = False
                self.session.error = str(exc)
            raise
        finally:
            if self._active_token is token:
                self._active_token = None

        self.session.load(ref.full_name, branch, index, diagram)
        logger.info("Repo %s@%s loaded (%d files indexed)", ref.full_name, branch, len(index))
        return self.session

    def cancel(self) -> bool:
        """Cancel the in-flight load, if any."""
        if self._active_token is None:
            return False
        self._active_token.cancel("cancelled by caller")
        return True

    def query(self, text: str, limit: int | None = None) -> list[FileMetadata]:
        if self.session.current_repo is None:
            raise NoRepositoryLoadedError("Load a repository before querying it.")
        if limit is None:
            limit = self._default_limit
        return resolve_query(text, self.session.repo_index, limit=limit)

    def clear(self) -> None:
        self.cancel()
        self.session.clear()


class IssueRecommender:
    """Searches open issues for the stored profile and ranks them."""

    def __init__(
        self,
        searcher: IssueSearcher,
        profiles: ProfileStore,
        cache: IssueCache | None = None,
    ) -> None:
        self._searcher = searcher
        self._profiles = profiles
        self._cache = cache

    async def recommend(
        self,
        repo_filter: str | None = None,
        per_page: int = 10,
        search_all_repos: bool = False,
    ) -> list[IssueMatchResult]:
        profile = self._profiles.get()
        if profile is None:
            raise ProfileNotFoundError("No saved profile. Complete onboarding first.")

        if repo_filter and not search_all_repos:
            repo_filter = RepoRef.parse(repo_filter).full_name

        params = IssueSearchParams(
            languages=tuple(t.name for t in profile.tech_stack),
            knowledge_level=effective_knowledge_level(profile.tech_stack),
            per_page=per_page,
            repo_filter=repo_filter,
            search_all_repos=search_all_repos,
        )
        cache_key = f"{generate_profile_hash(profile)}|{params.cache_key()!r}"

        issues = self._cache.get(cache_key) if self._cache else None
        if issues is None:
            issues = await self._searcher.search_issues(params)
            if self._cache:
                self._cache.set(issues, cache_key)
        else:
            logger.info("Serving %d issues from cache", len(issues))

        return match_issues_with_profile(issues, profile)
