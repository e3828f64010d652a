"""GitHub REST API adapter — implements the fetcher, pull-request and issue-search ports."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable
from urllib.parse import quote

import httpx

from repo_explorer.domain.entities import (
    BinaryContent,
    GitHubIssue,
    IssueAuthor,
    IssueLabel,
    IssueRepo,
    PullRequest,
    PullRequestFile,
    RateLimitInfo,
    RepoMetadata,
    TreeEntry,
)
from repo_explorer.domain.exceptions import (
    ContentExtractionError,
    EmptyRepositoryError,
    FileNotFoundInRepoError,
    GitHubAuthenticationError,
    GitHubRateLimitError,
    InvalidInputError,
    PullRequestNotFoundError,
    RepoExplorerError,
    RepositoryAccessDeniedError,
    RepositoryNotFoundError,
    SecondaryRateLimitError,
)
from repo_explorer.domain.value_objects import RepoRef, require_positive
from repo_explorer.services.issue_query import IssueSearchParams, build_issue_query

logger = logging.getLogger(__name__)

_GITHUB_API = "https://api.github.com"
_USER_AGENT = "repo-explorer/1.0"

README_CANDIDATES: tuple[str, ...] = ("README.md", "README", "readme.md", "Readme.md")

BINARY_EXTENSIONS: frozenset[str] = frozenset(
    {
        "png", "jpg", "jpeg", "gif", "bmp", "ico", "webp", "svg",
        "mp4", "avi", "mov", "wmv", "flv", "webm",
        "mp3", "wav", "ogg", "flac",
        "zip", "tar", "gz", "rar", "7z",
        "exe", "dll", "so", "dylib",
        "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx",
        "ttf", "otf", "woff", "woff2",
        "bin", "dat", "db", "sqlite",
    }
)

_LOW_RATE_LIMIT_PERCENT = 20
_PR_FILES_PER_PAGE = 100

PULL_REQUEST_STATES: tuple[str, ...] = ("open", "closed", "all")


def is_binary_path(path: str) -> bool:
    name = path.rsplit("/", maxsplit=1)[-1]
    if "." not in name:
        return False
    return name.rsplit(".", maxsplit=1)[-1].lower() in BINARY_EXTENSIONS


def _parse_timestamp(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text
    if isinstance(data, dict):
        return str(data.get("message", ""))
    return ""


class GitHubRestAdapter:
    """Concrete RepoFetcher / IssueSearcher backed by the GitHub v3 REST API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str | None = None,
        *,
        api_url: str = _GITHUB_API,
        search_cache_ttl: float = 300.0,
        max_retries: int = 3,
        base_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._api_url = api_url.rstrip("/")
        self._authenticated = bool(token)
        self._api_headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": _USER_AGENT,
        }
        if token:
            self._api_headers["Authorization"] = f"Bearer {token}"
        self._search_cache_ttl = search_cache_ttl
        self._search_cache: dict[tuple[object, ...], tuple[float, list[GitHubIssue]]] = {}
        self._max_retries = max(1, max_retries)
        self._base_delay = base_delay
        self._sleep = sleep
        self._clock = clock

    # ── Repository ──────────────────────────────────────────────────────

    async def fetch_metadata(self, ref: RepoRef) -> RepoMetadata:
        """GET /repos/{owner}/{repo} → RepoMetadata."""
        resp = await self._api_get(f"/repos/{ref.owner}/{ref.repo}")
        data = resp.json()
        return RepoMetadata(
            owner=ref.owner,
            repo=ref.repo,
            default_branch=data.get("default_branch", "main"),
            description=data.get("description"),
        )

    async def fetch_tree(self, ref: RepoRef, branch: str) -> list[TreeEntry]:
        """GET /repos/{owner}/{repo}/git/trees/{branch}?recursive=1 → [TreeEntry]."""
        logger.info("Fetching repo tree: %s@%s", ref.full_name, branch)
        resp = await self._api_get(
            f"/repos/{ref.owner}/{ref.repo}/git/trees/{quote(branch, safe='')}",
            params={"recursive": "1"},
            not_found=RepositoryNotFoundError(
                f"Repository {ref.full_name} not found or branch {branch} doesn't exist."
            ),
        )
        data = resp.json()
        tree = data.get("tree", [])

        if not tree:
            raise EmptyRepositoryError(f"Repository {ref.full_name} appears empty.")
        if data.get("truncated"):
            logger.warning("Tree for %s was truncated by GitHub", ref.full_name)

        logger.info("Fetched %d items from %s", len(tree), ref.full_name)
        return [
            TreeEntry(
                path=item["path"],
                type=item.get("type", "blob"),
                size=item.get("size", 0) or 0,
                sha=item.get("sha", ""),
            )
            for item in tree
        ]

    async def fetch_file_content(
        self, ref: RepoRef, path: str, branch: str
    ) -> str | BinaryContent:
        """GET /repos/{owner}/{repo}/contents/{path}?ref={branch} → text.

        A 404 on ``main`` is retried once on ``master``.
        """
        clean = path.strip().strip("/")
        try:
            resp = await self._api_get(
                f"/repos/{ref.owner}/{ref.repo}/contents/{quote(clean)}",
                params={"ref": branch},
                not_found=FileNotFoundInRepoError(
                    f"File {clean} not found in {ref.full_name}@{branch}"
                ),
            )
        except FileNotFoundInRepoError:
            if branch == "main":
                logger.debug("Trying alternative branch master for %s", clean)
                return await self.fetch_file_content(ref, clean, "master")
            raise

        data = resp.json()
        if isinstance(data, list):
            raise ContentExtractionError(f'Path "{clean}" is a directory, not a file')
        if data.get("type") != "file":
            raise ContentExtractionError(
                f"Unexpected content type {data.get('type')!r} for {clean}"
            )

        download_url = data.get("download_url") or ""
        if is_binary_path(clean):
            return BinaryContent(path=clean, download_url=download_url)

        if data.get("encoding") == "base64":
            raw = base64.b64decode(data.get("content", ""))
            return raw.decode("utf-8", errors="replace")

        # Files over 1 MB come back without inline content.
        if download_url:
            return await self._fetch_raw(download_url, clean)
        return data.get("content", "") or ""

    async def fetch_readme(self, ref: RepoRef, branch: str) -> str:
        """Return the first README variant that exists."""
        for name in README_CANDIDATES:
            try:
                content = await self.fetch_file_content(ref, name, branch)
            except FileNotFoundInRepoError:
                continue
            if isinstance(content, str):
                return content
        raise FileNotFoundInRepoError(f"README not found in {ref.full_name}@{branch}")

    async def fetch_package_json(self, ref: RepoRef, branch: str) -> dict[str, Any]:
        """Parsed root ``package.json`` (dependency manifest of JS projects)."""
        content = await self.fetch_file_content(ref, "package.json", branch)
        if not isinstance(content, str):
            raise ContentExtractionError(f"package.json in {ref.full_name} is not text")
        try:
            data = json.loads(content)
        except ValueError as exc:
            raise ContentExtractionError(
                f"package.json in {ref.full_name}@{branch} is not valid JSON: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise ContentExtractionError(f"package.json in {ref.full_name} is not an object")
        return data

    async def _fetch_raw(self, url: str, path: str) -> str:
        try:
            resp = await self._client.get(url, headers={"User-Agent": _USER_AGENT})
        except httpx.HTTPError as exc:
            raise ContentExtractionError(f"Network error fetching {url}: {exc}") from exc

        if resp.status_code == 200:
            return resp.text
        if resp.status_code == 404:
            raise FileNotFoundInRepoError(f"File not found: {path}")
        raise ContentExtractionError(f"Raw download returned HTTP {resp.status_code} for {path}")

    # ── Pull requests ───────────────────────────────────────────────────

    async def fetch_pull_requests(
        self, ref: RepoRef, state: str = "all", per_page: int = 30
    ) -> list[PullRequest]:
        """GET /repos/{owner}/{repo}/pulls, most recently updated first."""
        if state not in PULL_REQUEST_STATES:
            raise InvalidInputError(
                f"Invalid pull request state: {state!r}. "
                f"Expected one of: {', '.join(PULL_REQUEST_STATES)}"
            )
        require_positive(per_page, "per_page")

        logger.info("Fetching PRs: %s (%s)", ref.full_name, state)
        resp = await self._api_get(
            f"/repos/{ref.owner}/{ref.repo}/pulls",
            params={
                "state": state,
                "per_page": str(per_page),
                "sort": "updated",
                "direction": "desc",
            },
            not_found=RepositoryNotFoundError(f"Repository {ref.full_name} not found"),
        )
        pulls = [_to_pull_request(item) for item in resp.json()]
        logger.info("Fetched %d PRs", len(pulls))
        return pulls

    async def fetch_pull_request(self, ref: RepoRef, number: int) -> PullRequest:
        """GET /repos/{owner}/{repo}/pulls/{number}."""
        require_positive(number, "pull request number")
        resp = await self._api_get(
            f"/repos/{ref.owner}/{ref.repo}/pulls/{number}",
            not_found=PullRequestNotFoundError(f"PR #{number} not found in {ref.full_name}"),
        )
        return _to_pull_request(resp.json())

    async def fetch_pull_request_files(
        self, ref: RepoRef, number: int
    ) -> list[PullRequestFile]:
        """GET /repos/{owner}/{repo}/pulls/{number}/files (first 100 files)."""
        require_positive(number, "pull request number")
        resp = await self._api_get(
            f"/repos/{ref.owner}/{ref.repo}/pulls/{number}/files",
            params={"per_page": str(_PR_FILES_PER_PAGE)},
            not_found=PullRequestNotFoundError(f"PR #{number} not found in {ref.full_name}"),
        )
        files = [
            PullRequestFile(
                filename=item["filename"],
                status=item.get("status", "modified"),
                additions=item.get("additions", 0) or 0,
                deletions=item.get("deletions", 0) or 0,
                changes=item.get("changes", 0) or 0,
                patch=item.get("patch"),
            )
            for item in resp.json()
        ]
        logger.info("Fetched %d changed files for PR #%d", len(files), number)
        return files

    # ── Issues ──────────────────────────────────────────────────────────

    async def search_issues(self, params: IssueSearchParams) -> list[GitHubIssue]:
        """GET /search/issues with backoff on secondary rate limits."""
        require_positive(params.per_page, "per_page")

        key = params.cache_key()
        cached = self._search_cache.get(key)
        if cached is not None:
            if self._clock() - cached[0] < self._search_cache_ttl:
                logger.info("Using cached search results")
                return list(cached[1])
            del self._search_cache[key]

        query = build_issue_query(params)
        logger.info("GitHub issue search query: %s", query)

        for attempt in range(1, self._max_retries + 1):
            try:
                resp = await self._api_get(
                    "/search/issues",
                    params={
                        "q": query,
                        "sort": params.sort,
                        "order": "desc",
                        "per_page": str(params.per_page),
                    },
                )
            except SecondaryRateLimitError:
                if attempt >= self._max_retries:
                    raise SecondaryRateLimitError(
                        "Failed to search issues after multiple retries. GitHub secondary "
                        "rate limit is being enforced. Please wait 1-2 minutes before "
                        "trying again."
                    ) from None
                delay = self._base_delay * 2 ** (attempt - 1)
                logger.warning(
                    "Secondary rate limit hit. Retrying in %.1fs (attempt %d/%d)",
                    delay, attempt, self._max_retries,
                )
                await self._sleep(delay)
                continue

            items = resp.json().get("items", [])
            issues = [_to_issue(item) for item in items if "pull_request" not in item]
            logger.info("Found %d issues", len(issues))
            self._prune_search_cache()
            self._search_cache[key] = (self._clock(), issues)
            return list(issues)

        raise AssertionError("unreachable")

    def _prune_search_cache(self) -> None:
        now = self._clock()
        stale = [
            key
            for key, (stamp, _) in self._search_cache.items()
            if now - stamp >= self._search_cache_ttl
        ]
        for key in stale:
            del self._search_cache[key]

    async def check_rate_limit(self) -> RateLimitInfo:
        """GET /rate_limit → RateLimitInfo, warning when running low."""
        resp = await self._api_get("/rate_limit")
        rate = resp.json().get("rate", {})
        info = RateLimitInfo(
            limit=int(rate.get("limit", 0)),
            used=int(rate.get("used", 0)),
            remaining=int(rate.get("remaining", 0)),
            reset=datetime.fromtimestamp(int(rate.get("reset", 0)), tz=timezone.utc),
        )
        if info.percentage < _LOW_RATE_LIMIT_PERCENT:
            logger.warning(
                "Low on API requests: %d/%d remaining, resets at %s",
                info.remaining, info.limit, info.reset.strftime("%H:%M:%S UTC"),
            )
            if not self._authenticated:
                logger.info(
                    "Set the GITHUB_TOKEN environment variable to raise the limit "
                    "from 60/hour to 5000/hour."
                )
        return info

    # ── HTTP plumbing ───────────────────────────────────────────────────

    async def _api_get(
        self,
        endpoint: str,
        params: dict[str, str] | None = None,
        not_found: RepoExplorerError | None = None,
    ) -> httpx.Response:
        """Perform a GitHub API GET request with error translation."""
        url = f"{self._api_url}{endpoint}"
        try:
            resp = await self._client.get(url, headers=self._api_headers, params=params)
        except httpx.HTTPError as exc:
            raise ContentExtractionError(f"Network error fetching {url}: {exc}") from exc

        if resp.status_code == 200:
            return resp

        if resp.status_code == 404:
            raise not_found or RepositoryNotFoundError(
                "Repository not found. Make sure the repository exists and is public."
            )

        if resp.status_code == 401:
            raise GitHubAuthenticationError(
                "GitHub authentication failed. Check your GITHUB_TOKEN."
            )

        if resp.status_code in (403, 429):
            message = _error_message(resp)
            if "secondary rate limit" in message.lower():
                raise SecondaryRateLimitError(f"GitHub secondary rate limit: {message}")

            remaining = resp.headers.get("x-ratelimit-remaining", "")
            if remaining == "0" or resp.status_code == 429 or "rate limit" in message.lower():
                reset_raw = resp.headers.get("x-ratelimit-reset", "")
                try:
                    reset_str = datetime.fromtimestamp(int(reset_raw), tz=timezone.utc).strftime(
                        "%Y-%m-%d %H:%M:%S UTC"
                    )
                except (ValueError, OSError):
                    reset_str = reset_raw or "unknown"
                raise GitHubRateLimitError(
                    f"GitHub API rate limit exceeded. Resets at {reset_str}. "
                    "Set the GITHUB_TOKEN environment variable to increase the limit."
                )
            raise RepositoryAccessDeniedError(
                "Access denied. The repository may be private."
            )

        raise ContentExtractionError(
            f"GitHub API returned HTTP {resp.status_code} for {url}"
        )


def _to_labels(raw: list[Any]) -> tuple[IssueLabel, ...]:
    return tuple(
        IssueLabel(name=label, color="000000")
        if isinstance(label, str)
        else IssueLabel(name=label.get("name") or "", color=label.get("color") or "000000")
        for label in raw
    )


def _to_author(raw: dict[str, Any] | None) -> IssueAuthor:
    user = raw or {}
    return IssueAuthor(
        login=user.get("login") or "unknown",
        avatar_url=user.get("avatar_url") or "",
    )


def _to_issue(item: dict[str, Any]) -> GitHubIssue:
    """Map a raw search item onto :class:`GitHubIssue`."""
    repository_url = item.get("repository_url", "")
    parts = repository_url.rstrip("/").split("/")
    repo = IssueRepo(owner=parts[-2], name=parts[-1]) if len(parts) >= 2 else None

    labels = _to_labels(item.get("labels", []))
    user = _to_author(item.get("user"))

    return GitHubIssue(
        id=item["id"],
        number=item["number"],
        title=item.get("title", ""),
        html_url=item.get("html_url", ""),
        repository_url=repository_url,
        labels=labels,
        state=item.get("state", "open"),
        created_at=_parse_timestamp(item.get("created_at")),
        updated_at=_parse_timestamp(item.get("updated_at")) or datetime.now(timezone.utc),
        body=item.get("body"),
        user=user,
        comments=item.get("comments") or 0,
        score=item.get("score"),
        repo=repo,
    )


def _to_pull_request(item: dict[str, Any]) -> PullRequest:
    """Map a raw pulls item (list or detail payload) onto :class:`PullRequest`."""
    head = item.get("head") or {}
    base = item.get("base") or {}
    return PullRequest(
        number=item["number"],
        title=item.get("title", ""),
        state=item.get("state", "open"),
        user=_to_author(item.get("user")),
        created_at=_parse_timestamp(item.get("created_at")),
        updated_at=_parse_timestamp(item.get("updated_at")),
        merged_at=_parse_timestamp(item.get("merged_at")),
        draft=bool(item.get("draft")),
        labels=_to_labels(item.get("labels", [])),
        html_url=item.get("html_url", ""),
        body=item.get("body"),
        additions=item.get("additions", 0) or 0,
        deletions=item.get("deletions", 0) or 0,
        changed_files=item.get("changed_files", 0) or 0,
        commits=item.get("commits", 0) or 0,
        head_ref=head.get("ref", ""),
        base_ref=base.get("ref", ""),
    )
