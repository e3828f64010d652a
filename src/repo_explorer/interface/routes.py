"""API routes — thin controllers that delegate to the use cases."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from repo_explorer.domain.exceptions import ProfileNotFoundError
from repo_explorer.domain.value_objects import RepoRef
from repo_explorer.infrastructure.github_rest_adapter import GitHubRestAdapter
from repo_explorer.infrastructure.profile_store import JsonFileProfileStore
from repo_explorer.interface.dependencies import (
    get_explorer,
    get_github,
    get_profile_store,
    get_recommender,
)
from repo_explorer.interface.schemas import (
    ErrorResponse,
    FileResult,
    LoadRepoRequest,
    MatchRequest,
    MatchResponse,
    PackageJsonResponse,
    ProfileSchema,
    PullRequestFilesResponse,
    PullRequestImpactResponse,
    PullRequestListResponse,
    PullRequestSchema,
    QueryRequest,
    QueryResponse,
    RateLimitResponse,
    ReadmeResponse,
    RecommendRequest,
    RepoStateResponse,
    TreeResponse,
)
from repo_explorer.services.explore_repo import IssueRecommender, RepoExplorer
from repo_explorer.services.issue_matcher import match_issues_with_profile
from repo_explorer.services.pr_impact import review_pull_request

router = APIRouter()


# ── Repository exploration ──────────────────────────────────────────────────


@router.post(
    "/repos/load",
    response_model=RepoStateResponse,
    responses={
        422: {
            "model": ErrorResponse,
            "description": "Invalid repository reference or empty repository",
        },
        404: {"model": ErrorResponse, "description": "Repository or branch not found"},
        409: {"model": ErrorResponse, "description": "Load superseded by another request"},
        429: {"model": ErrorResponse, "description": "GitHub API rate limit exceeded"},
    },
)
async def load_repo(
    body: LoadRepoRequest,
    explorer: RepoExplorer = Depends(get_explorer),
) -> RepoStateResponse:
    """Fetch, classify and cache a repository."""
    session = await explorer.load_repo(body.repo, body.branch)
    return RepoStateResponse.from_session(session)


@router.get("/repos/current", response_model=RepoStateResponse)
async def current_repo(explorer: RepoExplorer = Depends(get_explorer)) -> RepoStateResponse:
    return RepoStateResponse.from_session(explorer.session)


@router.delete("/repos/current", response_model=RepoStateResponse)
async def clear_repo(explorer: RepoExplorer = Depends(get_explorer)) -> RepoStateResponse:
    explorer.clear()
    return RepoStateResponse.from_session(explorer.session)


@router.post("/repos/cancel")
async def cancel_load(explorer: RepoExplorer = Depends(get_explorer)) -> dict[str, bool]:
    """Stop an in-progress index build."""
    return {"cancelled": explorer.cancel()}


@router.post(
    "/repos/query",
    response_model=QueryResponse,
    responses={409: {"model": ErrorResponse, "description": "No repository loaded"}},
)
async def query_repo(
    body: QueryRequest,
    explorer: RepoExplorer = Depends(get_explorer),
) -> QueryResponse:
    """Rank indexed files against a free-text question."""
    files = explorer.query(body.query, limit=body.limit)
    return QueryResponse(query=body.query, results=[FileResult.from_entity(f) for f in files])


@router.get("/repos/tree", response_model=TreeResponse)
async def repo_tree(explorer: RepoExplorer = Depends(get_explorer)) -> TreeResponse:
    session = explorer.session
    return TreeResponse(repo=session.current_repo, tree=session.tree_structure)


@router.get("/repos/readme", response_model=ReadmeResponse)
async def repo_readme(
    repo: str = Query(..., description="owner/repo or GitHub URL"),
    branch: str = Query("main"),
    github: GitHubRestAdapter = Depends(get_github),
) -> ReadmeResponse:
    ref = RepoRef.parse(repo)
    content = await github.fetch_readme(ref, branch)
    return ReadmeResponse(repo=ref.full_name, branch=branch, content=content)


@router.get("/repos/package-json", response_model=PackageJsonResponse)
async def repo_package_json(
    repo: str = Query(..., description="owner/repo or GitHub URL"),
    branch: str = Query("main"),
    github: GitHubRestAdapter = Depends(get_github),
) -> PackageJsonResponse:
    ref = RepoRef.parse(repo)
    package = await github.fetch_package_json(ref, branch)
    return PackageJsonResponse(repo=ref.full_name, branch=branch, package=package)


# ── Pull requests ───────────────────────────────────────────────────────────


@router.get(
    "/repos/pulls",
    response_model=PullRequestListResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Repository not found"},
        422: {"model": ErrorResponse, "description": "Invalid repository or state"},
    },
)
async def list_pull_requests(
    repo: str = Query(..., description="owner/repo or GitHub URL"),
    state: str = Query("all", description="open, closed or all"),
    per_page: int = Query(30, ge=1, le=100),
    github: GitHubRestAdapter = Depends(get_github),
) -> PullRequestListResponse:
    ref = RepoRef.parse(repo)
    pulls = await github.fetch_pull_requests(ref, state=state, per_page=per_page)
    return PullRequestListResponse(
        repo=ref.full_name, pulls=[PullRequestSchema.from_entity(pr) for pr in pulls]
    )


@router.get(
    "/repos/pulls/{number}",
    response_model=PullRequestSchema,
    responses={404: {"model": ErrorResponse, "description": "Pull request not found"}},
)
async def read_pull_request(
    number: int,
    repo: str = Query(..., description="owner/repo or GitHub URL"),
    github: GitHubRestAdapter = Depends(get_github),
) -> PullRequestSchema:
    pr = await github.fetch_pull_request(RepoRef.parse(repo), number)
    return PullRequestSchema.from_entity(pr)


@router.get(
    "/repos/pulls/{number}/files",
    response_model=PullRequestFilesResponse,
    responses={404: {"model": ErrorResponse, "description": "Pull request not found"}},
)
async def pull_request_files(
    number: int,
    repo: str = Query(..., description="owner/repo or GitHub URL"),
    github: GitHubRestAdapter = Depends(get_github),
) -> PullRequestFilesResponse:
    ref = RepoRef.parse(repo)
    files = await github.fetch_pull_request_files(ref, number)
    return PullRequestFilesResponse(repo=ref.full_name, number=number, files=files)


@router.get(
    "/repos/pulls/{number}/impact",
    response_model=PullRequestImpactResponse,
    responses={404: {"model": ErrorResponse, "description": "Pull request not found"}},
)
async def pull_request_impact(
    number: int,
    repo: str = Query(..., description="owner/repo or GitHub URL"),
    github: GitHubRestAdapter = Depends(get_github),
) -> PullRequestImpactResponse:
    """Group a PR's changed files by the functional area they belong to."""
    ref = RepoRef.parse(repo)
    review = await review_pull_request(github, ref, number)
    return PullRequestImpactResponse.from_review(ref.full_name, review)


# ── Profile ─────────────────────────────────────────────────────────────────


@router.get(
    "/profile",
    response_model=ProfileSchema,
    responses={404: {"model": ErrorResponse, "description": "No profile"}},
)
async def read_profile(
    store: JsonFileProfileStore = Depends(get_profile_store),
) -> ProfileSchema:
    profile = store.get()
    if profile is None:
        raise ProfileNotFoundError("No saved profile.")
    return ProfileSchema.from_entity(profile)


@router.put("/profile", response_model=ProfileSchema)
async def save_profile(
    body: ProfileSchema,
    store: JsonFileProfileStore = Depends(get_profile_store),
) -> ProfileSchema:
    return ProfileSchema.from_entity(store.set(body.to_entity()))


@router.delete("/profile", status_code=204)
async def delete_profile(store: JsonFileProfileStore = Depends(get_profile_store)) -> None:
    store.clear()


# ── Issues ──────────────────────────────────────────────────────────────────


@router.post(
    "/issues/recommendations",
    response_model=MatchResponse,
    responses={
        404: {"model": ErrorResponse, "description": "No saved profile"},
        429: {"model": ErrorResponse, "description": "GitHub API rate limit exceeded"},
    },
)
async def recommend_issues(
    body: RecommendRequest,
    recommender: IssueRecommender = Depends(get_recommender),
) -> MatchResponse:
    """Search open issues for the stored profile and rank them."""
    results = await recommender.recommend(
        repo_filter=body.repo_filter,
        per_page=body.per_page,
        search_all_repos=body.search_all_repos,
    )
    return MatchResponse(results=results)


@router.post("/issues/match", response_model=MatchResponse)
async def match_issues(body: MatchRequest) -> MatchResponse:
    """Score caller-supplied issues against a caller-supplied profile."""
    results = match_issues_with_profile(body.issues, body.profile.to_entity())
    return MatchResponse(results=results)


@router.get("/rate-limit", response_model=RateLimitResponse)
async def rate_limit(github: GitHubRestAdapter = Depends(get_github)) -> RateLimitResponse:
    info = await github.check_rate_limit()
    return RateLimitResponse(
        limit=info.limit,
        used=info.used,
        remaining=info.remaining,
        reset=info.reset,
        percentage=info.percentage,
    )
