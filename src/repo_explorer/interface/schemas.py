"""Pydantic request / response DTOs for the API boundary."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from repo_explorer.domain.entities import (
    FileMetadata,
    GitHubIssue,
    IndexBucket,
    IssueMatchResult,
    KnowledgeLevel,
    PullRequest,
    PullRequestFile,
    PullRequestReview,
    TechStackEntry,
    UserProfile,
)
from repo_explorer.services.explore_repo import RepoSession


class LoadRepoRequest(BaseModel):
    """Request body for ``POST /repos/load``."""

    repo: str
    branch: str | None = None

    @field_validator("repo")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            msg = "repo must not be empty."
            raise ValueError(msg)
        return stripped


class RepoStateResponse(BaseModel):
    repo: str | None
    branch: str
    is_indexing: bool
    error: str | None
    indexed_files: int
    buckets: dict[str, int]
    tree: str

    @classmethod
    def from_session(cls, session: RepoSession) -> RepoStateResponse:
        return cls(
            repo=session.current_repo,
            branch=session.current_branch,
            is_indexing=session.is_indexing,
            error=session.error,
            indexed_files=len(session.repo_index),
            buckets=session.repo_index.counts(),
            tree=session.tree_structure,
        )


class QueryRequest(BaseModel):
    """Request body for ``POST /repos/query``."""

    query: str = Field(min_length=1)
    limit: int | None = Field(default=None, ge=1, le=50)


class FileResult(BaseModel):
    path: str
    category: str
    score: int | None
    keywords: list[str]
    imports: list[str]
    exports: list[str]
    functions: list[str]

    @classmethod
    def from_entity(cls, f: FileMetadata) -> FileResult:
        return cls(
            path=f.path,
            category=f.category.value,
            score=f.score,
            keywords=sorted(f.keywords),
            imports=sorted(f.imports),
            exports=sorted(f.exports),
            functions=sorted(f.functions),
        )


class QueryResponse(BaseModel):
    query: str
    results: list[FileResult]


class TreeResponse(BaseModel):
    repo: str | None
    tree: str


class ReadmeResponse(BaseModel):
    repo: str
    branch: str
    content: str


class PackageJsonResponse(BaseModel):
    repo: str
    branch: str
    package: dict[str, Any]


class PullRequestSchema(BaseModel):
    """Pull request with its effective status (``merged`` wins over ``closed``)."""

    number: int
    title: str
    state: str
    status: str
    author: str
    draft: bool
    created_at: datetime | None
    updated_at: datetime | None
    merged_at: datetime | None
    html_url: str
    labels: list[str]
    body: str | None
    additions: int
    deletions: int
    changed_files: int
    commits: int
    head_ref: str
    base_ref: str

    @classmethod
    def from_entity(cls, pr: PullRequest) -> PullRequestSchema:
        return cls(
            number=pr.number,
            title=pr.title,
            state=pr.state,
            status=pr.status,
            author=pr.user.login,
            draft=pr.draft,
            created_at=pr.created_at,
            updated_at=pr.updated_at,
            merged_at=pr.merged_at,
            html_url=pr.html_url,
            labels=[label.name for label in pr.labels],
            body=pr.body,
            additions=pr.additions,
            deletions=pr.deletions,
            changed_files=pr.changed_files,
            commits=pr.commits,
            head_ref=pr.head_ref,
            base_ref=pr.base_ref,
        )


class PullRequestListResponse(BaseModel):
    repo: str
    pulls: list[PullRequestSchema]


class PullRequestFilesResponse(BaseModel):
    repo: str
    number: int
    files: list[PullRequestFile]


class PullRequestImpactResponse(BaseModel):
    """Changed files of a PR grouped by index bucket."""

    repo: str
    pull_request: PullRequestSchema
    files: list[PullRequestFile]
    impact: dict[str, list[str]]

    @classmethod
    def from_review(cls, repo: str, review: PullRequestReview) -> PullRequestImpactResponse:
        return cls(
            repo=repo,
            pull_request=PullRequestSchema.from_entity(review.pull_request),
            files=list(review.files),
            impact={bucket.value: review.impact.get(bucket, []) for bucket in IndexBucket},
        )


class TechStackSchema(BaseModel):
    name: str = Field(min_length=1)
    knowledge_level: KnowledgeLevel = KnowledgeLevel.BEGINNER


class ProfileSchema(BaseModel):
    """User profile as exchanged with clients."""

    skills: list[str] = Field(default_factory=list)
    tech_stack: list[TechStackSchema] = Field(default_factory=list)
    has_completed: bool = False
    last_updated: datetime | None = None

    @field_validator("tech_stack")
    @classmethod
    def _one_entry_per_tech(cls, v: list[TechStackSchema]) -> list[TechStackSchema]:
        # Re-rating a technology replaces the earlier entry
        by_name: dict[str, TechStackSchema] = {}
        for entry in v:
            by_name.pop(entry.name.lower(), None)
            by_name[entry.name.lower()] = entry
        return list(by_name.values())

    def to_entity(self) -> UserProfile:
        return UserProfile(
            skills=tuple(dict.fromkeys(s.strip() for s in self.skills if s.strip())),
            tech_stack=tuple(
                TechStackEntry(name=t.name, knowledge_level=t.knowledge_level)
                for t in self.tech_stack
            ),
            has_completed=self.has_completed,
            last_updated=self.last_updated,
        )

    @classmethod
    def from_entity(cls, profile: UserProfile) -> ProfileSchema:
        return cls(
            skills=list(profile.skills),
            tech_stack=[
                TechStackSchema(name=t.name, knowledge_level=t.knowledge_level)
                for t in profile.tech_stack
            ],
            has_completed=profile.has_completed,
            last_updated=profile.last_updated,
        )


class RecommendRequest(BaseModel):
    """Request body for ``POST /issues/recommendations``."""

    repo_filter: str | None = None
    per_page: int = Field(default=10, ge=1, le=100)
    search_all_repos: bool = False


class MatchRequest(BaseModel):
    """Request body for ``POST /issues/match`` (stateless scoring)."""

    issues: list[GitHubIssue]
    profile: ProfileSchema


class MatchResponse(BaseModel):
    results: list[IssueMatchResult]


class RateLimitResponse(BaseModel):
    limit: int
    used: int
    remaining: int
    reset: datetime
    percentage: int


class ErrorResponse(BaseModel):
    """Standard error envelope returned on all failure paths."""

    status: str = "error"
    message: str
