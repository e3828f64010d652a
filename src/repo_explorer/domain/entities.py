"""Domain entities — pure data structures with no external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Iterator, Union


class FileCategory(str, Enum):
    """Functional category assigned to a source file by keyword heuristic."""

    AUTH = "auth"
    PAYMENT = "payment"
    API = "api"
    DATABASE = "database"
    TESTING = "testing"
    CONFIG = "config"
    OTHER = "other"


class IndexBucket(str, Enum):
    """Named collection inside a :class:`RepoIndex`, one per category."""

    AUTHENTICATION = "authentication"
    PAYMENTS = "payments"
    API = "api"
    DATABASE = "database"
    TESTING = "testing"
    CONFIG = "config"
    OTHER = "other"


BUCKET_FOR_CATEGORY: dict[FileCategory, IndexBucket] = {
    FileCategory.AUTH: IndexBucket.AUTHENTICATION,
    FileCategory.PAYMENT: IndexBucket.PAYMENTS,
    FileCategory.API: IndexBucket.API,
    FileCategory.DATABASE: IndexBucket.DATABASE,
    FileCategory.TESTING: IndexBucket.TESTING,
    FileCategory.CONFIG: IndexBucket.CONFIG,
    FileCategory.OTHER: IndexBucket.OTHER,
}


def bucket_for(category: FileCategory) -> IndexBucket:
    """Return the bucket a category is filed under (``other`` if unmapped)."""
    return BUCKET_FOR_CATEGORY.get(category, IndexBucket.OTHER)


@dataclass(frozen=True, slots=True)
class TreeEntry:
    """A single node from the GitHub tree API (blob or sub-tree)."""

    path: str
    type: str  # "blob" or "tree"
    size: int = 0
    sha: str = ""


@dataclass(frozen=True, slots=True)
class RepoMetadata:
    """High-level metadata about a GitHub repository."""

    owner: str
    repo: str
    default_branch: str
    description: str | None = None


@dataclass(frozen=True, slots=True)
class BinaryContent:
    """Returned instead of text when the fetched file is binary."""

    path: str
    download_url: str = ""


@dataclass(frozen=True, slots=True)
class FileMetadata:
    """Structural signals extracted from one source file."""

    path: str
    category: FileCategory
    content: str | None = None
    keywords: frozenset[str] = frozenset()
    imports: frozenset[str] = frozenset()
    exports: frozenset[str] = frozenset()
    functions: frozenset[str] = frozenset()
    score: int | None = None


@dataclass(frozen=True, slots=True)
class IndexedFile:
    """Indexing outcome: the file was fetched and analysed."""

    metadata: FileMetadata

    @property
    def path(self) -> str:
        return self.metadata.path


@dataclass(frozen=True, slots=True)
class SkippedFile:
    """Indexing outcome: the file was left out of the index."""

    path: str
    reason: str


IndexOutcome = Union[IndexedFile, SkippedFile]


@dataclass
class RepoIndex:
    """Categorised files of one repository@branch.

    Buckets keep discovery order.  A fresh instance is assembled for every
    index build and only handed out once complete.
    """

    buckets: dict[IndexBucket, list[FileMetadata]] = field(
        default_factory=lambda: {bucket: [] for bucket in IndexBucket}
    )

    @classmethod
    def empty(cls) -> RepoIndex:
        return cls()

    @classmethod
    def from_files(cls, files: Iterable[FileMetadata]) -> RepoIndex:
        index = cls()
        for metadata in files:
            index.add(metadata)
        return index

    def add(self, metadata: FileMetadata) -> IndexBucket:
        """File *metadata* into the bucket matching its category."""
        bucket = bucket_for(metadata.category)
        self.buckets.setdefault(bucket, []).append(metadata)
        return bucket

    def bucket(self, bucket: IndexBucket) -> list[FileMetadata]:
        return self.buckets.get(bucket, [])

    def all_files(self) -> list[FileMetadata]:
        """Every indexed file, bucket by bucket in declaration order."""
        return [f for bucket in IndexBucket for f in self.bucket(bucket)]

    def counts(self) -> dict[str, int]:
        return {bucket.value: len(self.bucket(bucket)) for bucket in IndexBucket}

    @property
    def is_empty(self) -> bool:
        return not any(self.buckets.values())

    def __len__(self) -> int:
        return sum(len(files) for files in self.buckets.values())

    def __iter__(self) -> Iterator[FileMetadata]:
        return iter(self.all_files())


@dataclass(frozen=True, slots=True)
class IndexReport:
    """Full result of an index build, including skipped files."""

    index: RepoIndex
    selected: int
    skipped: tuple[SkippedFile, ...] = ()


# ── User profile ────────────────────────────────────────────────────────────


class KnowledgeLevel(str, Enum):
    """Self-rated proficiency, ordered beginner < … < expert."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    @classmethod
    def max_level(cls, levels: Iterable[KnowledgeLevel]) -> KnowledgeLevel:
        """Highest level in *levels*; ``beginner`` when there are none."""
        return max(levels, key=lambda level: level.rank, default=cls.BEGINNER)


_LEVEL_RANK: dict[KnowledgeLevel, int] = {
    KnowledgeLevel.BEGINNER: 1,
    KnowledgeLevel.INTERMEDIATE: 2,
    KnowledgeLevel.ADVANCED: 3,
    KnowledgeLevel.EXPERT: 4,
}


@dataclass(frozen=True, slots=True)
class TechStackEntry:
    """One rated technology in a user's profile."""

    name: str
    knowledge_level: KnowledgeLevel = KnowledgeLevel.BEGINNER


@dataclass(frozen=True, slots=True)
class UserProfile:
    """Self-reported skills used to rank issues."""

    skills: tuple[str, ...] = ()
    tech_stack: tuple[TechStackEntry, ...] = ()
    has_completed: bool = False
    last_updated: datetime | None = None

    @property
    def max_knowledge_level(self) -> KnowledgeLevel:
        return KnowledgeLevel.max_level(t.knowledge_level for t in self.tech_stack)


# ── Issues ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class IssueLabel:
    name: str
    color: str = "000000"


@dataclass(frozen=True, slots=True)
class IssueAuthor:
    login: str = "unknown"
    avatar_url: str = ""


@dataclass(frozen=True, slots=True)
class IssueRepo:
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True, slots=True)
class GitHubIssue:
    """Snapshot of an open issue returned by issue search."""

    id: int
    number: int
    title: str
    updated_at: datetime
    created_at: datetime | None = None
    body: str | None = None
    labels: tuple[IssueLabel, ...] = ()
    comments: int = 0
    state: str = "open"
    html_url: str = ""
    repository_url: str = ""
    user: IssueAuthor = field(default_factory=IssueAuthor)
    score: float | None = None
    repo: IssueRepo | None = None


@dataclass(frozen=True, slots=True)
class IssueMatchResult:
    """An issue annotated with its match score against a profile."""

    issue: GitHubIssue
    match_score: int
    match_reasons: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RateLimitInfo:
    """Snapshot of the GitHub core API rate limit."""

    limit: int
    used: int
    remaining: int
    reset: datetime

    @property
    def percentage(self) -> int:
        if self.limit <= 0:
            return 0
        return round(self.remaining / self.limit * 100)


# ── Pull requests ───────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class PullRequestFile:
    """One file changed by a pull request."""

    filename: str
    status: str  # added, removed, modified, renamed, …
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: str | None = None


@dataclass(frozen=True, slots=True)
class PullRequest:
    """A pull request as listed, plus detail fields when fetched singly."""

    number: int
    title: str
    state: str  # "open" or "closed" as reported by GitHub
    user: IssueAuthor = field(default_factory=IssueAuthor)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    merged_at: datetime | None = None
    draft: bool = False
    labels: tuple[IssueLabel, ...] = ()
    html_url: str = ""
    body: str | None = None
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    commits: int = 0
    head_ref: str = ""
    base_ref: str = ""

    @property
    def status(self) -> str:
        """``merged`` once merged, otherwise the open/closed state."""
        return "merged" if self.merged_at is not None else self.state


@dataclass(frozen=True, slots=True)
class PullRequestReview:
    """A pull request, its changed files and those files grouped by bucket."""

    pull_request: PullRequest
    files: tuple[PullRequestFile, ...]
    impact: dict[IndexBucket, list[str]]
