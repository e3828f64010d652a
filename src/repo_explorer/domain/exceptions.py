"""Domain exception hierarchy.

Each exception maps to a specific HTTP status code at the interface layer.
Inner layers raise these; the outermost error-handler translates them.
"""

from __future__ import annotations


class RepoExplorerError(Exception):
    """Base exception for the entire application."""


# ── Input validation ────────────────────────────────────────────────────────


class InvalidInputError(RepoExplorerError):
    """Malformed caller input, rejected before any network call."""


class InvalidRepositoryError(InvalidInputError):
    """The supplied ``owner/repo`` reference is malformed."""


# ── GitHub API errors ───────────────────────────────────────────────────────


class RepositoryNotFoundError(RepoExplorerError):
    """The repository or branch does not exist or is not accessible (404)."""


class FileNotFoundInRepoError(RepoExplorerError):
    """A file path does not exist in the repository at the given branch."""


class PullRequestNotFoundError(RepoExplorerError):
    """The pull request number does not exist in the repository (404)."""


class RepositoryAccessDeniedError(RepoExplorerError):
    """Access to the repository was denied (403)."""


class GitHubAuthenticationError(RepoExplorerError):
    """The configured GitHub token was rejected (401)."""


class EmptyRepositoryError(RepoExplorerError):
    """The repository exists but has no content (empty tree)."""


class GitHubRateLimitError(RepoExplorerError):
    """GitHub API rate limit exceeded (429 / 403 with rate-limit header)."""


class SecondaryRateLimitError(GitHubRateLimitError):
    """GitHub secondary (abuse) rate limit, typical for search queries."""


# ── Processing errors ───────────────────────────────────────────────────────


class ContentExtractionError(RepoExplorerError):
    """Failed to fetch or decode repository content."""


class IndexBuildCancelledError(RepoExplorerError):
    """An in-flight index build was cancelled by its caller."""


# ── Session state ───────────────────────────────────────────────────────────


class NoRepositoryLoadedError(RepoExplorerError):
    """A query was made before any repository was indexed."""


class ProfileNotFoundError(RepoExplorerError):
    """No (unexpired) user profile has been saved."""
