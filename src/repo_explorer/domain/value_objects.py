"""Value objects — self-validating domain primitives."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from repo_explorer.domain.exceptions import (
    IndexBuildCancelledError,
    InvalidInputError,
    InvalidRepositoryError,
)

_NAME = r"[A-Za-z0-9\-_.]+"

_GITHUB_URL_RE = re.compile(
    rf"^https?://(?:www\.)?github\.com/(?P<owner>{_NAME})/(?P<repo>{_NAME}?)(?:\.git)?(?:/.*)?$"
)
_SHORT_REF_RE = re.compile(rf"^(?P<owner>{_NAME})/(?P<repo>{_NAME}?)(?:\.git)?/?$")


@dataclass(frozen=True, slots=True)
class RepoRef:
    """Validated GitHub repository reference.

    Accepts either the short ``owner/repo`` form or a URL like
    ``https://github.com/psf/requests``.  Anything else is rejected before a
    single request is made.
    """

    owner: str
    repo: str

    @classmethod
    def parse(cls, value: str) -> RepoRef:
        """Parse and validate a raw ``owner/repo`` string or GitHub URL."""
        text = (value or "").strip()
        match = _GITHUB_URL_RE.match(text) or _SHORT_REF_RE.match(text)
        if not match or match["owner"] in (".", "..") or match["repo"] in (".", ".."):
            raise InvalidRepositoryError(
                f"Invalid repository: '{text}'. "
                "Expected format: owner/repo or https://github.com/owner/repo"
            )
        return cls(owner=match["owner"], repo=match["repo"])

    @classmethod
    def of(cls, owner: str, repo: str) -> RepoRef:
        return cls.parse(f"{owner}/{repo}")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def __str__(self) -> str:
        return self.full_name


def require_positive(value: int, what: str = "number") -> int:
    """Reject zero / negative issue or PR numbers up front."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidInputError(f"Invalid {what}: {value!r}. Must be a positive integer.")
    return value


@dataclass(slots=True)
class CancellationToken:
    """Cooperative cancellation flag for long-running index builds."""

    reason: str = ""
    _cancelled: bool = field(default=False, repr=False)

    def cancel(self, reason: str = "cancelled") -> None:
        self._cancelled = True
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise IndexBuildCancelledError(f"Index build {self.reason or 'cancelled'}.")
