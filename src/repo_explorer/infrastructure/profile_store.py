"""JSON-file persistence for the user profile and the issue-result cache."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

from pydantic import TypeAdapter, ValidationError

from repo_explorer.domain.entities import GitHubIssue, UserProfile

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

PROFILE_TTL = timedelta(days=30)
ISSUE_CACHE_TTL = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _expired(stamp: datetime | None, now: datetime, ttl: timedelta) -> bool:
    if stamp is None:
        return True
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return now - stamp > ttl


def _write(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_bytes(payload)
    tmp.replace(path)


class JsonFileProfileStore:
    """Stores one :class:`UserProfile`; entries older than *ttl* are discarded on read."""

    _adapter: TypeAdapter[UserProfile] = TypeAdapter(UserProfile)

    def __init__(self, path: Path, ttl: timedelta = PROFILE_TTL, clock: Clock = _utcnow) -> None:
        self._path = Path(path)
        self._ttl = ttl
        self._clock = clock

    def get(self) -> UserProfile | None:
        if not self._path.exists():
            return None
        try:
            profile = self._adapter.validate_json(self._path.read_bytes())
        except (OSError, ValidationError):
            logger.error("Failed to read user profile from %s", self._path, exc_info=True)
            return None

        if _expired(profile.last_updated, self._clock(), self._ttl):
            logger.info("Stored profile is older than %s, discarding", self._ttl)
            self.clear()
            return None
        return profile

    def set(self, profile: UserProfile) -> UserProfile:
        """Persist *profile*, stamping ``last_updated`` with the current time."""
        stamped = dataclasses.replace(profile, last_updated=self._clock())
        _write(self._path, self._adapter.dump_json(stamped))
        return stamped

    def update(self, **changes: Any) -> UserProfile | None:
        current = self.get()
        if current is None:
            logger.warning("Cannot update: no existing profile found")
            return None
        return self.set(dataclasses.replace(current, **changes))

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)

    def has_completed(self) -> bool:
        profile = self.get()
        return bool(profile and profile.has_completed)


@dataclass(frozen=True, slots=True)
class _IssueCacheEntry:
    issues: tuple[GitHubIssue, ...]
    timestamp: datetime
    profile_hash: str


class JsonFileIssueCache:
    """Caches searched issues; invalid once stale or when the profile changes."""

    _adapter: TypeAdapter[_IssueCacheEntry] = TypeAdapter(_IssueCacheEntry)

    def __init__(self, path: Path, ttl: timedelta = ISSUE_CACHE_TTL, clock: Clock = _utcnow) -> None:
        self._path = Path(path)
        self._ttl = ttl
        self._clock = clock

    def get(self, profile_hash: str) -> list[GitHubIssue] | None:
        if not self._path.exists():
            return None
        try:
            entry = self._adapter.validate_json(self._path.read_bytes())
        except (OSError, ValidationError):
            logger.error("Failed to read issue cache from %s", self._path, exc_info=True)
            return None

        if _expired(entry.timestamp, self._clock(), self._ttl) or entry.profile_hash != profile_hash:
            self.clear()
            return None
        return list(entry.issues)

    def set(self, issues: list[GitHubIssue], profile_hash: str) -> None:
        entry = _IssueCacheEntry(
            issues=tuple(issues), timestamp=self._clock(), profile_hash=profile_hash
        )
        _write(self._path, self._adapter.dump_json(entry))

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
