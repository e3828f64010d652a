"""Pull-request impact — which functional areas a change touches.

Changed files are classified by path alone with the same keyword table the
indexer uses, so a PR's impact lines up with the buckets of the loaded
repository index.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from repo_explorer.domain.entities import (
    FileCategory,
    IndexBucket,
    PullRequestReview,
    bucket_for,
)
from repo_explorer.domain.ports.pull_request_fetcher import PullRequestFetcher
from repo_explorer.domain.value_objects import RepoRef, require_positive
from repo_explorer.services.patterns import match_category

logger = logging.getLogger(__name__)


def categorize_changed_files(filenames: Iterable[str]) -> dict[IndexBucket, list[str]]:
    """Group *filenames* by bucket; every bucket is present, possibly empty."""
    impact: dict[IndexBucket, list[str]] = {bucket: [] for bucket in IndexBucket}
    for filename in filenames:
        category = match_category(filename) or FileCategory.OTHER
        impact[bucket_for(category)].append(filename)
    return impact


def touched_buckets(impact: dict[IndexBucket, list[str]]) -> list[IndexBucket]:
    return [bucket for bucket in IndexBucket if impact.get(bucket)]


async def review_pull_request(
    fetcher: PullRequestFetcher, ref: RepoRef, number: int
) -> PullRequestReview:
    """Fetch a PR with its changed files and work out the areas it touches."""
    require_positive(number, "pull request number")
    pull_request, files = await asyncio.gather(
        fetcher.fetch_pull_request(ref, number),
        fetcher.fetch_pull_request_files(ref, number),
    )
    impact = categorize_changed_files(f.filename for f in files)
    logger.info(
        "PR #%d in %s touches %s",
        number,
        ref.full_name,
        ", ".join(b.value for b in touched_buckets(impact)) or "nothing",
    )
    return PullRequestReview(pull_request=pull_request, files=tuple(files), impact=impact)
