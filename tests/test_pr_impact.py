from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from repo_explorer.domain.entities import IndexBucket, PullRequest, PullRequestFile
from repo_explorer.domain.exceptions import InvalidInputError
from repo_explorer.domain.value_objects import RepoRef
from repo_explorer.services.pr_impact import (
    categorize_changed_files,
    review_pull_request,
    touched_buckets,
)

REF = RepoRef("acme", "shop")


def test_changed_files_land_in_index_buckets() -> None:
    impact = categorize_changed_files(
        [
            "src/auth/login.ts",
            "src/payments/stripe.ts",
            "src/api/users.ts",
            "prisma/schema.prisma",
            "tests/cart.test.ts",
            ".env.example",
            "README.md",
        ]
    )

    assert impact == {
        IndexBucket.AUTHENTICATION: ["src/auth/login.ts"],
        IndexBucket.PAYMENTS: ["src/payments/stripe.ts"],
        IndexBucket.API: ["src/api/users.ts"],
        IndexBucket.DATABASE: ["prisma/schema.prisma"],
        IndexBucket.TESTING: ["tests/cart.test.ts"],
        IndexBucket.CONFIG: [".env.example"],
        IndexBucket.OTHER: ["README.md"],
    }


def test_first_matching_category_wins() -> None:
    impact = categorize_changed_files(["tests/login.test.ts"])

    assert impact[IndexBucket.AUTHENTICATION] == ["tests/login.test.ts"]
    assert impact[IndexBucket.TESTING] == []


def test_touched_buckets_keep_declaration_order() -> None:
    impact = categorize_changed_files(["README.md", "src/auth/jwt.ts"])

    assert touched_buckets(impact) == [IndexBucket.AUTHENTICATION, IndexBucket.OTHER]
    assert touched_buckets(categorize_changed_files([])) == []


@pytest.mark.asyncio
async def test_review_pull_request() -> None:
    fetcher = AsyncMock()
    fetcher.fetch_pull_request.return_value = PullRequest(
        number=12, title="Rework checkout", state="closed", merged_at=None
    )
    fetcher.fetch_pull_request_files.return_value = [
        PullRequestFile(filename="src/payments/checkout.ts", status="modified"),
        PullRequestFile(filename="src/lib/money.ts", status="added"),
    ]

    review = await review_pull_request(fetcher, REF, 12)

    fetcher.fetch_pull_request.assert_awaited_once_with(REF, 12)
    fetcher.fetch_pull_request_files.assert_awaited_once_with(REF, 12)
    assert review.pull_request.status == "closed"
    assert len(review.files) == 2
    assert review.impact[IndexBucket.PAYMENTS] == ["src/payments/checkout.ts"]
    assert review.impact[IndexBucket.OTHER] == ["src/lib/money.ts"]


@pytest.mark.asyncio
async def test_review_rejects_non_positive_number() -> None:
    fetcher = AsyncMock()

    with pytest.raises(InvalidInputError):
        await review_pull_request(fetcher, REF, 0)
    fetcher.fetch_pull_request.assert_not_awaited()
