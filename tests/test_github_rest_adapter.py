from __future__ import annotations

import base64

import httpx
import pytest

from repo_explorer.domain.entities import BinaryContent
from repo_explorer.domain.exceptions import (
    ContentExtractionError,
    EmptyRepositoryError,
    FileNotFoundInRepoError,
    GitHubAuthenticationError,
    GitHubRateLimitError,
    InvalidInputError,
    PullRequestNotFoundError,
    RepositoryAccessDeniedError,
    RepositoryNotFoundError,
    SecondaryRateLimitError,
)
from repo_explorer.domain.value_objects import RepoRef
from repo_explorer.infrastructure.github_rest_adapter import GitHubRestAdapter, is_binary_path
from repo_explorer.services.issue_query import IssueSearchParams, build_issue_query

REF = RepoRef("acme", "shop")
SECONDARY = {"message": "You have exceeded a secondary rate limit. Please wait."}


class FakeSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _adapter(handler, token: str | None = None, **kwargs) -> GitHubRestAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("sleep", FakeSleep())
    return GitHubRestAdapter(client, token, **kwargs)


def _file_payload(text: str, path: str = "src/app.py") -> dict:
    encoded = base64.b64encode(text.encode()).decode()
    # GitHub wraps base64 content at 60 characters.
    wrapped = "\n".join(encoded[i : i + 60] for i in range(0, len(encoded), 60))
    return {
        "type": "file",
        "path": path,
        "encoding": "base64",
        "content": wrapped,
        "download_url": f"https://raw.example.test/{path}",
    }


def _search_item(number: int, **extra) -> dict:
    item = {
        "id": 100 + number,
        "number": number,
        "title": f"Issue {number}",
        "html_url": f"https://github.com/acme/shop/issues/{number}",
        "repository_url": "https://api.github.com/repos/acme/shop",
        "labels": [{"name": "good first issue", "color": "7057ff"}, "bug"],
        "state": "open",
        "created_at": "2026-10-01T00:00:00Z",
        "updated_at": "2026-10-15T00:00:00Z",
        "comments": 2,
        "user": {"login": "octocat", "avatar_url": ""},
    }
    item.update(extra)
    return item


# ── Repository endpoints ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_fetch_metadata_and_auth_header() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"default_branch": "develop", "description": "Shop"})

    metadata = await _adapter(handler, token="secret").fetch_metadata(REF)

    assert metadata.default_branch == "develop"
    assert seen[0].url.path == "/repos/acme/shop"
    assert seen[0].headers["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_fetch_tree() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/repos/acme/shop/git/trees/main"
        assert request.url.params["recursive"] == "1"
        return httpx.Response(
            200,
            json={
                "tree": [
                    {"path": "src", "type": "tree", "sha": "t1"},
                    {"path": "src/app.py", "type": "blob", "size": 12, "sha": "b1"},
                ]
            },
        )

    tree = await _adapter(handler).fetch_tree(REF, "main")

    assert [(e.path, e.type, e.size) for e in tree] == [("src", "tree", 0), ("src/app.py", "blob", 12)]


@pytest.mark.asyncio
async def test_fetch_tree_errors() -> None:
    empty = _adapter(lambda request: httpx.Response(200, json={"tree": []}))
    missing = _adapter(lambda request: httpx.Response(404, json={"message": "Not Found"}))

    with pytest.raises(EmptyRepositoryError):
        await empty.fetch_tree(REF, "main")
    with pytest.raises(RepositoryNotFoundError, match="branch nope"):
        await missing.fetch_tree(REF, "nope")


@pytest.mark.asyncio
async def test_fetch_file_content_decodes_base64() -> None:
    text = "def main():\n    print('hello from a file long enough to wrap')\n"
    adapter = _adapter(lambda request: httpx.Response(200, json=_file_payload(text)))

    assert await adapter.fetch_file_content(REF, "src/app.py", "main") == text


@pytest.mark.asyncio
async def test_fetch_file_content_falls_back_to_master() -> None:
    refs: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        refs.append(request.url.params["ref"])
        if request.url.params["ref"] == "main":
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(200, json=_file_payload("x = 1"))

    assert await _adapter(handler).fetch_file_content(REF, "src/app.py", "main") == "x = 1"
    assert refs == ["main", "master"]


@pytest.mark.asyncio
async def test_missing_file_on_other_branch_is_not_retried() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.params["ref"])
        return httpx.Response(404, json={"message": "Not Found"})

    with pytest.raises(FileNotFoundInRepoError):
        await _adapter(handler).fetch_file_content(REF, "src/app.py", "develop")
    assert calls == ["develop"]


@pytest.mark.asyncio
async def test_binary_and_directory_content() -> None:
    image = _adapter(lambda request: httpx.Response(200, json=_file_payload("", "logo.png")))
    directory = _adapter(lambda request: httpx.Response(200, json=[{"path": "src/a.py"}]))

    result = await image.fetch_file_content(REF, "logo.png", "main")
    assert isinstance(result, BinaryContent)
    assert result.download_url == "https://raw.example.test/logo.png"

    with pytest.raises(ContentExtractionError, match="directory"):
        await directory.fetch_file_content(REF, "src", "main")


@pytest.mark.asyncio
async def test_large_file_uses_download_url() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "raw.example.test":
            return httpx.Response(200, text="big = True\n")
        return httpx.Response(
            200,
            json={
                "type": "file",
                "encoding": "none",
                "content": "",
                "download_url": "https://raw.example.test/big.py",
            },
        )

    assert await _adapter(handler).fetch_file_content(REF, "big.py", "main") == "big = True\n"


@pytest.mark.asyncio
async def test_fetch_readme_tries_variants() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/contents/README"):
            return httpx.Response(200, json=_file_payload("# Shop", "README"))
        return httpx.Response(404, json={"message": "Not Found"})

    assert await _adapter(handler).fetch_readme(REF, "dev") == "# Shop"


@pytest.mark.parametrize(
    ("status", "headers", "body", "error"),
    [
        (401, {}, {"message": "Bad credentials"}, GitHubAuthenticationError),
        (403, {"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1700000000"},
         {"message": "Forbidden"}, GitHubRateLimitError),
        (429, {}, {"message": "Too many"}, GitHubRateLimitError),
        (403, {}, {"message": "Forbidden"}, RepositoryAccessDeniedError),
        (500, {}, {"message": "oops"}, ContentExtractionError),
    ],
)
@pytest.mark.asyncio
async def test_error_translation(status, headers, body, error) -> None:
    adapter = _adapter(lambda request: httpx.Response(status, headers=headers, json=body))

    with pytest.raises(error) as excinfo:
        await adapter.fetch_metadata(REF)
    assert not isinstance(excinfo.value, SecondaryRateLimitError)


@pytest.mark.asyncio
async def test_network_errors_are_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ContentExtractionError, match="Network error"):
        await _adapter(handler).fetch_metadata(REF)


def test_is_binary_path() -> None:
    assert is_binary_path("assets/Logo.PNG")
    assert not is_binary_path("Makefile")
    assert not is_binary_path("src/app.py")


# ── Issue search ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_search_issues_maps_items_and_drops_pull_requests() -> None:
    params = IssueSearchParams(languages=("Python",), per_page=5)
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        items = [_search_item(1), _search_item(2, pull_request={"url": "x"})]
        return httpx.Response(200, json={"items": items})

    issues = await _adapter(handler).search_issues(params)

    assert seen[0].url.params["q"] == build_issue_query(params)
    assert seen[0].url.params["per_page"] == "5"
    assert [i.number for i in issues] == [1]
    issue = issues[0]
    assert [label.name for label in issue.labels] == ["good first issue", "bug"]
    assert issue.repo is not None and issue.repo.full_name == "acme/shop"
    assert issue.user.login == "octocat"
    assert issue.updated_at.year == 2026


@pytest.mark.asyncio
async def test_search_results_are_cached() -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(200, json={"items": [_search_item(1)]})

    adapter = _adapter(handler)
    params = IssueSearchParams(languages=("Go",))

    await adapter.search_issues(params)
    await adapter.search_issues(params)

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_secondary_rate_limit_backs_off_then_succeeds() -> None:
    responses = [
        httpx.Response(403, json=SECONDARY),
        httpx.Response(403, json=SECONDARY),
        httpx.Response(200, json={"items": [_search_item(1)]}),
    ]
    sleep = FakeSleep()
    adapter = _adapter(lambda request: responses.pop(0), sleep=sleep)

    issues = await adapter.search_issues(IssueSearchParams())

    assert len(issues) == 1
    assert sleep.delays == [2.0, 4.0]


@pytest.mark.asyncio
async def test_secondary_rate_limit_gives_up_after_retries() -> None:
    sleep = FakeSleep()
    adapter = _adapter(lambda request: httpx.Response(403, json=SECONDARY), sleep=sleep)

    with pytest.raises(SecondaryRateLimitError, match="multiple retries"):
        await adapter.search_issues(IssueSearchParams())
    assert sleep.delays == [2.0, 4.0]


@pytest.mark.asyncio
async def test_search_rejects_non_positive_page_size() -> None:
    adapter = _adapter(lambda request: httpx.Response(200, json={"items": []}))

    with pytest.raises(InvalidInputError):
        await adapter.search_issues(IssueSearchParams(per_page=0))


@pytest.mark.asyncio
async def test_check_rate_limit() -> None:
    payload = {"rate": {"limit": 60, "used": 55, "remaining": 5, "reset": 1700000000}}
    adapter = _adapter(lambda request: httpx.Response(200, json=payload))

    info = await adapter.check_rate_limit()

    assert (info.limit, info.used, info.remaining) == (60, 55, 5)
    assert info.percentage == 8
    assert info.reset.year == 2023


@pytest.mark.asyncio
async def test_stale_search_entries_are_evicted() -> None:
    now = [0.0]
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.params["q"])
        return httpx.Response(200, json={"items": [_search_item(1)]})

    adapter = _adapter(handler, clock=lambda: now[0], search_cache_ttl=300)
    go = IssueSearchParams(languages=("Go",))
    rust = IssueSearchParams(languages=("Rust",))

    await adapter.search_issues(go)
    now[0] = 400.0
    await adapter.search_issues(rust)

    assert list(adapter._search_cache) == [rust.cache_key()]

    await adapter.search_issues(go)

    assert len(calls) == 3
    assert len(adapter._search_cache) == 2


# ── Pull requests ───────────────────────────────────────────────────────────


def _pull(number: int, **extra) -> dict:
    item = {
        "number": number,
        "title": f"PR {number}",
        "state": "closed",
        "user": {"login": "octocat", "avatar_url": ""},
        "created_at": "2026-10-01T00:00:00Z",
        "updated_at": "2026-10-02T00:00:00Z",
        "merged_at": None,
        "draft": False,
        "labels": [{"name": "enhancement", "color": "a2eeef"}],
        "html_url": f"https://github.com/acme/shop/pull/{number}",
    }
    item.update(extra)
    return item


@pytest.mark.asyncio
async def test_fetch_pull_requests() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200, json=[_pull(7, merged_at="2026-10-03T00:00:00Z"), _pull(6), _pull(5, state="open")]
        )

    pulls = await _adapter(handler).fetch_pull_requests(REF, state="all", per_page=3)

    assert seen[0].url.path == "/repos/acme/shop/pulls"
    assert seen[0].url.params["state"] == "all"
    assert seen[0].url.params["per_page"] == "3"
    assert seen[0].url.params["sort"] == "updated"
    assert [(pr.number, pr.status) for pr in pulls] == [
        (7, "merged"),
        (6, "closed"),
        (5, "open"),
    ]
    assert pulls[0].labels[0].name == "enhancement"
    assert pulls[0].user.login == "octocat"


@pytest.mark.asyncio
async def test_fetch_pull_requests_rejects_unknown_state() -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(200, json=[])

    with pytest.raises(InvalidInputError, match="state"):
        await _adapter(handler).fetch_pull_requests(REF, state="merged")
    assert calls == []


@pytest.mark.asyncio
async def test_fetch_pull_request_detail() -> None:
    detail = _pull(
        42,
        state="open",
        body="Adds login",
        additions=10,
        deletions=2,
        changed_files=3,
        commits=4,
        head={"ref": "feature/login", "sha": "abc"},
        base={"ref": "main", "sha": "def"},
    )

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/repos/acme/shop/pulls/42"
        return httpx.Response(200, json=detail)

    pr = await _adapter(handler).fetch_pull_request(REF, 42)

    assert (pr.number, pr.status, pr.changed_files, pr.commits) == (42, "open", 3, 4)
    assert (pr.head_ref, pr.base_ref) == ("feature/login", "main")


@pytest.mark.asyncio
async def test_missing_pull_request() -> None:
    adapter = _adapter(lambda request: httpx.Response(404, json={"message": "Not Found"}))

    with pytest.raises(PullRequestNotFoundError, match="PR #9 not found in acme/shop"):
        await adapter.fetch_pull_request(REF, 9)
    with pytest.raises(PullRequestNotFoundError):
        await adapter.fetch_pull_request_files(REF, 9)


@pytest.mark.parametrize("number", [0, -3])
@pytest.mark.asyncio
async def test_non_positive_pull_request_number_makes_no_request(number: int) -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(200, json={})

    adapter = _adapter(handler)

    with pytest.raises(InvalidInputError):
        await adapter.fetch_pull_request(REF, number)
    with pytest.raises(InvalidInputError):
        await adapter.fetch_pull_request_files(REF, number)
    assert calls == []


@pytest.mark.asyncio
async def test_fetch_pull_request_files() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/repos/acme/shop/pulls/42/files"
        assert request.url.params["per_page"] == "100"
        return httpx.Response(
            200,
            json=[
                {"filename": "src/auth/login.ts", "status": "modified", "additions": 3,
                 "deletions": 1, "changes": 4, "patch": "@@ -1 +1 @@"},
                {"filename": "docs/guide.md", "status": "added", "additions": 9,
                 "deletions": 0, "changes": 9},
            ],
        )

    files = await _adapter(handler).fetch_pull_request_files(REF, 42)

    assert [(f.filename, f.status, f.changes) for f in files] == [
        ("src/auth/login.ts", "modified", 4),
        ("docs/guide.md", "added", 9),
    ]
    assert files[1].patch is None


# ── package.json ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_fetch_package_json() -> None:
    manifest = '{"name": "shop", "dependencies": {"react": "^18.2.0"}}'
    adapter = _adapter(lambda request: httpx.Response(200, json=_file_payload(manifest, "package.json")))

    package = await adapter.fetch_package_json(REF, "dev")

    assert package["dependencies"] == {"react": "^18.2.0"}


@pytest.mark.asyncio
async def test_invalid_package_json() -> None:
    adapter = _adapter(lambda request: httpx.Response(200, json=_file_payload("{oops", "package.json")))

    with pytest.raises(ContentExtractionError, match="not valid JSON"):
        await adapter.fetch_package_json(REF, "dev")
