from __future__ import annotations

from repo_explorer.domain.entities import TreeEntry
from repo_explorer.services.file_filter import filter_code_files, is_code_file, is_excluded
from repo_explorer.services.file_prioritizer import (
    path_depth,
    prioritize_files,
    priority_score,
)

from conftest import blobs


def test_filter_keeps_source_blobs_in_tree_order() -> None:
    tree = [
        TreeEntry("src/index.ts", "blob"),
        TreeEntry("src", "tree"),
        TreeEntry("node_modules/x/index.js", "blob"),
        TreeEntry("dist/app.js", "blob"),
        TreeEntry("build/out.py", "blob"),
        TreeEntry(".next/server.js", "blob"),
        TreeEntry("README.md", "blob"),
        TreeEntry("app/main.go", "blob"),
    ]

    assert [e.path for e in filter_code_files(tree)] == ["src/index.ts", "app/main.go"]


def test_extension_and_exclusion_helpers() -> None:
    assert is_code_file("lib/mod.rs")
    assert not is_code_file("docs/guide.md")
    # Substring match, not per segment.
    assert is_excluded("src/distance.ts")
    assert not is_excluded("src/auth.ts")


def test_path_depth() -> None:
    assert path_depth("main.py") == 1
    assert path_depth("src/auth/login.ts") == 3


def test_priority_score() -> None:
    assert priority_score("src/auth/login.ts") == 22
    assert priority_score("src/utils/test_helpers.ts") == 18
    assert priority_score("main.py") == 9
    assert priority_score("a/b/c/d/e/f/g/h/i/j/k.py") == 0


def test_prioritize_is_stable_for_ties() -> None:
    ordered = prioritize_files(blobs("x.py", "y.py", "src/auth/login.ts", "z.py"))
    assert [e.path for e in ordered] == ["src/auth/login.ts", "x.py", "y.py", "z.py"]
