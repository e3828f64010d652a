"""File filtering — decide which tree entries are source code worth indexing."""

from __future__ import annotations

from typing import Iterable

from repo_explorer.domain.entities import TreeEntry

CODE_EXTENSIONS: tuple[str, ...] = (
    ".ts", ".tsx", ".js", ".jsx",
    ".py",
    ".java",
    ".go",
    ".rs",
    ".rb",
    ".php",
)

# Substring match on the whole path, not per segment.
EXCLUDED_FRAGMENTS: tuple[str, ...] = (
    "node_modules",
    "dist",
    "build",
    ".next",
)


def is_code_file(path: str) -> bool:
    """Return *True* if *path* has a recognised source-code extension."""
    return path.endswith(CODE_EXTENSIONS)


def is_excluded(path: str) -> bool:
    """Return *True* for vendored or generated output paths."""
    return any(fragment in path for fragment in EXCLUDED_FRAGMENTS)


def should_index(entry: TreeEntry) -> bool:
    if entry.type != "blob":
        return False
    return is_code_file(entry.path) and not is_excluded(entry.path)


def filter_code_files(tree: Iterable[TreeEntry]) -> list[TreeEntry]:
    """Keep source blobs outside excluded directories, preserving tree order."""
    return [entry for entry in tree if should_index(entry)]
