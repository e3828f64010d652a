"""ASCII tree rendering of a flat path listing."""

from __future__ import annotations

from typing import Iterable, Optional

_Node = dict[str, Optional["_Node"]]  # ``None`` marks a file

_BRANCH = "├── "
_LAST = "└── "
_PIPE = "│   "
_SPACE = "    "
_FOLDER = "📁 "
_FILE = "📄 "

EMPTY_TREE = "No files found"


def _build(paths: Iterable[str]) -> _Node:
    root: _Node = {}
    for path in paths:
        parts = [p for p in path.split("/") if p]
        current = root
        for i, part in enumerate(parts):
            is_leaf = i == len(parts) - 1
            if current.get(part) is None and not (is_leaf and part in current):
                current[part] = None if is_leaf else {}
            child = current[part]
            if child is None:
                break
            current = child
    return root


def _render(node: _Node, prefix: str, depth: int, max_depth: int, out: list[str]) -> None:
    if depth >= max_depth:
        return
    names = sorted(node, key=lambda name: (name.lower(), name))
    for i, name in enumerate(names):
        child = node[name]
        is_last = i == len(names) - 1
        icon = _FILE if child is None else _FOLDER
        out.append(f"{prefix}{_LAST if is_last else _BRANCH}{icon}{name}")
        if child is not None:
            _render(child, prefix + (_SPACE if is_last else _PIPE), depth + 1, max_depth, out)


def generate_tree_diagram(paths: Iterable[str], max_depth: int = 4) -> str:
    """Render *paths* as a nested tree, at most *max_depth* levels deep.

    Siblings sort alphabetically; folders and files are not grouped.
    """
    paths = list(paths or [])
    if not paths:
        return EMPTY_TREE
    lines: list[str] = []
    _render(_build(paths), "", 0, max_depth, lines)
    return "\n".join(lines).strip()
