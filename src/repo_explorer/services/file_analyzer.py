"""Structural signal extraction: imports, exports, functions and keywords.

Regex scans only.  Misses (destructured exports, computed names, …) are
acceptable; a failing extractor yields an empty set instead of aborting
the analysis of the file.
"""

from __future__ import annotations

import logging
import re
from typing import Callable

from repo_explorer.domain.entities import FileMetadata
from repo_explorer.services.patterns import ALL_PATTERN_KEYWORDS, detect_category

logger = logging.getLogger(__name__)

_ES_IMPORT_RE = re.compile(r"""import\s+(?:[\w\s{},*]+\s+from\s+)?['"]([^'"]+)['"]""")
_REQUIRE_RE = re.compile(r"""require\s*\(\s*['"]([^'"]+)['"]\s*\)""")

_EXPORT_DECL_RE = re.compile(
    r"export\s+(?:default\s+)?(?:async\s+)?(?:function|const|let|class)\s+(\w+)"
)
_EXPORT_LIST_RE = re.compile(r"export\s+\{\s*([\w\s,]+)\s*\}")

_FUNCTION_DECL_RE = re.compile(r"function\s+(\w+)\s*\(")
_ARROW_BINDING_RE = re.compile(
    r"(?:const|let|var)\s+(\w+)\s*=\s*(?:async\s+)?\([^)]*\)\s*=>"
)

_WORD_RE = re.compile(r"[a-z]+")
_MIN_PATH_WORD = 4


def extract_imports(content: str) -> frozenset[str]:
    """Module specifiers referenced by ES ``import`` or CommonJS ``require``."""
    found = set(_ES_IMPORT_RE.findall(content))
    found.update(_REQUIRE_RE.findall(content))
    return frozenset(found)


def extract_exports(content: str) -> frozenset[str]:
    """Names exported by declaration or by an ``export { … }`` list."""
    found = set(_EXPORT_DECL_RE.findall(content))
    for group in _EXPORT_LIST_RE.findall(content):
        for item in group.split(","):
            # ``local as exported`` publishes the alias
            name = item.split(" as ")[-1].strip()
            if name:
                found.add(name)
    return frozenset(found)


def extract_functions(content: str) -> frozenset[str]:
    """Function declarations and arrow functions bound to a variable."""
    found = set(_FUNCTION_DECL_RE.findall(content))
    found.update(_ARROW_BINDING_RE.findall(content))
    return frozenset(found)


def extract_keywords(path: str, content: str) -> frozenset[str]:
    """Long path words plus any category keyword mentioned in the content."""
    found = {w for w in _WORD_RE.findall(path.lower()) if len(w) >= _MIN_PATH_WORD}
    lower = content.lower()
    found.update(k for k in ALL_PATTERN_KEYWORDS if k in lower)
    return frozenset(found)


def _safe(extractor: Callable[..., frozenset[str]], path: str, *args: str) -> frozenset[str]:
    try:
        return extractor(*args)
    except Exception:
        logger.debug("%s failed on %s, using empty set", extractor.__name__, path, exc_info=True)
        return frozenset()


def analyze_file(path: str, content: str, *, retain_content: bool = True) -> FileMetadata:
    """Build the :class:`FileMetadata` for one fetched file."""
    content = content or ""
    return FileMetadata(
        path=path,
        category=detect_category(path, content),
        content=content if retain_content else None,
        keywords=_safe(extract_keywords, path, path, content),
        imports=_safe(extract_imports, path, content),
        exports=_safe(extract_exports, path, content),
        functions=_safe(extract_functions, path, content),
    )
