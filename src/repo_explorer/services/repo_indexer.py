"""Fetch the most important source files of a repository and bucket them.

Files are fetched in fixed-size batches, strictly in priority order.  Every
fetch in a batch runs concurrently; the batch is awaited as a whole before
any of its files is filed, so bucket order never depends on which request
finished first.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from repo_explorer.domain.entities import (
    BinaryContent,
    IndexedFile,
    IndexOutcome,
    IndexReport,
    RepoIndex,
    SkippedFile,
    TreeEntry,
)
from repo_explorer.domain.exceptions import FileNotFoundInRepoError, RepoExplorerError
from repo_explorer.domain.ports.repo_fetcher import ContentFetcher
from repo_explorer.domain.value_objects import CancellationToken, RepoRef
from repo_explorer.services.file_analyzer import analyze_file
from repo_explorer.services.file_filter import filter_code_files
from repo_explorer.services.file_prioritizer import prioritize_files

logger = logging.getLogger(__name__)

MAX_INDEXED_FILES = 150
BATCH_SIZE = 10


class RepoIndexer:
    """Builds a :class:`RepoIndex` from a tree listing.

    Parameters
    ----------
    fetcher:
        Anything that can return the content of a single file.
    max_files:
        Hard cap on content requests per build (rate-limit protection).
    batch_size:
        Number of concurrent content requests per batch.
    retain_content:
        Keep raw file text on the indexed metadata.
    """

    def __init__(
        self,
        fetcher: ContentFetcher,
        max_files: int = MAX_INDEXED_FILES,
        batch_size: int = BATCH_SIZE,
        retain_content: bool = True,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self._fetcher = fetcher
        self._max_files = max(0, max_files)
        self._batch_size = batch_size
        self._retain_content = retain_content

    # ── Public entry points ─────────────────────────────────────────────

    async def build(
        self,
        tree: Sequence[TreeEntry],
        owner: str,
        repo: str,
        branch: str = "main",
        cancel_token: CancellationToken | None = None,
    ) -> RepoIndex:
        """Return the populated index (files that failed are simply absent)."""
        report = await self.build_with_report(tree, owner, repo, branch, cancel_token)
        return report.index

    async def build_with_report(
        self,
        tree: Sequence[TreeEntry],
        owner: str,
        repo: str,
        branch: str = "main",
        cancel_token: CancellationToken | None = None,
    ) -> IndexReport:
        """Like :meth:`build` but also reports which files were skipped and why."""
        ref = RepoRef.of(owner, repo)
        selected = self.select_files(tree)
        logger.info(
            "Indexing %d of %d tree entries from %s@%s",
            len(selected), len(tree), ref.full_name, branch,
        )

        index = RepoIndex.empty()
        skipped: list[SkippedFile] = []
        analysed = 0

        for start in range(0, len(selected), self._batch_size):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            batch = selected[start : start + self._batch_size]
            outcomes = await asyncio.gather(
                *(self._index_one(ref, entry.path, branch) for entry in batch)
            )

            for outcome in outcomes:
                if isinstance(outcome, IndexedFile):
                    index.add(outcome.metadata)
                    analysed += 1
                else:
                    skipped.append(outcome)

            logger.info("Analysed %d/%d files", analysed, len(selected))

        logger.info("Index complete for %s: %s", ref.full_name, index.counts())
        return IndexReport(index=index, selected=len(selected), skipped=tuple(skipped))

    def select_files(self, tree: Sequence[TreeEntry]) -> list[TreeEntry]:
        """Source files worth fetching, best first, capped at ``max_files``."""
        return prioritize_files(filter_code_files(tree))[: self._max_files]

    # ── Per-file work ───────────────────────────────────────────────────

    async def _index_one(self, ref: RepoRef, path: str, branch: str) -> IndexOutcome:
        try:
            content = await self._fetcher.fetch_file_content(ref, path, branch)
        except FileNotFoundInRepoError:
            logger.debug("File %s vanished from %s, skipping", path, ref.full_name)
            return SkippedFile(path=path, reason="not found")
        except RepoExplorerError as exc:
            logger.warning("Failed to fetch %s: %s", path, exc)
            return SkippedFile(path=path, reason=str(exc) or type(exc).__name__)
        except Exception as exc:
            logger.warning("Failed to fetch %s", path, exc_info=True)
            return SkippedFile(path=path, reason=f"{type(exc).__name__}: {exc}")

        if isinstance(content, BinaryContent):
            return SkippedFile(path=path, reason="binary file")

        try:
            metadata = analyze_file(path, content, retain_content=self._retain_content)
        except Exception as exc:
            logger.warning("Failed to analyse %s", path, exc_info=True)
            return SkippedFile(path=path, reason=f"analysis failed: {exc}")

        return IndexedFile(metadata)


async def build_repo_index(
    fetcher: ContentFetcher,
    tree: Sequence[TreeEntry],
    owner: str,
    repo: str,
    branch: str = "main",
    *,
    cancel_token: CancellationToken | None = None,
    max_files: int = MAX_INDEXED_FILES,
    batch_size: int = BATCH_SIZE,
) -> RepoIndex:
    """Convenience wrapper around :class:`RepoIndexer`."""
    indexer = RepoIndexer(fetcher, max_files=max_files, batch_size=batch_size)
    return await indexer.build(tree, owner, repo, branch, cancel_token)
