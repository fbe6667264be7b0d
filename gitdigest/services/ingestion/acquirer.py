from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncContextManager, Dict, Iterable, List, Optional, Sequence

import pathspec
from loguru import logger

from gitdigest.services.ingestion.errors import IngestError
from gitdigest.services.ingestion.models import BINARY_SENTINEL, IngestOptions, SnapshotEntry
from gitdigest.services.ingestion.patterns import (
    DEFAULT_IGNORE_PATTERNS,
    GITIGNORE,
    gitignore_spec,
    is_excluded,
    is_vcs_path,
    should_include,
)
from gitdigest.services.ingestion.progress import CLONED, FILES_DONE, ProgressReporter
from gitdigest.utils.repo_url import RepoReference


class RepositorySnapshot(ABC):
    """A read-only view of one ref of a repository, valid inside acquire()."""

    def __init__(self, entries: List[SnapshotEntry], branch: Optional[str] = None) -> None:
        self.entries = entries
        self.branch = branch

    @abstractmethod
    async def read_file(self, path: str) -> bytes:
        ...

    async def read_files(self, paths: Sequence[str], progress: ProgressReporter) -> Dict[str, bytes]:
        out: Dict[str, bytes] = {}
        for i, path in enumerate(paths, start=1):
            out[path] = await self.read_file(path)
            progress.span(CLONED, FILES_DONE, i, len(paths), "Processing files")
        return out


class RepositoryAcquirer(ABC):
    name: str = "abstract"

    @abstractmethod
    def acquire(
        self,
        ref: RepoReference,
        options: IngestOptions,
        progress: ProgressReporter,
    ) -> AsyncContextManager[RepositorySnapshot]:
        """
        Obtain a shallow snapshot of `ref`. Temporary storage lives exactly
        as long as the returned context and is released on any exit path.
        """


def _in_subpath(path: str, subpath: Optional[str]) -> bool:
    if not subpath:
        return True
    root = subpath.strip("/")
    return path == root or path.startswith(root + "/")


def _ancestors(path: str) -> List[str]:
    parts = path.split("/")
    return ["/".join(parts[:i]) for i in range(1, len(parts))]


def select_files(
    entries: Iterable[SnapshotEntry],
    options: IngestOptions,
    subpath: Optional[str] = None,
    default_patterns: Sequence[str] = DEFAULT_IGNORE_PATTERNS,
    gitignore: Optional[pathspec.PathSpec] = None,
) -> List[SnapshotEntry]:
    """
    Files that survive VCS skipping, subpath scoping, the repository's own
    .gitignore, pattern filtering and the size limit, sorted by path.
    Excluded directories prune everything below them; include patterns only
    ever select files.
    """
    kept: List[SnapshotEntry] = []
    skipped_large = 0

    for e in entries:
        if e.is_directory or is_vcs_path(e.path):
            continue
        if not _in_subpath(e.path, subpath):
            continue
        if gitignore is not None and gitignore.match_file(e.path):
            continue
        if any(is_excluded(d, default_patterns, options.exclude_patterns) for d in _ancestors(e.path)):
            continue
        if not should_include(e.path, default_patterns, options.exclude_patterns, options.include_patterns):
            continue
        if e.size > options.max_file_size:
            skipped_large += 1
            continue
        kept.append(e)

    if skipped_large:
        logger.debug(f"Skipped {skipped_large} files over {options.max_file_size} bytes")
    return sorted(kept, key=lambda e: e.path)


def decode_content(data: bytes) -> str:
    if b"\x00" in data:
        return BINARY_SENTINEL
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return BINARY_SENTINEL


async def load_gitignore(snapshot: RepositorySnapshot, options: IngestOptions) -> Optional[pathspec.GitIgnoreSpec]:
    """The snapshot's root .gitignore, or None when absent, unreadable or disabled."""
    if not options.respect_gitignore:
        return None
    if not any(e.path == GITIGNORE and not e.is_directory for e in snapshot.entries):
        return None

    try:
        data = await snapshot.read_file(GITIGNORE)
    except (IngestError, OSError) as e:
        logger.warning(f"Ignoring unreadable {GITIGNORE}: {e}")
        return None

    text = decode_content(data)
    if text == BINARY_SENTINEL:
        return None
    return gitignore_spec(text)
