from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Sequence

import httpx
from loguru import logger

from gitdigest.core.config import settings
from gitdigest.services.ingestion.acquirer import RepositoryAcquirer, RepositorySnapshot
from gitdigest.services.ingestion.errors import NotFound, UnsupportedProvider
from gitdigest.services.ingestion.github_client import GitHubClient
from gitdigest.services.ingestion.models import IngestOptions, SnapshotEntry
from gitdigest.services.ingestion.progress import CLONE, CLONED, CONNECT, FILES_DONE, ProgressReporter
from gitdigest.utils.repo_url import RepoReference


def tree_to_entries(tree: Dict) -> List[SnapshotEntry]:
    entries: List[SnapshotEntry] = []
    for it in tree.get("tree", []):
        kind = it.get("type")
        path = it.get("path") or ""
        if kind == "tree":
            entries.append(SnapshotEntry(path=path, is_directory=True))
        elif kind == "blob":
            entries.append(SnapshotEntry(path=path, is_directory=False, size=it.get("size") or 0))
        # "commit" items are submodules
    return entries


class ApiSnapshot(RepositorySnapshot):
    def __init__(
        self,
        gh: GitHubClient,
        ref: RepoReference,
        branch: str,
        entries: List[SnapshotEntry],
        batch_size: int,
    ) -> None:
        super().__init__(entries, branch)
        self.gh = gh
        self.ref = ref
        self.batch_size = max(1, batch_size)

    async def read_file(self, path: str) -> bytes:
        return await self.gh.get_raw(self.ref.owner, self.ref.repo, self.branch, path)

    async def read_files(self, paths: Sequence[str], progress: ProgressReporter) -> Dict[str, bytes]:
        out: Dict[str, bytes] = {}
        total = len(paths)
        # fixed-width batches, run one after another
        for start in range(0, total, self.batch_size):
            batch = paths[start:start + self.batch_size]
            blobs = await asyncio.gather(*(self.read_file(p) for p in batch))
            out.update(zip(batch, blobs))
            progress.span(CLONED, FILES_DONE, start + len(batch), total, "Processing files")
        return out


class RemoteApiAcquirer(RepositoryAcquirer):
    """GitHub tree listing plus raw blob downloads; no clone at all."""

    name = "api"

    def __init__(
        self,
        batch_size: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.batch_size = batch_size or settings.BLOB_FETCH_BATCH_SIZE
        self.transport = transport

    @asynccontextmanager
    async def acquire(
        self,
        ref: RepoReference,
        options: IngestOptions,
        progress: ProgressReporter,
    ) -> AsyncIterator[RepositorySnapshot]:
        if ref.provider != "github":
            raise UnsupportedProvider(f"The API strategy only supports GitHub, not {ref.host}")

        progress.report(CONNECT, "Connecting to repository")
        async with GitHubClient(token=options.auth_token, transport=self.transport) as gh:
            branch = options.branch or ref.branch
            if not branch:
                info = await gh.get_repo(ref.owner, ref.repo)
                branch = info.get("default_branch")
                if not branch:
                    raise NotFound(f"Could not resolve default branch of {ref.short_url}")

            progress.report(CLONE, "Listing repository")
            tree = await gh.get_tree(ref.owner, ref.repo, branch)
            if tree.get("truncated"):
                logger.warning(f"Tree listing for {ref.short_url}@{branch} was truncated by GitHub")

            entries = tree_to_entries(tree)
            progress.report(CLONED, "Processing files")
            yield ApiSnapshot(gh, ref, branch, entries, self.batch_size)
