from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional
from urllib.parse import quote

# don't fail at import time on hosts without a git binary; clone reports it
os.environ.setdefault("GIT_PYTHON_REFRESH", "quiet")

import git
from loguru import logger

from gitdigest.core.config import settings
from gitdigest.services.ingestion.acquirer import RepositoryAcquirer, RepositorySnapshot
from gitdigest.services.ingestion.errors import classify_failure
from gitdigest.services.ingestion.models import IngestOptions, SnapshotEntry
from gitdigest.services.ingestion.patterns import VCS_DIR
from gitdigest.services.ingestion.progress import CLONE, CLONED, CONNECT, ProgressReporter
from gitdigest.utils.repo_url import RepoReference, build_clone_url, redact_url

GIT_ENV = {
    "GIT_TERMINAL_PROMPT": "0",
    # abort transfers stalled below 1KB/s for 30s
    "GIT_HTTP_LOW_SPEED_LIMIT": "1000",
    "GIT_HTTP_LOW_SPEED_TIME": "30",
}


class DiskSnapshot(RepositorySnapshot):
    def __init__(self, root: str, entries: List[SnapshotEntry], branch: Optional[str] = None) -> None:
        super().__init__(entries, branch)
        self.root = Path(root)

    async def read_file(self, path: str) -> bytes:
        return await asyncio.to_thread((self.root / path).read_bytes)


def walk_directory(root: str) -> List[SnapshotEntry]:
    entries: List[SnapshotEntry] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d != VCS_DIR)
        rel_dir = os.path.relpath(dirpath, root)
        prefix = "" if rel_dir == "." else rel_dir.replace(os.sep, "/") + "/"

        for d in dirnames:
            entries.append(SnapshotEntry(path=prefix + d, is_directory=True))
        for name in sorted(filenames):
            full = os.path.join(dirpath, name)
            # symlinks may point outside the checkout
            if os.path.islink(full):
                continue
            entries.append(SnapshotEntry(path=prefix + name, is_directory=False, size=os.path.getsize(full)))
    return entries


def _active_branch(repo: git.Repo) -> Optional[str]:
    try:
        return repo.active_branch.name
    except (TypeError, ValueError):
        # detached HEAD
        return None


def _remove_tree(path: str) -> None:
    try:
        shutil.rmtree(path)
    except OSError as e:
        logger.warning(f"Failed to clean up temp dir {path}: {e}")


async def _settle_clone(clone: asyncio.Future, temp_dir: str) -> None:
    """Wait out a clone nobody is waiting for any more, so its target can be removed."""
    logger.info(f"Waiting for abandoned clone into {temp_dir} to finish before cleanup")
    await asyncio.wait({clone})
    if clone.cancelled():
        return
    if clone.exception() is None:
        clone.result().close()


class DiskCloneAcquirer(RepositoryAcquirer):
    """Shallow single-branch clone with the native git client into a temp dir."""

    name = "disk"

    def __init__(self, temp_root: Optional[str] = None) -> None:
        self.temp_root = temp_root

    def _clone(self, url: str, target: str, branch: Optional[str], token: Optional[str]) -> git.Repo:
        kwargs = {"depth": 1, "single_branch": True}
        if branch:
            kwargs["branch"] = branch
        try:
            return git.Repo.clone_from(url, target, env=dict(GIT_ENV), **kwargs)
        except git.exc.GitError as e:
            detail = str(e)
            if token:
                # the clone URL carries the percent-encoded form
                for secret in (quote(token, safe=""), token):
                    detail = detail.replace(secret, "***")
            raise classify_failure(detail) from None

    @asynccontextmanager
    async def acquire(
        self,
        ref: RepoReference,
        options: IngestOptions,
        progress: ProgressReporter,
    ) -> AsyncIterator[RepositorySnapshot]:
        branch = options.branch or ref.branch
        token = options.auth_token
        clone_url = build_clone_url(ref, token)

        progress.report(CONNECT, "Connecting to repository")
        temp_dir = tempfile.mkdtemp(
            prefix=f"{settings.TEMP_DIR_PREFIX}{int(time.time() * 1000)}-",
            dir=self.temp_root,
        )
        clone: Optional[asyncio.Future] = None
        try:
            progress.report(CLONE, "Cloning repository")
            logger.info(f"Cloning {redact_url(clone_url)} (branch={branch or 'default'})")
            clone = asyncio.ensure_future(asyncio.to_thread(self._clone, clone_url, temp_dir, branch, token))
            # shielded: cancelling the caller must not orphan the git worker
            repo = await asyncio.shield(clone)
            resolved = branch or _active_branch(repo)
            repo.close()

            entries = await asyncio.to_thread(walk_directory, temp_dir)
            progress.report(CLONED, "Processing files")
            yield DiskSnapshot(temp_dir, entries, resolved)
        finally:
            if clone is not None and not clone.done():
                await _settle_clone(clone, temp_dir)
            await asyncio.to_thread(_remove_tree, temp_dir)
