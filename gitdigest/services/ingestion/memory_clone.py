from __future__ import annotations

import asyncio
import re
import stat
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Tuple

import urllib3
from dulwich.client import HttpGitClient, HTTPUnauthorized
from dulwich.errors import GitProtocolError, NotGitRepository
from dulwich.object_store import iter_tree_contents
from dulwich.objects import S_ISGITLINK
from dulwich.repo import MemoryRepo
from loguru import logger

from gitdigest.core.config import settings
from gitdigest.services.ingestion.acquirer import RepositoryAcquirer, RepositorySnapshot
from gitdigest.services.ingestion.errors import AuthenticationFailed, NotFound, classify_failure
from gitdigest.services.ingestion.models import IngestOptions, SnapshotEntry
from gitdigest.services.ingestion.progress import CLONE, CLONED, CONNECT, ProgressReporter
from gitdigest.utils.repo_url import RepoReference, clone_credentials

HEADS = b"refs/heads/"
HTTP_STATUS_RE = re.compile(r"\b([45]\d\d)\b")


def relay_url(url: str, proxy: Optional[str]) -> str:
    """Route a clone URL through a CORS relay: <proxy>/<host>/<path>."""
    if not proxy:
        return url
    return f"{proxy.rstrip('/')}/{url.split('://', 1)[-1]}"


def pick_ref(refs: Dict[bytes, bytes], branch: Optional[str]) -> Tuple[bytes, Optional[str]]:
    """(commit sha, branch name) to fetch from an advertised ref map."""
    if branch:
        sha = refs.get(HEADS + branch.encode())
        if sha is None:
            raise NotFound(f"Branch {branch!r} not found in remote repository")
        return sha, branch

    head = refs.get(b"HEAD")
    if head is None:
        raise NotFound("Remote repository has no HEAD (empty repository?)")

    # HEAD's symref target isn't always advertised; any head at the same sha will do
    for name, sha in sorted(refs.items()):
        if name.startswith(HEADS) and sha == head:
            return head, name[len(HEADS):].decode("utf-8", "replace")
    return head, None


class VirtualSnapshot(RepositorySnapshot):
    def __init__(self, repo: MemoryRepo, shas: Dict[str, bytes], entries: List[SnapshotEntry], branch: Optional[str]) -> None:
        super().__init__(entries, branch)
        self.repo = repo
        self._shas = shas

    async def read_file(self, path: str) -> bytes:
        return self.repo.object_store[self._shas[path]].as_raw_string()

    def close(self) -> None:
        self._shas.clear()
        self.entries = []
        self.repo = None


class VirtualCloneAcquirer(RepositoryAcquirer):
    """
    Shallow fetch over git smart-HTTP into an in-memory object store.
    Nothing touches the disk; the store lives only inside acquire().
    """

    name = "memory"

    def __init__(self, proxy_url: Optional[str] = None) -> None:
        self.proxy_url = proxy_url if proxy_url is not None else settings.CORS_PROXY_URL

    def _client(self, ref: RepoReference, token: Optional[str]) -> Tuple[HttpGitClient, str]:
        url = relay_url(f"{ref.url}.git", self.proxy_url)
        kwargs = {}
        if token:
            kwargs["username"], kwargs["password"] = clone_credentials(ref, token)
        return HttpGitClient(url, **kwargs), urllib3.util.parse_url(url).path or "/"

    def _fetch(self, ref: RepoReference, branch: Optional[str], token: Optional[str]) -> Tuple[MemoryRepo, bytes, Optional[str]]:
        client, path = self._client(ref, token)
        repo = MemoryRepo()
        chosen: Dict[str, object] = {}

        def determine_wants(refs, depth=None):
            sha, name = pick_ref(refs, branch)
            chosen["sha"], chosen["branch"] = sha, name
            return [sha]

        try:
            client.fetch(path, repo, determine_wants=determine_wants, depth=1)
        except HTTPUnauthorized:
            raise AuthenticationFailed(
                "Authentication failed. Check your token and repository access."
            ) from None
        except NotGitRepository:
            raise NotFound("Repository not found. Check the URL, branch and permissions.") from None
        except (GitProtocolError, urllib3.exceptions.HTTPError, OSError) as e:
            detail = str(e)
            m = HTTP_STATUS_RE.search(detail)
            raise classify_failure(detail, int(m.group(1)) if m else None) from None

        return repo, chosen["sha"], chosen["branch"]

    @staticmethod
    def _walk(repo: MemoryRepo, commit_sha: bytes) -> Tuple[List[SnapshotEntry], Dict[str, bytes]]:
        store = repo.object_store
        tree_id = store[commit_sha].tree

        entries: List[SnapshotEntry] = []
        shas: Dict[str, bytes] = {}
        dirs = set()
        for item in iter_tree_contents(store, tree_id):
            # submodules and symlinks have no content of their own here
            if S_ISGITLINK(item.mode) or stat.S_ISLNK(item.mode):
                continue
            path = item.path.decode("utf-8", "replace")
            parts = path.split("/")
            for i in range(1, len(parts)):
                dirs.add("/".join(parts[:i]))
            shas[path] = item.sha
            entries.append(SnapshotEntry(path=path, is_directory=False, size=store[item.sha].raw_length()))

        entries.extend(SnapshotEntry(path=d, is_directory=True) for d in sorted(dirs))
        return entries, shas

    @asynccontextmanager
    async def acquire(
        self,
        ref: RepoReference,
        options: IngestOptions,
        progress: ProgressReporter,
    ) -> AsyncIterator[RepositorySnapshot]:
        branch = options.branch or ref.branch
        progress.report(CONNECT, "Connecting to repository")

        snapshot: Optional[VirtualSnapshot] = None
        try:
            progress.report(CLONE, "Cloning repository")
            logger.info(f"Fetching {ref.url} into memory (branch={branch or 'default'})")
            repo, sha, resolved = await asyncio.to_thread(self._fetch, ref, branch, options.auth_token)
            entries, shas = await asyncio.to_thread(self._walk, repo, sha)
            snapshot = VirtualSnapshot(repo, shas, entries, resolved)
            progress.report(CLONED, "Processing files")
            yield snapshot
        finally:
            if snapshot is not None:
                snapshot.close()
