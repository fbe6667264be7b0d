from __future__ import annotations

import asyncio
from typing import AsyncIterator, Optional, Union

from loguru import logger

from gitdigest.core.config import settings
from gitdigest.services.ingestion.acquirer import RepositoryAcquirer, decode_content, load_gitignore, select_files
from gitdigest.services.ingestion.content import aggregate
from gitdigest.services.ingestion.models import FileRecord, IngestOptions, IngestResult
from gitdigest.services.ingestion.progress import DONE, FILES_DONE, ProgressCallback, ProgressEvent, ProgressReporter
from gitdigest.services.ingestion.summary import estimate_tokens, summarize
from gitdigest.services.ingestion.tree import build_tree, derive_entries
from gitdigest.utils.repo_url import resolve

STRATEGIES = ("disk", "memory", "api")


def get_acquirer(name: Optional[str] = None) -> RepositoryAcquirer:
    name = (name or settings.ACQUISITION_STRATEGY).lower()
    if name == "disk":
        from gitdigest.services.ingestion.disk_clone import DiskCloneAcquirer
        return DiskCloneAcquirer()
    if name == "memory":
        from gitdigest.services.ingestion.memory_clone import VirtualCloneAcquirer
        return VirtualCloneAcquirer()
    if name == "api":
        from gitdigest.services.ingestion.remote_api import RemoteApiAcquirer
        return RemoteApiAcquirer()
    raise ValueError(f"Unknown acquisition strategy {name!r} (expected one of {', '.join(STRATEGIES)})")


async def _run(
    reference: str,
    options: IngestOptions,
    progress: ProgressReporter,
    acquirer: Optional[RepositoryAcquirer],
) -> IngestResult:
    # resolve before any network call so malformed input fails fast
    ref = resolve(reference)
    acquirer = acquirer or get_acquirer()
    logger.info(f"Ingesting {ref.short_url} from {ref.host} via {acquirer.name}")

    async with acquirer.acquire(ref, options, progress) as snapshot:
        gitignore = await load_gitignore(snapshot, options)
        selected = select_files(snapshot.entries, options, subpath=ref.subpath, gitignore=gitignore)
        blobs = await snapshot.read_files([e.path for e in selected], progress)
        branch = snapshot.branch

    files = [FileRecord(path=e.path, size=e.size, content=decode_content(blobs[e.path])) for e in selected]
    progress.report(FILES_DONE, "Finalizing digest")

    tree = build_tree(derive_entries(files), ref.repo)
    content = aggregate(files)
    summary = summarize(ref, files, branch=branch)
    token_count = estimate_tokens(f"{tree}\n{content}")

    progress.report(DONE, "Done")
    logger.info(f"Ingested {ref.short_url}: {len(files)} files, tokens={token_count or 'n/a'}")

    return IngestResult(
        repo_url=ref.url,
        short_repo_url=ref.short_url,
        summary=summary,
        tree=tree,
        content=content,
        token_count=token_count,
        branch=branch,
    )


async def ingest(
    reference: str,
    options: IngestOptions,
    on_progress: Optional[ProgressCallback] = None,
    acquirer: Optional[RepositoryAcquirer] = None,
) -> IngestResult:
    """
    Turn a repository reference into a digest.

    `on_progress(current, total)` sees non-decreasing values out of 100.
    Raises an IngestError subclass on failure.
    """
    return await _run(reference, options, ProgressReporter(callback=on_progress), acquirer)


async def ingest_events(
    reference: str,
    options: IngestOptions,
    acquirer: Optional[RepositoryAcquirer] = None,
) -> AsyncIterator[Union[ProgressEvent, IngestResult]]:
    """Progress events as they happen, then the IngestResult as the last item."""
    queue: asyncio.Queue = asyncio.Queue()
    task = asyncio.create_task(_run(reference, options, ProgressReporter(queue=queue), acquirer))
    try:
        while True:
            getter = asyncio.ensure_future(queue.get())
            await asyncio.wait({getter, task}, return_when=asyncio.FIRST_COMPLETED)
            if getter.done():
                yield getter.result()
                continue
            getter.cancel()
            break
        while not queue.empty():
            yield queue.get_nowait()
        yield task.result()
    finally:
        if not task.done():
            task.cancel()
