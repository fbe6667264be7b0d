from contextlib import asynccontextmanager
from typing import Dict, List, Optional

import pytest

from gitdigest.services.ingestion import summary
from gitdigest.services.ingestion.acquirer import RepositoryAcquirer, RepositorySnapshot
from gitdigest.services.ingestion.models import IngestOptions, SnapshotEntry


class WhitespaceEncoding:
    """Stands in for a tiktoken encoding: one token per whitespace-separated word."""

    def encode(self, text, disallowed_special=()):
        return text.split()


@pytest.fixture(autouse=True)
def offline_tokenizer(monkeypatch):
    # tiktoken downloads its BPE files on first use; keep tests offline
    monkeypatch.setattr(summary, "_encoding", lambda name: WhitespaceEncoding())


class FakeSnapshot(RepositorySnapshot):
    def __init__(self, files: Dict[str, bytes], branch: Optional[str] = "main", extra: List[SnapshotEntry] = ()):
        entries = [SnapshotEntry(path=p, is_directory=False, size=len(b)) for p, b in files.items()]
        super().__init__(entries + list(extra), branch)
        self.files = files
        self.reads: List[str] = []

    async def read_file(self, path: str) -> bytes:
        self.reads.append(path)
        return self.files[path]


class FakeAcquirer(RepositoryAcquirer):
    name = "fake"

    def __init__(self, files: Dict[str, bytes], branch: Optional[str] = "main", error: Optional[Exception] = None):
        self.files = files
        self.branch = branch
        self.error = error
        self.snapshot: Optional[FakeSnapshot] = None
        self.ref = None
        self.released = False

    @asynccontextmanager
    async def acquire(self, ref, options, progress):
        self.ref = ref
        progress.report(0, "Connecting to repository")
        try:
            if self.error is not None:
                raise self.error
            progress.report(50, "Processing files")
            self.snapshot = FakeSnapshot(self.files, self.branch)
            yield self.snapshot
        finally:
            self.released = True


@pytest.fixture
def make_acquirer():
    return FakeAcquirer


@pytest.fixture
def hello_world_files():
    return {
        "README": b"Hello World!\n",
        "src/app.py": b"print('hi')\n",
        "src/util/helpers.py": b"def helper():\n    return 1\n",
        "docs/guide.md": b"# Guide\n",
        "assets/logo.png": b"\x89PNG\r\n\x1a\n\x00\x00",
        "data/blob.bin": b"\xff\xfe\x00binary",
        "node_modules/left-pad/index.js": b"module.exports = 1\n",
    }


@pytest.fixture
def options():
    return IngestOptions(max_file_size=50 * 1024)
