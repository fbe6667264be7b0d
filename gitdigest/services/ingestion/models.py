from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

BINARY_SENTINEL = "[Binary file]"


@dataclass
class IngestOptions:
    max_file_size: int  # bytes
    include_patterns: List[str] = field(default_factory=list)
    exclude_patterns: List[str] = field(default_factory=list)
    auth_token: Optional[str] = None
    branch: Optional[str] = None
    respect_gitignore: bool = True


@dataclass(frozen=True)
class TreeEntry:
    path: str
    is_directory: bool


@dataclass(frozen=True)
class SnapshotEntry:
    """One path of an acquired repository, before any filtering."""
    path: str
    is_directory: bool
    size: int = 0


@dataclass(frozen=True)
class FileRecord:
    path: str
    size: int
    content: str


@dataclass(frozen=True)
class IngestResult:
    repo_url: str
    short_repo_url: str
    summary: str
    tree: str
    content: str
    token_count: Optional[str] = None
    branch: Optional[str] = None
