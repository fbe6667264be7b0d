from __future__ import annotations

from typing import Iterable, List

from gitdigest.services.ingestion.models import FileRecord, TreeEntry

TREE_HEADER = "Directory structure:"
BRANCH = "├── "
LAST = "└── "
INDENT = "    "


def sort_entries(entries: Iterable[TreeEntry]) -> List[TreeEntry]:
    # directories first, then lexicographic by full relative path
    return sorted(set(entries), key=lambda e: (not e.is_directory, e.path))


def derive_entries(files: Iterable[FileRecord]) -> List[TreeEntry]:
    """Tree entries for the kept files plus every ancestor directory."""
    entries = set()
    for f in files:
        entries.add(TreeEntry(path=f.path, is_directory=False))
        parts = f.path.split("/")
        for i in range(1, len(parts)):
            entries.add(TreeEntry(path="/".join(parts[:i]), is_directory=True))
    return sort_entries(entries)


def build_tree(entries: Iterable[TreeEntry], root_label: str) -> str:
    lines = [TREE_HEADER, f"{LAST}{root_label}/"]
    for e in sort_entries(entries):
        depth = e.path.count("/")
        name = e.path.rsplit("/", 1)[-1]
        suffix = "/" if e.is_directory else ""
        lines.append(f"{INDENT * depth}{BRANCH}{name}{suffix}")
    return "\n".join(lines)
