from __future__ import annotations

from typing import Iterable, List, Tuple

from gitdigest.services.ingestion.models import FileRecord

SEPARATOR = "=" * 48
FILE_PREFIX = "File: "


def aggregate(files: Iterable[FileRecord]) -> str:
    parts: List[str] = []
    for f in files:
        parts.extend([SEPARATOR, f"{FILE_PREFIX}{f.path}", SEPARATOR, f.content, ""])
    return "\n".join(parts)


def parse_digest(text: str) -> List[Tuple[str, str]]:
    """
    Split aggregated content back into ordered (path, content) pairs.
    Anything before the first file header (e.g. a tree) is ignored.
    """
    lines = text.split("\n")
    out: List[Tuple[str, str]] = []
    i = 0
    n = len(lines)
    while i < n:
        if (
            i + 2 < n
            and lines[i] == SEPARATOR
            and lines[i + 1].startswith(FILE_PREFIX)
            and lines[i + 2] == SEPARATOR
        ):
            path = lines[i + 1][len(FILE_PREFIX):]
            j = i + 3
            while j < n and not (
                j + 2 < n
                and lines[j] == SEPARATOR
                and lines[j + 1].startswith(FILE_PREFIX)
                and lines[j + 2] == SEPARATOR
            ):
                j += 1
            body = lines[i + 3:j]
            # each block ends with the blank line aggregate() appends
            if body and body[-1] == "":
                body = body[:-1]
            out.append((path, "\n".join(body)))
            i = j
        else:
            i += 1
    return out
