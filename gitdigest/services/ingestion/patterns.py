from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, List, Optional, Sequence

import pathspec

VCS_DIR = ".git"
GITIGNORE = ".gitignore"

DEFAULT_IGNORE_PATTERNS: List[str] = [
    ".git",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".next",
    ".vscode",
    ".idea",
    "dist",
    "build",
    "*.pyc",
    "*.log",
    ".DS_Store",
    "*.svg",
    "*.png",
    "*.jpg",
    "*.jpeg",
    "*.gif",
    "*.ico",
    "*.pdf",
    "package-lock.json",
    "yarn.lock",
    ".pnpm-store",
    "bun.lock",
    "poetry.lock",
]


class GlobPattern:
    """
    A user glob compiled for path matching.

    `*` matches any run of characters (slashes included), `?` exactly one,
    everything else is literal. A path matches when the compiled regex
    matches it in full, or when the pattern's literal text (wildcards
    removed) occurs anywhere in it, so partial paths like `docs/` work too.
    """

    __slots__ = ("raw", "regex", "literal")

    def __init__(self, raw: str) -> None:
        self.raw = raw
        self.regex = re.compile(_glob_to_regex(raw))
        self.literal = raw.replace("*", "").replace("?", "")

    def matches(self, path: str) -> bool:
        if self.regex.fullmatch(path):
            return True
        return bool(self.literal) and self.literal in path

    def __repr__(self) -> str:
        return f"GlobPattern({self.raw!r})"


def _glob_to_regex(pattern: str) -> str:
    out = []
    for ch in pattern:
        if ch == "*":
            out.append(".*")
        elif ch == "?":
            out.append(".")
        else:
            out.append(re.escape(ch))
    return "".join(out)


@lru_cache(maxsize=512)
def compile_pattern(raw: str) -> GlobPattern:
    return GlobPattern(raw)


def _any_match(path: str, patterns: Optional[Iterable[str]]) -> bool:
    return any(compile_pattern(p).matches(path) for p in (patterns or ()) if p)


def is_vcs_path(path: str) -> bool:
    return path == VCS_DIR or path.startswith(VCS_DIR + "/")


def is_excluded(
    path: str,
    default_patterns: Sequence[str] = DEFAULT_IGNORE_PATTERNS,
    exclude_patterns: Optional[Sequence[str]] = None,
) -> bool:
    return _any_match(path, default_patterns) or _any_match(path, exclude_patterns)


def should_include(
    path: str,
    default_patterns: Sequence[str] = DEFAULT_IGNORE_PATTERNS,
    exclude_patterns: Optional[Sequence[str]] = None,
    include_patterns: Optional[Sequence[str]] = None,
) -> bool:
    # deny first: default ignores and excludes win over any include match
    if is_excluded(path, default_patterns, exclude_patterns):
        return False
    includes = [p for p in (include_patterns or ()) if p]
    if includes:
        return _any_match(path, includes)
    return True


def parse_patterns(text: Optional[str]) -> List[str]:
    """Split a comma/whitespace separated pattern field into a list."""
    if not text:
        return []
    return [p for p in re.split(r"[,\s]+", text) if p]


def gitignore_spec(text: str) -> pathspec.GitIgnoreSpec:
    """Compile a repository's root .gitignore with git's own matching rules."""
    return pathspec.GitIgnoreSpec.from_lines(text.splitlines())
