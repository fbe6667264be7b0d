from __future__ import annotations

from functools import lru_cache
from typing import Iterable, Optional

import tiktoken
from loguru import logger

from gitdigest.core.config import settings
from gitdigest.services.ingestion.models import FileRecord
from gitdigest.utils.repo_url import RepoReference


def summarize(ref: RepoReference, files: Iterable[FileRecord], branch: Optional[str] = None) -> str:
    files = list(files)
    total_size = sum(f.size for f in files)
    return "\n".join([
        f"Repository: {ref.short_url}",
        f"Provider: {ref.provider}",
        f"Host: {ref.host}",
        f"Branch: {branch or ref.branch or 'default'}",
        f"Files analyzed: {len(files)}",
        f"Total size: {total_size / 1024:.2f} KB",
    ])


@lru_cache(maxsize=4)
def _encoding(name: str):
    return tiktoken.get_encoding(name)


def format_token_count(total: int) -> str:
    if total >= 1_000_000:
        return f"{total / 1_000_000:.1f}M"
    if total >= 1_000:
        return f"{total / 1_000:.1f}k"
    return str(total)


def estimate_tokens(text: str, encoding: Optional[str] = None) -> Optional[str]:
    """Formatted token estimate, or None when no estimate is available."""
    try:
        enc = _encoding(encoding or settings.TOKENIZER_ENCODING)
        # repository text may contain literal special tokens; count them as text
        tokens = enc.encode(text, disallowed_special=())
    except Exception as e:
        logger.warning(f"Token estimation failed: {e}")
        return None
    return format_token_count(len(tokens))
