from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
from loguru import logger

from gitdigest.core.config import settings
from gitdigest.services.ingestion.errors import NetworkOrProtocolError, classify_failure


@dataclass
class GitHubRateLimit:
    remaining: Optional[int]
    reset_epoch: Optional[int]


class GitHubClient:
    """
    Minimal async GitHub client: repository metadata, recursive trees, and
    raw file content from the raw-content host (no API rate limit there).

    Use as `async with GitHubClient(...) as gh:` so concurrent blob fetches
    share one connection pool.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base: Optional[str] = None,
        raw_base: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base = (base or settings.GITHUB_API_BASE).rstrip("/")
        self.raw_base = (raw_base or settings.GITHUB_RAW_BASE).rstrip("/")
        self.token = token or getattr(settings, "GITHUB_TOKEN", None)
        self.transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "GitHubClient":
        self._http = httpx.AsyncClient(
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            transport=self.transport,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, *exc) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "gitdigest/0.1",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _rate_limit(self, resp: httpx.Response) -> GitHubRateLimit:
        def _to_int(v: Optional[str]) -> Optional[int]:
            try:
                return int(v) if v is not None else None
            except ValueError:
                return None

        remaining = _to_int(resp.headers.get("x-ratelimit-remaining"))
        reset = _to_int(resp.headers.get("x-ratelimit-reset"))
        return GitHubRateLimit(remaining=remaining, reset_epoch=reset)

    async def _request(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        if self._http is None:
            raise RuntimeError("GitHubClient must be used as an async context manager")
        try:
            resp = await self._http.get(url, headers=self._headers(), params=params)
        except httpx.TimeoutException:
            raise NetworkOrProtocolError(f"Timed out fetching {url}") from None
        except httpx.TransportError as e:
            raise NetworkOrProtocolError(f"Network error fetching {url}: {e}") from None

        if resp.status_code in (403, 429):
            rl = self._rate_limit(resp)
            logger.warning(
                f"GitHub rate limit or forbidden. status={resp.status_code} "
                f"remaining={rl.remaining} reset={rl.reset_epoch} body={resp.text[:200]}"
            )

        if resp.status_code >= 400:
            raise classify_failure(
                f"GitHub error status={resp.status_code} body={resp.text[:300]}",
                resp.status_code,
            )
        return resp

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        resp = await self._request(f"{self.base}{path}", params=params)
        return resp.json()

    async def get_repo(self, owner: str, repo: str) -> Dict[str, Any]:
        return await self._get(f"/repos/{owner}/{repo}")

    async def get_tree(self, owner: str, repo: str, tree_ish: str) -> Dict[str, Any]:
        # a branch name works as tree-ish; recursive=1 returns the full listing
        return await self._get(
            f"/repos/{owner}/{repo}/git/trees/{quote(tree_ish, safe='')}",
            params={"recursive": "1"},
        )

    async def get_raw(self, owner: str, repo: str, ref: str, path: str) -> bytes:
        url = f"{self.raw_base}/{owner}/{repo}/{quote(ref, safe='')}/{quote(path)}"
        resp = await self._request(url)
        return resp.content
