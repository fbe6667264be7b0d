from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple
from urllib.parse import quote, unquote, urlparse, urlsplit, urlunsplit

from gitdigest.services.ingestion.errors import InvalidReference

DEFAULT_HOST = "github.com"

PROVIDERS = ("github", "gitlab", "bitbucket", "gitea", "codeberg")

BRANCH_MARKERS = ("tree", "blob", "-")


@dataclass(frozen=True)
class RepoReference:
    host: str
    owner: str
    repo: str
    branch: Optional[str] = None
    subpath: Optional[str] = None

    @property
    def provider(self) -> str:
        return detect_provider(self.host)

    @property
    def url(self) -> str:
        return f"https://{self.host}/{self.owner}/{self.repo}"

    @property
    def short_url(self) -> str:
        return f"{self.owner}/{self.repo}"


def detect_provider(host: str) -> str:
    h = (host or "").lower()
    for name in PROVIDERS:
        if name in h:
            return name
    return "unknown"


def _to_url(s: str) -> str:
    if s.lower().startswith(("http://", "https://")):
        return s

    if "/" not in s or any(ch.isspace() for ch in s):
        raise InvalidReference(f"Invalid repository reference: {s!r}")

    # bare host+path, e.g. gitlab.com/group/project
    if "." in s.split("/", 1)[0]:
        return "https://" + s

    # short owner/repo form
    return f"https://{DEFAULT_HOST}/{s}"


def resolve(raw: str) -> RepoReference:
    """
    Parse a free-form repository reference:
    - https://host/owner/repo[/tree|blob|-/<branch>[/<subpath>]]
    - host/owner/repo (scheme assumed https)
    - owner/repo (GitHub assumed)
    """
    s = (raw or "").strip().rstrip("/")
    if s.endswith(".git"):
        s = s[:-4]
    if not s:
        raise InvalidReference("Repository reference is empty")

    u = urlparse(_to_url(s))
    host = (u.hostname or "").lower()
    if not host:
        raise InvalidReference(f"Invalid repository reference: {raw!r}")

    parts = [unquote(p) for p in (u.path or "").split("/") if p]
    if len(parts) < 2:
        raise InvalidReference("Invalid repository URL (missing owner/repo)")

    owner, repo, rest = parts[0], parts[1], parts[2:]
    if repo.endswith(".git"):
        repo = repo[:-4]
    if not owner or not repo:
        raise InvalidReference("Invalid repository URL (missing owner/repo)")

    # GitLab puts tree/blob behind a "-" segment
    if len(rest) >= 2 and rest[0] == "-" and rest[1] in ("tree", "blob"):
        rest = rest[1:]

    branch = None
    subpath = None
    if len(rest) >= 2 and rest[0] in BRANCH_MARKERS:
        branch = rest[1]
        if len(rest) > 2:
            subpath = "/".join(rest[2:])

    return RepoReference(host=host, owner=owner, repo=repo, branch=branch, subpath=subpath)


def clone_credentials(ref: RepoReference, token: str) -> Tuple[str, Optional[str]]:
    """(username, password) pair each provider expects for token auth."""
    provider = ref.provider
    if provider == "gitlab":
        return "oauth2", token
    if provider == "bitbucket":
        return "x-token-auth", token
    # github and unknown hosts take the token as a bare username
    return token, None


def build_clone_url(ref: RepoReference, token: Optional[str] = None) -> str:
    """Clone URL with the token embedded the way each provider expects it."""
    if not token:
        return f"{ref.url}.git"

    username, password = clone_credentials(ref, token)
    userinfo = quote(username, safe="")
    if password is not None:
        userinfo += ":" + quote(password, safe="")

    return f"https://{userinfo}@{ref.host}/{ref.owner}/{ref.repo}.git"


def redact_url(url: str) -> str:
    parts = urlsplit(url)
    if "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, f"***@{host}", parts.path, parts.query, parts.fragment))
