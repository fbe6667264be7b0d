import asyncio

import httpx
import pytest

from gitdigest.services.ingestion.errors import AuthenticationFailed, NetworkOrProtocolError, NotFound, UnsupportedProvider
from gitdigest.services.ingestion.models import IngestOptions
from gitdigest.services.ingestion.progress import ProgressReporter
from gitdigest.services.ingestion.remote_api import RemoteApiAcquirer
from gitdigest.services.ingestion.runner import ingest
from gitdigest.utils.repo_url import resolve

FILES = {f"src/f{i:02d}.py": f"value = {i}\n".encode() for i in range(12)}


class FakeGitHub:
    """Serves the handful of GitHub endpoints the API strategy calls."""

    def __init__(self, files=FILES, default_branch="main", status=None):
        self.files = files
        self.default_branch = default_branch
        self.status = status
        self.requests = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status is not None:
            return httpx.Response(self.status, text="nope")

        host, path = request.url.host, request.url.path
        if host == "api.github.com" and path == "/repos/octocat/Hello-World":
            return httpx.Response(200, json={"default_branch": self.default_branch})
        if host == "api.github.com" and path.startswith("/repos/octocat/Hello-World/git/trees/"):
            tree = [{"path": "src", "type": "tree"}]
            tree += [{"path": p, "type": "blob", "size": len(b)} for p, b in self.files.items()]
            tree.append({"path": "huge.bin", "type": "blob", "size": 10_000_000})
            tree.append({"path": "lib", "type": "commit"})
            return httpx.Response(200, json={"sha": "t", "tree": tree, "truncated": False})
        if host == "raw.githubusercontent.com":
            rel = path.split("/", 4)[4]
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            await asyncio.sleep(0.01)
            self.in_flight -= 1
            return httpx.Response(200, content=self.files[rel])
        return httpx.Response(404)


async def test_default_branch_resolution_and_batched_fetch():
    gh = FakeGitHub()
    acquirer = RemoteApiAcquirer(transport=httpx.MockTransport(gh))
    seen = []
    result = await ingest(
        "octocat/Hello-World",
        IngestOptions(max_file_size=1024),
        on_progress=lambda cur, total: seen.append(cur),
        acquirer=acquirer,
    )

    assert result.branch == "main"
    assert "Branch: main" in result.summary
    assert "huge.bin" not in result.tree
    assert "File: src/f11.py" in result.content

    raw = [r for r in gh.requests if r.url.host == "raw.githubusercontent.com"]
    assert len(raw) == len(FILES)
    assert all("/octocat/Hello-World/main/" in r.url.path for r in raw)
    assert gh.max_in_flight <= 5
    assert seen == sorted(seen) and seen[-1] == 100


async def test_explicit_branch_skips_repo_lookup():
    gh = FakeGitHub()
    acquirer = RemoteApiAcquirer(transport=httpx.MockTransport(gh))
    async with acquirer.acquire(resolve("octocat/Hello-World"), IngestOptions(1024, branch="dev"), ProgressReporter()) as snap:
        assert snap.branch == "dev"
        assert {e.path for e in snap.entries if not e.is_directory} == set(FILES) | {"huge.bin"}
    assert not any(r.url.path == "/repos/octocat/Hello-World" for r in gh.requests)


async def test_token_sent_as_bearer():
    gh = FakeGitHub()
    acquirer = RemoteApiAcquirer(transport=httpx.MockTransport(gh))
    await ingest("octocat/Hello-World", IngestOptions(1024, auth_token="secret"), acquirer=acquirer)
    assert all(r.headers["Authorization"] == "Bearer secret" for r in gh.requests)


async def test_batches_never_exceed_batch_size():
    gh = FakeGitHub()
    acquirer = RemoteApiAcquirer(batch_size=3, transport=httpx.MockTransport(gh))
    await ingest("octocat/Hello-World", IngestOptions(1024), acquirer=acquirer)
    assert gh.max_in_flight <= 3


@pytest.mark.parametrize("status,kind", [(401, AuthenticationFailed), (403, AuthenticationFailed), (404, NotFound), (502, NetworkOrProtocolError)])
async def test_http_errors_map_to_taxonomy(status, kind):
    acquirer = RemoteApiAcquirer(transport=httpx.MockTransport(FakeGitHub(status=status)))
    with pytest.raises(kind):
        await ingest("octocat/Hello-World", IngestOptions(1024, auth_token="bad"), acquirer=acquirer)


async def test_transport_errors_are_network_errors():
    def down(request):
        raise httpx.ConnectError("connection refused", request=request)

    acquirer = RemoteApiAcquirer(transport=httpx.MockTransport(down))
    with pytest.raises(NetworkOrProtocolError):
        await ingest("octocat/Hello-World", IngestOptions(1024), acquirer=acquirer)


async def test_non_github_hosts_are_unsupported():
    acquirer = RemoteApiAcquirer(transport=httpx.MockTransport(FakeGitHub()))
    with pytest.raises(UnsupportedProvider):
        await ingest("gitlab.com/group/project", IngestOptions(1024), acquirer=acquirer)
