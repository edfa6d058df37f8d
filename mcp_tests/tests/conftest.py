import httpx
import pytest

from clients.gitlab import GitLabClient
from config import Settings

API_URL = "https://gitlab.example/api/v4"
API_PREFIX = "/api/v4"


class GitLabStub:
    """Route table for httpx.MockTransport.

    routes keys:
        (METHOD, RAW_PATH) -> httpx.Response | callable(request) -> httpx.Response
                              | list of those (served in order, one per call)

    RAW_PATH is the percent-encoded path below the API prefix, without query.
    Unrouted requests get a 404 like GitLab does.
    """

    def __init__(self, routes: dict) -> None:
        self.routes = {k: (list(v) if isinstance(v, list) else v) for k, v in routes.items()}
        self.requests: list[httpx.Request] = []

    @staticmethod
    def path_of(request: httpx.Request) -> str:
        path = request.url.raw_path.split(b"?", 1)[0].decode("ascii")
        return path[len(API_PREFIX):] if path.startswith(API_PREFIX) else path

    @property
    def calls(self) -> list[tuple[str, str]]:
        return [(r.method, self.path_of(r)) for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        val = self.routes.get((request.method, self.path_of(request)))
        if val is None:
            return httpx.Response(404, json={"message": "404 Not Found"})
        if isinstance(val, list):
            val = val.pop(0)
        if callable(val):
            val = val(request)
        return val


@pytest.fixture
def settings():
    return Settings(token="glpat-test", api_url=API_URL, timeout=5.0, page_size=2, max_pages=10)


@pytest.fixture
def gitlab(monkeypatch, settings):
    """Factory: gitlab(routes) -> (GitLabClient, GitLabStub) with the transport patched."""

    def _make(routes: dict):
        client = GitLabClient(settings)
        stub = GitLabStub(routes)
        transport = httpx.MockTransport(stub.handler)

        def _create_client(custom_headers=None):
            headers = {**client._headers, **(custom_headers or {})}
            return httpx.AsyncClient(
                base_url=client._base_url,
                headers=headers,
                timeout=client._timeout,
                verify=client._verify,
                transport=transport,
            )

        monkeypatch.setattr(client, "_create_client", _create_client)
        return client, stub

    return _make
