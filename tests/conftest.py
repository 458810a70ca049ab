# Pytest configuration and fixtures for futures-snapshot tests
import sys
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from snapshot.deps import Settings
from snapshot.services.http_client import AsyncHTTPClient
from snapshot.services.storage import StorageService


class RouteTable:
    """URL → canned response map for httpx.MockTransport.

    Query strings are ignored when matching. Every request URL is recorded
    so tests can assert how often an endpoint was hit.
    """

    def __init__(self):
        self.routes: Dict[str, Any] = {}
        self.calls: List[str] = []

    def add_json(self, url: str, payload: Any, status: int = 200, headers: Optional[Dict] = None):
        self.routes[url] = ("json", payload, status, headers or {})

    def add_text(self, url: str, text: str, status: int = 200):
        self.routes[url] = ("text", text, status, {})

    def add_error(self, url: str, status: int = 500):
        self.routes[url] = ("text", "error", status, {})

    def add_exception(self, url: str, exc: Exception):
        self.routes[url] = exc

    def count(self, url: str) -> int:
        return self.calls.count(url)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url).split("?", 1)[0]
        self.calls.append(url)
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, Exception):
            raise route
        kind, body, status, headers = route
        if kind == "json":
            return httpx.Response(status, json=body, headers=headers)
        return httpx.Response(status, text=body, headers=headers)


@pytest.fixture
def routes() -> RouteTable:
    return RouteTable()


@pytest_asyncio.fixture
async def http(routes: RouteTable) -> AsyncGenerator[AsyncHTTPClient, None]:
    """AsyncHTTPClient wired to the route table - no network."""
    client = AsyncHTTPClient(transport=httpx.MockTransport(routes.handler))
    yield client
    await client.close()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pinned to one season with storage under tmp_path."""
    s = Settings()
    s.SEASON = 2025
    s.DATA_DIR = tmp_path / "data"
    s.ODDS_API_KEY = "test-key"
    s.MIN_PROJECTION_RECORDS = 2
    s.MAX_CONCURRENT_FETCHES = 4
    return s


@pytest.fixture
def tmp_storage(tmp_path: Path) -> StorageService:
    """StorageService in a temporary directory."""
    return StorageService(tmp_path / "storage")
