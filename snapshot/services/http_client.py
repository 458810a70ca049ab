"""Async HTTP client with connection pooling for the upstream sources.

One instance is created per pipeline run and closed at the end of it.
Errors are logged and re-raised as httpx exceptions; callers decide the
scope at which a failure becomes "no data".
"""
import httpx
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0",
    "Accept": "text/html,application/xhtml+xml,*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}


class AsyncHTTPClient:
    """Lazily-initialized shared httpx.AsyncClient.

    Features:
    - Connection pooling (max_connections=20, max_keepalive_connections=10)
    - Automatic redirect following
    - Optional transport injection (httpx.MockTransport in tests)
    """

    def __init__(
        self,
        timeout: float = 15.0,
        max_connections: int = 20,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.max_connections = max_connections
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazy initialization of shared client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                limits=httpx.Limits(
                    max_connections=self.max_connections,
                    max_keepalive_connections=10
                ),
                headers={"User-Agent": "futures-snapshot/1.0"},
                follow_redirects=True,
                transport=self._transport,
            )
            logger.debug("HTTP client initialized with connection pooling")
        return self._client

    async def _get(self, url: str, params: Optional[Dict] = None,
                   headers: Optional[Dict] = None) -> httpx.Response:
        client = await self._get_client()
        try:
            resp = await client.get(url, params=params, headers=headers)
            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as e:
            logger.warning(f"HTTP {e.response.status_code} from {url}")
            raise
        except httpx.RequestError as e:
            logger.warning(f"Request failed for {url}: {e}")
            raise

    async def get_json(self, url: str, params: Optional[Dict] = None,
                       headers: Optional[Dict] = None) -> Any:
        """GET a JSON document. Raises httpx.HTTPError or ValueError."""
        resp = await self._get(url, params=params, headers=headers)
        return resp.json()

    async def get_response(self, url: str, params: Optional[Dict] = None,
                           headers: Optional[Dict] = None) -> httpx.Response:
        """GET and return the raw response (for callers that read headers)."""
        return await self._get(url, params=params, headers=headers)

    async def get_text(self, url: str, headers: Optional[Dict] = None) -> str:
        """GET a page's markup as text."""
        resp = await self._get(url, headers=headers or BROWSER_HEADERS)
        return resp.text

    async def close(self):
        """Close the underlying client - MUST be called at the end of a run."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("HTTP client closed")

    async def __aenter__(self) -> "AsyncHTTPClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
