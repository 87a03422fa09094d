"""Shared httpx.AsyncClient for the catalog providers (TMDB, TVMaze, Watchmode)."""
from __future__ import annotations

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "ReelTrack/1.0",
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
}

# Query parameters never written to the log
SECRET_PARAMS = ("api_key", "apiKey")


def redact_url(url: httpx.URL) -> str:
    """*url* as a string with provider keys masked."""
    for name in SECRET_PARAMS:
        if name in url.params:
            url = url.copy_set_param(name, "***")
    return str(url)


async def _log_response(response: httpx.Response) -> None:
    request = response.request
    level = logging.DEBUG if response.is_success else logging.WARNING
    logger.log(level, f"{request.method} {redact_url(request.url)} -> {response.status_code}")


class HttpClientService:
    """Lazily creates one pooled client and hands it to every provider.

    *transport* goes straight to ``httpx.AsyncClient`` (tests pass an
    ``httpx.MockTransport``).
    """

    def __init__(self, timeout: float = 60.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers=HEADERS,
                timeout=httpx.Timeout(self.timeout, connect=15.0),
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
                event_hooks={"response": [_log_response]},
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client is None or self._client.is_closed:
            return
        await self._client.aclose()
        self._client = None
        logger.info("Catalog HTTP client closed")
