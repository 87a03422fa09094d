"""TVMaze service — average episode runtime lookup by IMDb id."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import httpx

if TYPE_CHECKING:
    from reeltrack.services.http_client import HttpClientService

logger = logging.getLogger(__name__)

TVMAZE_BASE = "https://api.tvmaze.com"


class TvmazeService:
    def __init__(self, http_client: "HttpClientService", base_url: str = TVMAZE_BASE):
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")

    async def lookup_by_external_id(self, imdb_id: str) -> Optional[dict]:
        """Return the TVMaze show record for *imdb_id*, or ``None`` on any failure."""
        if not imdb_id:
            return None
        try:
            client = await self.http_client.get_client()
            resp = await client.get(f"{self.base_url}/lookup/shows", params={"imdb": imdb_id})
            if resp.status_code != 200:
                return None
            return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"TVMaze lookup failed for {imdb_id}: {e}")
            return None

    async def get_average_runtime(self, imdb_id: str) -> Optional[int]:
        data = await self.lookup_by_external_id(imdb_id)
        if not data:
            return None
        return data.get("averageRuntime") or None
