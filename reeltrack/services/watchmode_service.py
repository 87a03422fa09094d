"""Watchmode service — regional streaming availability when TMDB has none."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import httpx

from reeltrack.models.status import MediaType

if TYPE_CHECKING:
    from reeltrack.services.config_service import ConfigService
    from reeltrack.services.http_client import HttpClientService

logger = logging.getLogger(__name__)

WATCHMODE_BASE = "https://api.watchmode.com/v1"

# Watchmode source type -> TMDB provider bucket
SOURCE_BUCKETS = {"sub": "flatrate", "rent": "rent", "buy": "buy", "free": "free"}


def _to_provider(source: dict) -> dict:
    return {
        "provider_id": source.get("source_id"),
        "provider_name": source.get("name"),
        "logo_path": None,
        "display_priority": 10,
    }


class WatchmodeService:
    """Fallback availability lookup.  Never raises: failures mean "no data"."""

    def __init__(
        self,
        config_service: "ConfigService",
        http_client: "HttpClientService",
        base_url: str = WATCHMODE_BASE,
    ):
        self.config_service = config_service
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")

    async def get_availability(self, tmdb_id: int, media_type, region: str) -> Optional[dict]:
        """Return ``{flatrate, rent, buy, free}`` for *region*, or ``None``."""
        api_key = self.config_service.watchmode_api_key
        if not api_key:
            return None

        search_field = "tmdb_tv_id" if MediaType(media_type) is MediaType.SHOW else "tmdb_movie_id"
        try:
            client = await self.http_client.get_client()
            resp = await client.get(
                f"{self.base_url}/search/",
                params={"apiKey": api_key, "search_field": search_field, "search_value": tmdb_id},
            )
            if resp.status_code != 200:
                logger.warning(f"Watchmode search failed for TMDB {tmdb_id}: {resp.status_code}")
                return None
            matches = resp.json().get("title_results") or []
            if not matches:
                return None

            resp = await client.get(
                f"{self.base_url}/title/{matches[0]['id']}/sources/",
                params={"apiKey": api_key, "regions": region},
            )
            if resp.status_code != 200:
                logger.warning(f"Watchmode sources failed for TMDB {tmdb_id}: {resp.status_code}")
                return None
            sources = resp.json()
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning(f"Watchmode lookup failed for TMDB {tmdb_id}: {e}")
            return None

        if not isinstance(sources, list):
            return None
        availability: dict[str, list] = {bucket: [] for bucket in SOURCE_BUCKETS.values()}
        for source in sources:
            bucket = SOURCE_BUCKETS.get(source.get("type"))
            if bucket:
                availability[bucket].append(_to_provider(source))
        if not any(availability.values()):
            return None
        return availability
