"""TMDB service — catalog details, release dates, search and trending."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import httpx

from reeltrack.models.status import MediaType

if TYPE_CHECKING:
    from reeltrack.services.config_service import ConfigService
    from reeltrack.services.http_client import HttpClientService

logger = logging.getLogger(__name__)

TMDB_BASE = "https://api.themoviedb.org/3"

# v4 read-access tokens are long JWTs, v3 keys are ~32 hex chars
BEARER_TOKEN_MIN_LENGTH = 60

DETAILS_APPEND = "watch/providers,external_ids,videos"


class ProviderError(RuntimeError):
    """A catalog request failed (transport error, timeout or non-2xx)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _search_path(media_type) -> str:
    if media_type in ("multi", "tv", "movie"):
        return media_type
    return MediaType(media_type).tmdb_path


class TmdbService:
    """Thin async client for the TMDB v3 API.

    Every failure is raised as :class:`ProviderError`; callers decide whether
    it is fatal for the item being processed.
    """

    def __init__(
        self,
        config_service: "ConfigService",
        http_client: "HttpClientService",
        base_url: str = TMDB_BASE,
    ):
        self.config_service = config_service
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")

    async def _get(self, endpoint: str, params: dict | None = None, region: str | None = None) -> dict:
        api_key = self.config_service.tmdb_api_key
        if not api_key:
            raise ProviderError("TMDB API key not configured")

        query = dict(params or {})
        if region:
            query["region"] = region
        headers = {"accept": "application/json"}
        if len(api_key) > BEARER_TOKEN_MIN_LENGTH:
            headers["Authorization"] = f"Bearer {api_key}"
        else:
            query["api_key"] = api_key

        client = await self.http_client.get_client()
        try:
            response = await client.get(
                f"{self.base_url}{endpoint}",
                params=query,
                headers=headers,
                timeout=self.config_service.request_timeout,
            )
        except httpx.TimeoutException as e:
            raise ProviderError(f"Request timed out for {endpoint}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Request failed for {endpoint}: {e}") from e

        if response.status_code != 200:
            try:
                message = response.json().get("status_message", "")
            except ValueError:
                message = ""
            logger.error(f"TMDB request failed: {endpoint} -> {response.status_code} {message}")
            raise ProviderError(
                f"TMDB error {response.status_code} for {endpoint}: {message}".rstrip(": "),
                status_code=response.status_code,
            )
        return response.json()

    async def get_details(self, tmdb_id: int, media_type, region: str) -> dict:
        """Full details with providers, external ids and videos inlined."""
        path = MediaType(media_type).tmdb_path
        return await self._get(
            f"/{path}/{tmdb_id}",
            {"append_to_response": DETAILS_APPEND},
            region=region,
        )

    async def get_release_dates(self, movie_id: int) -> dict:
        """Per-country release dates of a movie."""
        return await self._get(f"/movie/{movie_id}/release_dates")

    async def search(self, query: str, media_type, region: str, page: int = 1) -> dict:
        if not query or not query.strip():
            return {"results": [], "page": 1, "total_pages": 0}
        return await self._get(
            f"/search/{_search_path(media_type)}",
            {"query": query.strip(), "page": max(int(page), 1)},
            region=region,
        )

    async def get_trending(self, media_type="movie", window: str = "week", region: str | None = None) -> dict:
        if window not in ("day", "week"):
            raise ValueError(f"Invalid trending window: {window}")
        path = media_type if media_type in ("all", "movie", "tv") else MediaType(media_type).tmdb_path
        return await self._get(f"/trending/{path}/{window}", region=region)
