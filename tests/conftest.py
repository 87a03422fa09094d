"""Shared fixtures — a fake catalog served through ``httpx.MockTransport``."""

import json
from datetime import date, timedelta

import httpx
import pytest

from reeltrack.database import init_db
from reeltrack.models.watchlist import WatchlistItem
from reeltrack.services.config_service import ConfigService
from reeltrack.services.enrichment_service import EnrichmentService
from reeltrack.services.http_client import HttpClientService
from reeltrack.services.refresh_service import RefreshService
from reeltrack.services.tmdb_service import TmdbService
from reeltrack.services.tracker_service import TrackerService
from reeltrack.services.tvmaze_service import TvmazeService
from reeltrack.services.watchlist_service import WatchlistService
from reeltrack.services.watchmode_service import WatchmodeService


def days(n: int) -> str:
    """ISO date *n* days from today (negative for the past)."""
    return (date.today() + timedelta(days=n)).isoformat()


class FakeCatalog:
    """In-memory TMDB / TVMaze / Watchmode answering httpx requests."""

    def __init__(self):
        self.movies: dict[int, dict] = {}
        self.shows: dict[int, dict] = {}
        self.release_dates: dict[int, dict] = {}
        self.tvmaze: dict[str, dict] = {}
        self.watchmode: dict[int, list] = {}
        self.failing: set[int] = set()
        self.timing_out: set[int] = set()
        self.requests: list[httpx.Request] = []

    def add_movie(self, tmdb_id: int, release_dates: dict | None = None, **details) -> dict:
        payload = {"id": tmdb_id, "title": f"Movie {tmdb_id}", **details}
        self.movies[tmdb_id] = payload
        self.release_dates[tmdb_id] = release_dates or {"id": tmdb_id, "results": []}
        return payload

    def add_show(self, tmdb_id: int, **details) -> dict:
        payload = {"id": tmdb_id, "name": f"Show {tmdb_id}", **details}
        self.shows[tmdb_id] = payload
        return payload

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        parts = [p for p in request.url.path.split("/") if p]

        if host == "api.tvmaze.com":
            data = self.tvmaze.get(request.url.params.get("imdb", ""))
            return httpx.Response(200, json=data) if data else httpx.Response(404, json={})

        if host == "api.watchmode.com":
            if parts[-1] == "search":
                tmdb_id = int(request.url.params.get("search_value", 0))
                results = [{"id": tmdb_id + 900000}] if tmdb_id in self.watchmode else []
                return httpx.Response(200, json={"title_results": results})
            return httpx.Response(200, json=self.watchmode.get(int(parts[-2]) - 900000, []))

        # api.themoviedb.org/3/...
        parts = parts[1:]
        if parts[0] == "search":
            return httpx.Response(200, json={"page": 1, "total_pages": 1, "results": [
                {"id": 1, "title": request.url.params.get("query")},
            ]})
        if parts[0] == "trending":
            return httpx.Response(200, json={"results": [{"id": 7, "media_type": parts[1]}]})

        tmdb_id = int(parts[1])
        if tmdb_id in self.timing_out:
            raise httpx.ReadTimeout("Read timed out", request=request)
        if tmdb_id in self.failing:
            return httpx.Response(500, json={"status_message": "Internal error"})
        if parts[0] == "movie" and parts[-1] == "release_dates":
            return httpx.Response(200, json=self.release_dates.get(tmdb_id, {"results": []}))
        store = self.movies if parts[0] == "movie" else self.shows
        if tmdb_id not in store:
            return httpx.Response(404, json={"status_message": "The resource you requested could not be found."})
        return httpx.Response(200, json=store[tmdb_id])

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture()
def catalog():
    return FakeCatalog()


@pytest.fixture()
def data_dir(tmp_path):
    config = {
        "region": "IN",
        "credentials": {"tmdb_api_key": "test-key", "watchmode_api_key": "", "cron_secret": ""},
        "options": {},
    }
    (tmp_path / "config.json").write_text(json.dumps(config))
    return str(tmp_path)


@pytest.fixture(autouse=True)
def _clear_credential_env(monkeypatch):
    for var in ("TMDB_API_KEY", "WATCHMODE_API_KEY", "CRON_SECRET"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture()
def config_service(data_dir):
    cfg = ConfigService(data_dir)
    cfg.load()
    return cfg


@pytest.fixture()
def enrichment(config_service, catalog):
    http = HttpClientService(transport=catalog.transport)
    return EnrichmentService(
        TmdbService(config_service, http),
        TvmazeService(http),
        WatchmodeService(config_service, http),
    )


def providers(region: str = "IN", **buckets) -> dict:
    """A ``watch/providers`` block with one region."""
    return {"results": {region: {"link": "https://example.com", **buckets}}}


FLATRATE = [{"provider_id": 8, "provider_name": "Netflix", "logo_path": "/netflix.png"}]



@pytest.fixture()
def watchlist(config_service):
    init_db(config_service.db_path)
    return WatchlistService(config_service)


@pytest.fixture()
def refresh(config_service, watchlist, enrichment):
    return RefreshService(config_service, watchlist, enrichment)


@pytest.fixture()
def tracker(config_service, watchlist, enrichment, refresh):
    return TrackerService(config_service, watchlist, enrichment, refresh)


def stored(watchlist, tmdb_id: int, media_type: str = "movie", status: str = "movie_coming_soon",
           updated_at: str = "2026-01-01T00:00:00", **fields) -> WatchlistItem:
    """Insert a watchlist row directly, bypassing enrichment."""
    fields.setdefault("title", f"Title {tmdb_id}")
    item = WatchlistItem(tmdb_id=tmdb_id, type=media_type, status=status, updated_at=updated_at, **fields)
    return watchlist.insert_item(item)
