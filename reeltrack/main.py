"""ReelTrack — FastAPI application entry point."""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request

from reeltrack.database import init_db
from reeltrack.routes import config_api, health, refresh_api, search_api, upcoming_api, watchlist_api
from reeltrack.services.config_service import ConfigService
from reeltrack.services.enrichment_service import EnrichmentService
from reeltrack.services.http_client import HttpClientService
from reeltrack.services.refresh_service import RefreshService
from reeltrack.services.tmdb_service import TmdbService
from reeltrack.services.tracker_service import TrackerService
from reeltrack.services.tvmaze_service import TvmazeService
from reeltrack.services.watchlist_service import WatchlistService
from reeltrack.services.watchmode_service import WatchmodeService

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
logger = logging.getLogger(__name__)

# Data directory - use environment variable or default to /data (Docker) or ./data (local)
DATA_DIR = os.environ.get("DATA_DIR", "/data" if os.path.exists("/data") else "./data")


def build_services(
    data_dir: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict:
    """Create and wire every service against *data_dir*.

    *transport* replaces the network layer of the shared HTTP client
    (tests pass an ``httpx.MockTransport``).
    """
    os.makedirs(data_dir, exist_ok=True)
    cfg = ConfigService(data_dir)
    cfg.load()
    init_db(cfg.db_path)

    http = HttpClientService(timeout=cfg.request_timeout, transport=transport)
    tmdb = TmdbService(cfg, http)
    enrichment = EnrichmentService(tmdb, TvmazeService(http), WatchmodeService(cfg, http))
    watchlist = WatchlistService(cfg)
    refresh = RefreshService(cfg, watchlist, enrichment)
    tracker = TrackerService(cfg, watchlist, enrichment, refresh)

    return {
        "config_service": cfg,
        "http_client": http,
        "tmdb_service": tmdb,
        "enrichment_service": enrichment,
        "watchlist_service": watchlist,
        "refresh_service": refresh,
        "tracker_service": tracker,
    }


def create_app(
    data_dir: str | None = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    data_dir = data_dir or DATA_DIR
    services = build_services(data_dir, transport=transport)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager - handles startup and shutdown"""
        logger.info(f"ReelTrack started (data dir {data_dir}, region {services['config_service'].region})")
        yield
        await services["http_client"].close()
        logger.info("Application shutdown complete")

    app = FastAPI(title="ReelTrack", lifespan=lifespan)
    for name, service in services.items():
        setattr(app.state, name, service)

    # Middleware to ensure UTF-8 charset in JSON responses
    @app.middleware("http")
    async def add_utf8_charset(request: Request, call_next):
        response = await call_next(request)
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type and "charset" not in content_type:
            response.headers["content-type"] = "application/json; charset=utf-8"
        return response

    for r in (health, watchlist_api, refresh_api, upcoming_api, search_api, config_api):
        app.include_router(r.router)

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=5000)
