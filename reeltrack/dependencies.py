"""FastAPI dependency injection — provides services via Depends()."""
from __future__ import annotations

from fastapi import Request

from reeltrack.models.watchlist import DEFAULT_USER
from reeltrack.services.config_service import ConfigService
from reeltrack.services.refresh_service import RefreshService
from reeltrack.services.tmdb_service import TmdbService
from reeltrack.services.tracker_service import TrackerService
from reeltrack.services.watchlist_service import WatchlistService


def get_config_service(request: Request) -> ConfigService:
    return request.app.state.config_service


def get_tmdb_service(request: Request) -> TmdbService:
    return request.app.state.tmdb_service


def get_watchlist_service(request: Request) -> WatchlistService:
    return request.app.state.watchlist_service


def get_tracker_service(request: Request) -> TrackerService:
    return request.app.state.tracker_service


def get_refresh_service(request: Request) -> RefreshService:
    return request.app.state.refresh_service


def get_user_id(request: Request) -> str:
    """Caller identity from the ``X-User-Id`` header (single-user installs omit it)."""
    return (request.headers.get("X-User-Id") or "").strip() or DEFAULT_USER
