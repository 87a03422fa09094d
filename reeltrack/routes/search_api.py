"""Catalog passthrough routes — search and trending."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from reeltrack.dependencies import get_config_service, get_tmdb_service
from reeltrack.services.config_service import ConfigService
from reeltrack.services.tmdb_service import ProviderError, TmdbService

router = APIRouter(tags=["catalog"])

SEARCH_TYPES = ("multi", "movie", "tv", "show")


@router.get("/api/search")
async def search(
    q: str = "",
    type: str = "multi",
    page: int = 1,
    cfg: ConfigService = Depends(get_config_service),
    tmdb: TmdbService = Depends(get_tmdb_service),
):
    if type not in SEARCH_TYPES:
        return JSONResponse(status_code=400, content={"error": f"Invalid search type: {type}"})
    try:
        return await tmdb.search(q, type, cfg.region, page=page)
    except ProviderError as e:
        return JSONResponse(status_code=502, content={"error": str(e)})


@router.get("/api/trending")
async def trending(
    type: str = "movie",
    window: str = "week",
    cfg: ConfigService = Depends(get_config_service),
    tmdb: TmdbService = Depends(get_tmdb_service),
):
    if type not in ("all", "movie", "tv", "show"):
        return JSONResponse(status_code=400, content={"error": f"Invalid trending type: {type}"})
    try:
        return await tmdb.get_trending(type, window, region=cfg.region)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except ProviderError as e:
        return JSONResponse(status_code=502, content={"error": str(e)})
