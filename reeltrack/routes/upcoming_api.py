"""Upcoming API route — projected release calendar for the caller's watchlist."""
from __future__ import annotations

import sqlite3

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from reeltrack.dependencies import get_config_service, get_user_id, get_watchlist_service
from reeltrack.services.config_service import ConfigService
from reeltrack.services.upcoming_service import UPCOMING_VIEWS, build_upcoming
from reeltrack.services.watchlist_service import WatchlistService

router = APIRouter(tags=["upcoming"])


@router.get("/api/upcoming")
async def get_upcoming(
    view: str | None = None,
    user_id: str = Depends(get_user_id),
    cfg: ConfigService = Depends(get_config_service),
    watchlist: WatchlistService = Depends(get_watchlist_service),
):
    if view is not None and view not in UPCOMING_VIEWS:
        return JSONResponse(status_code=400, content={"error": f"view must be one of: {', '.join(UPCOMING_VIEWS)}"})
    try:
        items = watchlist.list_items(user_id)
    except sqlite3.Error as e:
        return JSONResponse(status_code=500, content={"error": str(e)})

    upcoming = build_upcoming(items, region=cfg.region, view=view)
    return {"items": [u.model_dump(mode="json") for u in upcoming], "count": len(upcoming)}
