"""Refresh API routes — interactive item refresh and the cron entry point."""
from __future__ import annotations

import hmac
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from reeltrack.dependencies import get_config_service, get_refresh_service, get_tracker_service, get_user_id
from reeltrack.models.status import MediaType
from reeltrack.routes.watchlist_api import MUTATION_ERRORS, error_response
from reeltrack.services.config_service import ConfigService
from reeltrack.services.refresh_service import CronBatchPacing, RefreshService
from reeltrack.services.tracker_service import TrackerService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["refresh"])


@router.post("/api/watchlist/{media_type}/{tmdb_id}/refresh")
async def refresh_item(
    media_type: MediaType,
    tmdb_id: int,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    try:
        item = await tracker.refresh_item(user_id, tmdb_id, media_type)
    except MUTATION_ERRORS as e:
        return error_response(e)
    return {"status": "ok", "item": item.model_dump(mode="json")}


def _authorized(request: Request, secret: str) -> bool:
    if not secret:
        return True
    header = request.headers.get("Authorization", "")
    return hmac.compare_digest(header.encode(), f"Bearer {secret}".encode())


@router.api_route("/api/cron/refresh", methods=["GET", "POST"])
async def cron_refresh(
    request: Request,
    cfg: ConfigService = Depends(get_config_service),
    refresher: RefreshService = Depends(get_refresh_service),
):
    if not _authorized(request, cfg.cron_secret):
        logger.warning("Rejected cron refresh with missing or invalid secret")
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})
    if not cfg.tmdb_api_key:
        return JSONResponse(status_code=500, content={"error": "Missing TMDB API key"})

    try:
        outcomes = await refresher.run_batch(CronBatchPacing(cfg.cron_batch_size))
    except Exception as e:
        logger.error(f"Cron refresh failed: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})

    return {
        "status": "ok",
        "count": len(outcomes),
        "processed": [o.title for o in outcomes if o.success],
        "results": [o.to_dict() for o in outcomes],
    }
