"""Watchlist API routes — library listing and user mutations."""
from __future__ import annotations

import logging
import sqlite3

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from reeltrack.dependencies import get_tracker_service, get_user_id, get_watchlist_service
from reeltrack.models.status import MediaType, WatchStatus
from reeltrack.models.watchlist import AddItemRequest
from reeltrack.services.tmdb_service import ProviderError
from reeltrack.services.tracker_service import ItemNotFoundError, TrackerService
from reeltrack.services.watchlist_service import WatchlistService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["watchlist"])


def error_response(e: Exception) -> JSONResponse:
    """Map a mutation failure onto the JSON error shape the client expects."""
    if isinstance(e, ItemNotFoundError):
        return JSONResponse(status_code=404, content={"error": "Item not found"})
    if isinstance(e, ProviderError):
        return JSONResponse(status_code=502, content={"error": str(e)})
    if isinstance(e, ValueError):
        return JSONResponse(status_code=400, content={"error": str(e)})
    logger.error(f"Watchlist write failed: {e}")
    return JSONResponse(status_code=500, content={"error": f"Could not save changes: {e}"})


MUTATION_ERRORS = (ItemNotFoundError, ProviderError, ValueError, sqlite3.Error)


async def _json_body(request: Request) -> dict:
    try:
        data = await request.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


# ---- Listing / add / remove ----

@router.get("/api/watchlist")
async def list_watchlist(
    type: MediaType | None = None,
    status: WatchStatus | None = None,
    q: str | None = None,
    user_id: str = Depends(get_user_id),
    watchlist: WatchlistService = Depends(get_watchlist_service),
):
    try:
        items = watchlist.list_items(user_id, media_type=type, status=status, query=q)
    except sqlite3.Error as e:
        return error_response(e)
    return {"items": [item.model_dump(mode="json") for item in items], "count": len(items)}


@router.post("/api/watchlist")
async def add_to_watchlist(
    request: Request,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    try:
        body = AddItemRequest.model_validate(await _json_body(request))
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": f"Invalid item: {e.errors()[0].get('msg', '')}"})

    try:
        item, created = await tracker.add_item(user_id, body)
    except MUTATION_ERRORS as e:
        return error_response(e)
    return JSONResponse(
        status_code=201 if created else 200,
        content={"status": "ok", "created": created, "item": item.model_dump(mode="json")},
    )


@router.delete("/api/watchlist/{media_type}/{tmdb_id}")
async def remove_from_watchlist(
    media_type: MediaType,
    tmdb_id: int,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    try:
        tracker.remove_item(user_id, tmdb_id, media_type)
    except MUTATION_ERRORS as e:
        return error_response(e)
    return {"status": "ok"}


# ---- Watched state ----

@router.post("/api/watchlist/{media_type}/{tmdb_id}/watched")
async def mark_watched(
    media_type: MediaType,
    tmdb_id: int,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    try:
        item = await tracker.mark_watched(user_id, tmdb_id, media_type)
    except MUTATION_ERRORS as e:
        return error_response(e)
    return {"status": "ok", "item": item.model_dump(mode="json")}


@router.post("/api/watchlist/{media_type}/{tmdb_id}/unwatched")
async def mark_unwatched(
    media_type: MediaType,
    tmdb_id: int,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    try:
        item = tracker.mark_unwatched(user_id, tmdb_id, media_type)
    except MUTATION_ERRORS as e:
        return error_response(e)
    return {"status": "ok", "item": item.model_dump(mode="json")}


@router.post("/api/watchlist/{media_type}/{tmdb_id}/dropped")
async def mark_dropped(
    media_type: MediaType,
    tmdb_id: int,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    try:
        item = tracker.mark_dropped(user_id, tmdb_id, media_type)
    except MUTATION_ERRORS as e:
        return error_response(e)
    return {"status": "ok", "item": item.model_dump(mode="json")}


@router.post("/api/watchlist/{media_type}/{tmdb_id}/restore")
async def restore_dropped(
    media_type: MediaType,
    tmdb_id: int,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    try:
        item = tracker.restore_dropped(user_id, tmdb_id, media_type)
    except MUTATION_ERRORS as e:
        return error_response(e)
    return {"status": "ok", "item": item.model_dump(mode="json")}


@router.post("/api/watchlist/{media_type}/{tmdb_id}/library")
async def move_to_library(
    media_type: MediaType,
    tmdb_id: int,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    try:
        item = tracker.move_to_library(user_id, tmdb_id, media_type)
    except MUTATION_ERRORS as e:
        return error_response(e)
    return {"status": "ok", "item": item.model_dump(mode="json")}


@router.post("/api/watchlist/{media_type}/{tmdb_id}/status")
async def set_status(
    media_type: MediaType,
    tmdb_id: int,
    request: Request,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    data = await _json_body(request)
    if not data.get("status"):
        return JSONResponse(status_code=400, content={"error": "status is required"})
    try:
        item = tracker.set_status(user_id, tmdb_id, media_type, data["status"])
    except MUTATION_ERRORS as e:
        return error_response(e)
    return {"status": "ok", "item": item.model_dump(mode="json")}


# ---- Seasons / progress (shows) ----

@router.post("/api/watchlist/show/{tmdb_id}/season/{season_number}/watched")
async def mark_season_watched(
    tmdb_id: int,
    season_number: int,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    try:
        item = tracker.mark_season_watched(user_id, tmdb_id, season_number)
    except MUTATION_ERRORS as e:
        return error_response(e)
    return {"status": "ok", "item": item.model_dump(mode="json")}


@router.post("/api/watchlist/show/{tmdb_id}/season/{season_number}/unwatched")
async def mark_season_unwatched(
    tmdb_id: int,
    season_number: int,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    try:
        item = tracker.mark_season_unwatched(user_id, tmdb_id, season_number)
    except MUTATION_ERRORS as e:
        return error_response(e)
    return {"status": "ok", "item": item.model_dump(mode="json")}


@router.post("/api/watchlist/show/{tmdb_id}/progress")
async def set_progress(
    tmdb_id: int,
    request: Request,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    data = await _json_body(request)
    try:
        progress = int(data.get("progress"))
    except (TypeError, ValueError):
        return JSONResponse(status_code=400, content={"error": "progress must be an integer"})
    try:
        item = tracker.set_progress(user_id, tmdb_id, progress)
    except MUTATION_ERRORS as e:
        return error_response(e)
    return {"status": "ok", "item": item.model_dump(mode="json")}


# ---- Manual date / upcoming dismissal ----

@router.post("/api/watchlist/{media_type}/{tmdb_id}/manual-date")
async def set_manual_date(
    media_type: MediaType,
    tmdb_id: int,
    request: Request,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    data = await _json_body(request)
    if not data.get("date"):
        return JSONResponse(status_code=400, content={"error": "date is required"})
    try:
        item = tracker.set_manual_date(user_id, tmdb_id, media_type, data["date"], data.get("ott_name"))
    except MUTATION_ERRORS as e:
        return error_response(e)
    return {"status": "ok", "item": item.model_dump(mode="json")}


@router.delete("/api/watchlist/{media_type}/{tmdb_id}/manual-date")
async def reset_manual_date(
    media_type: MediaType,
    tmdb_id: int,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    try:
        item = await tracker.reset_manual_date(user_id, tmdb_id, media_type)
    except MUTATION_ERRORS as e:
        return error_response(e)
    return {"status": "ok", "item": item.model_dump(mode="json")}


@router.post("/api/watchlist/{media_type}/{tmdb_id}/upcoming-dismissal")
async def dismiss_from_upcoming(
    media_type: MediaType,
    tmdb_id: int,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    try:
        item = tracker.set_upcoming_dismissed(user_id, tmdb_id, media_type, True)
    except MUTATION_ERRORS as e:
        return error_response(e)
    return {"status": "ok", "item": item.model_dump(mode="json")}


@router.delete("/api/watchlist/{media_type}/{tmdb_id}/upcoming-dismissal")
async def restore_to_upcoming(
    media_type: MediaType,
    tmdb_id: int,
    user_id: str = Depends(get_user_id),
    tracker: TrackerService = Depends(get_tracker_service),
):
    try:
        item = tracker.set_upcoming_dismissed(user_id, tmdb_id, media_type, False)
    except MUTATION_ERRORS as e:
        return error_response(e)
    return {"status": "ok", "item": item.model_dump(mode="json")}
