"""Tracker service — user-driven watchlist mutations.

Every mutation is a direct row write that returns the stored row.  Season
and progress changes re-run :func:`classify_show`; metadata writes go
through :func:`prune_metadata`.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING, Optional

from reeltrack.models.status import MediaType, WatchStatus, ensure_status_for_type
from reeltrack.models.watchlist import AddItemRequest, WatchlistItem
from reeltrack.services.dates import parse_date
from reeltrack.services.metadata_service import prune_metadata
from reeltrack.services.status_service import clamp_season, classify_show, released_seasons

if TYPE_CHECKING:
    from reeltrack.services.config_service import ConfigService
    from reeltrack.services.enrichment_service import EnrichmentService
    from reeltrack.services.refresh_service import RefreshService
    from reeltrack.services.watchlist_service import WatchlistService

logger = logging.getLogger(__name__)

MANUAL_DATE_FIELDS = ("manual_release_date", "manual_ott_name", "manual_date_override")


class ItemNotFoundError(LookupError):
    """No watchlist row for ``(user_id, tmdb_id, type)``."""


class TrackerService:
    def __init__(
        self,
        config_service: "ConfigService",
        watchlist_service: "WatchlistService",
        enrichment_service: "EnrichmentService",
        refresh_service: "RefreshService",
    ):
        self.config_service = config_service
        self.watchlist = watchlist_service
        self.enrichment = enrichment_service
        self.refresh = refresh_service

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require(self, user_id: str, tmdb_id: int, media_type) -> WatchlistItem:
        item = self.watchlist.get_item(user_id, tmdb_id, media_type)
        if item is None:
            raise ItemNotFoundError(f"No {MediaType(media_type).value} {tmdb_id} in watchlist")
        return item

    def _write(self, item: WatchlistItem, **fields) -> WatchlistItem:
        if "metadata" in fields:
            fields["metadata"] = prune_metadata(fields["metadata"], self.config_service.region) or {}
        updated = self.watchlist.update_item(item.user_id, item.tmdb_id, item.type, **fields)
        if updated is None:
            raise ItemNotFoundError(f"No {item.type.value} {item.tmdb_id} in watchlist")
        return updated

    def _write_progress(self, item: WatchlistItem, season: int, progress: int, metadata: dict | None = None):
        metadata = item.metadata if metadata is None else metadata
        season = clamp_season(season, metadata)
        progress = max(int(progress or 0), 0)
        status = classify_show(metadata, season, progress)
        fields = {"last_watched_season": season, "progress": progress, "status": status}
        if metadata is not item.metadata:
            fields["metadata"] = metadata
        return self._write(item, **fields)

    # ------------------------------------------------------------------
    # Add / remove
    # ------------------------------------------------------------------

    async def add_item(self, user_id: str, request: AddItemRequest) -> tuple[WatchlistItem, bool]:
        """Enrich once and insert.  Returns ``(item, created)``; an existing row is returned as is."""
        existing = self.watchlist.get_item(user_id, request.tmdb_id, request.type)
        if existing is not None:
            return existing, False

        region = self.config_service.region
        result = await self.enrichment.enrich(request.tmdb_id, request.type, region)
        meta = result.final_metadata or {}
        item = WatchlistItem(
            user_id=user_id,
            tmdb_id=request.tmdb_id,
            type=request.type,
            title=request.title or request.name or meta.get("title") or meta.get("name") or "",
            poster_path=request.poster_path or meta.get("poster_path"),
            vote_average=request.vote_average if request.vote_average is not None else meta.get("vote_average"),
            status=result.initial_status,
            metadata=meta,
        )
        return self.watchlist.insert_item(item), True

    def remove_item(self, user_id: str, tmdb_id: int, media_type) -> None:
        if not self.watchlist.delete_item(user_id, tmdb_id, media_type):
            raise ItemNotFoundError(f"No {MediaType(media_type).value} {tmdb_id} in watchlist")
        logger.info(f"Removed {MediaType(media_type).value} {tmdb_id} for {user_id}")

    # ------------------------------------------------------------------
    # Watched state
    # ------------------------------------------------------------------

    async def mark_watched(self, user_id: str, tmdb_id: int, media_type) -> WatchlistItem:
        item = self._require(user_id, tmdb_id, media_type)
        if item.type is MediaType.MOVIE:
            return self._write(item, status=WatchStatus.MOVIE_WATCHED)

        metadata = item.metadata
        if not metadata.get("seasons"):
            # Season list is needed to know what "all released" means
            result = await self.enrichment.enrich(
                item.tmdb_id, item.type, self.config_service.region,
                existing_metadata=item.metadata, current_status=item.status,
            )
            metadata = result.final_metadata
        released = released_seasons(metadata, date.today())
        last_season = max((s.get("season_number") or 0 for s in released), default=0)
        return self._write_progress(item, last_season, 0, metadata)

    def mark_unwatched(self, user_id: str, tmdb_id: int, media_type) -> WatchlistItem:
        item = self._require(user_id, tmdb_id, media_type)
        if item.type is MediaType.MOVIE:
            return self._write(item, status=WatchStatus.MOVIE_UNWATCHED)
        return self._write_progress(item, 0, 0)

    def mark_season_watched(self, user_id: str, tmdb_id: int, season_number: int) -> WatchlistItem:
        item = self._require(user_id, tmdb_id, MediaType.SHOW)
        return self._write_progress(item, max(int(season_number), 0), 0)

    def mark_season_unwatched(self, user_id: str, tmdb_id: int, season_number: int) -> WatchlistItem:
        item = self._require(user_id, tmdb_id, MediaType.SHOW)
        return self._write_progress(item, max(int(season_number) - 1, 0), 0)

    def set_progress(self, user_id: str, tmdb_id: int, progress: int) -> WatchlistItem:
        """Store episodes watched into the current season; a full season rolls over."""
        item = self._require(user_id, tmdb_id, MediaType.SHOW)
        progress = int(progress)
        if progress < 0:
            raise ValueError("Progress cannot be negative")

        current = item.last_watched_season + 1
        season = next(
            (s for s in item.metadata.get("seasons") or [] if s.get("season_number") == current),
            None,
        )
        episode_count = (season or {}).get("episode_count")
        if episode_count and progress >= episode_count:
            return self._write_progress(item, current, 0)
        return self._write_progress(item, item.last_watched_season, progress)

    def set_status(self, user_id: str, tmdb_id: int, media_type, status) -> WatchlistItem:
        item = self._require(user_id, tmdb_id, media_type)
        return self._write(item, status=ensure_status_for_type(status, item.type))

    # ------------------------------------------------------------------
    # Dropped / library
    # ------------------------------------------------------------------

    def mark_dropped(self, user_id: str, tmdb_id: int, media_type) -> WatchlistItem:
        item = self._require(user_id, tmdb_id, media_type)
        status = WatchStatus.MOVIE_DROPPED if item.type is MediaType.MOVIE else WatchStatus.SHOW_DROPPED
        return self._write(item, status=status)

    def restore_dropped(self, user_id: str, tmdb_id: int, media_type) -> WatchlistItem:
        item = self._require(user_id, tmdb_id, media_type)
        if item.type is MediaType.MOVIE:
            return self._write(item, status=WatchStatus.MOVIE_UNWATCHED)
        return self._write_progress(item, item.last_watched_season, item.progress)

    def move_to_library(self, user_id: str, tmdb_id: int, media_type) -> WatchlistItem:
        item = self._require(user_id, tmdb_id, media_type)
        status = WatchStatus.MOVIE_UNWATCHED if item.type is MediaType.MOVIE else WatchStatus.SHOW_NEW
        return self._write(item, status=status, metadata={**item.metadata, "moved_to_library": True})

    # ------------------------------------------------------------------
    # Manual date / upcoming dismissal
    # ------------------------------------------------------------------

    def set_manual_date(
        self,
        user_id: str,
        tmdb_id: int,
        media_type,
        release_date: str,
        ott_name: Optional[str] = None,
    ) -> WatchlistItem:
        parsed = parse_date(release_date)
        if parsed is None:
            raise ValueError(f"Invalid date: {release_date}")
        item = self._require(user_id, tmdb_id, media_type)
        metadata = {
            **item.metadata,
            "manual_release_date": parsed.isoformat(),
            "manual_ott_name": (ott_name or "").strip() or None,
            "manual_date_override": True,
        }
        fields = {"metadata": metadata}
        if item.type is MediaType.MOVIE:
            fields["status"] = WatchStatus.MOVIE_ON_OTT
        return self._write(item, **fields)

    async def reset_manual_date(self, user_id: str, tmdb_id: int, media_type) -> WatchlistItem:
        """Clear the override and re-enrich from the catalog.

        Nothing is written unless enrichment succeeds.
        """
        item = self._require(user_id, tmdb_id, media_type)
        metadata = {k: v for k, v in item.metadata.items() if k not in MANUAL_DATE_FIELDS}
        return await self.refresh.refresh_item(item.model_copy(update={"metadata": metadata}))

    def set_upcoming_dismissed(self, user_id: str, tmdb_id: int, media_type, dismissed: bool) -> WatchlistItem:
        item = self._require(user_id, tmdb_id, media_type)
        return self._write(item, metadata={**item.metadata, "dismissed_from_upcoming": bool(dismissed)})

    async def refresh_item(self, user_id: str, tmdb_id: int, media_type) -> WatchlistItem:
        item = self._require(user_id, tmdb_id, media_type)
        return await self.refresh.refresh_item(item)
