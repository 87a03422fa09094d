"""Enrichment pipeline — fetch fresh catalog data and recompute derived fields.

The pipeline never writes anything.  It either returns a complete
:class:`EnrichmentResult` or raises (``ProviderError`` for catalog
failures); the caller decides whether to update the row.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Optional

from reeltrack.models.status import MediaType, WatchStatus
from reeltrack.services.dates import months_before, parse_date
from reeltrack.services.metadata_service import BULK_FIELDS, prune_metadata
from reeltrack.services.status_service import MovieSignals, decide_movie_status, initial_show_status

if TYPE_CHECKING:
    from reeltrack.services.tmdb_service import TmdbService
    from reeltrack.services.tvmaze_service import TvmazeService
    from reeltrack.services.watchmode_service import WatchmodeService

logger = logging.getLogger(__name__)

# Catalog release-date types
RELEASE_THEATRICAL_LIMITED = 2
RELEASE_THEATRICAL = 3
RELEASE_DIGITAL = 4
RELEASE_PHYSICAL = 5

STREAMING_BUCKETS = ("flatrate", "ads", "free")
GLOBAL_BUCKETS = ("flatrate", "rent", "buy")

GLOBAL_AVAILABILITY_MONTHS = 6
STALE_RELEASE_MONTHS = 12


@dataclass
class ReleaseDates:
    theatrical: Optional[str] = None
    digital: Optional[str] = None
    digital_note: Optional[str] = None


@dataclass
class EnrichmentResult:
    initial_status: WatchStatus
    final_metadata: dict
    moved_to_library: bool


def _first_of_type(entries: list, *types: int) -> Optional[dict]:
    for release_type in types:
        for entry in entries:
            if entry.get("type") == release_type:
                return entry
    return None


def extract_release_dates(payload: dict | None, region: str) -> ReleaseDates:
    """Pick the regional theatrical/digital dates out of a release-dates payload.

    When the region has no theatrical date, the earliest theatrical or
    digital date of any country is used as a display fallback.
    """
    results = (payload or {}).get("results") or []
    found = ReleaseDates()

    regional = next((r for r in results if r.get("iso_3166_1") == region), None)
    if regional and regional.get("release_dates"):
        entries = regional["release_dates"]
        theatrical = _first_of_type(entries, RELEASE_THEATRICAL, RELEASE_THEATRICAL_LIMITED)
        digital = _first_of_type(entries, RELEASE_DIGITAL, RELEASE_PHYSICAL)
        if theatrical:
            found.theatrical = theatrical.get("release_date") or None
        if digital:
            found.digital = digital.get("release_date") or None
            found.digital_note = digital.get("note") or None

    if not found.theatrical:
        earliest = None
        for country in results:
            for entry in country.get("release_dates") or []:
                if entry.get("type") not in (RELEASE_THEATRICAL_LIMITED, RELEASE_THEATRICAL, RELEASE_DIGITAL):
                    continue
                value = entry.get("release_date")
                if value and (earliest is None or value < earliest):
                    earliest = value
        found.theatrical = earliest
    return found


def has_streaming_providers(block: dict | None) -> bool:
    block = block or {}
    return any(block.get(bucket) for bucket in STREAMING_BUCKETS)


def _available_anywhere(all_regions: dict | None) -> bool:
    for block in (all_regions or {}).values():
        if any((block or {}).get(bucket) for bucket in GLOBAL_BUCKETS):
            return True
    return False


def movie_signals(
    details: dict,
    dates: ReleaseDates,
    region: str,
    manual_override: bool,
    today: date,
) -> MovieSignals:
    """Collect the availability facts the movie decision table runs on."""
    release = parse_date(details.get("release_date"))
    theatrical = parse_date(dates.theatrical)
    if theatrical is not None and (release is None or theatrical < release):
        release = theatrical

    digital = parse_date(dates.digital)
    is_released = release is None or release <= today
    all_regions = (details.get("watch/providers") or {}).get("results") or {}

    available_globally = False
    if release is not None and release < months_before(today, GLOBAL_AVAILABILITY_MONTHS):
        available_globally = _available_anywhere(all_regions)

    return MovieSignals(
        has_regional_providers=has_streaming_providers(all_regions.get(region)),
        is_released=is_released,
        has_future_digital_date=digital is not None and digital > today,
        has_digital_date=digital is not None,
        has_manual_override=manual_override,
        available_globally=available_globally,
        is_stale=release is not None and release < months_before(today, STALE_RELEASE_MONTHS),
    )


def should_restore_upcoming(existing: dict, fresh: dict) -> bool:
    """True when a dismissed item gained seasons since it was dismissed."""
    if not existing.get("dismissed_from_upcoming"):
        return False
    old_count = existing.get("number_of_seasons") or 0
    new_count = fresh.get("number_of_seasons") or 0
    return new_count > old_count


class EnrichmentService:
    """Runs the enrichment pipeline for one item at a time."""

    def __init__(
        self,
        tmdb: "TmdbService",
        tvmaze: "TvmazeService",
        watchmode: Optional["WatchmodeService"] = None,
    ):
        self.tmdb = tmdb
        self.tvmaze = tvmaze
        self.watchmode = watchmode

    async def _fetch(self, tmdb_id: int, media_type: MediaType, region: str) -> tuple[dict, Optional[dict]]:
        if media_type is MediaType.MOVIE:
            details, release_dates = await asyncio.gather(
                self.tmdb.get_details(tmdb_id, media_type, region),
                self.tmdb.get_release_dates(tmdb_id),
            )
            return details, release_dates
        return await self.tmdb.get_details(tmdb_id, media_type, region), None

    async def _splice_fallback_providers(self, details: dict, tmdb_id: int, media_type: MediaType, region: str):
        providers = details.get("watch/providers") or {}
        results = providers.get("results") or {}
        if results.get(region) or self.watchmode is None:
            return
        availability = await self.watchmode.get_availability(tmdb_id, media_type, region)
        if availability:
            logger.info(f"Using fallback availability for TMDB {tmdb_id} in {region}")
            details["watch/providers"] = {**providers, "results": {**results, region: availability}}

    async def enrich(
        self,
        tmdb_id: int,
        media_type,
        region: str,
        existing_metadata: dict | None = None,
        current_status=None,
        today: date | None = None,
    ) -> EnrichmentResult:
        media_type = MediaType(media_type)
        current_status = WatchStatus(current_status) if current_status else None
        existing = dict(existing_metadata or {})
        today = today or date.today()

        details, release_payload = await self._fetch(tmdb_id, media_type, region)
        details = dict(details or {})
        await self._splice_fallback_providers(details, tmdb_id, media_type, region)

        dates = ReleaseDates()
        tvmaze_runtime = None
        if media_type is MediaType.MOVIE:
            dates = extract_release_dates(release_payload, region)
        else:
            imdb_id = (details.get("external_ids") or {}).get("imdb_id")
            if imdb_id:
                tvmaze_runtime = await self.tvmaze.get_average_runtime(imdb_id)

        manual_override = bool(existing.get("manual_date_override"))
        if media_type is MediaType.MOVIE:
            signals = movie_signals(details, dates, region, manual_override, today)
            status, moved = decide_movie_status(signals, current_status)
        else:
            status, moved = initial_show_status(details, current_status)

        dismissed = existing.get("dismissed_from_upcoming")
        if should_restore_upcoming(existing, details):
            logger.info(f"New season detected for {details.get('name') or details.get('title')}, restoring to Upcoming")
            dismissed = False

        fresh = {k: v for k, v in details.items() if k not in BULK_FIELDS}
        merged = {**existing, **fresh}
        merged.update(
            tvmaze_runtime=tvmaze_runtime,
            digital_release_date=dates.digital or (existing.get("digital_release_date") if manual_override else None),
            digital_release_note=(
                dates.digital_note if dates.digital
                else (existing.get("digital_release_note") if manual_override else None)
            ),
            theatrical_release_date=dates.theatrical or (
                existing.get("theatrical_release_date") if manual_override else None
            ),
            manual_date_override=False if dates.digital else manual_override,
            moved_to_library=moved,
            dismissed_from_upcoming=dismissed,
            last_updated_at=int(time.time() * 1000),
        )
        if dates.digital:
            # A catalog digital date supersedes the user's manual one
            merged.update(manual_release_date=None, manual_ott_name=None)
        return EnrichmentResult(
            initial_status=status,
            final_metadata=prune_metadata(merged, region),
            moved_to_library=moved,
        )
