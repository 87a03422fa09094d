"""Status classification — the single place lifecycle statuses are derived.

Everything here is pure: functions take metadata/progress (and an optional
``today``) and return a status, never touching storage or the network.
Every mutation path and refresh driver goes through them.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from reeltrack.models.status import WatchStatus
from reeltrack.services.dates import parse_date

FINISHED_RAW_STATUSES = ("Ended", "Canceled", "Miniseries")
NEW_RAW_STATUSES = ("Planned", "In Production", "Pilot", "Rumored")


def released_seasons(metadata: dict | None, today: date | None = None) -> list[dict]:
    """Seasons (specials excluded) whose air date is on or before *today*."""
    today = today or date.today()
    released = []
    for season in (metadata or {}).get("seasons") or []:
        number = season.get("season_number") or 0
        aired = parse_date(season.get("air_date"))
        if number > 0 and aired is not None and aired <= today:
            released.append(season)
    return released


def is_finished_show(metadata: dict | None) -> bool:
    metadata = metadata or {}
    return metadata.get("status") in FINISHED_RAW_STATUSES or metadata.get("type") == "Miniseries"


def clamp_season(last_watched_season, metadata: dict | None, today: date | None = None) -> int:
    """Clamp a season counter to ``[0, number of released seasons]``."""
    try:
        season = int(last_watched_season or 0)
    except (TypeError, ValueError):
        season = 0
    return max(0, min(season, len(released_seasons(metadata, today))))


def classify_show(
    metadata: dict | None,
    last_watched_season: int,
    progress: int = 0,
    today: date | None = None,
) -> WatchStatus:
    """Derive the lifecycle status of a show from its metadata and the user's progress."""
    metadata = metadata or {}
    today = today or date.today()
    progress = max(int(progress or 0), 0)
    requested_season = max(int(last_watched_season or 0), 0)

    # Started season 1 but not finished it
    if requested_season == 0 and progress > 0:
        return WatchStatus.SHOW_WATCHING

    total_released = len(released_seasons(metadata, today))
    if total_released == 0:
        return WatchStatus.SHOW_ONGOING if metadata.get("last_episode_to_air") else WatchStatus.SHOW_NEW

    season = min(requested_season, total_released)
    if season == 0:
        return WatchStatus.SHOW_FINISHED if is_finished_show(metadata) else WatchStatus.SHOW_ONGOING

    if season < total_released:
        return WatchStatus.SHOW_WATCHING

    next_episode = metadata.get("next_episode_to_air") or {}
    next_date = parse_date(next_episode.get("air_date"))
    if next_date is not None and next_date > today:
        # Same season still airing weekly vs. waiting on a new season
        if next_episode.get("season_number") == season:
            return WatchStatus.SHOW_WATCHING
        return WatchStatus.SHOW_RETURNING
    return WatchStatus.SHOW_WATCHED


def initial_show_status(details: dict, current_status: Optional[WatchStatus]) -> tuple[WatchStatus, bool]:
    """Status picked by enrichment for a show: ``(status, moved_to_library)``.

    An existing status is kept as is; progress-driven changes go through
    :func:`classify_show`.
    """
    if not details.get("last_episode_to_air"):
        return WatchStatus.SHOW_NEW, False
    if current_status is not None:
        return current_status, True

    if details.get("status") in NEW_RAW_STATUSES:
        return WatchStatus.SHOW_NEW, False
    if is_finished_show(details):
        return WatchStatus.SHOW_FINISHED, True
    return WatchStatus.SHOW_ONGOING, True


@dataclass(frozen=True)
class MovieSignals:
    """Availability facts gathered for a movie during enrichment."""

    has_regional_providers: bool = False
    is_released: bool = False
    has_future_digital_date: bool = False
    has_digital_date: bool = False
    has_manual_override: bool = False
    available_globally: bool = False
    is_stale: bool = False


def _released_outcome(current_status: Optional[WatchStatus]) -> tuple[WatchStatus, bool]:
    if current_status is None:
        return WatchStatus.MOVIE_UNWATCHED, True
    if current_status == WatchStatus.MOVIE_COMING_SOON:
        return WatchStatus.MOVIE_ON_OTT, False
    if current_status == WatchStatus.MOVIE_WATCHED:
        return WatchStatus.MOVIE_WATCHED, True
    return WatchStatus.MOVIE_UNWATCHED, True


def decide_movie_status(
    signals: MovieSignals,
    current_status: Optional[WatchStatus],
) -> tuple[WatchStatus, bool]:
    """Movie decision table: ``(status, moved_to_library)``, first match wins."""
    valid_digital_transition = (
        current_status == WatchStatus.MOVIE_COMING_SOON
        and signals.is_released
        and signals.has_digital_date
    )

    if signals.has_regional_providers and signals.is_released:
        status, moved = _released_outcome(current_status)
    elif (
        signals.has_regional_providers
        or signals.has_future_digital_date
        or valid_digital_transition
        or signals.has_manual_override
    ):
        status, moved = WatchStatus.MOVIE_ON_OTT, False
    elif signals.available_globally or signals.is_stale:
        status, moved = _released_outcome(current_status)
    else:
        status, moved = WatchStatus.MOVIE_COMING_SOON, False

    # Sticky statuses
    if current_status == WatchStatus.MOVIE_ON_OTT and status is WatchStatus.MOVIE_UNWATCHED:
        status, moved = WatchStatus.MOVIE_ON_OTT, False
    if current_status == WatchStatus.MOVIE_WATCHED:
        status, moved = WatchStatus.MOVIE_WATCHED, True
    return status, moved
