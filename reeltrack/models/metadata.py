"""Pydantic models for the lean metadata persisted on each watchlist row."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class EpisodeRef(BaseModel):
    """A ``next_episode_to_air`` / ``last_episode_to_air`` entry."""
    model_config = ConfigDict(extra="allow")

    air_date: Optional[str] = None
    season_number: Optional[int] = None
    episode_number: Optional[int] = None
    runtime: Optional[int] = None


class SeasonRef(BaseModel):
    """One entry of the catalog's season list."""
    model_config = ConfigDict(extra="allow")

    season_number: int = 0
    air_date: Optional[str] = None
    episode_count: Optional[int] = None


class LeanMetadata(BaseModel):
    """Whitelisted catalog fields plus the app overlay.

    Anything not declared here is dropped when a payload goes through
    :func:`reeltrack.services.metadata_service.prune_metadata`.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: Optional[str] = None
    name: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    overview: Optional[str] = None
    vote_average: Optional[float] = None
    release_date: Optional[str] = None
    first_air_date: Optional[str] = None
    runtime: Optional[int] = None
    status: Optional[str] = None
    type: Optional[str] = None
    next_episode_to_air: Optional[EpisodeRef] = None
    last_episode_to_air: Optional[EpisodeRef] = None
    seasons: Optional[list[SeasonRef]] = None
    external_ids: Optional[dict[str, Any]] = None
    genres: Optional[list[dict[str, Any]]] = None
    number_of_episodes: Optional[int] = None
    number_of_seasons: Optional[int] = None
    episode_run_time: Optional[list[int]] = None
    tvmaze_runtime: Optional[int] = None
    digital_release_date: Optional[str] = None
    digital_release_note: Optional[str] = None
    theatrical_release_date: Optional[str] = None

    # App overlay
    manual_date_override: Optional[bool] = None
    manual_release_date: Optional[str] = None
    manual_ott_name: Optional[str] = None
    dismissed_from_upcoming: Optional[bool] = None
    moved_to_library: Optional[bool] = None
    last_updated_at: Optional[int] = None

    watch_providers: Optional[dict[str, Any]] = Field(default=None, alias="watch/providers")
    videos: Optional[dict[str, Any]] = None
