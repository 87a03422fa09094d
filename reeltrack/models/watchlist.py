"""Pydantic models for watchlist rows and upcoming projections."""
from __future__ import annotations

import uuid
import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from reeltrack.models.status import MediaType, WatchStatus, ensure_status_for_type

DEFAULT_USER = "local-user"


class WatchlistItem(BaseModel):
    """One tracked title for one user."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str = DEFAULT_USER
    tmdb_id: int
    type: MediaType
    title: str = ""
    poster_path: Optional[str] = None
    vote_average: Optional[float] = None
    status: WatchStatus
    metadata: dict = Field(default_factory=dict)
    last_watched_season: int = 0
    progress: int = 0
    created_at: str = Field(default_factory=lambda: dt.datetime.now().isoformat())
    updated_at: str = Field(default_factory=lambda: dt.datetime.now().isoformat())

    @model_validator(mode="after")
    def _status_matches_type(self) -> "WatchlistItem":
        ensure_status_for_type(self.status, self.type)
        return self


class AddItemRequest(BaseModel):
    """Body of ``POST /api/watchlist``."""
    model_config = ConfigDict(extra="allow")

    tmdb_id: int
    type: MediaType
    title: Optional[str] = None
    name: Optional[str] = None
    poster_path: Optional[str] = None
    vote_average: Optional[float] = None


class UpcomingItem(BaseModel):
    """A watchlist row projected onto its next relevant date."""

    id: str
    tmdb_id: int
    type: MediaType
    title: str = ""
    poster_path: Optional[str] = None
    vote_average: Optional[float] = None
    status: WatchStatus
    date: dt.date
    category: Literal["ott", "theatrical"]
    label: str = ""
    days_until: int = 0
    provider_logo: Optional[str] = None
    total_runtime: Optional[int] = None
