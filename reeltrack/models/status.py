"""Watchlist status and media-type enums."""
from __future__ import annotations

import enum


class MediaType(str, enum.Enum):
    MOVIE = "movie"
    SHOW = "show"

    @property
    def tmdb_path(self) -> str:
        """Path segment the catalog uses for this media type."""
        return "tv" if self is MediaType.SHOW else "movie"


class WatchStatus(str, enum.Enum):
    MOVIE_UNWATCHED = "movie_unwatched"
    MOVIE_WATCHED = "movie_watched"
    MOVIE_DROPPED = "movie_dropped"
    MOVIE_ON_OTT = "movie_on_ott"
    MOVIE_COMING_SOON = "movie_coming_soon"

    SHOW_NEW = "show_new"
    SHOW_ONGOING = "show_ongoing"
    SHOW_RETURNING = "show_returning"
    SHOW_WATCHING = "show_watching"
    SHOW_WATCHED = "show_watched"
    SHOW_FINISHED = "show_finished"
    SHOW_DROPPED = "show_dropped"

    @property
    def media_type(self) -> MediaType:
        return MediaType.MOVIE if self.value.startswith("movie_") else MediaType.SHOW


# Statuses the background refreshers keep re-enriching, stalest first.
REFRESHABLE_STATUSES = (
    WatchStatus.MOVIE_COMING_SOON,
    WatchStatus.MOVIE_ON_OTT,
    WatchStatus.SHOW_RETURNING,
    WatchStatus.SHOW_ONGOING,
    WatchStatus.SHOW_WATCHING,
    WatchStatus.SHOW_NEW,
)

# Settled statuses never shown on the Upcoming page.
NOT_UPCOMING_STATUSES = frozenset({
    WatchStatus.MOVIE_WATCHED,
    WatchStatus.MOVIE_UNWATCHED,
    WatchStatus.MOVIE_DROPPED,
    WatchStatus.SHOW_FINISHED,
    WatchStatus.SHOW_DROPPED,
})


def ensure_status_for_type(status, media_type) -> WatchStatus:
    """Coerce *status* to a :class:`WatchStatus` valid for *media_type*.

    Raises ``ValueError`` for unknown values and for cross-type statuses
    (e.g. ``show_watching`` on a movie row).
    """
    status = WatchStatus(status)
    media_type = MediaType(media_type)
    if status.media_type is not media_type:
        raise ValueError(f"Status '{status.value}' is not valid for a {media_type.value}")
    return status
