"""Upcoming projection — maps watchlist rows onto their next relevant date."""
from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from reeltrack.models.status import NOT_UPCOMING_STATUSES, MediaType, WatchStatus
from reeltrack.models.watchlist import UpcomingItem, WatchlistItem
from reeltrack.services.dates import days_until, parse_date

UPCOMING_VIEWS = ("ott", "coming_soon")

# Shown last when a movie has no usable date at all
FAR_FUTURE = date(2099, 12, 31)

PROVIDER_LOGO_BUCKETS = ("flatrate", "ads", "free", "rent", "buy")


def calculate_total_runtime(item: WatchlistItem) -> int:
    """Total minutes to watch *item* (whole show for series)."""
    meta = item.metadata or {}
    if item.type is MediaType.MOVIE:
        return meta.get("runtime") or 0

    average = 0
    if meta.get("tvmaze_runtime"):
        average = meta["tvmaze_runtime"]
    elif meta.get("episode_run_time"):
        average = min(meta["episode_run_time"])
    elif (meta.get("last_episode_to_air") or {}).get("runtime"):
        average = meta["last_episode_to_air"]["runtime"]
    elif meta.get("runtime"):
        average = meta["runtime"]

    episodes = meta.get("number_of_episodes") or 0
    if average and episodes:
        return average * episodes
    return average or 0


def _provider_logo(meta: dict, region: str) -> Optional[str]:
    block = ((meta.get("watch/providers") or {}).get("results") or {}).get(region) or {}
    for bucket in PROVIDER_LOGO_BUCKETS:
        for provider in block.get(bucket) or []:
            return provider.get("logo_path")
    return None


def _is_excluded_show(item: WatchlistItem) -> bool:
    meta = item.metadata or {}
    next_episode = meta.get("next_episode_to_air")

    if item.status in (WatchStatus.SHOW_WATCHED, WatchStatus.SHOW_WATCHING):
        if parse_date((next_episode or {}).get("air_date")) is None:
            return True

    never_started = not item.last_watched_season and not item.progress
    if never_started and next_episode and next_episode.get("episode_number") != 1:
        return True

    active = (WatchStatus.SHOW_ONGOING, WatchStatus.SHOW_RETURNING, WatchStatus.SHOW_WATCHING)
    return not next_episode and item.status in active


def _movie_date(item: WatchlistItem, today: date) -> tuple[Optional[date], str, str]:
    meta = item.metadata or {}
    digital = parse_date(meta.get("digital_release_date"))
    theatrical = parse_date(meta.get("theatrical_release_date"))
    release = parse_date(meta.get("release_date"))

    if item.status is WatchStatus.MOVIE_ON_OTT:
        manual = parse_date(meta.get("manual_release_date")) if meta.get("manual_date_override") else None
        if manual is not None:
            ott_name = meta.get("manual_ott_name") or meta.get("digital_release_note")
            label = f"Coming to {ott_name}" if ott_name else "Coming to OTT"
            return manual, "ott", label if manual > today else "Streaming Now"
        if digital is not None:
            return digital, "ott", "Coming to OTT" if digital > today else "Streaming Now"
        return theatrical or release, "ott", "Date Pending"

    target = theatrical or release
    label = ""
    if target is not None:
        label = "Releasing in Theatres" if target > today else "Released"
    return target, "theatrical", label


def _show_date(item: WatchlistItem, today: date) -> tuple[date, str]:
    meta = item.metadata or {}
    next_date = parse_date((meta.get("next_episode_to_air") or {}).get("air_date"))
    if next_date is not None:
        if next_date < today:
            return next_date, "Streaming Now"
        if next_date == today:
            return next_date, "Airs Today"
        return next_date, "New Episode"

    last_date = parse_date((meta.get("last_episode_to_air") or {}).get("air_date"))
    if last_date is not None:
        return last_date, "Latest Episode"

    first_date = parse_date(meta.get("first_air_date") or meta.get("release_date"))
    if first_date is not None:
        return first_date, "Premiere" if item.status is WatchStatus.SHOW_NEW else "Released"
    return today, "Streaming Now"


def _fallback_movie_date(meta: dict) -> date:
    release = str(meta.get("release_date") or "")
    if len(release) >= 4 and release[:4].isdigit():
        return date(int(release[:4]), 12, 31)
    return FAR_FUTURE


def project_upcoming(item: WatchlistItem, today: date | None = None, region: str = "IN") -> Optional[UpcomingItem]:
    """Project *item* onto its next relevant date, or ``None`` if it is not upcoming."""
    today = today or date.today()
    meta = item.metadata or {}

    if item.status in NOT_UPCOMING_STATUSES:
        return None
    if item.type is MediaType.SHOW and _is_excluded_show(item):
        return None
    if meta.get("dismissed_from_upcoming"):
        return None

    if item.type is MediaType.MOVIE:
        target, category, label = _movie_date(item, today)
        if target is None:
            target = _fallback_movie_date(meta)
    else:
        target, label = _show_date(item, today)
        category = "ott"

    return UpcomingItem(
        id=item.id,
        tmdb_id=item.tmdb_id,
        type=item.type,
        title=item.title,
        poster_path=item.poster_path,
        vote_average=item.vote_average,
        status=item.status,
        date=target,
        category=category,
        label=label,
        days_until=days_until(target, today),
        provider_logo=_provider_logo(meta, region),
        total_runtime=calculate_total_runtime(item) or None,
    )


def _in_view(upcoming: UpcomingItem, view: str) -> bool:
    if view == "ott":
        return upcoming.status is WatchStatus.MOVIE_ON_OTT or upcoming.type is MediaType.SHOW
    if view == "coming_soon":
        return upcoming.status is WatchStatus.MOVIE_COMING_SOON
    return True


def build_upcoming(
    items: Iterable[WatchlistItem],
    today: date | None = None,
    region: str = "IN",
    view: str | None = None,
) -> list[UpcomingItem]:
    """Project, drop non-upcoming rows and sort by ``(date, title)``."""
    if view is not None and view not in UPCOMING_VIEWS:
        raise ValueError(f"Unknown upcoming view: {view}")
    today = today or date.today()

    projected = [p for p in (project_upcoming(item, today, region) for item in items) if p is not None]
    projected.sort(key=lambda p: (p.date, p.title or ""))
    if view:
        projected = [p for p in projected if _in_view(p, view)]
    return projected
