"""Metadata pruning — reduces a catalog payload to the lean form stored per row."""
from __future__ import annotations

import logging

from pydantic import ValidationError

from reeltrack.models.metadata import LeanMetadata

logger = logging.getLogger(__name__)

WHITELIST = (
    "backdrop_path", "overview", "release_date", "first_air_date", "runtime",
    "status", "type", "next_episode_to_air", "last_episode_to_air", "seasons",
    "external_ids", "genres", "number_of_episodes", "number_of_seasons",
    "episode_run_time", "tvmaze_runtime", "digital_release_date",
    "digital_release_note", "theatrical_release_date", "moved_to_library",
    "manual_date_override", "manual_release_date", "manual_ott_name",
    "dismissed_from_upcoming", "last_updated_at",
)

# Heavy sub-resources never merged into stored metadata
BULK_FIELDS = frozenset({
    "credits", "production_companies", "images", "reviews",
    "release_dates", "content_ratings",
})


def _first_trailer(videos) -> dict:
    results = (videos or {}).get("results") or []
    for video in results:
        if video.get("type") == "Trailer" and video.get("site") == "YouTube":
            return {"results": [video]}
    return {"results": []}


def _region_providers(providers, region: str) -> dict:
    results = (providers or {}).get("results") or {}
    if region in results and results[region] is not None:
        return {"results": {region: results[region]}}
    return {}


def prune_metadata(meta: dict | None, region: str) -> dict | None:
    """Return the storage-lean subset of *meta* for *region*.

    Keeps the whitelisted fields, a single YouTube trailer and the provider
    block of *region* only.  Empty input is returned unchanged.
    """
    if not meta:
        return meta

    lean = {key: meta.get(key) for key in WHITELIST}
    lean["title"] = meta.get("title") or meta.get("name")
    lean["name"] = meta.get("name") or meta.get("title")
    lean["poster_path"] = meta.get("poster_path")
    lean["vote_average"] = meta.get("vote_average")
    lean["watch/providers"] = _region_providers(meta.get("watch/providers"), region)
    if meta.get("videos") is not None:
        lean["videos"] = _first_trailer(meta["videos"])

    try:
        return LeanMetadata.model_validate(lean).model_dump(by_alias=True, exclude_none=True)
    except ValidationError as e:
        logger.warning(f"Metadata for '{lean.get('title')}' failed validation, storing unvalidated: {e}")
        return {k: v for k, v in lean.items() if v is not None}
