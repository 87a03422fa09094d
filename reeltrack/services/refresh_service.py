"""Refresh drivers — re-enrich stored rows under different pacing policies.

Three policies share one worker:

* :class:`InteractivePacing` — a single row, errors propagate to the caller.
* :class:`CronBatchPacing` — the stalest few refreshable rows, all at once.
* :class:`SweepPacing` — every refreshable row in fixed-size chunks with a
  fixed pause between chunks.

Batch policies isolate each row: one failure is logged and reported in the
outcome list, siblings keep going and the failed row is left untouched.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from reeltrack.models.status import MediaType, WatchStatus
from reeltrack.models.watchlist import WatchlistItem
from reeltrack.services.status_service import clamp_season, classify_show

if TYPE_CHECKING:
    from reeltrack.services.config_service import ConfigService
    from reeltrack.services.enrichment_service import EnrichmentResult, EnrichmentService
    from reeltrack.services.watchlist_service import WatchlistService

logger = logging.getLogger(__name__)

DROPPED_STATUSES = (WatchStatus.MOVIE_DROPPED, WatchStatus.SHOW_DROPPED)

Worker = Callable[[WatchlistItem], Awaitable["RefreshOutcome"]]


@dataclass
class RefreshOutcome:
    title: str
    tmdb_id: int
    type: str
    success: bool
    old_status: Optional[str] = None
    new_status: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "tmdb_id": self.tmdb_id,
            "type": self.type,
            "success": self.success,
            "old_status": self.old_status,
            "new_status": self.new_status,
            "error": self.error,
        }


# ---------------------------------------------------------------------------
# Pacing strategies
# ---------------------------------------------------------------------------

class PacingStrategy:
    """Decides which rows a run covers and how their refreshes are scheduled."""

    # Batch policies catch per-row failures, interactive refresh lets them propagate
    isolate = True

    def select(self, watchlist: "WatchlistService") -> list[WatchlistItem]:
        return watchlist.list_refresh_candidates()

    async def run(self, items: list[WatchlistItem], worker: Worker) -> list["RefreshOutcome"]:
        raise NotImplementedError


class InteractivePacing(PacingStrategy):
    """One row at a time, awaited in order."""

    isolate = False

    async def run(self, items, worker):
        return [await worker(item) for item in items]


class CronBatchPacing(PacingStrategy):
    def __init__(self, limit: int = 5):
        self.limit = max(int(limit), 1)

    def select(self, watchlist):
        return watchlist.list_refresh_candidates(limit=self.limit)

    async def run(self, items, worker):
        return list(await asyncio.gather(*(worker(item) for item in items)))


class SweepPacing(PacingStrategy):
    def __init__(
        self,
        chunk_size: int = 10,
        delay_seconds: float = 60,
        sleep: Callable[[float], Awaitable] = asyncio.sleep,
    ):
        self.chunk_size = max(int(chunk_size), 1)
        self.delay_seconds = max(float(delay_seconds), 0.0)
        self._sleep = sleep

    def chunks(self, items: list[WatchlistItem]) -> list[list[WatchlistItem]]:
        return [items[i:i + self.chunk_size] for i in range(0, len(items), self.chunk_size)]

    async def run(self, items, worker):
        outcomes: list[RefreshOutcome] = []
        batches = self.chunks(items)
        for index, batch in enumerate(batches, start=1):
            logger.info(f"Sweep chunk {index}/{len(batches)} ({len(batch)} items)")
            outcomes.extend(await asyncio.gather(*(worker(item) for item in batch)))
            if index < len(batches) and self.delay_seconds:
                logger.info(f"Waiting {self.delay_seconds:g}s before next chunk")
                await self._sleep(self.delay_seconds)
        return outcomes


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class RefreshService:
    def __init__(
        self,
        config_service: "ConfigService",
        watchlist_service: "WatchlistService",
        enrichment_service: "EnrichmentService",
    ):
        self.config_service = config_service
        self.watchlist = watchlist_service
        self.enrichment = enrichment_service

    @staticmethod
    def resolve_status(item: WatchlistItem, result: "EnrichmentResult") -> tuple[WatchStatus, int]:
        """Status and season counter to store after enriching *item*."""
        if item.status in DROPPED_STATUSES:
            return item.status, item.last_watched_season
        if item.type is MediaType.SHOW:
            season = clamp_season(item.last_watched_season, result.final_metadata)
            return classify_show(result.final_metadata, season, item.progress), season
        return result.initial_status, item.last_watched_season

    async def refresh_item(self, item: WatchlistItem, region: str | None = None) -> WatchlistItem:
        """Re-enrich one row and store the result.  Provider errors propagate."""
        region = region or self.config_service.region
        result = await self.enrichment.enrich(
            item.tmdb_id,
            item.type,
            region,
            existing_metadata=item.metadata,
            current_status=item.status,
        )
        status, season = self.resolve_status(item, result)
        updated = self.watchlist.update_item(
            item.user_id,
            item.tmdb_id,
            item.type,
            status=status,
            metadata=result.final_metadata,
            last_watched_season=season,
        )
        if status is not item.status:
            logger.info(f"'{item.title}': {item.status.value} -> {status.value}")
        return updated or item

    @staticmethod
    def _outcome(item: WatchlistItem) -> RefreshOutcome:
        return RefreshOutcome(
            title=item.title, tmdb_id=item.tmdb_id, type=item.type.value,
            success=False, old_status=item.status.value,
        )

    async def _refresh_reported(self, item: WatchlistItem, region: str) -> RefreshOutcome:
        updated = await self.refresh_item(item, region)
        outcome = self._outcome(item)
        outcome.success = True
        outcome.new_status = updated.status.value
        return outcome

    async def _refresh_isolated(self, item: WatchlistItem, region: str) -> RefreshOutcome:
        outcome = self._outcome(item)
        try:
            updated = await self.refresh_item(item, region)
        except Exception as e:
            logger.error(f"Refresh failed for '{item.title}' ({item.type.value} {item.tmdb_id}): {e}")
            outcome.error = str(e)
            return outcome
        outcome.success = True
        outcome.new_status = updated.status.value
        return outcome

    async def run_batch(
        self,
        pacing: PacingStrategy,
        items: list[WatchlistItem] | None = None,
        region: str | None = None,
    ) -> list[RefreshOutcome]:
        """Refresh *items* (or the rows *pacing* selects) and return one outcome per row."""
        region = region or self.config_service.region
        if items is None:
            items = pacing.select(self.watchlist)
        if not items:
            logger.info("No items due for refresh")
            return []

        logger.info(f"Refreshing {len(items)} items ({type(pacing).__name__}, region {region})")
        refresh = self._refresh_isolated if pacing.isolate else self._refresh_reported
        outcomes = await pacing.run(items, lambda item: refresh(item, region))
        succeeded = sum(1 for o in outcomes if o.success)
        logger.info(f"Refresh finished: {succeeded}/{len(outcomes)} succeeded")
        return outcomes
