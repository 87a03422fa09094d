"""Tests for the refresh drivers and their pacing policies."""

import asyncio
import json
from datetime import date, timedelta

import pytest

from conftest import FLATRATE, days, providers, stored
from reeltrack.models.status import WatchStatus
from reeltrack.services.refresh_service import (
    CronBatchPacing,
    InteractivePacing,
    RefreshOutcome,
    SweepPacing,
)
from reeltrack.services.tmdb_service import ProviderError
from reeltrack.services.upcoming_service import project_upcoming


def _streaming_movie(catalog, tmdb_id):
    catalog.add_movie(tmdb_id, release_date=days(-3), **{"watch/providers": providers(flatrate=FLATRATE)})


class TestSweepPacing:

    def test_chunks(self):
        pacing = SweepPacing(chunk_size=10)
        sizes = [len(c) for c in pacing.chunks(list(range(25)))]
        assert sizes == [10, 10, 5]

    def test_sleeps_between_chunks_only(self):
        slept = []
        seen = []

        async def fake_sleep(seconds):
            slept.append(seconds)

        async def worker(item):
            seen.append(item)
            return RefreshOutcome(title=str(item), tmdb_id=item, type="movie", success=True)

        pacing = SweepPacing(chunk_size=2, delay_seconds=60, sleep=fake_sleep)
        outcomes = asyncio.run(pacing.run([1, 2, 3, 4, 5], worker))
        assert len(outcomes) == 5
        assert seen == [1, 2, 3, 4, 5]
        assert slept == [60.0, 60.0]

    def test_single_chunk_never_sleeps(self):
        slept = []

        async def fake_sleep(seconds):
            slept.append(seconds)

        async def worker(item):
            return RefreshOutcome(title="x", tmdb_id=item, type="movie", success=True)

        asyncio.run(SweepPacing(chunk_size=10, delay_seconds=5, sleep=fake_sleep).run([1, 2], worker))
        assert slept == []

    def test_chunk_size_floor(self):
        assert SweepPacing(chunk_size=0).chunk_size == 1


class TestCandidates:

    def test_stalest_refreshable_first(self, watchlist):
        stored(watchlist, 1, updated_at="2026-03-01T00:00:00")
        stored(watchlist, 2, updated_at="2026-01-01T00:00:00")
        stored(watchlist, 3, status="movie_watched", updated_at="2025-01-01T00:00:00")
        stored(watchlist, 4, media_type="show", status="show_returning", updated_at="2026-02-01T00:00:00")

        selected = CronBatchPacing(limit=2).select(watchlist)
        assert [i.tmdb_id for i in selected] == [2, 4]
        assert [i.tmdb_id for i in watchlist.list_refresh_candidates()] == [2, 4, 1]


class TestRunBatch:

    def test_coming_soon_movie_moves_to_ott(self, catalog, watchlist, refresh):
        _streaming_movie(catalog, 10)
        stored(watchlist, 10)
        outcomes = asyncio.run(refresh.run_batch(CronBatchPacing(limit=5)))
        assert [o.success for o in outcomes] == [True]
        assert outcomes[0].old_status == "movie_coming_soon"
        assert outcomes[0].new_status == "movie_on_ott"
        row = watchlist.get_item("local-user", 10, "movie")
        assert row.status is WatchStatus.MOVIE_ON_OTT
        assert row.metadata["watch/providers"]["results"]["IN"]["flatrate"][0]["provider_name"] == "Netflix"

    def test_failure_is_isolated(self, catalog, watchlist, refresh):
        _streaming_movie(catalog, 11)
        catalog.add_movie(12, release_date=days(-3))
        catalog.failing.add(12)
        stored(watchlist, 11)
        before = stored(watchlist, 12, metadata={"release_date": days(-3)})

        outcomes = asyncio.run(refresh.run_batch(CronBatchPacing(limit=5)))
        by_id = {o.tmdb_id: o for o in outcomes}
        assert by_id[11].success is True
        assert by_id[12].success is False
        assert "500" in by_id[12].error

        failed = watchlist.get_item("local-user", 12, "movie")
        assert failed.status is WatchStatus.MOVIE_COMING_SOON
        assert failed.updated_at == before.updated_at
        assert failed.metadata == before.metadata

    def test_timeout_is_isolated(self, catalog, watchlist, refresh):
        _streaming_movie(catalog, 15)
        catalog.add_movie(16, release_date=days(-3))
        catalog.timing_out.add(16)
        stored(watchlist, 15)
        before = stored(watchlist, 16, metadata={"release_date": days(-3)})

        outcomes = asyncio.run(refresh.run_batch(CronBatchPacing()))
        by_id = {o.tmdb_id: o for o in outcomes}
        assert by_id[15].success is True
        assert by_id[16].success is False
        assert "timed out" in by_id[16].error

        failed = watchlist.get_item("local-user", 16, "movie")
        assert failed.status is WatchStatus.MOVIE_COMING_SOON
        assert failed.updated_at == before.updated_at
        assert failed.metadata == before.metadata

    def test_real_digital_date_replaces_manual_date(self, catalog, watchlist, refresh):
        catalog.add_movie(17, release_date=days(-30), release_dates={"results": [
            {"iso_3166_1": "IN", "release_dates": [{"type": 4, "release_date": days(3)}]},
        ]})
        item = stored(watchlist, 17, status="movie_on_ott", metadata={
            "manual_date_override": True,
            "manual_release_date": days(20),
            "manual_ott_name": "Netflix",
        })

        updated = asyncio.run(refresh.refresh_item(item))
        assert updated.metadata["manual_date_override"] is False
        assert "manual_release_date" not in updated.metadata

        upcoming = project_upcoming(updated, date.today(), "IN")
        assert upcoming.date == date.today() + timedelta(days=3)
        assert upcoming.label == "Coming to OTT"

    def test_interactive_errors_propagate(self, catalog, watchlist, refresh):
        catalog.failing.add(13)
        item = stored(watchlist, 13)
        with pytest.raises(ProviderError):
            asyncio.run(refresh.run_batch(InteractivePacing(), items=[item]))

    def test_dropped_status_survives_refresh(self, catalog, watchlist, refresh):
        _streaming_movie(catalog, 14)
        item = stored(watchlist, 14, status="movie_dropped")
        updated = asyncio.run(refresh.refresh_item(item))
        assert updated.status is WatchStatus.MOVIE_DROPPED
        assert updated.metadata["watch/providers"]

    def test_show_is_reclassified_from_progress(self, catalog, watchlist, refresh):
        catalog.add_show(
            20,
            status="Returning Series",
            number_of_seasons=2,
            last_episode_to_air={"air_date": days(-7), "season_number": 2},
            seasons=[
                {"season_number": 1, "air_date": days(-400), "episode_count": 8},
                {"season_number": 2, "air_date": days(-30), "episode_count": 8},
            ],
        )
        item = stored(watchlist, 20, media_type="show", status="show_returning", last_watched_season=5)
        updated = asyncio.run(refresh.refresh_item(item))
        assert updated.last_watched_season == 2
        assert updated.status is WatchStatus.SHOW_WATCHED

    def test_nothing_due(self, refresh):
        assert asyncio.run(refresh.run_batch(CronBatchPacing())) == []

    def test_sweep_covers_every_candidate(self, catalog, watchlist, refresh):
        slept = []

        async def fake_sleep(seconds):
            slept.append(seconds)

        for tmdb_id in range(30, 35):
            _streaming_movie(catalog, tmdb_id)
            stored(watchlist, tmdb_id)
        outcomes = asyncio.run(refresh.run_batch(SweepPacing(chunk_size=2, delay_seconds=1, sleep=fake_sleep)))
        assert len(outcomes) == 5
        assert all(o.success for o in outcomes)
        assert slept == [1.0, 1.0]


class TestSweepCommand:

    def test_runs_against_data_dir(self, catalog, data_dir, watchlist):
        from reeltrack import sweep

        _streaming_movie(catalog, 40)
        stored(watchlist, 40)

        async def fake_sleep(seconds):
            pass

        code = asyncio.run(sweep._run(data_dir, 5, 0, None, transport=catalog.transport, sleep=fake_sleep))
        assert code == 0
        assert watchlist.get_item("local-user", 40, "movie").status is WatchStatus.MOVIE_ON_OTT

    def test_missing_key_fails(self, data_dir, tmp_path):
        from reeltrack import sweep

        (tmp_path / "config.json").write_text(json.dumps({"region": "IN", "credentials": {}}))
        assert asyncio.run(sweep._run(data_dir, None, None, None)) == 1
