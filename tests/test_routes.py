"""Integration tests — hit actual FastAPI routes via Starlette TestClient."""

import json

import pytest
from starlette.testclient import TestClient

from conftest import FLATRATE, days, providers
from reeltrack.main import create_app


@pytest.fixture()
def client(data_dir, catalog):
    app = create_app(data_dir, transport=catalog.transport)
    with TestClient(app) as c:
        yield c


def _add(client, tmdb_id, media_type="movie", **extra):
    return client.post("/api/watchlist", json={"tmdb_id": tmdb_id, "type": media_type, **extra})


def _seasons_show(catalog, tmdb_id, **extra):
    details = {
        "status": "Returning Series",
        "number_of_seasons": 2,
        "last_episode_to_air": {"air_date": days(-7), "season_number": 2},
        "seasons": [
            {"season_number": 1, "air_date": days(-400), "episode_count": 8},
            {"season_number": 2, "air_date": days(-30), "episode_count": 8},
        ],
    }
    details.update(extra)
    return catalog.add_show(tmdb_id, **details)


# -------------------------------------------------------------------
# Health
# -------------------------------------------------------------------

def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.headers["content-type"] == "application/json; charset=utf-8"


# -------------------------------------------------------------------
# Watchlist
# -------------------------------------------------------------------

def test_add_and_list(client, catalog):
    catalog.add_movie(10, title="Dune: Part Two", release_date=days(-2),
                      **{"watch/providers": providers(flatrate=FLATRATE)})
    r = _add(client, 10)
    assert r.status_code == 201
    body = r.json()
    assert body["created"] is True
    assert body["item"]["status"] == "movie_unwatched"
    assert body["item"]["title"] == "Dune: Part Two"

    r = _add(client, 10)
    assert r.status_code == 200
    assert r.json()["created"] is False

    r = client.get("/api/watchlist")
    assert r.json()["count"] == 1


def test_list_filters(client, catalog):
    catalog.add_movie(11, title="Dune: Part Two", release_date=days(40))
    catalog.add_movie(12, title="Paddington in Peru", release_date=days(40))
    catalog.add_show(13, name="Severance", status="Planned")
    for tmdb_id, media_type in ((11, "movie"), (12, "movie"), (13, "show")):
        assert _add(client, tmdb_id, media_type).status_code == 201

    assert client.get("/api/watchlist", params={"type": "show"}).json()["count"] == 1
    assert client.get("/api/watchlist", params={"status": "movie_coming_soon"}).json()["count"] == 2
    titles = [i["title"] for i in client.get("/api/watchlist", params={"q": "dune"}).json()["items"]]
    assert titles == ["Dune: Part Two"]


def test_list_rejects_unknown_status(client):
    assert client.get("/api/watchlist", params={"status": "binge"}).status_code == 422


def test_users_are_isolated(client, catalog):
    catalog.add_movie(14, release_date=days(40))
    _add(client, 14)
    r = client.get("/api/watchlist", headers={"X-User-Id": "someone-else"})
    assert r.json()["count"] == 0


def test_add_invalid_body(client):
    r = client.post("/api/watchlist", json={"type": "movie"})
    assert r.status_code == 400
    assert "error" in r.json()


def test_add_catalog_failure(client, catalog):
    catalog.failing.add(15)
    r = _add(client, 15)
    assert r.status_code == 502
    assert client.get("/api/watchlist").json()["count"] == 0


def test_remove(client, catalog):
    catalog.add_movie(16, release_date=days(40))
    _add(client, 16)
    assert client.delete("/api/watchlist/movie/16").status_code == 200
    assert client.delete("/api/watchlist/movie/16").status_code == 404


def test_movie_mutations(client, catalog):
    catalog.add_movie(17, release_date=days(40))
    _add(client, 17)

    r = client.post("/api/watchlist/movie/17/watched")
    assert r.json()["item"]["status"] == "movie_watched"
    r = client.post("/api/watchlist/movie/17/dropped")
    assert r.json()["item"]["status"] == "movie_dropped"
    r = client.post("/api/watchlist/movie/17/restore")
    assert r.json()["item"]["status"] == "movie_unwatched"
    r = client.post("/api/watchlist/movie/17/status", json={"status": "movie_on_ott"})
    assert r.json()["item"]["status"] == "movie_on_ott"
    r = client.post("/api/watchlist/movie/17/library")
    assert r.json()["item"]["metadata"]["moved_to_library"] is True


def test_status_validation(client, catalog):
    catalog.add_movie(18, release_date=days(40))
    _add(client, 18)
    assert client.post("/api/watchlist/movie/18/status", json={}).status_code == 400
    r = client.post("/api/watchlist/movie/18/status", json={"status": "show_watching"})
    assert r.status_code == 400
    assert "not valid" in r.json()["error"]


def test_mutation_on_missing_item(client):
    r = client.post("/api/watchlist/movie/999/watched")
    assert r.status_code == 404
    assert r.json() == {"error": "Item not found"}


def test_show_progress_routes(client, catalog):
    _seasons_show(catalog, 20)
    _add(client, 20, "show")

    r = client.post("/api/watchlist/show/20/progress", json={"progress": 3})
    assert r.json()["item"]["status"] == "show_watching"
    assert r.json()["item"]["progress"] == 3

    r = client.post("/api/watchlist/show/20/season/9/watched")
    item = r.json()["item"]
    assert item["last_watched_season"] == 2
    assert item["status"] == "show_watched"

    r = client.post("/api/watchlist/show/20/season/2/unwatched")
    assert r.json()["item"]["status"] == "show_watching"

    assert client.post("/api/watchlist/show/20/progress", json={"progress": "lots"}).status_code == 400


def test_manual_date_routes(client, catalog):
    catalog.add_movie(21, release_date=days(40))
    _add(client, 21)

    assert client.post("/api/watchlist/movie/21/manual-date", json={}).status_code == 400
    r = client.post("/api/watchlist/movie/21/manual-date", json={"date": days(5), "ott_name": "Netflix"})
    item = r.json()["item"]
    assert item["status"] == "movie_on_ott"
    assert item["metadata"]["manual_ott_name"] == "Netflix"

    r = client.get("/api/upcoming", params={"view": "ott"})
    assert [u["label"] for u in r.json()["items"]] == ["Coming to Netflix"]

    r = client.delete("/api/watchlist/movie/21/manual-date")
    assert r.status_code == 200
    assert r.json()["item"]["status"] == "movie_coming_soon"


def test_manual_date_reset_failure_keeps_date(client, catalog):
    catalog.add_movie(23, release_date=days(40))
    _add(client, 23)
    client.post("/api/watchlist/movie/23/manual-date", json={"date": days(5), "ott_name": "Netflix"})
    catalog.failing.add(23)

    assert client.delete("/api/watchlist/movie/23/manual-date").status_code == 502
    labels = [u["label"] for u in client.get("/api/upcoming").json()["items"]]
    assert labels == ["Coming to Netflix"]


def test_upcoming_dismissal_routes(client, catalog):
    catalog.add_movie(22, release_date=days(10))
    _add(client, 22)
    assert client.get("/api/upcoming").json()["count"] == 1

    client.post("/api/watchlist/movie/22/upcoming-dismissal")
    assert client.get("/api/upcoming").json()["count"] == 0

    client.delete("/api/watchlist/movie/22/upcoming-dismissal")
    assert client.get("/api/upcoming").json()["count"] == 1


# -------------------------------------------------------------------
# Upcoming
# -------------------------------------------------------------------

def test_upcoming_views(client, catalog):
    catalog.add_movie(30, title="Theatrical", release_date=days(10))
    catalog.add_show(31, name="Premiere Soon", status="In Production", first_air_date=days(7))
    _add(client, 30)
    _add(client, 31, "show")

    r = client.get("/api/upcoming")
    items = r.json()["items"]
    assert [i["title"] for i in items] == ["Premiere Soon", "Theatrical"]
    assert items[0]["label"] == "Premiere"
    assert items[0]["category"] == "ott"

    soon = client.get("/api/upcoming", params={"view": "coming_soon"}).json()["items"]
    assert [i["title"] for i in soon] == ["Theatrical"]
    assert client.get("/api/upcoming", params={"view": "cinema"}).status_code == 400


# -------------------------------------------------------------------
# Refresh
# -------------------------------------------------------------------

def test_item_refresh(client, catalog):
    catalog.add_movie(40, release_date=days(40))
    _add(client, 40)
    catalog.movies[40]["release_date"] = days(-1)
    catalog.movies[40]["watch/providers"] = providers(flatrate=FLATRATE)

    r = client.post("/api/watchlist/movie/40/refresh")
    assert r.status_code == 200
    assert r.json()["item"]["status"] == "movie_on_ott"


def test_item_refresh_failure_leaves_row(client, catalog):
    catalog.add_movie(41, release_date=days(40))
    _add(client, 41)
    catalog.failing.add(41)
    assert client.post("/api/watchlist/movie/41/refresh").status_code == 502
    item = client.get("/api/watchlist").json()["items"][0]
    assert item["status"] == "movie_coming_soon"


def test_cron_refresh(client, catalog):
    catalog.add_movie(42, title="Sinners", release_date=days(40))
    _add(client, 42)
    catalog.movies[42]["release_date"] = days(-1)
    catalog.movies[42]["watch/providers"] = providers(flatrate=FLATRATE)

    r = client.get("/api/cron/refresh")
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 1
    assert body["processed"] == ["Sinners"]
    assert body["results"][0]["new_status"] == "movie_on_ott"


def test_cron_refresh_requires_secret(client, monkeypatch):
    monkeypatch.setenv("CRON_SECRET", "s3cret")
    assert client.post("/api/cron/refresh").status_code == 401
    r = client.post("/api/cron/refresh", headers={"Authorization": "Bearer wrong"})
    assert r.json() == {"error": "Unauthorized"}
    r = client.post("/api/cron/refresh", headers={"Authorization": "Bearer s3cret"})
    assert r.status_code == 200
    assert r.json()["count"] == 0


def test_cron_refresh_without_tmdb_key(client):
    client.app.state.config_service.config["credentials"]["tmdb_api_key"] = ""
    r = client.get("/api/cron/refresh")
    assert r.status_code == 500


def test_cron_refresh_unexpected_failure(client, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("worker crashed")

    monkeypatch.setattr(client.app.state.refresh_service, "run_batch", broken)
    r = client.get("/api/cron/refresh")
    assert r.status_code == 500
    assert r.json() == {"error": "worker crashed"}


# -------------------------------------------------------------------
# Catalog passthrough
# -------------------------------------------------------------------

def test_search(client, catalog):
    r = client.get("/api/search", params={"q": "arrival", "type": "movie"})
    assert r.status_code == 200
    assert r.json()["results"][0]["title"] == "arrival"
    assert catalog.requests[-1].url.path == "/3/search/movie"

    assert client.get("/api/search", params={"q": "x", "type": "person"}).status_code == 400
    assert client.get("/api/search", params={"q": "  "}).json()["results"] == []


def test_search_without_key(client):
    client.app.state.config_service.config["credentials"]["tmdb_api_key"] = ""
    assert client.get("/api/search", params={"q": "arrival"}).status_code == 502


def test_trending(client, catalog):
    r = client.get("/api/trending", params={"type": "show"})
    assert r.status_code == 200
    assert catalog.requests[-1].url.path == "/3/trending/tv/week"
    assert client.get("/api/trending", params={"window": "month"}).status_code == 400


# -------------------------------------------------------------------
# Options / Config API
# -------------------------------------------------------------------

def test_options_get_masks_credentials(client):
    r = client.get("/api/options")
    assert r.status_code == 200
    body = r.json()
    assert body["region"] == "IN"
    assert body["credentials"] == {"tmdb_api_key": True, "watchmode_api_key": False, "cron_secret": False}


def test_options_update(client, data_dir):
    r = client.post("/api/options", json={"region": "us", "cron_batch_size": "3"})
    assert r.status_code == 200
    assert r.json()["region"] == "US"
    assert r.json()["options"]["cron_batch_size"] == 3

    with open(f"{data_dir}/config.json") as f:
        saved = json.load(f)
    assert saved["region"] == "US"


def test_options_rejects_bad_values(client):
    assert client.post("/api/options", json={"region": "XX"}).status_code == 400
    assert client.post("/api/options", json={"sweep_chunk_size": 0}).status_code == 400
    assert client.post("/api/options", json={"colour": "red"}).status_code == 400


def test_regions(client):
    codes = [r["code"] for r in client.get("/api/regions").json()]
    assert "IN" in codes and "US" in codes
