# -*- coding: utf-8 -*-
import pytest
from conftest import write_dataset
from fastapi.testclient import TestClient

from apps.webatlas.app import create_app, create_app_from_settings
from apps.webatlas.settings import WebAtlasSettings
from atlas.persistence import JsonFileKeyValueStore, PersistenceGateway
from atlas.view_state import DatasetView


@pytest.fixture
def client(data_dir):
    with TestClient(create_app(str(data_dir))) as c:
        yield c


def test_healthz_and_meta(client):
    assert client.get("/healthz").json() == {"ok": True, "loaded": True, "error": None}
    meta = client.get("/api/v1/meta").json()
    assert meta["record_count"] == 4
    assert meta["year_count"] == 2
    assert "time-since" in meta["modes"]


def test_view_lists_records(client):
    data = client.get("/api/v1/view").json()
    assert data["mode"] == "list"
    assert [r["id"] for r in data["records"]] == ["Alpha", "Bravo", "Charlie", "Delta"]
    assert data["url"] == "view=versions"


def test_search_and_filters(client):
    data = client.post("/api/v1/search", json={"query": "ender"}).json()
    assert data["accepted"] is True
    assert [r["id"] for r in data["records"]] == ["Bravo", "Charlie", "Delta"]

    data = client.post("/api/v1/filters", json={"visibility": {"mobs": False}}).json()
    assert data["visibility"]["mobs"] is False
    assert [r["id"] for r in data["records"]] == ["Bravo", "Charlie"]

    r = client.post("/api/v1/filters", json={"visibility": {"villagers": False}})
    assert r.status_code == 400


def test_mode_switch_and_stats(client):
    assert client.post("/api/v1/mode", json={"mode": "detail"}).status_code == 400
    assert client.get("/api/v1/stats/names").status_code == 409

    data = client.post("/api/v1/mode", json={"mode": "stats"}).json()
    assert data["mode"] == "stats"
    assert data["search_enabled"] is False
    assert client.post("/api/v1/search", json={"query": "x"}).json()["accepted"] is False

    names = client.get("/api/v1/stats/names").json()
    assert names["longest"][0] == {"name": "Ender Dragon", "length": 12}

    table = client.get("/api/v1/stats/table", params={"column": "name"}).json()
    assert table["sort"] == {"column": "name", "direction": "desc"}
    assert all(not k.startswith("_") for k in table["rows"][0])

    growth = client.get("/api/v1/stats/growth", params={"cumulative": "false"}).json()
    assert growth["labels"] == ["1.3", "1.2", "1.1", "1.0"]

    assert client.get("/api/v1/time-since").status_code == 409


def test_time_since_board(client):
    client.post("/api/v1/mode", json={"mode": "time-since"})
    board = client.get("/api/v1/time-since").json()
    assert [c["key"] for c in board["content_cards"]] == ["last_item", "last_block", "last_mob"]
    assert board["version_cards"][0]["released_on"] == "June 1, 2021"
    client.post("/api/v1/mode", json={"mode": "time-since", "toggle": True})
    assert client.get("/api/v1/view").json()["mode"] == "list"


def test_material_groups_and_sections(client):
    client.post("/api/v1/mode", json={"mode": "material-groups"})
    groups = client.get("/api/v1/material-groups").json()
    assert groups["count"] == 1
    assert groups["groups"][0]["collapsed"] is False

    assert client.post("/api/v1/sections", json={"group_id": "material-group-0"}).json()["collapsed"] is True
    assert client.get("/api/v1/material-groups").json()["groups"][0]["collapsed"] is True

    data = client.post("/api/v1/sections", json={"record_id": "Bravo", "section": "blocks"}).json()
    assert data == {"record_id": "Bravo", "section": "blocks", "collapsed": True}
    assert client.post("/api/v1/sections", json={"record_id": "Bravo", "section": "villagers"}).status_code == 400


def test_compare(client):
    client.post("/api/v1/mode", json={"mode": "compare"})
    data = client.post("/api/v1/compare", json={"slot": 1, "id": "Charlie"}).json()
    assert data["resolved"] is True
    assert data["compare"][1]["name"] == "Charlie"
    assert data["url"] == "view=versions&mode=compare&compare2=Charlie"
    assert client.post("/api/v1/compare", json={"slot": 2, "id": "Alpha"}).status_code == 422


def test_detail_and_navigation(client):
    assert client.post("/api/v1/detail/open", json={"id": "Nope"}).status_code == 404

    data = client.post("/api/v1/detail/open", json={"id": "Bravo", "scroll_offset": 40}).json()
    assert data["mode"] == "detail"
    assert data["detail"]["name"] == "Bravo"
    assert data["detail_next"] == {"id": "Charlie", "name": "Charlie"}

    data = client.post("/api/v1/navigate", json={"action": "next"}).json()
    assert data["moved"] is True
    assert data["detail"]["name"] == "Charlie"

    data = client.post("/api/v1/detail/close").json()
    assert data["scroll_offset"] == 40
    assert data["mode"] == "list"

    data = client.post("/api/v1/navigate", json={"action": "back"}).json()
    assert data["mode"] == "detail"
    assert data["detail"]["name"] == "Charlie"

    assert client.post("/api/v1/navigate", json={"action": "sideways"}).status_code == 422


def test_initial_url_is_applied(data_dir):
    app = create_app(str(data_dir), initial_url="view=years&mode=detail&detailType=year&detailId=id-2020")
    with TestClient(app) as c:
        data = c.get("/api/v1/view").json()
    assert data["mode"] == "detail"
    assert data["view"] == "years"
    assert data["detail"]["name"] == "2020"


def test_failed_load_is_503(tmp_path):
    with TestClient(create_app(str(tmp_path / "nowhere"))) as c:
        assert c.get("/api/v1/view").status_code == 503
        health = c.get("/healthz").json()
    assert health["loaded"] is False
    assert "index" in health["error"]


def test_missing_mode_dataset_is_502(tmp_path, raw):
    root = write_dataset(tmp_path / "bare", raw, with_stats=False)
    with TestClient(create_app(str(root))) as c:
        c.post("/api/v1/mode", json={"mode": "stats"})
        r = c.get("/api/v1/stats/names")
    assert r.status_code == 502


def test_app_from_settings(data_dir, tmp_path):
    settings = WebAtlasSettings(data_source=str(data_dir), state_file=tmp_path / "state.json")
    with TestClient(create_app_from_settings(settings, initial_url="view=years")) as c:
        assert c.get("/api/v1/view").json()["view"] == "years"
        c.post("/api/v1/filters", json={"remove_duplicates": False})
    stored = PersistenceGateway(JsonFileKeyValueStore(tmp_path / "state.json")).load()
    assert stored.remove_duplicates is False
    assert stored.view == DatasetView.YEARS
