import pytest
from fastapi.testclient import TestClient

import main

USER = {"X-User-Id": "user-1"}


@pytest.fixture
def client(mongo_store):
    main.app.dependency_overrides[main.get_store] = lambda: mongo_store
    with TestClient(main.app) as client:
        yield client
    main.app.dependency_overrides.clear()


@pytest.fixture
def seeded(client):
    response = client.post("/api/seed")
    assert response.json()["status"] == "seeded"
    listing = client.get("/api/scriptures").json()["scriptures"]
    return {s["title"]: s["id"] for s in listing}


def test_root(client):
    assert client.get("/").status_code == 200


def test_seed_is_idempotent(client, seeded):
    assert client.post("/api/seed").json() == {"status": "exists"}


def test_categories(client):
    assert client.get("/api/categories").json()["categories"][0] == "All"


def test_search_and_category_from_url(client, seeded):
    body = client.get("/api/scriptures", params={"search": "veda", "category": "VEDAS"}).json()
    assert body["filters"] == {"search": "veda", "category": "Vedas"}
    assert body["params"] == {"search": "veda", "category": "vedas"}
    assert [s["title"] for s in body["scriptures"]] == ["Rigveda"]
    assert body["error"] is None


def test_unknown_category_lists_everything(client, seeded):
    body = client.get("/api/scriptures", params={"category": "novels"}).json()
    assert body["filters"]["category"] == "All"
    assert body["count"] == len(seeded)
    assert "category" not in body["params"]


def test_featured(client, seeded):
    body = client.get("/api/scriptures/featured").json()
    assert [s["title"] for s in body["scriptures"]] == ["Bhagavad Gita", "Rigveda", "Valmiki Ramayana"]


@pytest.mark.parametrize("scripture_id", ["nope", "0123456789abcdef01234567"])
def test_scripture_not_found(client, seeded, scripture_id):
    assert client.get("/api/scriptures/%s" % scripture_id).status_code == 404


def test_start_reading_seeds_progress(client, seeded):
    gita = seeded["Bhagavad Gita"]
    assert client.post("/api/scriptures/%s/start" % gita, headers=USER).json()["start_page"] == 1
    progress = client.get("/api/progress/%s" % gita, headers=USER).json()
    assert progress["current_chapter"] == 1
    assert progress["progress_percentage"] == 5

    client.put("/api/progress", headers=USER,
               json={"scripture_id": gita, "current_chapter": 6, "progress_percentage": 33})
    assert client.post("/api/scriptures/%s/start" % gita, headers=USER).json()["start_page"] == 6

    detail = client.get("/api/scriptures/%s" % gita, headers=USER).json()
    assert detail["progress"]["progress_percentage"] == 33
    assert detail["bookmarked"] is False


def test_anonymous_progress(client, seeded):
    gita = seeded["Bhagavad Gita"]
    assert client.post("/api/scriptures/%s/start" % gita).json()["start_page"] == 1
    assert client.get("/api/progress/%s" % gita).json() is None
    response = client.put("/api/progress", json={"scripture_id": gita, "progress_percentage": 10})
    assert response.status_code == 401


def test_progress_validation(client, seeded):
    response = client.put("/api/progress", headers=USER,
                          json={"scripture_id": seeded["Rigveda"], "progress_percentage": 120})
    assert response.status_code == 422


def test_bookmark_toggle(client, seeded):
    rigveda = seeded["Rigveda"]
    url = "/api/bookmarks/%s/toggle" % rigveda
    assert client.post(url, json={"bookmarked": False}).status_code == 401
    assert client.post(url, headers=USER, json={"bookmarked": False}).json()["bookmarked"] is True
    assert client.post(url, headers=USER, json={"bookmarked": False}).status_code == 502
    assert client.post(url, headers=USER, json={"bookmarked": True}).json()["bookmarked"] is False
    assert client.get("/api/scriptures/%s" % rigveda, headers=USER).json()["bookmarked"] is False


def test_dashboard(client, seeded):
    assert client.get("/api/dashboard").status_code == 401
    gita = seeded["Bhagavad Gita"]
    client.post("/api/scriptures/%s/start" % gita, headers=USER)
    client.post("/api/bookmarks/%s/toggle" % gita, headers=USER, json={"bookmarked": False})
    body = client.get("/api/dashboard", headers=USER).json()
    assert [r["scripture"]["title"] for r in body["reading"]] == ["Bhagavad Gita"]
    assert [b["scripture_id"] for b in body["bookmarks"]] == [gita]
    assert body["total_progress"] == 5


def test_writes_for_unknown_scripture_are_rejected(client, seeded):
    missing = "0123456789abcdef01234567"
    response = client.put("/api/progress", headers=USER,
                          json={"scripture_id": missing, "progress_percentage": 10})
    assert response.status_code == 404
    response = client.post("/api/bookmarks/%s/toggle" % missing, headers=USER, json={"bookmarked": False})
    assert response.status_code == 404
    assert client.get("/api/dashboard", headers=USER).json()["reading"] == []
