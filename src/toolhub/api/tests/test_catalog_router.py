import pytest
from fastapi.testclient import TestClient

from toolhub.api.app import create_app
from toolhub.catalog.services.catalog_service import CatalogService
from toolhub.catalog.storage.memory_backend import MemoryCatalogBackend

ADMIN = {"x-user-role": "admin"}


def _payload(app_id, **extra):
    return {"id": app_id, "name": app_id.title(), "downloadUrl": f"https://dl/{app_id}", **extra}


@pytest.fixture
def client():
    return TestClient(create_app(service=CatalogService(MemoryCatalogBackend())))


@pytest.fixture
def seeded(client):
    client.post("/api/apps", json=_payload("torque-calc", category="Engineering", tags=["bolts"]), headers=ADMIN)
    client.post("/api/apps", json=_payload("lockout-log", category="Safety", store="Plant"), headers=ADMIN)
    return client


def test_create_requires_admin_role(client):
    resp = client.post("/api/apps", json=_payload("a"))
    assert resp.status_code == 403

    resp = client.post("/api/apps", json=_payload("a"), headers={"x-user-role": "viewer"})
    assert resp.status_code == 403

    assert client.get("/api/apps").json() == {"apps": []}


def test_create_returns_normalized_record(client):
    resp = client.post(
        "/api/apps",
        json=_payload("a", category="Bogus", tags="not-a-list", downloads=99),
        headers=ADMIN,
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["id"] == "a"
    assert body["category"] == "General"
    assert body["store"] == "Main"
    assert body["tags"] == []
    assert body["downloads"] == 0
    assert body["feedback"] == []


def test_create_errors(seeded):
    resp = seeded.post("/api/apps", json={"id": "x", "name": "X"}, headers=ADMIN)
    assert resp.status_code == 400
    assert resp.json() == {"error": "downloadUrl required", "code": "MISSING_FIELD"}

    resp = seeded.post("/api/apps", json=_payload("torque-calc"), headers=ADMIN)
    assert resp.status_code == 409
    assert resp.json()["code"] == "DUPLICATE_ID"


def test_create_coerces_loose_payload_types(client):
    resp = client.post(
        "/api/apps",
        json={"id": 7, "name": "Seven", "downloadUrl": "https://dl/7", "description": None, "updateInfo": None},
        headers=ADMIN,
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["id"] == "7"
    assert body["description"] == ""
    assert body["updateInfo"] == ""
    assert client.get("/api/apps/7").status_code == 200


def test_create_null_required_field_is_missing_field(client):
    resp = client.post(
        "/api/apps",
        json={"id": "a", "name": None, "downloadUrl": "https://dl/a"},
        headers=ADMIN,
    )

    assert resp.status_code == 400
    assert resp.json() == {"error": "name required", "code": "MISSING_FIELD"}


def test_list_filters_and_sorts(seeded):
    assert [a["id"] for a in seeded.get("/api/apps").json()["apps"]] == ["lockout-log", "torque-calc"]
    assert [a["id"] for a in seeded.get("/api/apps", params={"category": "engineering"}).json()["apps"]] == [
        "torque-calc"
    ]
    assert [a["id"] for a in seeded.get("/api/apps", params={"tag": "BOLTS"}).json()["apps"]] == ["torque-calc"]
    assert [a["id"] for a in seeded.get("/api/apps", params={"store": "Plant"}).json()["apps"]] == ["lockout-log"]
    assert seeded.get("/api/apps", params={"q": "nothing"}).json() == {"apps": []}

    seeded.post("/api/apps/torque-calc/download")
    by_downloads = seeded.get("/api/apps", params={"sort": "downloads"}).json()["apps"]
    assert [a["id"] for a in by_downloads] == ["torque-calc", "lockout-log"]


def test_get_app(seeded):
    resp = seeded.get("/api/apps/torque-calc")
    assert resp.status_code == 200
    assert resp.json()["tags"] == ["bolts"]

    resp = seeded.get("/api/apps/ghost")
    assert resp.status_code == 404
    assert resp.json()["error"] == "App not found"


def test_download(seeded):
    resp = seeded.post("/api/apps/torque-calc/download")
    assert resp.status_code == 200
    assert resp.json() == {"downloadUrl": "https://dl/torque-calc", "downloads": 1}

    assert seeded.post("/api/apps/ghost/download").status_code == 404


def test_rate(seeded):
    seeded.post("/api/apps/torque-calc/rate", json={"rating": 4})
    resp = seeded.post(
        "/api/apps/torque-calc/rate",
        json={"rating": 5, "comment": "fast", "user": "kim", "persona": "engineer"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["rating"] == 4.5
    assert body["ratingCount"] == 2
    assert body["feedback"][-1]["user"] == "kim"
    assert body["feedback"][-1]["rating"] == 5


@pytest.mark.parametrize("body", [{"rating": 0}, {"rating": 6}, {"rating": "x"}, {}])
def test_rate_rejects_invalid_scores(seeded, body):
    resp = seeded.post("/api/apps/torque-calc/rate", json=body)

    assert resp.status_code == 400
    assert resp.json()["error"] == "rating must be between 1 and 5"
    assert seeded.get("/api/apps/torque-calc").json()["ratingCount"] == 0


def test_rate_unknown_app(seeded):
    assert seeded.post("/api/apps/ghost/rate", json={"rating": 3}).status_code == 404


def test_feedback(seeded):
    resp = seeded.post("/api/apps/lockout-log/feedback", json={"comment": "needs export"})

    assert resp.status_code == 201
    entry = resp.json()
    assert entry["user"] == "anonymous"
    assert entry["persona"] == "viewer"
    assert entry["comment"] == "needs export"
    assert "rating" not in entry

    app = seeded.get("/api/apps/lockout-log").json()
    assert app["feedback"] == [entry]
    assert app["ratingCount"] == 0

    assert seeded.post("/api/apps/ghost/feedback", json={}).status_code == 404


def test_categories_stores_and_stats(seeded):
    categories = seeded.get("/api/categories").json()["categories"]
    assert categories[:2] == ["Engineering", "Automation"]
    assert "General" not in categories

    assert seeded.get("/api/stores").json() == {"stores": ["Plant", "Main"]}

    seeded.post("/api/apps/torque-calc/download")
    seeded.post("/api/apps/torque-calc/rate", json={"rating": 3})
    assert seeded.get("/api/stats").json() == {
        "totalDownloads": 1,
        "averageRating": 3.0,
        "categoryBreakdown": {"Engineering": 1, "Safety": 1},
        "appCount": 2,
    }
