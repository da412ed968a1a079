from fastapi.testclient import TestClient

from archiver.errors import UnknownError
from archiver.main import app
from archiver.services import category_service


def _seed_documents(store, count, archived=0):
    category_id = store.add_category("Finance").id
    for i in range(count):
        store.add_document(
            {
                "title": f"Doc {i}",
                "category_id": category_id,
                "status": "ARCHIVED" if i < archived else "ACTIVE",
                "uploaded_at": f"2024-05-{i + 1:02d}T08:00:00.000000Z",
                "file_path": f"documents/doc{i}.pdf",
                "file_type": "pdf",
                "file_size": 100 * (i + 1),
            }
        )


class TestDashboard:
    def test_empty_dashboard(self, client, headers):
        r = client.get("/api/dashboard", headers=headers)
        assert r.status_code == 200
        assert r.json() == {
            "totalDocuments": 0,
            "archivedDocuments": 0,
            "recentDocuments": [],
            "totalCategories": 0,
            "storageUsedBytes": 0,
        }

    def test_counts_and_recent(self, client, headers, store):
        _seed_documents(store, 10, archived=2)
        data = client.get("/api/dashboard", headers=headers).json()
        assert data["totalDocuments"] == 10
        assert data["archivedDocuments"] == 2
        assert data["totalCategories"] == 1
        assert data["storageUsedBytes"] == sum(100 * (i + 1) for i in range(10))
        assert [d["title"] for d in data["recentDocuments"]] == ["Doc 9", "Doc 8", "Doc 7", "Doc 6", "Doc 5"]
        assert data["recentDocuments"][0]["category"]["name"] == "Finance"


class TestActivityLog:
    def test_most_recent_first_with_limit(self, client, headers):
        for name in ("A", "B", "C"):
            client.post("/api/categories", json={"name": name}, headers=headers)
        r = client.get("/api/activity-log", params={"limit": 2}, headers=headers)
        assert r.status_code == 200
        assert [e["action"] for e in r.json()] == ["Created category: C", "Created category: B"]

    def test_limit_must_be_positive(self, client, headers):
        r = client.get("/api/activity-log", params={"limit": 0}, headers=headers)
        assert r.status_code == 422


class TestSettings:
    def test_settings(self, client, headers, backend):
        r = client.get("/api/settings", headers=headers)
        assert r.status_code == 200
        data = r.json()
        assert data["backend"] == backend.name
        assert data["storage"] == "local"
        assert data["maxUploadBytes"] > 0

    def test_reset_clears_everything(self, client, headers, store):
        _seed_documents(store, 3)
        client.post("/api/categories", json={"name": "Legal"}, headers=headers)

        r = client.post("/api/settings/reset", headers=headers)
        assert r.status_code == 200
        assert client.get("/api/documents", headers=headers).json() == []
        assert client.get("/api/categories", headers=headers).json() == []
        assert client.get("/api/activity-log", headers=headers).json() == []

    def test_reset_requires_admin(self, client):
        r = client.post("/api/settings/reset", headers={"Authorization": "Bearer nope"})
        assert r.status_code == 401


class TestErrorResponses:
    def test_unhandled_error_is_generic(self, client, headers, monkeypatch):
        def boom(store):
            raise RuntimeError("secret connection string")

        monkeypatch.setattr(category_service, "list_categories", boom)
        c = TestClient(app, raise_server_exceptions=False)
        r = c.get("/api/categories", headers=headers)
        assert r.status_code == 500
        assert r.json() == {"error": "Internal Server Error"}

    def test_unknown_error_is_redacted(self, client, headers, monkeypatch):
        def boom(store):
            raise UnknownError("Database error: disk I/O")

        monkeypatch.setattr(category_service, "list_categories", boom)
        r = client.get("/api/categories", headers=headers)
        assert r.status_code == 500
        assert r.json() == {"error": "Internal Server Error"}

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "ok"
