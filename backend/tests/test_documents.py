import pytest


class TestDocuments:
    def _category(self, client, headers, name="Finance"):
        return client.post("/api/categories", json={"name": name}, headers=headers).json()["id"]

    def _create(self, client, headers, category_id, title="Invoice", **extra):
        payload = {
            "title": title,
            "categoryId": category_id,
            "filePath": f"https://files.example.com/{title}.pdf",
            "fileType": "pdf",
            "fileSize": 1024,
            **extra,
        }
        return client.post("/api/documents", json=payload, headers=headers)

    def _activity(self, client, headers):
        return client.get("/api/activity-log", headers=headers).json()

    def test_create_document(self, client, headers):
        category_id = self._category(client, headers)
        r = self._create(client, headers, category_id, documentNumber="INV-7", documentDate="2024-03-01")
        assert r.status_code == 201
        data = r.json()
        assert data["title"] == "Invoice"
        assert data["categoryId"] == category_id
        assert data["filePath"] == "https://files.example.com/Invoice.pdf"
        assert data["fileType"] == "pdf"
        assert data["fileSize"] == 1024
        assert data["status"] == "ACTIVE"
        assert data["documentNumber"] == "INV-7"
        assert data["documentDate"] == "2024-03-01"
        assert data["category"]["name"] == "Finance"

        entry = self._activity(client, headers)[0]
        assert entry["action"] == "Uploaded document: Invoice"
        assert entry["documentId"] == data["id"]
        assert entry["document"] == {"id": data["id"], "title": "Invoice"}

    def test_create_then_read(self, client, headers):
        category_id = self._category(client, headers)
        created = self._create(client, headers, category_id).json()
        r = client.get(f"/api/documents/{created['id']}", headers=headers)
        assert r.status_code == 200
        fetched = r.json()
        for field in ("title", "categoryId", "filePath", "fileType", "fileSize"):
            assert fetched[field] == created[field]

    def test_create_accepts_snake_case(self, client, headers):
        category_id = self._category(client, headers)
        r = client.post(
            "/api/documents",
            json={"title": "Memo", "category_id": category_id, "file_path": "x", "file_type": "txt", "file_size": 3},
            headers=headers,
        )
        assert r.status_code == 201

    def test_missing_fields(self, client, headers):
        r = client.post("/api/documents", json={"title": "Invoice"}, headers=headers)
        assert r.status_code == 400
        assert r.json() == {"error": "Missing required fields: categoryId, filePath, fileType, fileSize"}

    @pytest.mark.parametrize("size", [-1, "12kb", "1.5"])
    def test_bad_file_size(self, client, headers, size):
        category_id = self._category(client, headers)
        r = self._create(client, headers, category_id, fileSize=size)
        assert r.status_code == 400

    def test_unknown_category(self, client, headers):
        r = self._create(client, headers, "999999")
        assert r.status_code == 400
        assert r.json() == {"error": "Category not found"}
        assert client.get("/api/documents", headers=headers).json() == []

    def test_bad_document_date(self, client, headers):
        category_id = self._category(client, headers)
        r = self._create(client, headers, category_id, documentDate="03/01/2024")
        assert r.status_code == 400

    def test_get_missing_document(self, client, headers):
        r = client.get("/api/documents/999999", headers=headers)
        assert r.status_code == 404
        assert r.json() == {"error": "Document not found"}

    def test_update_document(self, client, headers):
        finance = self._category(client, headers)
        legal = self._category(client, headers, "Legal")
        doc = self._create(client, headers, finance).json()

        r = client.put(
            f"/api/documents/{doc['id']}",
            json={"title": "Invoice 2024", "categoryId": legal, "status": "archived", "description": "Paid"},
            headers=headers,
        )
        assert r.status_code == 200
        data = r.json()
        assert data["title"] == "Invoice 2024"
        assert data["categoryId"] == legal
        assert data["category"]["name"] == "Legal"
        assert data["status"] == "ARCHIVED"
        assert data["description"] == "Paid"
        assert data["filePath"] == doc["filePath"]

        entry = self._activity(client, headers)[0]
        assert entry["action"] == f"Updated document ID {doc['id']}: Invoice 2024"
        assert entry["documentId"] == doc["id"]

    def test_update_logs_resulting_title(self, client, headers):
        category_id = self._category(client, headers)
        doc = self._create(client, headers, category_id).json()
        client.put(f"/api/documents/{doc['id']}", json={"description": "Paid"}, headers=headers)
        assert self._activity(client, headers)[0]["action"] == f"Updated document ID {doc['id']}: Invoice"

    def test_update_rejects_unknown_status(self, client, headers):
        category_id = self._category(client, headers)
        doc = self._create(client, headers, category_id).json()
        r = client.put(f"/api/documents/{doc['id']}", json={"status": "SHREDDED"}, headers=headers)
        assert r.status_code == 400

    def test_update_rejects_unknown_category(self, client, headers):
        category_id = self._category(client, headers)
        doc = self._create(client, headers, category_id).json()
        r = client.put(f"/api/documents/{doc['id']}", json={"categoryId": "999999"}, headers=headers)
        assert r.status_code == 400
        assert client.get(f"/api/documents/{doc['id']}", headers=headers).json()["categoryId"] == category_id

    def test_update_missing_document(self, client, headers):
        r = client.put("/api/documents/999999", json={"title": "X"}, headers=headers)
        assert r.status_code == 404

    def test_rename_category_shows_on_documents(self, client, headers):
        category_id = self._category(client, headers)
        doc = self._create(client, headers, category_id).json()
        client.put(f"/api/categories/{category_id}", json={"name": "Accounts"}, headers=headers)
        r = client.get(f"/api/documents/{doc['id']}", headers=headers)
        assert r.json()["category"]["name"] == "Accounts"

    def test_delete_keeps_activity(self, client, headers):
        category_id = self._category(client, headers)
        doc = self._create(client, headers, category_id).json()
        client.put(f"/api/documents/{doc['id']}", json={"status": "ARCHIVED"}, headers=headers)

        r = client.delete(f"/api/documents/{doc['id']}", headers=headers)
        assert r.status_code == 200
        assert r.json() == {"message": "Document deleted successfully"}
        assert client.get(f"/api/documents/{doc['id']}", headers=headers).status_code == 404

        actions = {e["action"]: e for e in self._activity(client, headers)}
        assert f"Deleted document ID {doc['id']}" in actions
        for action in ("Uploaded document: Invoice", f"Updated document ID {doc['id']}: Invoice"):
            assert actions[action]["documentId"] is None
            assert actions[action]["document"] is None

    def test_delete_missing_document(self, client, headers):
        r = client.delete("/api/documents/999999", headers=headers)
        assert r.status_code == 404

    def test_delete_out_of_range_id(self, client, headers, store):
        r = client.delete("/api/documents/99999999999999999999999", headers=headers)
        assert r.status_code == (400 if store.name == "sql" else 404)


class TestDocumentFilters:
    def _seed(self, store):
        finance = store.add_category("Finance").id
        legal = store.add_category("Legal").id
        rows = [
            ("Invoice January", finance, "ACTIVE", "2024-01-10T09:00:00.000000Z", "Utility bill"),
            ("Invoice February", finance, "ARCHIVED", "2024-02-10T09:00:00.000000Z", None),
            ("Lease agreement", legal, "ACTIVE", "2024-02-20T23:30:00.000000Z", "Office invoice terms"),
            ("NDA", legal, "ACTIVE", "2024-03-05T12:00:00.000000Z", None),
        ]
        for title, category_id, status, uploaded_at, description in rows:
            store.add_document(
                {
                    "title": title,
                    "category_id": category_id,
                    "status": status,
                    "uploaded_at": uploaded_at,
                    "description": description,
                    "file_path": f"documents/{title}.pdf",
                    "file_type": "pdf",
                    "file_size": 100,
                }
            )
        return finance, legal

    def _titles(self, client, headers, **params):
        r = client.get("/api/documents", params=params, headers=headers)
        assert r.status_code == 200
        return [d["title"] for d in r.json()]

    def test_newest_first(self, client, headers, store):
        self._seed(store)
        assert self._titles(client, headers) == ["NDA", "Lease agreement", "Invoice February", "Invoice January"]

    def test_search_title_and_description(self, client, headers, store):
        self._seed(store)
        assert self._titles(client, headers, search="nvoice") == [
            "Lease agreement",
            "Invoice February",
            "Invoice January",
        ]

    def test_category_and_status(self, client, headers, store):
        finance, legal = self._seed(store)
        assert self._titles(client, headers, categoryId=legal) == ["NDA", "Lease agreement"]
        assert self._titles(client, headers, categoryId=finance, status="ARCHIVED") == ["Invoice February"]

    def test_date_range_is_inclusive(self, client, headers, store):
        self._seed(store)
        titles = self._titles(client, headers, startDate="2024-02-10", endDate="2024-02-20")
        assert titles == ["Lease agreement", "Invoice February"]

    def test_open_ended_ranges(self, client, headers, store):
        self._seed(store)
        assert self._titles(client, headers, startDate="2024-03-01") == ["NDA"]
        assert self._titles(client, headers, endDate="2024-01-31") == ["Invoice January"]

    def test_bad_date(self, client, headers):
        r = client.get("/api/documents", params={"startDate": "last week"}, headers=headers)
        assert r.status_code == 400
        assert r.json() == {"error": "Invalid date: last week"}

    def test_bad_status(self, client, headers):
        r = client.get("/api/documents", params={"status": "LOST"}, headers=headers)
        assert r.status_code == 400
