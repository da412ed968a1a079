import pytest

from archiver.errors import NotFoundError, ValidationError
from archiver.schemas.document import DocumentFilters
from archiver.store.base import SnapshotFeed


def _document(category_id, title="Invoice", **extra):
    return {
        "title": title,
        "category_id": category_id,
        "file_path": f"documents/{title}.pdf",
        "file_type": "pdf",
        "file_size": 10,
        "status": "ACTIVE",
        **extra,
    }


class TestStoreCategories:
    def test_add_and_find(self, store):
        created = store.add_category("Finance", "blue")
        assert store.get_category(created.id).name == "Finance"
        assert store.find_category_by_name("Finance").id == created.id
        assert store.find_category_by_name("finance") is None
        assert store.count_categories() == 1

    def test_document_counts(self, store):
        finance = store.add_category("Finance").id
        legal = store.add_category("Legal").id
        store.add_document(_document(finance))
        store.add_document(_document(finance, "Receipt"))
        counts = {c.name: c.document_count for c in store.list_categories()}
        assert counts == {"Finance": 2, "Legal": 0}
        assert store.count_documents(category_id=finance) == 2
        assert store.count_documents(category_id=legal) == 0

    def test_update_keeps_color_when_not_given(self, store):
        key = store.add_category("Finance", "blue").id
        updated = store.update_category(key, "Accounts")
        assert updated.name == "Accounts"
        assert updated.color == "blue"

    def test_missing_rows(self, store):
        missing = store.parse_key("424242")
        assert store.get_category(missing) is None
        assert store.get_document(missing) is None
        with pytest.raises(NotFoundError):
            store.update_category(missing, "X")
        with pytest.raises(NotFoundError):
            store.delete_category(missing)
        with pytest.raises(NotFoundError):
            store.update_document(missing, {"title": "X"})
        with pytest.raises(NotFoundError):
            store.delete_document(missing)

    @pytest.mark.parametrize("value", ["", "a/b", "a.b", None])
    def test_parse_key_rejects(self, store, value):
        with pytest.raises(ValidationError):
            store.parse_key(value)

    @pytest.mark.parametrize("value", ["99999999999999999999999", 2**63, -(2**63) - 1])
    def test_sql_keys_stay_in_integer_range(self, store, value):
        if store.name != "sql":
            pytest.skip("tree keys are strings")
        with pytest.raises(ValidationError):
            store.parse_key(value)


class TestStoreDocuments:
    def test_adding_document_touches_category(self, store):
        key = store.add_category("Finance").id
        doc = store.add_document(_document(key))
        assert store.get_category(key).updated_at == doc.created_at

    def test_document_joined_with_category(self, store):
        key = store.add_category("Finance", "green").id
        doc = store.add_document(_document(key))
        assert doc.status == "ACTIVE"
        assert doc.category.name == "Finance"
        assert doc.category.color == "green"
        assert doc.uploaded_at == doc.created_at

    def test_search_escapes_wildcards(self, store):
        key = store.add_category("Finance").id
        store.add_document(_document(key, "Growth 100%"))
        store.add_document(_document(key, "Growth 1000"))
        found = store.list_documents(DocumentFilters(search="100%"))
        assert [d.title for d in found] == ["Growth 100%"]

    def test_recent_documents(self, store):
        key = store.add_category("Finance").id
        for day in range(1, 8):
            store.add_document(_document(key, f"Day {day}", uploaded_at=f"2024-01-0{day}T00:00:00.000000Z"))
        assert [d.title for d in store.recent_documents(3)] == ["Day 7", "Day 6", "Day 5"]

    def test_storage_used(self, store):
        key = store.add_category("Finance").id
        store.add_document(_document(key, "A", file_size=1500))
        store.add_document(_document(key, "B", file_size=500))
        assert store.storage_used() == 2000


class TestStoreActivity:
    def test_detach_keeps_entries(self, store):
        key = store.add_category("Finance").id
        doc = store.add_document(_document(key))
        store.append_activity("Uploaded document: Invoice", document_id=doc.id)
        store.append_activity("Something else")

        assert store.detach_activity(doc.id) == 1
        store.delete_document(doc.id)

        entries = store.list_activity(10)
        assert [e.action for e in entries] == ["Something else", "Uploaded document: Invoice"]
        assert all(e.document_id is None and e.document is None for e in entries)

    def test_reset(self, store):
        key = store.add_category("Finance").id
        store.add_document(_document(key))
        store.append_activity("Created category: Finance")
        store.reset()
        assert store.list_categories() == []
        assert store.list_documents(DocumentFilters()) == []
        assert store.list_activity(10) == []


class TestSubscriptions:
    def test_initial_and_change_snapshots(self, store):
        received = []
        unsubscribe = store.subscribe("categories", lambda snapshot: received.append([c.name for c in snapshot]))
        store.add_category("Finance")
        store.add_category("Archive")
        unsubscribe()
        store.add_category("Legal")
        assert received == [[], ["Finance"], ["Archive", "Finance"]]

    def test_rename_reaches_document_subscribers(self, store):
        key = store.add_category("Finance").id
        store.add_document(_document(key))
        received = []
        unsubscribe = store.subscribe("documents", lambda snapshot: received.append(snapshot[0].category.name))
        store.update_category(key, "Accounts")
        unsubscribe()
        assert received[0] == "Finance"
        assert received[-1] == "Accounts"

    def test_unknown_collection(self, store):
        with pytest.raises(NotFoundError):
            store.subscribe("users", lambda snapshot: None)

    def test_failing_listener_does_not_block_others(self, store):
        received = []

        def broken(snapshot):
            if snapshot:
                raise RuntimeError("listener bug")

        stop_broken = store.subscribe("categories", broken)
        stop_ok = store.subscribe("categories", lambda snapshot: received.append(len(snapshot)))
        store.add_category("Finance")
        stop_broken()
        stop_ok()
        assert received == [0, 1]


class RecordingWatch:
    def __init__(self):
        self.started = []
        self.stopped = []

    def __call__(self, collection, notify):
        self.started.append(collection)
        return lambda: self.stopped.append(collection)


class TestSnapshotFeed:
    def test_watch_follows_first_and_last_subscriber(self):
        watch = RecordingWatch()
        feed = SnapshotFeed(lambda collection: [], watch)
        first = feed.subscribe("documents", lambda snapshot: None)
        second = feed.subscribe("documents", lambda snapshot: None)
        first()
        assert watch.stopped == []
        second()
        assert watch.started == ["documents"]
        assert watch.stopped == ["documents"]

    def test_failed_initial_delivery_leaves_nothing_running(self):
        watch = RecordingWatch()
        feed = SnapshotFeed(lambda collection: [], watch)

        def broken(snapshot):
            raise RuntimeError("listener bug")

        with pytest.raises(RuntimeError):
            feed.subscribe("documents", broken)
        assert watch.started == []

        unsubscribe = feed.subscribe("documents", lambda snapshot: None)
        unsubscribe()
        assert watch.started == ["documents"]
        assert watch.stopped == ["documents"]

    def test_watch_started_after_last_unsubscribe_is_stopped(self):
        feed = SnapshotFeed(lambda collection: [])
        holder = {}

        def watch(collection, notify):
            holder["unsubscribe"]()
            return lambda: holder.setdefault("stopped", collection)

        feed._watch = watch
        holder["unsubscribe"] = feed.subscribe("documents", lambda snapshot: None)
        feed._start_watch("documents")
        assert holder["stopped"] == "documents"
        assert feed._stops == {}
