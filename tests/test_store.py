import sqlite3

import pytest

from shared_todo.db import SQLiteTaskStore
from shared_todo.errors import StoreUnavailable


class TestInsertAndGet:
    def test_insert_creates_uncompleted_task(self, store):
        tid = store.insert_task("1.1.1.1", "buy milk")
        task = store.get_task(tid)
        assert task["owner_identity"] == "1.1.1.1"
        assert task["text"] == "buy milk"
        assert task["completed"] is False
        assert isinstance(task["last_updated"], int)

    def test_ids_increase(self, store):
        first = store.insert_task("1.1.1.1", "a")
        second = store.insert_task("2.2.2.2", "b")
        assert second > first

    def test_get_missing_returns_none(self, store):
        assert store.get_task(424242) is None


class TestOwnerScopedMutations:
    def test_owner_can_update_completion(self, store):
        tid = store.insert_task("1.1.1.1", "a")
        before = store.get_task(tid)["last_updated"]
        assert store.update_task_completion(tid, "1.1.1.1", True) == 1
        task = store.get_task(tid)
        assert task["completed"] is True
        assert task["last_updated"] > before

    def test_other_identity_cannot_update(self, store):
        tid = store.insert_task("1.1.1.1", "a")
        before = store.get_task(tid)
        assert store.update_task_completion(tid, "2.2.2.2", True) == 0
        assert store.get_task(tid) == before

    def test_update_missing_is_zero(self, store):
        assert store.update_task_completion(999, "1.1.1.1", True) == 0

    def test_other_identity_cannot_delete(self, store):
        tid = store.insert_task("1.1.1.1", "a")
        assert store.delete_task(tid, "2.2.2.2") == 0
        assert store.get_task(tid)["owner_identity"] == "1.1.1.1"

    def test_owner_deletes(self, store):
        tid = store.insert_task("1.1.1.1", "a")
        assert store.delete_task(tid, "1.1.1.1") == 1
        assert store.get_task(tid) is None
        assert store.delete_task(tid, "1.1.1.1") == 0

    def test_owner_never_changes(self, store):
        tid = store.insert_task("1.1.1.1", "a")
        for who in ("2.2.2.2", "1.1.1.1", "3.3.3.3"):
            store.update_task_completion(tid, who, True)
            store.update_task_completion(tid, who, False)
        assert store.get_task(tid)["owner_identity"] == "1.1.1.1"


class TestListing:
    def test_viewer_tasks_first_then_by_recency(self, store):
        a1 = store.insert_task("1.1.1.1", "a1")
        b1 = store.insert_task("2.2.2.2", "b1")
        a2 = store.insert_task("1.1.1.1", "a2")
        b2 = store.insert_task("2.2.2.2", "b2")
        store.update_task_completion(a1, "1.1.1.1", True)

        ids = [t["id"] for t in store.list_tasks("1.1.1.1")]
        assert ids == [a1, a2, b2, b1]

        ids = [t["id"] for t in store.list_tasks("2.2.2.2")]
        assert ids == [b2, b1, a1, a2]

    def test_stranger_sees_everything_by_recency(self, store):
        a = store.insert_task("1.1.1.1", "a")
        b = store.insert_task("2.2.2.2", "b")
        assert [t["id"] for t in store.list_tasks("3.3.3.3")] == [b, a]

    def test_display_name_joined(self, store):
        store.insert_task("1.1.1.1", "a")
        store.insert_task("2.2.2.2", "b")
        store.upsert_display_name("1.1.1.1", "Alice")
        names = {t["owner_identity"]: t["display_name"] for t in store.list_tasks("1.1.1.1")}
        assert names == {"1.1.1.1": "Alice", "2.2.2.2": None}

    def test_empty(self, store):
        assert store.list_tasks("1.1.1.1") == []


class TestIdentities:
    def test_missing_record(self, store):
        assert store.get_identity_record("1.1.1.1") is None

    def test_upsert_last_writer_wins(self, store):
        store.upsert_display_name("1.1.1.1", "Alice")
        store.upsert_display_name("1.1.1.1", "Alicia")
        assert store.get_identity_record("1.1.1.1") == {"identity": "1.1.1.1", "display_name": "Alicia"}
        assert store.get_identity_record("2.2.2.2") is None


class TestSchema:
    def test_schema_setup_is_idempotent(self, store):
        tid = store.insert_task("1.1.1.1", "a")
        store.ensure_schema()
        store.migrate()
        store.ensure_schema()
        store.migrate()
        assert store.get_task(tid)["text"] == "a"

    def test_sqlite_columns_not_duplicated(self, sqlite_path):
        s = SQLiteTaskStore(sqlite_path)
        s.open()
        for _ in range(2):
            s.ensure_schema()
            s.migrate()
        conn = sqlite3.connect(sqlite_path)
        cols = [r[1] for r in conn.execute("PRAGMA table_info(tasks)").fetchall()]
        tables = [r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()]
        conn.close()
        assert cols == ["id", "user_ip", "text", "completed", "last_updated"]
        assert tables.count("tasks") == 1
        assert tables.count("users") == 1

    def test_migrate_adds_last_updated_and_keeps_rows(self, legacy_sqlite_db):
        s = SQLiteTaskStore(legacy_sqlite_db)
        s.open()
        s.ensure_schema()
        s.migrate()
        s.migrate()

        rows = s.list_tasks("9.9.9.9")
        assert len(rows) == 1
        assert rows[0]["text"] == "old task"
        assert rows[0]["completed"] is True
        assert rows[0]["last_updated"] is None

        new_id = s.insert_task("9.9.9.9", "new task")
        assert [t["id"] for t in s.list_tasks("9.9.9.9")] == [new_id, rows[0]["id"]]

    def test_rows_without_owner_are_still_listed(self, legacy_sqlite_db):
        conn = sqlite3.connect(legacy_sqlite_db)
        conn.execute("INSERT INTO tasks (user_ip, text, completed) VALUES (NULL, NULL, 0)")
        conn.commit()
        conn.close()
        s = SQLiteTaskStore(legacy_sqlite_db)
        s.open()
        s.ensure_schema()
        s.migrate()

        orphan = [t for t in s.list_tasks("1.1.1.1") if t["text"] == ""]
        assert len(orphan) == 1
        assert orphan[0]["owner_identity"] == ""
        assert s.update_task_completion(orphan[0]["id"], "", True) == 0


def test_sqlite_failure_is_store_unavailable(tmp_path):
    # A directory where the database file should be cannot be opened as a database.
    bad_path = tmp_path / "not_a_file"
    bad_path.mkdir()
    s = SQLiteTaskStore(str(bad_path))
    with pytest.raises(StoreUnavailable):
        s.ensure_schema()
