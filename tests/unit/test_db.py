"""Tests for the SQLite layer of the local backend."""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import pytest

from apptracker.core.db import (
    decode_document,
    delete_document,
    encode_document,
    get_user_by_email,
    get_user_by_uid,
    init_db,
    insert_document,
    insert_user,
    list_documents,
    update_document,
)


@pytest.fixture()
def conn(tmp_path):  # type: ignore[no-untyped-def]
    """Provide a fresh SQLite connection per test."""
    c = init_db(tmp_path / "tracker.db")
    yield c
    c.close()


class TestInitDb:
    def test_creates_parent_dirs(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "dir" / "tracker.db"
        c = init_db(path)
        assert path.exists()
        c.close()

    def test_tables_exist(self, conn: sqlite3.Connection) -> None:
        names = {
            row["name"]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
        assert {"users", "documents"} <= names

    def test_idempotent(self, tmp_path: Path) -> None:
        init_db(tmp_path / "t.db").close()
        init_db(tmp_path / "t.db").close()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class TestUsers:
    def test_insert_and_lookup(self, conn: sqlite3.Connection) -> None:
        uid = insert_user(conn, "ada@example.com", "hash", "salt")
        assert uid
        row = get_user_by_email(conn, "ada@example.com")
        assert row is not None
        assert row["uid"] == uid
        assert get_user_by_uid(conn, uid)["email"] == "ada@example.com"  # type: ignore[index]

    def test_duplicate_email_case_insensitive(self, conn: sqlite3.Connection) -> None:
        assert insert_user(conn, "ada@example.com", "h", "s") is not None
        assert insert_user(conn, "ADA@example.com", "h", "s") is None

    def test_unknown_user(self, conn: sqlite3.Connection) -> None:
        assert get_user_by_email(conn, "nobody@example.com") is None
        assert get_user_by_uid(conn, "missing") is None


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class TestDocuments:
    def test_insert_and_list(self, conn: sqlite3.Connection) -> None:
        a = insert_document(conn, "col", {"title": "A"})
        b = insert_document(conn, "col", {"title": "B"})
        insert_document(conn, "other", {"title": "C"})
        docs = list_documents(conn, "col")
        assert [d[0] for d in docs] == [a, b]
        assert docs[0][1] == {"title": "A"}

    def test_update_merges(self, conn: sqlite3.Connection) -> None:
        doc_id = insert_document(conn, "col", {"title": "A", "notes": "x"})
        assert update_document(conn, "col", doc_id, {"notes": "y"}) is True
        assert list_documents(conn, "col")[0][1] == {"title": "A", "notes": "y"}

    def test_update_missing(self, conn: sqlite3.Connection) -> None:
        assert update_document(conn, "col", "nope", {"title": "A"}) is False

    def test_update_is_scoped_to_collection(self, conn: sqlite3.Connection) -> None:
        doc_id = insert_document(conn, "col", {"title": "A"})
        assert update_document(conn, "other", doc_id, {"title": "B"}) is False

    def test_delete(self, conn: sqlite3.Connection) -> None:
        doc_id = insert_document(conn, "col", {"title": "A"})
        delete_document(conn, "col", doc_id)
        delete_document(conn, "col", doc_id)
        assert list_documents(conn, "col") == []

    def test_timestamps_round_trip(self, conn: sqlite3.Connection) -> None:
        ts = datetime(2024, 3, 1, tzinfo=timezone.utc)
        insert_document(conn, "col", {"dateApplied": ts, "followUpDate": None})
        data = list_documents(conn, "col")[0][1]
        assert data["dateApplied"] == ts
        assert data["followUpDate"] is None


class TestEncoding:
    def test_naive_datetime_treated_as_utc(self) -> None:
        decoded = decode_document(encode_document({"d": datetime(2024, 1, 2)}))
        assert decoded["d"] == datetime(2024, 1, 2, tzinfo=timezone.utc)

    def test_plain_dicts_untouched(self) -> None:
        data = {"meta": {"source": "web"}}
        assert decode_document(encode_document(data)) == data
