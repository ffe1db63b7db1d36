"""SQLite database layer for the local backend: users and documents."""

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    uid             TEXT PRIMARY KEY,
    email           TEXT NOT NULL UNIQUE COLLATE NOCASE,
    password_hash   TEXT NOT NULL,
    salt            TEXT NOT NULL,
    created_at      TEXT NOT NULL
);
"""

_DOCUMENTS_TABLE = """
CREATE TABLE IF NOT EXISTS documents (
    collection      TEXT NOT NULL,
    doc_id          TEXT NOT NULL,
    data_json       TEXT NOT NULL,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL,
    PRIMARY KEY (collection, doc_id)
);
"""

_TIMESTAMP_KEY = "__timestamp__"


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection.

    The connection may be used from worker threads; callers serialize access.
    """
    path = Path(path)
    if str(path) != ":memory:":
        path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_USERS_TABLE)
    conn.execute(_DOCUMENTS_TABLE)
    conn.commit()
    return conn


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def insert_user(
    conn: sqlite3.Connection,
    email: str,
    password_hash: str,
    salt: str,
) -> str | None:
    """Insert a user. Returns the new uid, or None if the email is taken."""
    uid = uuid.uuid4().hex
    try:
        conn.execute(
            """
            INSERT INTO users (uid, email, password_hash, salt, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (uid, email, password_hash, salt, datetime.now(timezone.utc).isoformat()),
        )
        conn.commit()
    except sqlite3.IntegrityError:
        return None
    return uid


def get_user_by_email(conn: sqlite3.Connection, email: str) -> sqlite3.Row | None:
    return conn.execute(
        "SELECT uid, email, password_hash, salt FROM users WHERE email = ?",
        (email,),
    ).fetchone()


def get_user_by_uid(conn: sqlite3.Connection, uid: str) -> sqlite3.Row | None:
    return conn.execute(
        "SELECT uid, email FROM users WHERE uid = ?",
        (uid,),
    ).fetchone()


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


def insert_document(conn: sqlite3.Connection, collection: str, data: dict[str, Any]) -> str:
    """Insert a document under a store-assigned id. Returns the id."""
    doc_id = uuid.uuid4().hex[:20]
    now = datetime.now(timezone.utc).isoformat()
    conn.execute(
        """
        INSERT INTO documents (collection, doc_id, data_json, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?)
        """,
        (collection, doc_id, encode_document(data), now, now),
    )
    conn.commit()
    return doc_id


def update_document(
    conn: sqlite3.Connection,
    collection: str,
    doc_id: str,
    data: dict[str, Any],
) -> bool:
    """Merge *data* into an existing document. Returns False if it does not exist."""
    row = conn.execute(
        "SELECT data_json FROM documents WHERE collection = ? AND doc_id = ?",
        (collection, doc_id),
    ).fetchone()
    if row is None:
        return False
    merged = decode_document(row["data_json"])
    merged.update(data)
    conn.execute(
        """
        UPDATE documents SET data_json = ?, updated_at = ?
        WHERE collection = ? AND doc_id = ?
        """,
        (encode_document(merged), datetime.now(timezone.utc).isoformat(), collection, doc_id),
    )
    conn.commit()
    return True


def delete_document(conn: sqlite3.Connection, collection: str, doc_id: str) -> None:
    """Delete a document. Deleting a missing document is not an error."""
    conn.execute(
        "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
        (collection, doc_id),
    )
    conn.commit()


def list_documents(conn: sqlite3.Connection, collection: str) -> list[tuple[str, dict[str, Any]]]:
    """Return every (doc_id, data) pair in a collection, in insertion order."""
    rows = conn.execute(
        "SELECT doc_id, data_json FROM documents WHERE collection = ? ORDER BY created_at, rowid",
        (collection,),
    ).fetchall()
    return [(row["doc_id"], decode_document(row["data_json"])) for row in rows]


def encode_document(data: dict[str, Any]) -> str:
    """Serialize a field map to JSON, tagging datetimes so they round-trip."""
    return json.dumps({k: _encode_value(v) for k, v in data.items()})


def decode_document(raw: str) -> dict[str, Any]:
    data: dict[str, Any] = json.loads(raw)
    return {k: _decode_value(v) for k, v in data.items()}


def _encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return {_TIMESTAMP_KEY: value.isoformat()}
    return value


def _decode_value(value: Any) -> Any:
    if isinstance(value, dict) and set(value) == {_TIMESTAMP_KEY}:
        return datetime.fromisoformat(value[_TIMESTAMP_KEY])
    return value
