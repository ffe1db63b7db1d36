"""SQLite-backed document store with in-process change notification."""

import asyncio
import logging
import sqlite3
import threading
from typing import Any

from apptracker.core.db import delete_document, insert_document, list_documents, update_document
from apptracker.core.errors import StoreError
from apptracker.store.base import (
    DocumentStore,
    ErrorCallback,
    SnapshotCallback,
    StoredDocument,
    Unsubscribe,
)

logger = logging.getLogger(__name__)


class _Listener:
    def __init__(self, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> None:
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True


class LocalDocumentStore(DocumentStore):
    """Document store on a local SQLite file.

    Writes run in a worker thread. Every write re-emits the full snapshot of
    the affected collection to its listeners, like a managed store's watch
    stream would.
    """

    def __init__(self, conn: sqlite3.Connection, lock: Any = None) -> None:
        self._conn = conn
        self._lock = lock or threading.RLock()
        self._listeners: dict[str, list[_Listener]] = {}

    def listen(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        listener = _Listener(on_snapshot, on_error)
        with self._lock:
            self._listeners.setdefault(collection_path, []).append(listener)
        self._emit(collection_path, [listener])

        def unsubscribe() -> None:
            with self._lock:
                listener.active = False
                listeners = self._listeners.get(collection_path, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    async def create(self, collection_path: str, data: dict[str, Any]) -> str:
        def _write() -> str:
            with self._lock:
                return insert_document(self._conn, collection_path, data)

        doc_id = await self._run(_write)
        self._notify(collection_path)
        return doc_id

    async def update(self, collection_path: str, doc_id: str, data: dict[str, Any]) -> None:
        def _write() -> bool:
            with self._lock:
                return update_document(self._conn, collection_path, doc_id, data)

        if not await self._run(_write):
            msg = f"No document '{doc_id}' to update"
            raise StoreError(msg)
        self._notify(collection_path)

    async def delete(self, collection_path: str, doc_id: str) -> None:
        def _write() -> None:
            with self._lock:
                delete_document(self._conn, collection_path, doc_id)

        await self._run(_write)
        self._notify(collection_path)

    def close(self) -> None:
        with self._lock:
            self._listeners.clear()
            self._conn.close()

    async def _run(self, fn: Any) -> Any:
        try:
            return await asyncio.to_thread(fn)
        except sqlite3.Error as e:
            msg = f"Local store write failed: {e}"
            raise StoreError(msg) from e

    def _notify(self, collection_path: str) -> None:
        with self._lock:
            listeners = list(self._listeners.get(collection_path, []))
        if listeners:
            self._emit(collection_path, listeners)

    def _emit(self, collection_path: str, listeners: list[_Listener]) -> None:
        try:
            with self._lock:
                docs = [StoredDocument(i, d) for i, d in list_documents(self._conn, collection_path)]
        except sqlite3.Error as e:
            logger.warning("Local store read failed for %s: %s", collection_path, e)
            for listener in listeners:
                if listener.active:
                    listener.on_error(e)
            return
        for listener in listeners:
            if listener.active:
                listener.on_snapshot(list(docs))
