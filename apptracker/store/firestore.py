"""Cloud Firestore document store (firebase-admin SDK)."""

import asyncio
import logging
from typing import Any

from apptracker.core.config import FirebaseConfig
from apptracker.core.errors import ConfigError, StoreError
from apptracker.store.base import (
    DocumentStore,
    ErrorCallback,
    SnapshotCallback,
    StoredDocument,
    Unsubscribe,
)

logger = logging.getLogger(__name__)

_APP_NAME_PREFIX = "apptracker"


class FirestoreDocumentStore(DocumentStore):
    """Document store backed by Cloud Firestore.

    Uses a service account when ``service_account_path`` is configured, and
    application-default credentials otherwise. Collection paths are scoped
    per principal by the caller, so one principal never addresses another's
    documents.
    """

    def __init__(self, config: FirebaseConfig, client: Any = None) -> None:
        self._config = config
        self._client = client if client is not None else _init_client(config)

    def listen(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        def _callback(col_snapshot: Any, _changes: Any, _read_time: Any) -> None:
            try:
                docs = [StoredDocument(d.id, d.to_dict() or {}) for d in col_snapshot]
            except Exception as e:  # noqa: BLE001
                on_error(e)
                return
            on_snapshot(docs)

        try:
            watch = self._client.collection(collection_path).on_snapshot(_callback)
        except Exception as e:  # noqa: BLE001
            logger.error("Could not open listener on %s", collection_path, exc_info=True)
            on_error(e)
            return lambda: None
        return watch.unsubscribe  # type: ignore[no-any-return]

    async def create(self, collection_path: str, data: dict[str, Any]) -> str:
        ref = self._client.collection(collection_path).document()
        await self._run(ref.set, data)
        return ref.id  # type: ignore[no-any-return]

    async def update(self, collection_path: str, doc_id: str, data: dict[str, Any]) -> None:
        ref = self._client.collection(collection_path).document(doc_id)
        await self._run(ref.update, data)

    async def delete(self, collection_path: str, doc_id: str) -> None:
        ref = self._client.collection(collection_path).document(doc_id)
        await self._run(ref.delete)

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if close is not None:
            close()

    async def _run(self, fn: Any, *args: Any) -> Any:
        from google.api_core import exceptions as google_exceptions
        from google.auth import exceptions as auth_exceptions

        try:
            return await asyncio.to_thread(fn, *args)
        except google_exceptions.GoogleAPICallError as e:
            msg = f"Firestore request failed: {e.message}"
            raise StoreError(msg) from e
        except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            msg = f"Firestore request failed: {e}"
            raise StoreError(msg) from e


def _init_client(config: FirebaseConfig) -> Any:
    """Initialize (or reuse) a named firebase-admin app and return its client.

    Raises:
        ConfigError: If the credentials cannot be loaded or resolved.
    """
    try:
        import firebase_admin
        from firebase_admin import credentials, firestore
        from google.auth import exceptions as auth_exceptions
    except ImportError:
        msg = (
            "firebase-admin is required for the firebase backend. "
            "Install with: pip install firebase-admin"
        )
        raise ImportError(msg) from None

    name = f"{_APP_NAME_PREFIX}-{config.project_id}"
    try:
        try:
            app = firebase_admin.get_app(name)
        except ValueError:
            if config.service_account_path:
                cred = credentials.Certificate(config.service_account_path)
            else:
                cred = credentials.ApplicationDefault()
            app = firebase_admin.initialize_app(cred, {"projectId": config.project_id}, name=name)
        # Application-default credentials are only resolved here.
        return firestore.client(app)
    except (ValueError, OSError, auth_exceptions.GoogleAuthError) as e:
        msg = f"Could not initialize Firebase app: {e}"
        raise ConfigError(msg) from e
