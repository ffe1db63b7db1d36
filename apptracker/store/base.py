"""Abstract base class for document store backends."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, NamedTuple


class StoredDocument(NamedTuple):
    """One document as emitted by a store snapshot."""

    id: str
    data: dict[str, Any]


SnapshotCallback = Callable[[list[StoredDocument]], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class DocumentStore(ABC):
    """Base class that every document store backend must implement.

    Collections are addressed by slash-separated paths. Snapshot callbacks may
    be invoked from a background thread; consumers marshal them as needed.
    """

    @abstractmethod
    def listen(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """Open a live subscription on a collection.

        *on_snapshot* receives the complete document set, first for the
        current state and then after every change. Returns an unsubscribe
        function; no callbacks fire after it returns.
        """

    @abstractmethod
    async def create(self, collection_path: str, data: dict[str, Any]) -> str:
        """Create a document with a store-assigned id and return the id."""

    @abstractmethod
    async def update(self, collection_path: str, doc_id: str, data: dict[str, Any]) -> None:
        """Merge *data* into an existing document. Raises StoreError if missing."""

    @abstractmethod
    async def delete(self, collection_path: str, doc_id: str) -> None:
        """Permanently delete a document."""

    def close(self) -> None:  # noqa: B027
        """Release backend resources. Default: nothing to release."""
