"""Record store binding: a live, per-principal view of the record collection.

Usage::

    binding = RecordStoreBinding(store, app_id)
    binding.observe(lambda records: render(records))
    unsubscribe = binding.subscribe(principal)   # snapshots start flowing
    ...
    binding.subscribe(None)                      # tear down, list emptied

The in-memory list is owned here. It is replaced wholesale on every store
snapshot and never patched by anyone else.
"""

import asyncio
import logging
from collections.abc import Callable

from apptracker.core.schemas import JobApplication, Principal
from apptracker.store.base import DocumentStore, StoredDocument, Unsubscribe
from apptracker.store.codec import collection_path, documents_to_applications, sort_applications

logger = logging.getLogger(__name__)

RecordList = tuple[JobApplication, ...]
RecordsCallback = Callable[[RecordList], None]
ErrorCallback = Callable[[Exception], None]


class _Observer:
    def __init__(self, on_records: RecordsCallback, on_error: ErrorCallback | None) -> None:
        self.on_records = on_records
        self.on_error = on_error


class RecordStoreBinding:
    """Keeps ``records`` synchronized with one principal's collection.

    Store callbacks may arrive on a background thread; they are marshalled onto
    the event loop that was running when ``subscribe`` was called, so list
    replacement and observer notification always happen on that loop.
    """

    def __init__(self, store: DocumentStore, app_id: str) -> None:
        self._store = store
        self._app_id = app_id
        self._records: RecordList = ()
        self._principal: Principal | None = None
        self._unsubscribe_store: Unsubscribe | None = None
        self._generation = 0
        self._loop: asyncio.AbstractEventLoop | None = None
        self._observers: list[_Observer] = []
        self._waiters: list[asyncio.Future[RecordList]] = []
        self._has_snapshot = False
        self.last_error: Exception | None = None

    @property
    def records(self) -> RecordList:
        return self._records

    @property
    def principal(self) -> Principal | None:
        return self._principal

    @property
    def has_snapshot(self) -> bool:
        """True once the current subscription has delivered its first snapshot."""
        return self._has_snapshot

    def observe(
        self,
        on_records: RecordsCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe:
        """Register for list replacements (and optionally read errors)."""
        observer = _Observer(on_records, on_error)
        self._observers.append(observer)

        def unobserve() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unobserve

    def subscribe(self, principal: Principal | None) -> Unsubscribe:
        """Point the binding at *principal*'s collection.

        Re-subscribing the current principal is a no-op. Any other change
        synchronously cancels the active subscription and empties the list
        before the new one is opened. ``None`` leaves the binding idle.
        """
        current = self._principal
        if (
            principal is not None
            and current is not None
            and principal.uid == current.uid
            and self._unsubscribe_store is not None
        ):
            self._principal = principal
            return self._make_unsubscribe(self._generation)

        self._teardown()
        if principal is None:
            return lambda: None

        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

        self._principal = principal
        generation = self._generation
        path = collection_path(self._app_id, principal)
        logger.debug("Subscribing to %s", path)
        self._unsubscribe_store = self._store.listen(
            path,
            lambda docs: self._dispatch(self._apply_snapshot, generation, docs),
            lambda exc: self._dispatch(self._apply_error, generation, exc),
        )
        return self._make_unsubscribe(generation)

    async def next_snapshot(self, timeout: float | None = None) -> RecordList:
        """Wait for the next snapshot to be applied and return the new list."""
        fut: asyncio.Future[RecordList] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            return await asyncio.wait_for(fut, timeout)
        finally:
            if fut in self._waiters:
                self._waiters.remove(fut)

    def close(self) -> None:
        """Tear down the subscription and drop all observers."""
        self._teardown()
        self._observers.clear()
        for fut in self._waiters:
            if not fut.done():
                fut.cancel()
        self._waiters.clear()

    # -- internals ---------------------------------------------------------

    def _make_unsubscribe(self, generation: int) -> Unsubscribe:
        def unsubscribe() -> None:
            if generation == self._generation and self._principal is not None:
                self._teardown()

        return unsubscribe

    def _teardown(self) -> None:
        had_subscription = self._unsubscribe_store is not None
        if self._unsubscribe_store is not None:
            self._unsubscribe_store()
            self._unsubscribe_store = None
        # Late callbacks from the old subscription carry a stale generation.
        self._generation += 1
        self._principal = None
        self._has_snapshot = False
        self.last_error = None
        if had_subscription or self._records:
            self._replace(())

    def _dispatch(self, fn: Callable[..., None], *args: object) -> None:
        loop = self._loop
        if loop is None:
            fn(*args)
            return
        try:
            loop.call_soon_threadsafe(fn, *args)
        except RuntimeError:
            logger.debug("Event loop closed; dropping store callback")

    def _apply_snapshot(self, generation: int, docs: list[StoredDocument]) -> None:
        if generation != self._generation:
            logger.debug("Ignoring snapshot from a closed subscription")
            return
        records = tuple(sort_applications(documents_to_applications(docs)))
        self._has_snapshot = True
        self.last_error = None
        self._replace(records)

    def _apply_error(self, generation: int, exc: Exception) -> None:
        if generation != self._generation:
            return
        logger.error("Error fetching job applications: %s", exc)
        self.last_error = exc
        for observer in list(self._observers):
            if observer.on_error is not None:
                observer.on_error(exc)

    def _replace(self, records: RecordList) -> None:
        self._records = records
        for observer in list(self._observers):
            try:
                observer.on_records(records)
            except Exception:
                logger.exception("Record observer failed")
        for fut in self._waiters:
            if not fut.done():
                fut.set_result(records)
        self._waiters.clear()
