"""Record mutator: create, update, and delete single records."""

import logging

from apptracker.core.schemas import ApplicationDraft, Principal
from apptracker.store.base import DocumentStore
from apptracker.store.codec import collection_path, draft_to_document

logger = logging.getLogger(__name__)


class RecordMutator:
    """Writes one record at a time inside one principal's collection.

    Changes become visible only through the binding's next snapshot; nothing
    here touches the in-memory list.
    """

    def __init__(self, store: DocumentStore, app_id: str) -> None:
        self._store = store
        self._app_id = app_id

    async def save(self, principal: Principal, draft: ApplicationDraft) -> str:
        """Create or overwrite a record from a draft. Returns the record id.

        Raises:
            ValueError: If the draft is incomplete or has a malformed date.
            StoreError: If the store rejects the write.
        """
        draft.validate_for_save()
        path = collection_path(self._app_id, principal)
        payload = draft_to_document(draft)

        if draft.id:
            logger.info("Updating application %s (%s at %s)", draft.id, draft.title, draft.company)
            await self._store.update(path, draft.id, payload)
            return draft.id

        doc_id = await self._store.create(path, payload)
        logger.info("Created application %s (%s at %s)", doc_id, draft.title, draft.company)
        return doc_id

    async def delete(self, principal: Principal, record_id: str) -> None:
        """Permanently remove a record.

        Callers must have obtained explicit confirmation first.
        """
        if not record_id:
            msg = "record_id must not be empty"
            raise ValueError(msg)
        path = collection_path(self._app_id, principal)
        await self._store.delete(path, record_id)
        logger.info("Deleted application %s", record_id)
