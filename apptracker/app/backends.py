"""Build the identity provider and document store for the configured backend."""

import logging
import threading
from typing import NamedTuple

from apptracker.core.config import Settings
from apptracker.core.errors import ConfigError
from apptracker.session.identity import IdentityProvider
from apptracker.store.base import DocumentStore

logger = logging.getLogger(__name__)


class Backend(NamedTuple):
    identity: IdentityProvider
    store: DocumentStore


def build_backend(settings: Settings) -> Backend:
    """Create the provider pair named by ``settings.backend.kind``.

    Raises:
        ConfigError: If the firebase descriptor is missing or unusable.
    """
    settings.require_backend()
    kind = settings.backend.kind

    if kind == "local":
        from apptracker.core.db import init_db
        from apptracker.session.local import LocalIdentityProvider
        from apptracker.store.local import LocalDocumentStore

        conn = init_db(settings.backend.local_path)
        # One connection, one lock: accounts and documents share the file.
        lock = threading.RLock()
        logger.info("Using local backend at %s", settings.backend.local_path)
        return Backend(
            identity=LocalIdentityProvider(conn, lock),
            store=LocalDocumentStore(conn, lock),
        )

    from apptracker.session.firebase import FirebaseIdentityProvider
    from apptracker.store.firestore import FirestoreDocumentStore

    firebase = settings.backend.firebase
    if firebase is None:
        msg = "Firebase backend selected but no firebase settings were given"
        raise ConfigError(msg)
    logger.info("Using Firebase backend (project %s)", firebase.project_id)
    return Backend(
        identity=FirebaseIdentityProvider(firebase),
        store=FirestoreDocumentStore(firebase),
    )
