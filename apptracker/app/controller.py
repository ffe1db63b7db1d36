"""TrackerApp: wires session, binding, views, mutator and drafter into a view model.

Usage::

    async with TrackerApp(settings) as app:
        if app.gate == "signed_out":
            await app.sign_in(email, password)
        await app.wait_for_snapshot(timeout=10)
        for record in app.visible_records:
            ...

Every failure from an async call is caught here and turned into one of the
inline messages (``auth_error``, ``store_error``, ``form_error``,
``draft_error``). Results of calls that finish after the principal changed
or the app closed are dropped.
"""

import logging
from collections.abc import Sequence
from typing import Any, Literal

from apptracker.app.backends import Backend, build_backend
from apptracker.assistant import get_generator
from apptracker.assistant.drafter import FollowUpDrafter
from apptracker.core.config import Settings
from apptracker.core.errors import AuthError, ConfigError, DraftError, StoreError
from apptracker.core.schemas import (
    ApplicationDraft,
    ApplicationStats,
    JobApplication,
    Principal,
)
from apptracker.session.manager import SessionManager
from apptracker.store.binding import RecordList, RecordStoreBinding
from apptracker.store.mutator import RecordMutator
from apptracker.views.filters import ALL, FILTER_MODES, DerivedView

logger = logging.getLogger(__name__)

Gate = Literal["loading", "blocked", "signed_out", "ready"]


class TrackerApp:
    """View model for one tracker session."""

    def __init__(
        self,
        settings: Settings,
        *,
        backend: Backend | None = None,
        drafter: FollowUpDrafter | None = None,
    ) -> None:
        self._settings = settings
        self._backend = backend
        self._drafter = drafter
        self._session: SessionManager | None = None
        self._binding: RecordStoreBinding | None = None
        self._mutator: RecordMutator | None = None
        self._view = DerivedView()
        self._unobserve: list[Any] = []
        self._blocked = False
        self._closed = False
        # Bumped on principal change and close; in-flight results compare against it.
        self._epoch = 0
        self._filter_mode = ALL
        self._form: ApplicationDraft | None = None
        self._saving = False
        self._drafting = False

        self.blocked_reason = ""
        self.auth_error = ""
        self.store_error = ""
        self.form_error = ""
        self.draft_error = ""
        self.notice = ""
        self.draft_text = ""

    async def __aenter__(self) -> "TrackerApp":
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.close()

    # -- lifecycle ----------------------------------------------------------

    async def start(self) -> None:
        """Build the backend, open the session, and exchange the bootstrap token."""
        if self._session is not None or self._blocked:
            return
        try:
            if self._backend is None:
                self._backend = build_backend(self._settings)
            else:
                self._settings.require_backend()
        except ConfigError as e:
            logger.error("Firebase configuration is missing. %s", e)
            self._blocked = True
            self.blocked_reason = str(e)
            return

        app_id = self._settings.app_id
        self._binding = RecordStoreBinding(self._backend.store, app_id)
        self._mutator = RecordMutator(self._backend.store, app_id)
        self._session = SessionManager(
            self._backend.identity,
            bootstrap_token=self._settings.initial_auth_token,
        )
        self._unobserve.append(self._binding.observe(self._on_records, self._on_store_error))
        self._unobserve.append(self._session.observe(self._on_principal))
        await self._session.start()

    def close(self) -> None:
        """Cancel the subscription and release the backend."""
        if self._closed:
            return
        self._closed = True
        self._epoch += 1
        for unobserve in self._unobserve:
            unobserve()
        self._unobserve.clear()
        if self._binding is not None:
            self._binding.close()
        if self._backend is not None:
            self._backend.store.close()
        logger.debug("Tracker closed")

    # -- view model ---------------------------------------------------------

    @property
    def gate(self) -> Gate:
        if self._blocked:
            return "blocked"
        if self._session is None or not self._session.started:
            return "loading"
        if self._session.principal is None:
            return "signed_out"
        return "ready"

    @property
    def principal(self) -> Principal | None:
        return self._session.principal if self._session is not None else None

    @property
    def busy(self) -> bool:
        return bool(self._session is not None and self._session.busy)

    @property
    def records(self) -> RecordList:
        return self._binding.records if self._binding is not None else ()

    @property
    def filter_mode(self) -> str:
        return self._filter_mode

    @filter_mode.setter
    def filter_mode(self, mode: str) -> None:
        if mode not in FILTER_MODES:
            valid = ", ".join(FILTER_MODES)
            msg = f"Unknown filter '{mode}'. Available: {valid}"
            raise ValueError(msg)
        self._filter_mode = mode

    @property
    def visible_records(self) -> Sequence[JobApplication]:
        return self._view.filtered(self.records, self._filter_mode)

    @property
    def stats(self) -> ApplicationStats:
        return self._view.stats(self.records)

    @property
    def form(self) -> ApplicationDraft | None:
        return self._form

    @property
    def saving(self) -> bool:
        return self._saving

    @property
    def drafting(self) -> bool:
        return self._drafting

    def find(self, record_id: str) -> JobApplication | None:
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    def refresh(self) -> None:
        """Re-evaluate clock-dependent views (overdue) without a new snapshot."""
        self._view.invalidate()

    def dismiss_messages(self) -> None:
        self.auth_error = ""
        self.store_error = ""
        self.form_error = ""
        self.draft_error = ""
        self.notice = ""

    async def wait_for_snapshot(self, timeout: float | None = None) -> RecordList:
        """Return the current list once the subscription has delivered it."""
        if self._binding is None or self._binding.principal is None:
            msg = "Sign in before waiting for records"
            raise RuntimeError(msg)
        if self._binding.has_snapshot:
            return self._binding.records
        return await self._binding.next_snapshot(timeout)

    async def next_snapshot(self, timeout: float | None = None) -> RecordList:
        """Wait for the next list replacement."""
        if self._binding is None:
            msg = "Tracker is not started"
            raise RuntimeError(msg)
        return await self._binding.next_snapshot(timeout)

    # -- authentication -----------------------------------------------------

    async def sign_up(self, email: str, password: str) -> bool:
        return await self._authenticate("sign_up", email, password)

    async def sign_in(self, email: str, password: str) -> bool:
        return await self._authenticate("sign_in", email, password)

    async def sign_out(self) -> None:
        if self._session is None:
            return
        try:
            await self._session.sign_out()
        except AuthError as e:
            self.auth_error = e.message

    async def _authenticate(self, method: str, email: str, password: str) -> bool:
        if self._session is None:
            self.auth_error = "The tracker is not ready yet."
            return False
        self.auth_error = ""
        try:
            await getattr(self._session, method)(email, password)
        except AuthError as e:
            self.auth_error = e.message
            return False
        return True

    # -- form ---------------------------------------------------------------

    def open_form(self, record: JobApplication | None = None) -> ApplicationDraft:
        """Start a working copy: blank for a new record, prefilled for an edit."""
        self._form = (
            ApplicationDraft.from_application(record) if record is not None else ApplicationDraft()
        )
        self.form_error = ""
        self.draft_error = ""
        self.draft_text = ""
        return self._form

    def update_form(self, **fields: Any) -> ApplicationDraft:
        if self._form is None:
            msg = "No form is open"
            raise RuntimeError(msg)
        self._form = ApplicationDraft.model_validate({**self._form.model_dump(), **fields})
        return self._form

    def cancel_form(self) -> None:
        self._form = None
        self.form_error = ""
        self.draft_error = ""
        self.draft_text = ""

    async def save_form(self) -> str | None:
        """Persist the working copy. Returns the record id, or None on failure.

        The form is closed on success and kept open (with ``form_error`` or
        ``store_error`` set) on failure.
        """
        form, principal = self._form, self.principal
        if form is None or principal is None or self._mutator is None:
            self.form_error = "Open a form while signed in to save an application."
            return None
        if self._saving:
            self.notice = "A save is already in progress."
            return None

        epoch = self._epoch
        self._saving = True
        self.form_error = ""
        self.store_error = ""
        try:
            record_id = await self._mutator.save(principal, form)
        except ValueError as e:
            if epoch == self._epoch:
                self.form_error = str(e)
            return None
        except StoreError as e:
            logger.error("Error saving job application: %s", e)
            if epoch == self._epoch:
                self.store_error = "Could not save the application. Please try again."
            return None
        finally:
            self._saving = False

        if epoch != self._epoch:
            logger.debug("Dropping save result for a closed session")
            return None
        if self._form is form:
            self.cancel_form()
        self.notice = "Application saved."
        return record_id

    # -- delete -------------------------------------------------------------

    async def delete_application(self, record_id: str, confirm: bool) -> bool:
        """Delete a record, but only after an explicit confirmation signal."""
        if not confirm:
            logger.debug("Delete of %s not confirmed", record_id)
            return False
        principal = self.principal
        if principal is None or self._mutator is None:
            return False

        epoch = self._epoch
        self.store_error = ""
        try:
            await self._mutator.delete(principal, record_id)
        except (ValueError, StoreError) as e:
            logger.error("Error deleting job application: %s", e)
            if epoch == self._epoch:
                self.store_error = "Could not delete the application. Please try again."
            return False
        if epoch == self._epoch:
            self.notice = "Application deleted."
        return True

    # -- follow-up drafts ---------------------------------------------------

    async def draft_follow_up(self) -> str | None:
        """Generate a follow-up email for the open form. Display only."""
        form = self._form
        if form is None:
            self.draft_error = "Open an application to draft a follow-up."
            return None
        if self._drafting:
            return None
        try:
            drafter = self._get_drafter()
        except ValueError as e:
            logger.error("Follow-up drafting is misconfigured: %s", e)
            self.draft_error = str(e)
            return None
        if drafter is None:
            self.draft_error = "Follow-up drafting is disabled."
            return None

        epoch = self._epoch
        self._drafting = True
        self.draft_error = ""
        self.draft_text = ""
        try:
            text = await drafter.draft(form)
        except (DraftError, ValueError, ImportError) as e:
            logger.warning("Error generating follow-up draft: %s", e)
            if epoch == self._epoch and self._form is form:
                self.draft_error = str(e)
            return None
        finally:
            self._drafting = False

        if epoch != self._epoch or self._form is not form:
            logger.debug("Dropping stale follow-up draft")
            return None
        self.draft_text = text
        return text

    def _get_drafter(self) -> FollowUpDrafter | None:
        if self._drafter is None and self._settings.assistant.enabled:
            cfg = self._settings.assistant
            generator = get_generator(cfg.provider, model=cfg.model, api_key_env=cfg.api_key_env)
            self._drafter = FollowUpDrafter(generator, cfg)
        return self._drafter

    # -- callbacks ----------------------------------------------------------

    def _on_principal(self, principal: Principal | None) -> None:
        self._epoch += 1
        self._form = None
        self.draft_text = ""
        self.store_error = ""
        if self._binding is not None:
            self._binding.subscribe(principal)

    def _on_records(self, records: RecordList) -> None:
        self.store_error = ""
        logger.debug("Record list replaced (%d records)", len(records))

    def _on_store_error(self, exc: Exception) -> None:
        self.store_error = "Could not load job applications. Showing the last known list."
