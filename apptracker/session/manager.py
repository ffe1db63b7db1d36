"""Session manager: tracks the signed-in principal and notifies observers.

Usage::

    manager = SessionManager(provider, bootstrap_token=settings.initial_auth_token)
    manager.observe(lambda principal: binding.subscribe(principal))
    await manager.start()
    await manager.sign_in(email, password)   # principal arrives via observe()
"""

import logging
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

from apptracker.core.errors import AuthError, AuthErrorKind
from apptracker.core.schemas import Principal
from apptracker.session.identity import IdentityProvider

logger = logging.getLogger(__name__)

SessionCallback = Callable[[Principal | None], None]
T = TypeVar("T")


class SessionManager:
    """Wraps an identity provider with a busy flag and change notification."""

    def __init__(self, provider: IdentityProvider, bootstrap_token: str | None = None) -> None:
        self._provider = provider
        self._bootstrap_token = bootstrap_token
        self._principal: Principal | None = None
        self._observers: list[SessionCallback] = []
        self._busy = False
        self._started = False

    @property
    def principal(self) -> Principal | None:
        return self._principal

    @property
    def busy(self) -> bool:
        """True while an authentication call is in flight."""
        return self._busy

    @property
    def started(self) -> bool:
        return self._started

    def observe(self, callback: SessionCallback) -> Callable[[], None]:
        """Register for session changes; called immediately with the current principal."""
        self._observers.append(callback)
        callback(self._principal)

        def unobserve() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unobserve

    async def start(self) -> None:
        """Initial load: exchange the bootstrap credential once if signed out."""
        if self._started:
            return
        self._started = True
        if self._principal is None and self._bootstrap_token:
            token, self._bootstrap_token = self._bootstrap_token, None
            try:
                principal = await self._guarded(self._provider.sign_in_with_custom_token(token))
            except AuthError as e:
                logger.error("Custom token sign in failed: %s", e.message)
                return
            self._set_principal(principal)

    async def sign_up(self, email: str, password: str) -> None:
        _check_credentials(email, password)
        principal = await self._guarded(self._provider.sign_up(email, password))
        self._set_principal(principal)

    async def sign_in(self, email: str, password: str) -> None:
        _check_credentials(email, password)
        principal = await self._guarded(self._provider.sign_in(email, password))
        self._set_principal(principal)

    async def sign_out(self) -> None:
        principal = self._principal
        if principal is None:
            return
        try:
            await self._guarded(self._provider.sign_out(principal))
        finally:
            self._set_principal(None)

    async def _guarded(self, call: Coroutine[Any, Any, T]) -> T:
        if self._busy:
            call.close()
            raise AuthError(
                AuthErrorKind.BUSY,
                "Another sign-in request is already in progress.",
            )
        self._busy = True
        try:
            return await call
        except AuthError:
            logger.warning("Authentication request failed", exc_info=True)
            raise
        finally:
            self._busy = False

    def _set_principal(self, principal: Principal | None) -> None:
        if principal == self._principal:
            return
        self._principal = principal
        if principal is None:
            logger.info("Signed out")
        else:
            logger.info("Signed in as %s", principal.email or principal.uid)
        for callback in list(self._observers):
            try:
                callback(principal)
            except Exception:
                logger.exception("Session observer failed")


def _check_credentials(email: str, password: str) -> None:
    if not email.strip() or not password:
        raise AuthError(
            AuthErrorKind.MALFORMED_CREDENTIALS,
            "Please enter both email and password.",
        )
