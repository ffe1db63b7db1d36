"""Abstract base class for identity providers."""

from abc import ABC, abstractmethod

from apptracker.core.schemas import Principal


class IdentityProvider(ABC):
    """Base class that every identity provider must implement.

    All methods raise ``AuthError`` with a normalized message on failure.
    """

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'firebase')."""

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> Principal:
        """Create an account and return its principal."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Principal:
        """Verify credentials and return the principal."""

    @abstractmethod
    async def sign_in_with_custom_token(self, token: str) -> Principal:
        """Exchange a bootstrap credential for a principal."""

    async def sign_out(self, principal: Principal) -> None:  # noqa: B027
        """Invalidate provider-side session state. Default: nothing to do."""
