"""Local identity provider backed by the SQLite users table."""

import asyncio
import hashlib
import hmac
import logging
import re
import secrets
import sqlite3
import threading
from typing import Any

from apptracker.core.db import get_user_by_email, get_user_by_uid, insert_user
from apptracker.core.errors import AuthError, AuthErrorKind
from apptracker.core.schemas import Principal
from apptracker.session.identity import IdentityProvider

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
_PBKDF2_ROUNDS = 200_000
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class LocalIdentityProvider(IdentityProvider):
    """Email/password accounts stored in the local database.

    A custom token for this provider is the uid of an existing account.
    """

    def __init__(self, conn: sqlite3.Connection, lock: Any = None) -> None:
        self._conn = conn
        self._lock = lock or threading.RLock()

    @property
    def provider_id(self) -> str:
        return "local"

    async def sign_up(self, email: str, password: str) -> Principal:
        email = email.strip()
        if not _EMAIL_RE.match(email):
            raise AuthError(AuthErrorKind.MALFORMED_CREDENTIALS, "The email address is badly formatted.")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthError(
                AuthErrorKind.MALFORMED_CREDENTIALS,
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters.",
            )

        salt = secrets.token_hex(16)
        password_hash = _hash_password(password, salt)

        def _insert() -> str | None:
            with self._lock:
                return insert_user(self._conn, email, password_hash, salt)

        uid = await asyncio.to_thread(_insert)
        if uid is None:
            raise AuthError(
                AuthErrorKind.DUPLICATE_ACCOUNT,
                "The email address is already in use by another account.",
            )
        logger.info("Created local account %s", uid)
        return Principal(uid=uid, email=email)

    async def sign_in(self, email: str, password: str) -> Principal:
        email = email.strip()

        def _lookup() -> sqlite3.Row | None:
            with self._lock:
                return get_user_by_email(self._conn, email)

        row = await asyncio.to_thread(_lookup)
        if row is None or not hmac.compare_digest(
            row["password_hash"], _hash_password(password, row["salt"])
        ):
            raise AuthError(AuthErrorKind.INVALID_LOGIN, "Invalid email or password.")
        return Principal(uid=row["uid"], email=row["email"])

    async def sign_in_with_custom_token(self, token: str) -> Principal:
        def _lookup() -> sqlite3.Row | None:
            with self._lock:
                return get_user_by_uid(self._conn, token.strip())

        row = await asyncio.to_thread(_lookup)
        if row is None:
            raise AuthError(AuthErrorKind.INVALID_LOGIN, "The sign-in token is invalid.")
        return Principal(uid=row["uid"], email=row["email"])


def _hash_password(password: str, salt: str) -> str:
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), bytes.fromhex(salt), _PBKDF2_ROUNDS)
    return digest.hex()
