"""Firebase Authentication via the Identity Toolkit REST API."""

import asyncio
import base64
import binascii
import json
import logging
from typing import Any

import requests

from apptracker.core.config import FirebaseConfig
from apptracker.core.errors import AuthError, AuthErrorKind, auth_error_from_code
from apptracker.core.schemas import Principal
from apptracker.session.identity import IdentityProvider

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1/accounts:{method}"
REQUEST_TIMEOUT_S = 15


class FirebaseIdentityProvider(IdentityProvider):
    """Email/password and custom-token sign-in against Firebase Auth."""

    def __init__(self, config: FirebaseConfig, session: requests.Session | None = None) -> None:
        self._api_key = config.api_key
        self._http = session or requests.Session()

    @property
    def provider_id(self) -> str:
        return "firebase"

    async def sign_up(self, email: str, password: str) -> Principal:
        data = await self._call(
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return _principal_from(data)

    async def sign_in(self, email: str, password: str) -> Principal:
        data = await self._call(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return _principal_from(data)

    async def sign_in_with_custom_token(self, token: str) -> Principal:
        data = await self._call(
            "signInWithCustomToken",
            {"token": token, "returnSecureToken": True},
        )
        return _principal_from(data)

    async def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await asyncio.to_thread(self._post, method, payload)

    def _post(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = IDENTITY_TOOLKIT_URL.format(method=method)
        logger.debug("POST accounts:%s", method)
        try:
            response = self._http.post(
                url,
                params={"key": self._api_key},
                json=payload,
                timeout=REQUEST_TIMEOUT_S,
            )
        except requests.RequestException as e:
            logger.warning("Identity provider unreachable: %s", e)
            raise AuthError(
                AuthErrorKind.PROVIDER_UNREACHABLE,
                "Could not reach the sign-in service. Check your connection and try again.",
            ) from e

        try:
            body: dict[str, Any] = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 500:
            raise AuthError(
                AuthErrorKind.PROVIDER_UNREACHABLE,
                "The sign-in service is unavailable. Try again later.",
            )
        if not response.ok:
            code = str((body.get("error") or {}).get("message") or response.status_code)
            logger.info("accounts:%s rejected: %s", method, code)
            raise auth_error_from_code(code)
        return body


def _principal_from(data: dict[str, Any]) -> Principal:
    # signInWithCustomToken omits localId; the uid is the ID token subject.
    uid = data.get("localId") or _uid_from_id_token(data.get("idToken", ""))
    if not uid:
        raise AuthError(
            AuthErrorKind.PROVIDER_UNREACHABLE,
            "The sign-in service returned an unexpected response.",
        )
    return Principal(uid=uid, email=data.get("email", ""), id_token=data.get("idToken", ""))


def _uid_from_id_token(id_token: str) -> str:
    """Read the ``sub`` claim of a JWT without verifying it."""
    parts = id_token.split(".")
    if len(parts) != 3:
        return ""
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (ValueError, binascii.Error):
        return ""
    return str(claims.get("sub") or claims.get("user_id") or "")
