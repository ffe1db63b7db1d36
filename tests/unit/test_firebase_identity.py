"""Tests for the Firebase Identity Toolkit provider (HTTP mocked)."""

import base64
import json
from unittest.mock import MagicMock

import pytest
import requests

from apptracker.core.config import FirebaseConfig
from apptracker.core.errors import AuthError, AuthErrorKind
from apptracker.session.firebase import FirebaseIdentityProvider, _uid_from_id_token

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _response(status: int, body: object) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.ok = status < 400
    resp.json.return_value = body
    return resp


def _make_provider(
    resp: MagicMock | None = None,
    exc: Exception | None = None,
) -> tuple[FirebaseIdentityProvider, MagicMock]:
    session = MagicMock(spec=requests.Session)
    if exc is not None:
        session.post.side_effect = exc
    else:
        session.post.return_value = resp
    config = FirebaseConfig(api_key="web-key", project_id="tracker")
    return FirebaseIdentityProvider(config, session=session), session


def _jwt(claims: dict[str, str]) -> str:
    payload = base64.urlsafe_b64encode(json.dumps(claims).encode()).decode().rstrip("=")
    return f"header.{payload}.signature"


class TestSignIn:
    async def test_success(self) -> None:
        provider, session = _make_provider(
            _response(200, {"localId": "uid-1", "email": "ada@example.com", "idToken": "tok"})
        )
        principal = await provider.sign_in("ada@example.com", "secret123")
        assert principal.uid == "uid-1"
        assert principal.id_token == "tok"

        url = session.post.call_args[0][0]
        kwargs = session.post.call_args[1]
        assert url.endswith("accounts:signInWithPassword")
        assert kwargs["params"] == {"key": "web-key"}
        assert kwargs["json"]["returnSecureToken"] is True

    async def test_invalid_credentials(self) -> None:
        provider, _ = _make_provider(
            _response(400, {"error": {"code": 400, "message": "INVALID_LOGIN_CREDENTIALS"}})
        )
        with pytest.raises(AuthError) as exc_info:
            await provider.sign_in("ada@example.com", "wrong")
        assert exc_info.value.kind is AuthErrorKind.INVALID_LOGIN
        assert exc_info.value.message == "Invalid email or password."

    async def test_network_failure(self) -> None:
        provider, _ = _make_provider(exc=requests.ConnectionError("dns"))
        with pytest.raises(AuthError) as exc_info:
            await provider.sign_in("ada@example.com", "secret123")
        assert exc_info.value.kind is AuthErrorKind.PROVIDER_UNREACHABLE

    async def test_server_error(self) -> None:
        resp = _response(503, None)
        resp.json.side_effect = ValueError("not json")
        provider, _ = _make_provider(resp)
        with pytest.raises(AuthError) as exc_info:
            await provider.sign_in("ada@example.com", "secret123")
        assert exc_info.value.kind is AuthErrorKind.PROVIDER_UNREACHABLE


class TestSignUp:
    async def test_duplicate(self) -> None:
        provider, session = _make_provider(_response(400, {"error": {"message": "EMAIL_EXISTS"}}))
        with pytest.raises(AuthError) as exc_info:
            await provider.sign_up("ada@example.com", "secret123")
        assert exc_info.value.kind is AuthErrorKind.DUPLICATE_ACCOUNT
        assert session.post.call_args[0][0].endswith("accounts:signUp")

    async def test_weak_password_detail(self) -> None:
        provider, _ = _make_provider(
            _response(400, {"error": {"message": "WEAK_PASSWORD : Password should be at least 6 characters"}})
        )
        with pytest.raises(AuthError) as exc_info:
            await provider.sign_up("ada@example.com", "123")
        assert exc_info.value.kind is AuthErrorKind.MALFORMED_CREDENTIALS


class TestCustomToken:
    async def test_uid_from_id_token(self) -> None:
        provider, session = _make_provider(_response(200, {"idToken": _jwt({"sub": "uid-7"})}))
        principal = await provider.sign_in_with_custom_token("custom")
        assert principal.uid == "uid-7"
        assert session.post.call_args[1]["json"]["token"] == "custom"

    async def test_unusable_response(self) -> None:
        provider, _ = _make_provider(_response(200, {}))
        with pytest.raises(AuthError, match="unexpected response"):
            await provider.sign_in_with_custom_token("custom")


class TestUidFromIdToken:
    def test_user_id_claim(self) -> None:
        assert _uid_from_id_token(_jwt({"user_id": "u9"})) == "u9"

    def test_garbage(self) -> None:
        assert _uid_from_id_token("not-a-jwt") == ""
        assert _uid_from_id_token("a.!!!.c") == ""
