"""Error taxonomy for the tracker.

Every failure that reaches the user is one of these, carrying a normalized,
human-readable message (never a raw provider payload or traceback).
"""

import re
from enum import Enum


class TrackerError(Exception):
    """Base class for all tracker errors."""


class ConfigError(TrackerError):
    """Missing or invalid startup configuration (fatal)."""


class StoreError(TrackerError):
    """A document store read or write failed."""


class DraftError(TrackerError):
    """The follow-up email could not be generated."""


class AuthErrorKind(str, Enum):
    MALFORMED_CREDENTIALS = "malformed_credentials"
    DUPLICATE_ACCOUNT = "duplicate_account"
    INVALID_LOGIN = "invalid_login"
    PROVIDER_UNREACHABLE = "provider_unreachable"
    BUSY = "busy"


class AuthError(TrackerError):
    """Sign-up, sign-in, or sign-out failed."""

    def __init__(self, kind: AuthErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


# Raw identity-provider codes → (kind, display text).
_PROVIDER_CODES: dict[str, tuple[AuthErrorKind, str]] = {
    "EMAIL_EXISTS": (
        AuthErrorKind.DUPLICATE_ACCOUNT,
        "The email address is already in use by another account.",
    ),
    "INVALID_EMAIL": (AuthErrorKind.MALFORMED_CREDENTIALS, "The email address is badly formatted."),
    "MISSING_EMAIL": (AuthErrorKind.MALFORMED_CREDENTIALS, "Please enter both email and password."),
    "MISSING_PASSWORD": (AuthErrorKind.MALFORMED_CREDENTIALS, "Please enter both email and password."),
    "WEAK_PASSWORD": (
        AuthErrorKind.MALFORMED_CREDENTIALS,
        "Password should be at least 6 characters.",
    ),
    "EMAIL_NOT_FOUND": (AuthErrorKind.INVALID_LOGIN, "No account exists for this email."),
    "INVALID_PASSWORD": (AuthErrorKind.INVALID_LOGIN, "The password is invalid."),
    "INVALID_LOGIN_CREDENTIALS": (AuthErrorKind.INVALID_LOGIN, "Invalid email or password."),
    "USER_DISABLED": (AuthErrorKind.INVALID_LOGIN, "This account has been disabled."),
    "INVALID_CUSTOM_TOKEN": (AuthErrorKind.INVALID_LOGIN, "The sign-in token is invalid."),
    "TOO_MANY_ATTEMPTS_TRY_LATER": (
        AuthErrorKind.PROVIDER_UNREACHABLE,
        "Too many attempts. Try again later.",
    ),
}

_PREFIX_RE = re.compile(r"^\s*Firebase:\s*")
_PAREN_CODE_RE = re.compile(r"\s*\((?:auth|firestore)/[^)]*\)\.?\s*$")


def normalize_provider_message(text: str) -> str:
    """Strip provider prefixes and parenthetical codes from an error message.

    ``"Firebase: Error (auth/wrong-password)."`` becomes ``"Error"``.
    """
    cleaned = _PREFIX_RE.sub("", text or "")
    cleaned = _PAREN_CODE_RE.sub("", cleaned)
    return cleaned.strip() or "Authentication failed."


def auth_error_from_code(code: str) -> AuthError:
    """Build an AuthError from a raw provider error code.

    Codes may carry a detail suffix (``"WEAK_PASSWORD : Password should be..."``).
    Unknown codes fall back to INVALID_LOGIN with the normalized raw text.
    """
    head, _, detail = (code or "").partition(":")
    head = head.strip()
    if head in _PROVIDER_CODES:
        kind, message = _PROVIDER_CODES[head]
        return AuthError(kind, message)
    text = detail.strip() or head.replace("_", " ").capitalize()
    return AuthError(AuthErrorKind.INVALID_LOGIN, normalize_provider_message(text))
