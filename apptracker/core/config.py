"""Configuration models, YAML loader, and environment bootstrap."""

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from apptracker.core.errors import ConfigError

DEFAULT_APP_ID = "default-app-id"


class FirebaseConfig(BaseModel):
    """Backend-connection descriptor (Firebase web config + admin credentials).

    Extra web-config keys (authDomain, storageBucket, ...) are accepted and kept.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    api_key: str = Field(default="", alias="apiKey")
    project_id: str = Field(default="", alias="projectId")
    service_account_path: str | None = Field(default=None, alias="serviceAccountPath")

    def is_valid(self) -> bool:
        return bool(self.api_key.strip() and self.project_id.strip())


class BackendConfig(BaseModel):
    """Which identity provider + document store to use."""

    kind: Literal["firebase", "local"] = "firebase"
    firebase: FirebaseConfig | None = None
    local_path: str = "data/tracker.db"


class AssistantConfig(BaseModel):
    """Follow-up draft assistant (Gemini) settings."""

    enabled: bool = True
    provider: str = "gemini"
    model: str = "gemini-2.5-flash"
    api_key_env: str = "GOOGLE_API_KEY"
    max_retries: int = Field(default=2, ge=0, le=10)
    base_delay_s: float = Field(default=1.0, ge=0.0)
    max_jitter_s: float = Field(default=1.0, ge=0.0)


class Settings(BaseModel):
    """Top-level settings, loaded once at startup and injected everywhere."""

    backend: BackendConfig = Field(default_factory=BackendConfig)
    app_id: str = DEFAULT_APP_ID
    initial_auth_token: str | None = None
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)

    @field_validator("app_id")
    @classmethod
    def app_id_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "app_id must not be empty"
            raise ValueError(msg)
        if "/" in v:
            msg = "app_id must not contain '/'"
            raise ValueError(msg)
        return v.strip()

    def require_backend(self) -> None:
        """Raise ConfigError if the backend descriptor cannot be used."""
        if self.backend.kind == "local":
            return
        if self.backend.firebase is None or not self.backend.firebase.is_valid():
            msg = "Firebase configuration is missing (apiKey and projectId are required)"
            raise ConfigError(msg)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file, then apply environment overrides."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(_apply_env(raw, os.environ))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings purely from TRACKER_* environment variables."""
        env = dict(os.environ) if environ is None else environ
        return cls.model_validate(_apply_env({}, env))


def _apply_env(raw: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """Overlay TRACKER_* environment variables onto a raw settings dict."""
    data = dict(raw)
    backend = dict(data.get("backend") or {})

    if env.get("TRACKER_BACKEND"):
        backend["kind"] = env["TRACKER_BACKEND"]
    if env.get("TRACKER_FIREBASE_CONFIG"):
        try:
            backend["firebase"] = json.loads(env["TRACKER_FIREBASE_CONFIG"])
        except json.JSONDecodeError as e:
            msg = f"TRACKER_FIREBASE_CONFIG is not valid JSON: {e}"
            raise ConfigError(msg) from e
    if env.get("TRACKER_DB_PATH"):
        backend["local_path"] = env["TRACKER_DB_PATH"]
    data["backend"] = backend

    if env.get("TRACKER_APP_ID"):
        data["app_id"] = env["TRACKER_APP_ID"]
    if env.get("TRACKER_INITIAL_AUTH_TOKEN"):
        data["initial_auth_token"] = env["TRACKER_INITIAL_AUTH_TOKEN"]
    return data
