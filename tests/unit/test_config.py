"""Tests for configuration models, YAML loading and environment overrides."""

import json
from pathlib import Path
from textwrap import dedent

import pytest
from pydantic import ValidationError

from apptracker.core.config import (
    DEFAULT_APP_ID,
    AssistantConfig,
    BackendConfig,
    FirebaseConfig,
    Settings,
)
from apptracker.core.errors import ConfigError

_FIREBASE = {"apiKey": "key-123", "projectId": "tracker-dev", "authDomain": "x.firebaseapp.com"}


class TestFirebaseConfig:
    def test_aliases_and_extra_keys(self) -> None:
        cfg = FirebaseConfig.model_validate(_FIREBASE)
        assert cfg.api_key == "key-123"
        assert cfg.project_id == "tracker-dev"
        assert cfg.model_extra == {"authDomain": "x.firebaseapp.com"}

    def test_field_names_accepted(self) -> None:
        cfg = FirebaseConfig(api_key="k", project_id="p")
        assert cfg.is_valid()

    def test_blank_is_invalid(self) -> None:
        assert not FirebaseConfig().is_valid()
        assert not FirebaseConfig(api_key="  ", project_id="p").is_valid()


class TestAssistantConfig:
    def test_defaults(self) -> None:
        a = AssistantConfig()
        assert a.enabled is True
        assert a.provider == "gemini"
        assert a.model == "gemini-2.5-flash"
        assert a.api_key_env == "GOOGLE_API_KEY"
        assert a.max_retries == 2
        assert a.base_delay_s == 1.0
        assert a.max_jitter_s == 1.0

    def test_retry_bounds(self) -> None:
        with pytest.raises(ValidationError):
            AssistantConfig(max_retries=-1)
        with pytest.raises(ValidationError):
            AssistantConfig(max_retries=11)


class TestSettings:
    def test_defaults(self) -> None:
        s = Settings()
        assert s.backend.kind == "firebase"
        assert s.backend.local_path == "data/tracker.db"
        assert s.app_id == DEFAULT_APP_ID
        assert s.initial_auth_token is None

    def test_app_id_stripped(self) -> None:
        assert Settings(app_id="  my-app ").app_id == "my-app"

    def test_app_id_rejects_empty_and_slash(self) -> None:
        with pytest.raises(ValidationError):
            Settings(app_id=" ")
        with pytest.raises(ValidationError):
            Settings(app_id="a/b")

    def test_unknown_backend_kind_rejected(self) -> None:
        with pytest.raises(ValidationError):
            BackendConfig(kind="mongo")  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# require_backend
# ---------------------------------------------------------------------------


class TestRequireBackend:
    def test_missing_descriptor_raises(self) -> None:
        with pytest.raises(ConfigError, match="Firebase configuration is missing"):
            Settings().require_backend()

    def test_incomplete_descriptor_raises(self) -> None:
        s = Settings(backend=BackendConfig(firebase=FirebaseConfig(api_key="k")))
        with pytest.raises(ConfigError):
            s.require_backend()

    def test_valid_descriptor_passes(self) -> None:
        s = Settings(backend=BackendConfig(firebase=FirebaseConfig.model_validate(_FIREBASE)))
        s.require_backend()

    def test_local_backend_needs_no_descriptor(self) -> None:
        Settings(backend=BackendConfig(kind="local")).require_backend()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestFromYaml:
    def test_load(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        for var in ("TRACKER_BACKEND", "TRACKER_APP_ID", "TRACKER_FIREBASE_CONFIG"):
            monkeypatch.delenv(var, raising=False)
        path = tmp_path / "settings.yaml"
        path.write_text(dedent("""\
            app_id: jobs-app
            backend:
              kind: firebase
              firebase:
                apiKey: key-123
                projectId: tracker-dev
            assistant:
              max_retries: 3
        """))
        s = Settings.from_yaml(path)
        assert s.app_id == "jobs-app"
        assert s.backend.firebase is not None
        assert s.backend.firebase.project_id == "tracker-dev"
        assert s.assistant.max_retries == 3

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            Settings.from_yaml(tmp_path / "nope.yaml")

    def test_empty_file_gives_defaults(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TRACKER_APP_ID", raising=False)
        path = tmp_path / "settings.yaml"
        path.write_text("")
        assert Settings.from_yaml(path).app_id == DEFAULT_APP_ID

    def test_environment_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TRACKER_APP_ID", "from-env")
        monkeypatch.setenv("TRACKER_BACKEND", "local")
        path = tmp_path / "settings.yaml"
        path.write_text("app_id: from-file\n")
        s = Settings.from_yaml(path)
        assert s.app_id == "from-env"
        assert s.backend.kind == "local"


class TestFromEnv:
    def test_all_variables(self) -> None:
        env = {
            "TRACKER_BACKEND": "firebase",
            "TRACKER_FIREBASE_CONFIG": json.dumps(_FIREBASE),
            "TRACKER_APP_ID": "app-1",
            "TRACKER_INITIAL_AUTH_TOKEN": "tok",
            "TRACKER_DB_PATH": "/tmp/t.db",
        }
        s = Settings.from_env(env)
        assert s.backend.firebase is not None
        assert s.backend.firebase.api_key == "key-123"
        assert s.app_id == "app-1"
        assert s.initial_auth_token == "tok"
        assert s.backend.local_path == "/tmp/t.db"

    def test_empty_environment(self) -> None:
        s = Settings.from_env({})
        assert s.backend.firebase is None
        with pytest.raises(ConfigError):
            s.require_backend()

    def test_invalid_json_descriptor(self) -> None:
        with pytest.raises(ConfigError, match="not valid JSON"):
            Settings.from_env({"TRACKER_FIREBASE_CONFIG": "{not json"})
