from pathlib import Path

import pytest
from pydantic import ValidationError

from gplus.config import get_env
from gplus.config.config import Settings


def test_defaults_target_plus_scope_and_loopback(monkeypatch):
    monkeypatch.delenv("GPLUS_CALLBACK_PORT", raising=False)
    settings = Settings()

    assert settings.OAUTH_SCOPES == ["https://www.googleapis.com/auth/plus.me"]
    assert settings.CALLBACK_HOST == "127.0.0.1"
    assert settings.CALLBACK_PORT == 0
    assert 60 <= settings.CALLBACK_TIMEOUT_SECONDS <= 120


def test_environment_overrides_use_prefix(monkeypatch, tmp_path):
    monkeypatch.setenv("GPLUS_CREDENTIAL_STORE_DIR", str(tmp_path / "store"))
    monkeypatch.setenv("GPLUS_CALLBACK_PORT", "8765")
    monkeypatch.setenv("GPLUS_OAUTH_SCOPES", '["scope-a", "scope-b"]')

    settings = Settings()

    assert settings.CREDENTIAL_STORE_DIR == tmp_path / "store"
    assert settings.CALLBACK_PORT == 8765
    assert settings.OAUTH_SCOPES == ["scope-a", "scope-b"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"CALLBACK_PORT": 70000},
        {"CALLBACK_TIMEOUT_SECONDS": 0},
        {"REQUEST_TIMEOUT_SECONDS": -1},
        {"OAUTH_SCOPES": ["  "]},
    ],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(**overrides)


def test_callback_path_is_normalised():
    assert Settings(CALLBACK_PATH="callback").CALLBACK_PATH == "/callback"


def test_log_path_uses_log_dir(tmp_path):
    settings = Settings(LOG_DIR=tmp_path / "logs")

    assert settings.log_path == tmp_path / "logs" / "gplus.log"


def test_get_env_prefers_environment_override(monkeypatch):
    monkeypatch.setenv("GPLUS_REQUEST_TIMEOUT_SECONDS", "4.5")

    assert get_env("REQUEST_TIMEOUT_SECONDS") == 4.5
    assert get_env("NOT_A_SETTING", default="fallback") == "fallback"


def test_get_env_custom_parser(monkeypatch):
    monkeypatch.setenv("GPLUS_CLIENT_SECRETS_FILE", "/tmp/secrets.json")

    assert get_env("CLIENT_SECRETS_FILE", parser=Path) == Path("/tmp/secrets.json")
