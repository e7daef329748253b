import json

import pytest

from gplus.application.exceptions import AuthStage, ConfigurationError
from gplus.domain.client_identity import GOOGLE_TOKEN_URI
from gplus.infrastructure.client_secrets import load_client_secrets


def _write(tmp_path, payload) -> str:
    path = tmp_path / "client_secrets.json"
    path.write_text(json.dumps(payload) if not isinstance(payload, str) else payload, encoding="utf-8")
    return str(path)


def test_loads_installed_section(tmp_path):
    path = _write(
        tmp_path,
        {
            "installed": {
                "client_id": "id.apps.googleusercontent.com",
                "client_secret": "shh",
                "auth_uri": "https://accounts.example/auth",
                "token_uri": "https://accounts.example/token",
                "redirect_uris": ["http://localhost"],
            }
        },
    )

    identity = load_client_secrets(path)

    assert identity.client_id == "id.apps.googleusercontent.com"
    assert identity.client_secret == "shh"
    assert identity.auth_uri == "https://accounts.example/auth"
    assert identity.token_uri == "https://accounts.example/token"


def test_flat_file_uses_google_endpoint_defaults(tmp_path):
    identity = load_client_secrets(_write(tmp_path, {"client_id": "id", "client_secret": "shh"}))

    assert identity.token_uri == GOOGLE_TOKEN_URI


def test_missing_file_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError) as excinfo:
        load_client_secrets(tmp_path / "absent.json")

    assert excinfo.value.stage is AuthStage.CONFIG
    assert "not found" in str(excinfo.value)


def test_invalid_json_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_client_secrets(_write(tmp_path, "{oops"))


def test_missing_secret_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError) as excinfo:
        load_client_secrets(_write(tmp_path, {"installed": {"client_id": "id"}}))

    assert "client_secret" in str(excinfo.value)


def test_blank_client_id_is_rejected(tmp_path):
    with pytest.raises(ConfigurationError):
        load_client_secrets(_write(tmp_path, {"client_id": "  ", "client_secret": "shh"}))
