"""Loader for the ``client_secrets.json`` artifact issued by the Google console."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from pydantic import ValidationError

from gplus.application.exceptions import ConfigurationError
from gplus.domain.client_identity import ClientIdentity
from gplus.infrastructure.log_utils import log_message


def _select_section(data: Dict[str, Any]) -> Dict[str, Any]:
    # Console downloads wrap the fields in "installed" (or "web" for web clients).
    for key in ("installed", "web"):
        section = data.get(key)
        if isinstance(section, dict):
            return section
    return data


def load_client_secrets(path: Path | str) -> ClientIdentity:
    """Read and validate the secrets file, raising ConfigurationError on any problem."""
    secrets_path = Path(path).expanduser()
    try:
        raw = secrets_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigurationError(
            f"Client secrets file not found: {secrets_path}. Download it from the API console "
            "or point GPLUS_CLIENT_SECRETS_FILE at it."
        ) from exc
    except OSError as exc:
        raise ConfigurationError(f"Client secrets file {secrets_path} is unreadable: {exc}") from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Client secrets file {secrets_path} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Client secrets file {secrets_path} must contain a JSON object")

    try:
        identity = ClientIdentity(**_select_section(data))
    except ValidationError as exc:
        fields = ", ".join(str(err["loc"][0]) for err in exc.errors() if err.get("loc"))
        raise ConfigurationError(
            f"Client secrets file {secrets_path} is missing or has invalid fields: {fields}"
        ) from exc

    log_message(f"Loaded client secrets for client {identity.client_id[:12]}... from {secrets_path}", "DEBUG")
    return identity


__all__ = ["load_client_secrets"]
