"""Infrastructure implementation of credential persistence."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from gplus.domain.credential import Credential
from gplus.domain.token_storage import CredentialStore
from gplus.infrastructure.log_utils import log_message


class JsonFileCredentialStore(CredentialStore):
    """Persist one JSON credential file per user key inside a directory."""

    def __init__(self, directory: Path | str) -> None:
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, user_key: str) -> Path:
        """Map ``user_key`` to its own file inside the directory.

        Percent-encoding is reversible, so distinct keys never share a file.
        """
        if not user_key:
            raise ValueError("user_key must not be empty")
        return self._directory / f"{quote(user_key, safe='')}.json"

    def load(self, user_key: str) -> Optional[Credential]:
        path = self.path_for(user_key)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
            return Credential.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError, OverflowError) as exc:
            log_message(f"Ignoring unreadable credential for '{user_key}' at {path}: {exc}", "WARN")
            return None

    def save(self, user_key: str, credential: Credential) -> None:
        """Write atomically: temp file in the same directory, then replace."""
        path = self.path_for(user_key)
        self._directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            try:
                os.chmod(tmp_name, 0o600)
            except OSError as exc:  # pragma: no cover - depends on platform
                log_message(f"Could not set permissions on {tmp_name}: {exc}", "WARN")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(credential.to_dict(), handle, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

        log_message(f"Saved credential for '{user_key}' to {path}", "INFO")


__all__ = ["JsonFileCredentialStore"]
