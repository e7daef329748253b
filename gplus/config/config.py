"""
Centralised config for the gplus application.

This module consolidates all configuration settings, loading values from
``GPLUS_*`` environment variables (or a ``.env`` file) and providing typed,
validated access to them through a singleton `settings` object.
"""

import os
from pathlib import Path
from typing import Any, Callable, List, Optional, TypeVar

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILE = Path(__file__).resolve()
ENV_PREFIX = "GPLUS_"


def _discover_project_root(config_file: Path) -> tuple[Path, Path]:
    """Return a project root and env file path without assuming ``.env`` exists.

    Walks the parents looking for a ``.env`` file and falls back to the
    repository root (detected via common project markers) when it is missing.
    """

    parents = list(config_file.parents)

    for parent in parents:
        env_file = parent / ".env"
        if env_file.exists():
            return parent, env_file

    for marker in ("pyproject.toml", ".git"):
        for parent in parents:
            if (parent / marker).exists():
                return parent, parent / ".env"

    fallback_root = parents[1] if len(parents) > 1 else parents[0]
    return fallback_root, fallback_root / ".env"


PROJECT_ROOT, ENV_FILE_PATH = _discover_project_root(CONFIG_FILE)


T = TypeVar("T")


class Settings(BaseSettings):
    """
    Centralised and validated application settings.
    """
    model_config = SettingsConfigDict(
        env_file=ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_prefix=ENV_PREFIX,
        extra="ignore",
        case_sensitive=False,
    )

    # --- CORE APP SETTINGS ---
    APPLICATION_NAME: str = "gplus-cli/1.0.0"

    # --- OAUTH CLIENT ---
    CLIENT_SECRETS_FILE: Path = PROJECT_ROOT / "client_secrets.json"
    OAUTH_SCOPES: List[str] = Field(
        default_factory=lambda: ["https://www.googleapis.com/auth/plus.me"]
    )
    DEFAULT_USER_KEY: str = "user"

    # --- CREDENTIAL CACHE ---
    CREDENTIAL_STORE_DIR: Path = Path.home() / ".store" / "plus"

    # --- LOOPBACK CALLBACK LISTENER ---
    CALLBACK_HOST: str = "127.0.0.1"
    CALLBACK_PORT: int = 0  # 0 asks the OS for an ephemeral port
    CALLBACK_PATH: str = "/oauth2callback"
    CALLBACK_TIMEOUT_SECONDS: float = 120.0

    # --- HTTP ---
    REQUEST_TIMEOUT_SECONDS: float = 30.0
    PLUS_API_BASE_URL: str = "https://www.googleapis.com/plus/v1"

    # --- LOGGING ---
    LOG_LEVEL: str = "INFO"
    LOG_TO_CONSOLE: bool = True
    LOG_DIR: Optional[Path] = None

    @model_validator(mode="after")
    def check_ranges(self) -> "Settings":
        """Reject values the authorization flow cannot work with."""
        if not 0 <= self.CALLBACK_PORT <= 65535:
            raise ValueError(f"CALLBACK_PORT must be between 0 and 65535, got {self.CALLBACK_PORT}")
        if self.CALLBACK_TIMEOUT_SECONDS <= 0:
            raise ValueError("CALLBACK_TIMEOUT_SECONDS must be positive")
        if self.REQUEST_TIMEOUT_SECONDS <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be positive")
        if not self.CALLBACK_PATH.startswith("/"):
            self.CALLBACK_PATH = f"/{self.CALLBACK_PATH}"
        scopes = [scope.strip() for scope in self.OAUTH_SCOPES if scope and scope.strip()]
        if not scopes:
            raise ValueError("OAUTH_SCOPES must name at least one scope")
        self.OAUTH_SCOPES = scopes
        return self

    # --- DYNAMIC FILE PATHS ---
    @property
    def log_path(self) -> Path:
        """
        Path for the main application log file.

        Uses ``LOG_DIR`` when it is writable, otherwise a ``logs`` folder next
        to the credential cache. Never raises.
        """
        try:
            if self.LOG_DIR is not None:
                self.LOG_DIR.mkdir(parents=True, exist_ok=True)
                if os.access(self.LOG_DIR, os.W_OK):
                    return self.LOG_DIR / "gplus.log"
                raise PermissionError(f"No write access to {self.LOG_DIR}")
        except Exception as e:
            print(f"[gplus] Falling back to the default log directory due to: {e}")
        fallback_dir = self.CREDENTIAL_STORE_DIR / "logs"
        return fallback_dir / "gplus.log"


# Create a single, importable instance of the settings for the entire application.
settings = Settings()


def _to_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _coerce_type(raw: str, template: Any) -> Any:
    if isinstance(template, bool):
        return _to_bool(raw)
    if isinstance(template, int) and not isinstance(template, bool):
        return int(raw)
    if isinstance(template, float):
        return float(raw)
    if isinstance(template, Path):
        return Path(raw)
    return raw


def get_env(
    name: str,
    default: T | None = None,
    *,
    parser: Callable[[str], T] | None = None,
) -> T | Any | None:
    """Return a configuration value resolving environment overrides consistently.

    The resolution order is:

    1. Explicit ``GPLUS_<name>`` environment variable overrides at runtime.
    2. Typed values provided by the Pydantic ``settings`` object.
    3. The supplied ``default`` value.

    When an override is read directly from :mod:`os.environ`, ``parser`` (or the
    inferred type from ``settings``) is used to coerce the string into the
    expected type.
    """

    env_name = f"{ENV_PREFIX}{name}"
    if env_name in os.environ:
        raw_value = os.environ[env_name]
        if parser is not None:
            return parser(raw_value)
        if hasattr(settings, name):
            template = getattr(settings, name)
            try:
                return _coerce_type(raw_value, template)
            except (TypeError, ValueError):
                return template
        return raw_value

    if hasattr(settings, name):
        return getattr(settings, name)

    return default
