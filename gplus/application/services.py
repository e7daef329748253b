"""Per-run wiring of the authorization flow and the Google+ client."""

from __future__ import annotations

from typing import Callable, Optional

import requests

from gplus.application.authorization import AuthorizationFlow
from gplus.config import Settings, settings as app_settings
from gplus.infrastructure.callback_server import LoopbackCallbackReceiver
from gplus.infrastructure.client_secrets import load_client_secrets
from gplus.infrastructure.plus_client import PlusClient
from gplus.infrastructure.token_client import OAuthTokenClient
from gplus.infrastructure.token_storage import JsonFileCredentialStore


def build_credential_store(config: Settings = app_settings) -> JsonFileCredentialStore:
    return JsonFileCredentialStore(config.CREDENTIAL_STORE_DIR)


def build_authorization_flow(
    session: requests.Session,
    *,
    on_auth_url: Optional[Callable[[str], None]] = None,
    config: Settings = app_settings,
) -> AuthorizationFlow:
    """Load the client secrets and assemble a flow bound to ``session``.

    Raises ConfigurationError before any network activity when the secrets
    file is missing or invalid.
    """
    identity = load_client_secrets(config.CLIENT_SECRETS_FILE)
    token_client = OAuthTokenClient(identity, session, request_timeout=config.REQUEST_TIMEOUT_SECONDS)
    return AuthorizationFlow(
        identity,
        build_credential_store(config),
        token_client,
        config.OAUTH_SCOPES,
        receiver_factory=lambda: LoopbackCallbackReceiver(
            host=config.CALLBACK_HOST,
            port=config.CALLBACK_PORT,
            path=config.CALLBACK_PATH,
        ),
        on_auth_url=on_auth_url,
        callback_timeout=config.CALLBACK_TIMEOUT_SECONDS,
    )


def connect(
    user_key: str,
    session: requests.Session,
    *,
    on_auth_url: Optional[Callable[[str], None]] = None,
    config: Settings = app_settings,
) -> PlusClient:
    """Authorize ``user_key`` and return a Google+ client using the credential."""
    flow = build_authorization_flow(session, on_auth_url=on_auth_url, config=config)
    credential = flow.authorize(user_key)
    return PlusClient(
        credential,
        session,
        base_url=config.PLUS_API_BASE_URL,
        application_name=config.APPLICATION_NAME,
        timeout=config.REQUEST_TIMEOUT_SECONDS,
    )


__all__ = ["build_authorization_flow", "build_credential_store", "connect"]
