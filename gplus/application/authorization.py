"""OAuth2 installed-application authorization flow.

The flow reuses a cached credential when it can, refreshes it when it has
expired, and otherwise walks the user through browser consent with a loopback
redirect::

    Init -> HaveValidCredential
    Init -> (refresh) -> HaveValidCredential
    Init -> NeedsConsent -> CodeReceived -> TokenExchange -> HaveValidCredential
    any step -> Failed
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Protocol, Sequence
from urllib.parse import urlencode

from gplus.application.exceptions import (
    AuthorizationError,
    AuthStage,
    ConsentFailure,
    TokenExchangeError,
)
from gplus.domain.client_identity import ClientIdentity
from gplus.domain.credential import Credential
from gplus.domain.token_storage import CredentialStore
from gplus.infrastructure.callback_server import CallbackResult, LoopbackCallbackReceiver
from gplus.infrastructure.log_utils import log_message, mask_token
from gplus.infrastructure.token_client import OAuthTokenClient

DEFAULT_CALLBACK_TIMEOUT = 120.0


class FlowState(str, Enum):
    INIT = "init"
    HAVE_VALID_CREDENTIAL = "have_valid_credential"
    NEEDS_CONSENT = "needs_consent"
    CODE_RECEIVED = "code_received"
    TOKEN_EXCHANGE = "token_exchange"
    FAILED = "failed"


class CallbackReceiver(Protocol):
    """What the flow needs from a redirect listener."""

    def start(self) -> str:
        """Bind the listener and return its redirect URI."""

    def wait_for_callback(self, timeout: float) -> CallbackResult:
        """Block for one callback; raise AuthorizationError(TIMEOUT) on deadline."""

    def close(self) -> None:
        """Release the listener socket."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _print_auth_url(url: str) -> None:
    print(f"\nOpen the following link in your browser to authorize gplus:\n{url}\n")


def generate_pkce_pair() -> tuple[str, str]:
    """Return a PKCE ``(code_verifier, code_challenge)`` pair using S256."""
    verifier = secrets.token_urlsafe(64)[:128]
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return verifier, challenge


class AuthorizationFlow:
    """Obtain a usable :class:`Credential` for a user key."""

    def __init__(
        self,
        identity: ClientIdentity,
        store: CredentialStore,
        token_client: OAuthTokenClient,
        scopes: Sequence[str],
        *,
        receiver_factory: Optional[Callable[[], CallbackReceiver]] = None,
        on_auth_url: Optional[Callable[[str], None]] = None,
        callback_timeout: float = DEFAULT_CALLBACK_TIMEOUT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not scopes:
            raise ValueError("At least one scope must be requested")
        self._identity = identity
        self._store = store
        self._token_client = token_client
        self._scopes: List[str] = list(scopes)
        self._receiver_factory = receiver_factory or LoopbackCallbackReceiver
        self._on_auth_url = on_auth_url or _print_auth_url
        self._callback_timeout = callback_timeout
        self._clock = clock
        self.state = FlowState.INIT

    @property
    def scopes(self) -> List[str]:
        return list(self._scopes)

    def _transition(self, state: FlowState, detail: str = "") -> None:
        self.state = state
        suffix = f" ({detail})" if detail else ""
        log_message(f"Authorization flow -> {state.value}{suffix}", "DEBUG")

    def build_authorization_url(self, redirect_uri: str, state: str, code_challenge: Optional[str] = None) -> str:
        params = {
            "response_type": "code",
            "client_id": self._identity.client_id,
            "redirect_uri": redirect_uri,
            "scope": " ".join(self._scopes),
            "state": state,
            "access_type": "offline",
        }
        if code_challenge:
            params["code_challenge"] = code_challenge
            params["code_challenge_method"] = "S256"
        separator = "&" if "?" in self._identity.auth_uri else "?"
        return f"{self._identity.auth_uri}{separator}{urlencode(params)}"

    def authorize(self, user_key: str) -> Credential:
        """Return a valid credential for ``user_key``, prompting for consent if needed.

        Raises AuthorizationError (or a subclass) when no credential can be
        obtained; ``OSError`` from the store propagates unchanged.
        """
        self._transition(FlowState.INIT, f"user={user_key}")
        try:
            credential = self._store.load(user_key)
            if credential is not None:
                usable = self._reuse_or_refresh(user_key, credential)
                if usable is not None:
                    self._transition(FlowState.HAVE_VALID_CREDENTIAL)
                    return usable
            return self._run_consent(user_key)
        except (AuthorizationError, OSError) as exc:
            self._transition(FlowState.FAILED, str(exc))
            log_message(f"Authorization for '{user_key}' failed: {exc}", "ERROR")
            raise

    def _reuse_or_refresh(self, user_key: str, credential: Credential) -> Optional[Credential]:
        if not credential.has_scopes(self._scopes):
            log_message(
                f"Cached credential for '{user_key}' was granted {sorted(credential.scopes)}, "
                f"but {sorted(self._scopes)} were requested; asking for consent again.",
                "INFO",
            )
            return None

        now = self._clock()
        if credential.is_valid(now):
            log_message(f"Using cached credential for '{user_key}' (expires {credential.expiry}).", "INFO")
            return credential

        if not credential.can_refresh:
            log_message(f"Cached credential for '{user_key}' expired and has no refresh token.", "INFO")
            return None

        try:
            payload = self._token_client.refresh(credential.refresh_token or "")
        except TokenExchangeError as exc:
            if not exc.requires_reauth:
                raise
            log_message(f"Refresh token for '{user_key}' was rejected ({exc.error}); falling back to consent.", "WARN")
            return None

        refreshed = Credential.from_token_response(
            payload,
            requested_scopes=self._scopes,
            previous=credential,
            now=self._clock(),
        )
        self._store.save(user_key, refreshed)
        log_message(f"Refreshed credential for '{user_key}' ({mask_token(refreshed.access_token)}).", "INFO")
        return refreshed

    def _run_consent(self, user_key: str) -> Credential:
        self._transition(FlowState.NEEDS_CONSENT)
        state = secrets.token_urlsafe(16)
        code_verifier, code_challenge = generate_pkce_pair()

        receiver = self._receiver_factory()
        try:
            redirect_uri = receiver.start()
            auth_url = self.build_authorization_url(redirect_uri, state, code_challenge)
            log_message(f"Waiting up to {self._callback_timeout:.0f}s for consent on {redirect_uri}", "INFO")
            self._on_auth_url(auth_url)
            result = receiver.wait_for_callback(self._callback_timeout)
        finally:
            receiver.close()

        code = self._check_callback(result, state)
        self._transition(FlowState.CODE_RECEIVED)

        self._transition(FlowState.TOKEN_EXCHANGE)
        payload = self._token_client.exchange_code(code, redirect_uri, code_verifier)
        credential = Credential.from_token_response(
            payload,
            requested_scopes=self._scopes,
            now=self._clock(),
        )
        self._store.save(user_key, credential)
        self._transition(FlowState.HAVE_VALID_CREDENTIAL)
        log_message(f"Stored new credential for '{user_key}' ({mask_token(credential.access_token)}).", "INFO")
        return credential

    def _check_callback(self, result: CallbackResult, expected_state: str) -> str:
        if result.error:
            reason = ConsentFailure.DENIED if result.error == "access_denied" else ConsentFailure.MALFORMED
            detail = result.error_description or result.error
            raise AuthorizationError(f"Authorization was not granted: {detail}", stage=AuthStage.CONSENT, reason=reason)
        if not result.code:
            raise AuthorizationError(
                "Redirect did not include an authorization code",
                stage=AuthStage.CONSENT,
                reason=ConsentFailure.MALFORMED,
            )
        if not result.state or not secrets.compare_digest(result.state.encode(), expected_state.encode()):
            raise AuthorizationError(
                "Redirect state did not match the request; possible forged callback",
                stage=AuthStage.CONSENT,
                reason=ConsentFailure.STATE_MISMATCH,
            )
        return result.code


__all__ = ["AuthorizationFlow", "CallbackReceiver", "FlowState", "generate_pkce_pair"]
