"""Offline inspection of the cached credential for a user key.

No network calls are performed; the report only looks at what the
credential store holds and how it compares to the configured scopes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from gplus.domain.token_storage import CredentialStore


@dataclass(frozen=True)
class AuthStatus:
    """Represents the outcome of a credential check."""

    user_key: str
    state: str
    message: str

    def format_line(self) -> str:
        """Render the status in a CLI-friendly format."""

        labels = {
            "ok": "OK",
            "warning": "ATTENTION",
            "action_required": "ACTION REQUIRED",
        }
        label = labels.get(self.state, self.state.upper())
        return f"{self.user_key}: {label} - {self.message}"


def determine_credential_status(
    store: CredentialStore,
    user_key: str,
    scopes: Sequence[str],
    now: Optional[datetime] = None,
) -> AuthStatus:
    """Return what the next ``authorize`` run would have to do for ``user_key``."""

    credential = store.load(user_key)
    if credential is None:
        return AuthStatus(
            user_key=user_key,
            state="action_required",
            message="No cached credential. Run `gplus authorize` to grant access.",
        )

    if not credential.has_scopes(scopes):
        return AuthStatus(
            user_key=user_key,
            state="action_required",
            message=(
                f"Cached credential covers {', '.join(sorted(credential.scopes)) or 'no scopes'}; "
                "the configured scopes differ, so consent will be requested again."
            ),
        )

    current = now or datetime.now(timezone.utc)
    expiry = credential.expiry.strftime("%Y-%m-%d %H:%M UTC") if credential.expiry else "unknown"

    if credential.is_valid(current):
        return AuthStatus(
            user_key=user_key,
            state="ok",
            message=f"Access token valid until {expiry}.",
        )

    if credential.can_refresh:
        return AuthStatus(
            user_key=user_key,
            state="warning",
            message=f"Access token expired at {expiry}; it will be refreshed on next use.",
        )

    return AuthStatus(
        user_key=user_key,
        state="action_required",
        message=f"Access token expired at {expiry} and there is no refresh token. Run `gplus authorize`.",
    )
