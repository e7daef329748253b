"""Custom exception hierarchy for the gplus authorization flow and API calls."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class AuthStage(str, Enum):
    """Stage of the authorization flow that produced an error."""

    CONFIG = "config"
    STORE = "store"
    REFRESH = "refresh"
    CONSENT = "consent"
    EXCHANGE = "exchange"


class ConsentFailure(str, Enum):
    """Why the interactive consent step did not yield a usable code."""

    TIMEOUT = "timeout"
    DENIED = "denied"
    MALFORMED = "malformed"
    STATE_MISMATCH = "state_mismatch"


class ApplicationError(Exception):
    """Base exception for gplus failures."""


class AuthorizationError(ApplicationError):
    """Raised when a credential could not be obtained.

    ``stage`` names the step that failed so callers can tell a bad secrets
    file from a network outage, a refused consent or a rejected code.
    """

    def __init__(
        self,
        message: str,
        *,
        stage: AuthStage = AuthStage.CONSENT,
        reason: Optional[ConsentFailure] = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.reason = reason

    def __str__(self) -> str:
        base = super().__str__()
        if self.reason is not None:
            return f"[{self.stage.value}/{self.reason.value}] {base}"
        return f"[{self.stage.value}] {base}"


class ConfigurationError(AuthorizationError):
    """Raised when the client secrets artifact is missing or invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(message, stage=AuthStage.CONFIG)


class NetworkError(AuthorizationError):
    """Raised when the identity provider could not be reached."""


class TokenExchangeError(AuthorizationError):
    """Raised when the token endpoint rejects a code or refresh token."""

    REAUTH_ERRORS = frozenset({"invalid_grant", "invalid_token"})

    def __init__(
        self,
        message: str,
        *,
        stage: AuthStage = AuthStage.EXCHANGE,
        error: Optional[str] = None,
        description: Optional[str] = None,
        http_status: Optional[int] = None,
    ) -> None:
        super().__init__(message, stage=stage)
        self.error = error
        self.description = description
        self.http_status = http_status

    @property
    def requires_reauth(self) -> bool:
        """True when the grant itself is dead and only new consent can help."""
        return (self.error or "").lower() in self.REAUTH_ERRORS


class PlusApiError(ApplicationError):
    """Raised when a Google+ API call fails."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


__all__ = [
    "AuthStage",
    "ConsentFailure",
    "ApplicationError",
    "AuthorizationError",
    "ConfigurationError",
    "NetworkError",
    "TokenExchangeError",
    "PlusApiError",
]
