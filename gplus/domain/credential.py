"""OAuth credential value object and its serialised form."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Mapping, Optional

EXPIRY_LEEWAY = timedelta(seconds=60)
DEFAULT_EXPIRES_IN = 3600


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_expiry(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError) as exc:
            raise ValueError(f"expiry timestamp out of range: {value!r}") from exc
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_scopes(value: Any) -> frozenset[str]:
    if not value:
        return frozenset()
    if isinstance(value, str):
        return frozenset(part for part in value.split() if part)
    return frozenset(str(part) for part in value if part)


@dataclass(frozen=True)
class Credential:
    """Access/refresh token pair plus the metadata needed to decide reuse."""

    access_token: str
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None
    scopes: frozenset[str] = field(default_factory=frozenset)
    token_type: str = "Bearer"

    def is_expired(self, now: Optional[datetime] = None, leeway: timedelta = EXPIRY_LEEWAY) -> bool:
        """Return True once the access token is within ``leeway`` of expiry."""
        if self.expiry is None:
            return False
        current = now or _utcnow()
        return current >= self.expiry - leeway

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return bool(self.access_token) and not self.is_expired(now)

    @property
    def can_refresh(self) -> bool:
        return bool(self.refresh_token)

    def has_scopes(self, requested: Iterable[str]) -> bool:
        """Granted scopes must match the requested set exactly."""
        return self.scopes == frozenset(requested)

    def authorization_header(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    @classmethod
    def from_token_response(
        cls,
        payload: Mapping[str, Any],
        *,
        requested_scopes: Iterable[str],
        previous: Optional["Credential"] = None,
        now: Optional[datetime] = None,
    ) -> "Credential":
        """Build a credential from a token endpoint response.

        Providers usually omit ``refresh_token`` on refresh and may omit
        ``scope``; the previous refresh token and the requested scopes fill in.
        """
        issued_at = now or _utcnow()
        expires_in = payload.get("expires_in", DEFAULT_EXPIRES_IN)
        try:
            expiry: Optional[datetime] = issued_at + timedelta(seconds=int(expires_in))
        except (TypeError, ValueError):
            expiry = issued_at + timedelta(seconds=DEFAULT_EXPIRES_IN)

        refresh_token = payload.get("refresh_token") or (previous.refresh_token if previous else None)
        scopes = _parse_scopes(payload.get("scope")) or frozenset(requested_scopes)

        return cls(
            access_token=str(payload["access_token"]),
            refresh_token=refresh_token,
            expiry=expiry,
            scopes=scopes,
            token_type=str(payload.get("token_type") or "Bearer"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expiry": self.expiry.isoformat() if self.expiry else None,
            "scopes": sorted(self.scopes),
            "token_type": self.token_type,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Credential":
        """Inverse of :meth:`to_dict`; raises ``KeyError``/``ValueError`` on bad input."""
        access_token = data["access_token"]
        if not isinstance(access_token, str):
            raise ValueError("access_token must be a string")
        refresh_token = data.get("refresh_token")
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise ValueError("refresh_token must be a string or null")
        token_type = data.get("token_type")
        if token_type is not None and not isinstance(token_type, str):
            raise ValueError("token_type must be a string")
        scopes = data.get("scopes")
        if scopes is not None and not isinstance(scopes, str):
            if not isinstance(scopes, list) or not all(isinstance(s, str) for s in scopes):
                raise ValueError("scopes must be a list of strings")
        return cls(
            access_token=access_token,
            refresh_token=refresh_token or None,
            expiry=_parse_expiry(data.get("expiry")),
            scopes=_parse_scopes(scopes),
            token_type=token_type or "Bearer",
        )


__all__ = ["Credential", "EXPIRY_LEEWAY"]
