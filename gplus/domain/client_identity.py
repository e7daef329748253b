"""OAuth client identity loaded from the bundled secrets artifact."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class ClientIdentity(BaseModel):
    """Registered installed-app client: id, secret and the two OAuth endpoints."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    client_id: str
    client_secret: str
    auth_uri: str = GOOGLE_AUTH_URI
    token_uri: str = GOOGLE_TOKEN_URI

    @field_validator("client_id", "client_secret", "auth_uri", "token_uri")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


__all__ = ["ClientIdentity", "GOOGLE_AUTH_URI", "GOOGLE_TOKEN_URI"]
