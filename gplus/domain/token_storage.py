"""Domain-level protocol for persisting OAuth credentials per user key."""

from __future__ import annotations

from typing import Optional, Protocol

from gplus.domain.credential import Credential


class CredentialStore(Protocol):
    """Abstraction for a durable credential cache keyed by user."""

    def load(self, user_key: str) -> Optional[Credential]:
        """Return the saved credential, or ``None`` when absent or unreadable."""

    def save(self, user_key: str, credential: Credential) -> None:
        """Persist ``credential`` under ``user_key``, replacing any prior entry."""


__all__ = ["CredentialStore"]
