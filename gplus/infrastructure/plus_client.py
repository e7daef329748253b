"""
Thin client for the four Google+ v1 read calls used by the CLI:
people search, activity listing, single activity and profile lookup.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from gplus.application.exceptions import PlusApiError
from gplus.domain.credential import Credential
from gplus.infrastructure.log_utils import log_message

DEFAULT_BASE_URL = "https://www.googleapis.com/plus/v1"


class PlusClient:
    def __init__(
        self,
        credential: Credential,
        session: Optional[requests.Session] = None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        application_name: str = "gplus-cli/1.0.0",
        timeout: float = 30.0,
    ) -> None:
        self._credential = credential
        self._session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.application_name = application_name
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": self.application_name,
        }
        headers.update(self._credential.authorization_header())
        return headers

    def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        log_message(f"[plus.api] GET {url} params={params}", "DEBUG")

        try:
            response = self._session.get(url, headers=self._headers(), params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            raise PlusApiError(f"GET {path} failed: {exc!r}") from exc

        if response.status_code != 200:
            detail = (response.text or "")[:300]
            log_message(f"[plus.api] GET {path} returned {response.status_code}: {detail}", "ERROR")
            raise PlusApiError(f"GET {path} -> {response.status_code}: {detail}", status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise PlusApiError(f"GET {path} returned invalid JSON", status_code=response.status_code) from exc

    def search_people(self, query: str, max_results: int = 5) -> List[Dict[str, Any]]:
        """Search public profiles by name."""
        feed = self._request("people", params={"query": query, "maxResults": max_results})
        return list(feed.get("items") or [])

    def list_activities(self, user_id: str, collection: str = "public", max_results: int = 5) -> List[Dict[str, Any]]:
        """List a user's latest activities in ``collection``."""
        feed = self._request(f"people/{user_id}/activities/{collection}", params={"maxResults": max_results})
        return list(feed.get("items") or [])

    def get_activity(self, activity_id: str) -> Dict[str, Any]:
        return self._request(f"activities/{activity_id}")

    def get_profile(self, user_id: str = "me") -> Dict[str, Any]:
        return self._request(f"people/{user_id}")


__all__ = ["PlusClient", "DEFAULT_BASE_URL"]
