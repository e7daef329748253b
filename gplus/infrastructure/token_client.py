"""Client for the identity provider's token endpoint (code exchange and refresh)."""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from gplus.application.exceptions import AuthStage, NetworkError, TokenExchangeError
from gplus.domain.client_identity import ClientIdentity
from gplus.infrastructure.log_utils import log_message


class OAuthTokenClient:
    """Performs the server-to-server calls of the authorization code grant."""

    def __init__(
        self,
        identity: ClientIdentity,
        session: Optional[requests.Session] = None,
        *,
        request_timeout: float = 30.0,
    ) -> None:
        self._identity = identity
        self._session = session or requests.Session()
        self._request_timeout = request_timeout

    def exchange_code(self, code: str, redirect_uri: str, code_verifier: Optional[str] = None) -> Dict[str, Any]:
        """Trade an authorization code for access and refresh tokens."""
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
        }
        if code_verifier:
            data["code_verifier"] = code_verifier
        log_message("Exchanging authorization code for tokens.", "INFO")
        return self._post(data, stage=AuthStage.EXCHANGE)

    def refresh(self, refresh_token: str) -> Dict[str, Any]:
        """Use a refresh token to obtain a new access token."""
        if not refresh_token or not refresh_token.strip():
            raise TokenExchangeError("Refresh token is empty", stage=AuthStage.REFRESH, error="invalid_grant")
        log_message("Refreshing access token.", "INFO")
        return self._post(
            {"grant_type": "refresh_token", "refresh_token": refresh_token},
            stage=AuthStage.REFRESH,
        )

    def _post(self, data: Dict[str, str], *, stage: AuthStage) -> Dict[str, Any]:
        form = dict(data)
        form["client_id"] = self._identity.client_id
        form["client_secret"] = self._identity.client_secret

        try:
            response = self._session.post(
                self._identity.token_uri,
                data=form,
                headers={"Accept": "application/json"},
                timeout=self._request_timeout,
            )
        except requests.exceptions.RequestException as exc:
            log_message(f"Token endpoint request failed during {stage.value}: {exc}", "ERROR")
            raise NetworkError(f"Could not reach the token endpoint: {exc}", stage=stage) from exc

        payload = self._parse_json(response, stage=stage)

        if response.status_code != 200:
            self._raise_failure(response, payload, stage=stage)

        if not payload.get("access_token"):
            raise TokenExchangeError(
                "Token endpoint response did not include an access_token",
                stage=stage,
                http_status=response.status_code,
            )

        log_message(f"Token endpoint {stage.value} succeeded.", "INFO")
        return payload

    def _parse_json(self, response: requests.Response, *, stage: AuthStage) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            return payload
        if response.status_code == 200:
            log_message(f"Token endpoint returned a non-JSON body during {stage.value}", "ERROR")
            raise TokenExchangeError(
                "Invalid JSON response from the token endpoint",
                stage=stage,
                http_status=response.status_code,
            )
        return {}

    def _raise_failure(self, response: requests.Response, payload: Dict[str, Any], *, stage: AuthStage) -> None:
        error = payload.get("error")
        if isinstance(error, dict):  # some Google endpoints nest the error object
            error = error.get("status") or error.get("message")
        description = payload.get("error_description")
        reason = " ".join(str(part) for part in (error, description) if part) or f"HTTP {response.status_code}"
        log_message(f"Token endpoint rejected {stage.value}: {reason}", "ERROR")
        raise TokenExchangeError(
            f"Token endpoint rejected the {stage.value} request: {reason}",
            stage=stage,
            error=str(error) if error else None,
            description=str(description) if description else None,
            http_status=response.status_code,
        )


__all__ = ["OAuthTokenClient"]
