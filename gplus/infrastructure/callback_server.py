"""Short-lived loopback HTTP listener that captures one OAuth redirect."""

from __future__ import annotations

import html
import time
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Optional
from urllib.parse import parse_qs, urlparse

from gplus.application.exceptions import AuthorizationError, AuthStage, ConsentFailure
from gplus.infrastructure.log_utils import log_message

SUCCESS_PAGE = (
    "<html><head><title>Authorization complete</title></head><body>"
    "<h1>Authorization complete</h1>"
    "<p>gplus received the authorization code. You can close this window.</p>"
    "</body></html>"
)
FAILURE_PAGE = (
    "<html><head><title>Authorization failed</title></head><body>"
    "<h1>Authorization failed</h1><p>{reason}</p>"
    "<p>Return to the terminal for details.</p></body></html>"
)

IDLE_CONNECTION_TIMEOUT = 10.0


@dataclass(frozen=True)
class CallbackResult:
    """Query parameters carried by the provider's redirect."""

    code: Optional[str] = None
    state: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None

    @property
    def ok(self) -> bool:
        return bool(self.code) and not self.error


def _first(params: dict, name: str) -> Optional[str]:
    values = params.get(name)
    if not values:
        return None
    return values[0] or None


class _CallbackHTTPServer(HTTPServer):
    """HTTPServer that remembers the first callback it saw."""

    def __init__(self, address: tuple[str, int], callback_path: str) -> None:
        super().__init__(address, _CallbackHandler)
        self.callback_path = callback_path
        self.result: Optional[CallbackResult] = None
        self.deadline: Optional[float] = None

    def connection_timeout(self) -> float:
        """Seconds a single connection may stay idle before the wait deadline."""
        if self.deadline is None:
            return IDLE_CONNECTION_TIMEOUT
        return max(min(self.deadline - time.monotonic(), IDLE_CONNECTION_TIMEOUT), 0.01)


class _CallbackHandler(BaseHTTPRequestHandler):
    """Handles GET requests on the loopback listener."""

    server: _CallbackHTTPServer

    def setup(self):
        self.timeout = self.server.connection_timeout()
        super().setup()

    def log_message(self, format, *args):
        log_message(f"Loopback request from {self.address_string()}: {format % args}", "DEBUG")

    def _respond(self, status: int, body: str) -> None:
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(payload)

    def do_GET(self):
        parsed = urlparse(self.path)
        if parsed.path != self.server.callback_path or self.server.result is not None:
            self._respond(404, FAILURE_PAGE.format(reason="Not found."))
            return

        params = parse_qs(parsed.query)
        result = CallbackResult(
            code=_first(params, "code"),
            state=_first(params, "state"),
            error=_first(params, "error"),
            error_description=_first(params, "error_description"),
        )
        self.server.result = result

        if result.error:
            reason = result.error_description or result.error
            self._respond(400, FAILURE_PAGE.format(reason=html.escape(reason)))
        elif result.code:
            self._respond(200, SUCCESS_PAGE)
        else:
            self._respond(400, FAILURE_PAGE.format(reason="The redirect carried no authorization code."))


class LoopbackCallbackReceiver:
    """Bind ``host:port`` and wait, with a deadline, for exactly one callback.

    Use as a context manager; the socket is closed as soon as a callback
    arrives or the wait times out, so later requests are refused.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 0, path: str = "/oauth2callback") -> None:
        self.host = host
        self.port = port
        self.path = path if path.startswith("/") else f"/{path}"
        self._server: Optional[_CallbackHTTPServer] = None

    def start(self) -> str:
        if self._server is None:
            try:
                self._server = _CallbackHTTPServer((self.host, self.port), self.path)
            except OSError as exc:
                raise AuthorizationError(
                    f"Could not bind the loopback listener on {self.host}:{self.port}: {exc}",
                    stage=AuthStage.CONSENT,
                ) from exc
            self.port = self._server.server_address[1]
            log_message(f"Loopback listener bound to {self.host}:{self.port}", "INFO")
        return self.redirect_uri

    @property
    def redirect_uri(self) -> str:
        return f"http://{self.host}:{self.port}{self.path}"

    @property
    def is_listening(self) -> bool:
        return self._server is not None

    def wait_for_callback(self, timeout: float) -> CallbackResult:
        """Block until one callback arrives; raise AuthorizationError(TIMEOUT) otherwise."""
        if self._server is None:
            self.start()
        server = self._server
        if server is None:
            raise AuthorizationError("Loopback listener is not running", stage=AuthStage.CONSENT)

        deadline = time.monotonic() + timeout
        server.deadline = deadline
        try:
            while server.result is None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    log_message(f"No OAuth callback received within {timeout:.0f}s", "WARN")
                    raise AuthorizationError(
                        f"No authorization callback received within {timeout:.0f} seconds",
                        stage=AuthStage.CONSENT,
                        reason=ConsentFailure.TIMEOUT,
                    )
                server.timeout = remaining
                server.handle_request()
            log_message("OAuth callback received; shutting down loopback listener", "INFO")
            return server.result
        finally:
            self.close()

    def close(self) -> None:
        if self._server is not None:
            self._server.server_close()
            self._server = None

    def __enter__(self) -> "LoopbackCallbackReceiver":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["CallbackResult", "LoopbackCallbackReceiver"]
