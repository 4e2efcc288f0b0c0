"""Browser-facing OAuth endpoints for local and hosted sign-in.

Handlers are intentionally thin:

1. Parse and validate HTTP-layer parameters.
2. Delegate to :class:`~mosaia.auth.oauth.OAuth`.
3. Return an appropriate Starlette ``Response`` type.

The app mints its own signed ``state`` (see :mod:`mosaia.auth.state`) and keeps
the matching code verifier in memory until the callback arrives or the flow
expires.  Each flow can be completed once.

The base path is configurable (default: ``/oauth``) so that reverse-proxies can
mount the application under arbitrary prefixes.

SECURITY NOTE
-------------
No raw secrets (state, code verifiers, access / refresh tokens) are ever
logged.
"""

from __future__ import annotations

import logging
import os
import threading
import uuid
from typing import Final

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from mosaia.auth.clock import Clock, default_clock
from mosaia.auth.errors import OAuthError, TransportError
from mosaia.auth.oauth import OAuth
from mosaia.auth.state import InvalidStateError, build_state, parse_state
from mosaia.config import ConfigurationManager, SessionProvider

_LOG = logging.getLogger("mosaia.servers.oauth_callback")

STATE_SECRET_ENV: Final[str] = "MOSAIA_STATE_HMAC_SECRET"


def _html_page(title: str, body: str, status: int = 200) -> HTMLResponse:
    """Return a tiny success / error HTML page."""
    content = (
        "<!doctype html><html lang='en'>"
        "<head><meta charset='utf-8'><title>"
        f"{title}</title></head><body><h1>{title}</h1><p>{body}</p></body></html>"
    )
    return HTMLResponse(content, status_code=status)


def _state_secret(explicit: str | None) -> str:
    secret = explicit or os.getenv(STATE_SECRET_ENV)
    if not secret:
        secret = uuid.uuid4().hex
        _LOG.warning(
            "Environment variable %s not set – generated transient secret. "
            "Pending sign-ins will fail after process restart.",
            STATE_SECRET_ENV,
        )
    return secret


class PendingFlows:
    """In-memory ``flow_id -> code_verifier`` map with single-use consumption."""

    def __init__(self, ttl_seconds: int, *, clock: Clock = default_clock) -> None:
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._flows: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def add(self, flow_id: str, code_verifier: str) -> None:
        with self._lock:
            self._purge()
            self._flows[flow_id] = (code_verifier, self.clock())

    def consume(self, flow_id: str) -> str | None:
        """Remove and return the verifier for *flow_id*, or *None* if unknown/expired."""
        with self._lock:
            self._purge()
            entry = self._flows.pop(flow_id, None)
        return entry[0] if entry else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._flows)

    def _purge(self) -> None:
        cutoff = self.clock() - self.ttl_seconds
        for flow_id in [k for k, (_, ts) in self._flows.items() if ts < cutoff]:
            del self._flows[flow_id]


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #
def create_oauth_app(
    oauth: OAuth,
    *,
    config_manager: SessionProvider | None = None,
    base_path: str = "/oauth",
    state_secret: str | None = None,
    ttl_seconds: int = 900,
    clock: Clock = default_clock,
) -> Starlette:
    """Return a Starlette app serving ``/start``, ``/callback`` and ``/status``.

    A successful callback stores the authenticated configuration in
    *config_manager* (the process-wide manager by default).
    """
    manager = config_manager or ConfigurationManager.get_instance()
    secret = _state_secret(state_secret)
    pending = PendingFlows(ttl_seconds, clock=clock)
    base_path = base_path.rstrip("/")

    # ----- GET {base}/start ----------------------------------------------- #
    async def _start(request: Request) -> Response:
        flow_id = uuid.uuid4().hex
        state = build_state(flow_id, secret, clock=clock)
        try:
            auth_request = oauth.with_state(state).get_authorization_url_and_code_verifier()
        except ValueError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)
        pending.add(flow_id, auth_request.code_verifier)

        _LOG.info("OAuth start flow=%s****", flow_id[:6])

        fmt_param = request.query_params.get("format")
        accept_header = (request.headers.get("accept") or "").lower()
        if fmt_param == "redirect" or (fmt_param != "json" and "text/html" in accept_header):
            # 303 See Other for GET safety across methods
            return RedirectResponse(auth_request.url, status_code=303)
        return JSONResponse({"authorize_url": auth_request.url})

    # ----- GET {base}/callback -------------------------------------------- #
    async def _callback(request: Request) -> Response:
        # Provider-side errors first (e.g. access_denied)
        oauth_error = request.query_params.get("error")
        if oauth_error:
            description = request.query_params.get("error_description", "")
            return _html_page(
                "Authorization error",
                f"{oauth_error}: {description}" if description else oauth_error,
                400,
            )

        code = request.query_params.get("code")
        state = request.query_params.get("state")
        if not code or not state:
            return _html_page("Missing parameters", "code or state missing", 400)

        try:
            flow_id, _ = parse_state(state, secret, max_age=ttl_seconds, clock=clock)
        except InvalidStateError as exc:
            _LOG.warning("OAuth callback rejected: %s", exc)
            return _html_page("Authorization failed", "invalid or expired state", 400)

        code_verifier = pending.consume(flow_id)
        if code_verifier is None:
            _LOG.warning("OAuth callback for unknown or used flow=%s****", flow_id[:6])
            return _html_page("Authorization failed", "invalid or expired state", 400)

        try:
            config = await run_in_threadpool(
                oauth.authenticate_with_code_and_verifier, code, code_verifier
            )
        except OAuthError as exc:
            _LOG.warning("OAuth code exchange failed: %s", exc.error)
            return _html_page("Authorization failed", exc.error, 400)
        except TransportError as exc:
            _LOG.warning("OAuth code exchange unreachable: %s", exc)
            return _html_page("Authorization failed", "token endpoint unavailable", 502)

        manager.initialize(config)
        _LOG.info("OAuth success flow=%s****", flow_id[:6])
        return _html_page("Authorization successful", "You may close this window.")

    # ----- GET {base}/status ---------------------------------------------- #
    async def _status(request: Request) -> Response:
        if not manager.is_initialized():
            return JSONResponse(
                {"initialized": False, "authenticated": False, "auth_type": None, "expired": None}
            )
        session = manager.get_config().session
        return JSONResponse(
            {
                "initialized": True,
                "authenticated": session is not None,
                "auth_type": session.auth_type.value if session else None,
                "expired": session.is_expired(clock=clock) if session else None,
            }
        )

    app = Starlette(
        routes=[
            Route(f"{base_path}/start", _start, methods=["GET"]),
            Route(f"{base_path}/callback", _callback, methods=["GET"]),
            Route(f"{base_path}/status", _status, methods=["GET"]),
        ]
    )
    app.state.pending_flows = pending
    return app
