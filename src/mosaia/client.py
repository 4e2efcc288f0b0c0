"""Authenticated HTTP request executor.

:class:`APIClient` resolves the live configuration on every call, refreshes an
expired session before sending (unless told not to), attaches the bearer
token and turns the response into an :class:`APIResponse` envelope.

API-level failures come back as ``APIResponse.error``; transport failures
(connection errors, timeouts, undecodable bodies) raise
:class:`~mosaia.auth.errors.TransportError`.

:class:`RawAPIClient` never refreshes.  The token endpoints are called through
it, which is what stops a refresh request from re-entering the expiry check
that triggered it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import requests

from mosaia.auth.clock import Clock, default_clock
from mosaia.auth.errors import ApiError, TransportError
from mosaia.auth.models import MosaiaConfig
from mosaia.config import CONTENT_TYPE, TOKEN_PREFIX, ConfigurationManager, SessionProvider
from mosaia.utils.logging import mask_headers

logger = logging.getLogger("mosaia.client")


@dataclass(frozen=True)
class APIResponse:
    """``{data, error}`` envelope returned by every :class:`APIClient` call."""

    data: Any = None
    error: ApiError | None = None
    status_code: int | None = None
    paging: Any = None
    meta: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> Any:
        """Return ``data`` or raise the :class:`ApiError`."""
        if self.error is not None:
            raise self.error
        return self.data


def _query(params: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if not params:
        return None
    return {k: v for k, v in params.items() if v is not None}


class APIClient:
    """Request executor bound to a :class:`~mosaia.config.ConfigurationManager`.

    Args:
        config: Pin the client to this configuration instead of reading the
            manager on each call.
        config_manager: Store to read from and write refreshed sessions to;
            defaults to the process-wide instance.
        skip_token_refresh: Never refresh, even when the session is expired.
        session: ``requests.Session`` used for transport.
        clock: Time source for the expiry check.
    """

    def __init__(
        self,
        config: MosaiaConfig | None = None,
        *,
        config_manager: SessionProvider | None = None,
        skip_token_refresh: bool = False,
        session: requests.Session | None = None,
        clock: Clock = default_clock,
    ) -> None:
        self._config = config
        self.config_manager = config_manager or ConfigurationManager.get_instance()
        self.skip_token_refresh = skip_token_refresh
        self.session = session or requests.Session()
        self.clock = clock

    # ------------------------------------------------------------------ #
    # Verb helpers                                                       #
    # ------------------------------------------------------------------ #
    def get(self, path: str, params: Mapping[str, Any] | None = None) -> APIResponse:
        return self.request("GET", path, params=params)

    def post(self, path: str, data: Any = None, *, files: Any = None) -> APIResponse:
        return self.request("POST", path, data=data, files=files)

    def put(
        self,
        path: str,
        data: Any = None,
        *,
        params: Mapping[str, Any] | None = None,
        files: Any = None,
    ) -> APIResponse:
        return self.request("PUT", path, data=data, params=params, files=files)

    def delete(self, path: str, params: Mapping[str, Any] | None = None) -> APIResponse:
        return self.request("DELETE", path, params=params)

    # ------------------------------------------------------------------ #
    # Core                                                               #
    # ------------------------------------------------------------------ #
    def resolve_config(self) -> MosaiaConfig:
        """Return the configuration to use for the next request.

        Refreshes the session first when it is expired and refresh is enabled.
        """
        config = self._config or self.config_manager.get_config()
        if self.skip_token_refresh:
            return config
        if config.session is None or not config.session.is_expired(clock=self.clock):
            return config
        return self._refresh(config)

    def _refresh(self, config: MosaiaConfig) -> MosaiaConfig:
        # local import: the auth service itself sends through RawAPIClient
        from mosaia.auth.service import AuthService

        with self.config_manager.refresh_lock:
            latest = (
                self.config_manager.get_config() if self.config_manager.is_initialized() else None
            )
            # True when the store still holds the session we are about to refresh.
            holds_ours = latest is not None and latest.api_key == config.api_key

            # Another caller may have refreshed while we waited. A pinned client
            # never adopts the store's session: it may belong to someone else.
            if (
                self._config is None
                and latest is not None
                and not holds_ours
                and latest.session is not None
                and not latest.session.is_expired(clock=self.clock)
            ):
                logger.debug("Using session refreshed by a concurrent request")
                return latest

            logger.info("Session expired, refreshing before request")
            refreshed = AuthService(
                config, config_manager=self.config_manager, session=self.session
            ).refresh()
            if self._config is None or latest is None or holds_ours:
                refreshed = self.config_manager.initialize(refreshed)
            if self._config is not None:
                self._config = refreshed
            return refreshed

    def build_headers(self, config: MosaiaConfig, *, multipart: bool = False) -> dict[str, str]:
        headers = {
            "Authorization": f"{TOKEN_PREFIX} {config.api_key or ''}",
            "Accept": CONTENT_TYPE,
        }
        if not multipart:
            headers["Content-Type"] = CONTENT_TYPE
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        data: Any = None,
        params: Mapping[str, Any] | None = None,
        files: Any = None,
    ) -> APIResponse:
        """Send *method* *path* and return the response envelope."""
        config = self.resolve_config()
        method = method.upper()
        url = f"{config.api_base_url}{path}"
        multipart = files is not None
        headers = self.build_headers(config, multipart=multipart)

        kwargs: dict[str, Any] = {
            "headers": headers,
            "params": _query(params),
            "timeout": config.timeout,
        }
        if multipart:
            kwargs["files"] = files
            if data is not None:
                kwargs["data"] = data
        elif data is not None and method != "GET":
            kwargs["json"] = data

        if config.verbose:
            logger.info("HTTP Request: %s %s headers=%s", method, url, mask_headers(headers))

        try:
            resp = self.session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            logger.warning("Request error: %s %s: %s", method, path, exc.__class__.__name__)
            raise TransportError(f"{method} {path} failed: {exc}") from exc

        if config.verbose:
            logger.info("HTTP Response: %s %s %s", resp.status_code, method, path)
        return self._build_response(resp, method, path)

    def _build_response(self, resp: Any, method: str, path: str) -> APIResponse:
        status = resp.status_code
        ok = 200 <= status < 300

        if status == 204 or not resp.content:
            if ok:
                return APIResponse(status_code=status)
            return APIResponse(
                error=ApiError(getattr(resp, "reason", None), status=status),
                status_code=status,
            )

        try:
            body = resp.json()
        except ValueError as exc:
            if ok:
                raise TransportError(f"{method} {path} returned a non-JSON body") from exc
            return APIResponse(
                error=ApiError(getattr(resp, "reason", None), status=status),
                status_code=status,
            )

        if not ok or (isinstance(body, Mapping) and body.get("error")):
            error = ApiError.from_body(body, status if not ok else None)
            logger.debug("API error %s %s: status=%s code=%s", method, path, error.status, error.code)
            return APIResponse(error=error, status_code=status)

        if isinstance(body, Mapping) and "data" in body:
            return APIResponse(
                data=body.get("data"),
                status_code=status,
                paging=body.get("paging"),
                meta=body.get("meta"),
            )
        return APIResponse(data=body, status_code=status)


class RawAPIClient(APIClient):
    """:class:`APIClient` that never refreshes the session."""

    def __init__(
        self,
        config: MosaiaConfig | None = None,
        *,
        config_manager: SessionProvider | None = None,
        session: requests.Session | None = None,
        clock: Clock = default_clock,
    ) -> None:
        super().__init__(
            config,
            config_manager=config_manager,
            skip_token_refresh=True,
            session=session,
            clock=clock,
        )
