"""AuthService – grant flows against the Mosaia token endpoints.

Every sign-in method returns a new :class:`~mosaia.auth.models.MosaiaConfig`
carrying the fresh session; storing it is left to the caller (the request
executor writes refreshed sessions back itself).

The password, client and refresh grants go through the JSON ``/auth/signin``
endpoint and normalise API failures to :class:`AuthenticationError`.  The
OAuth refresh grant posts form data to ``/auth/token`` and surfaces the
provider's error body untouched as :class:`OAuthError`.

All HTTP goes through :class:`~mosaia.client.RawAPIClient` or a direct
``requests.post``; neither checks expiry, so a refresh can never recurse into
another refresh.  Tokens are **never** logged.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import requests

from mosaia.auth.errors import (
    ApiError,
    AuthenticationError,
    MissingApiKeyError,
    MissingRefreshTokenError,
    NoSessionError,
    OAuthError,
    TransportError,
    UNKNOWN_ERROR,
    UNKNOWN_ERROR_OCCURRED,
)
from mosaia.auth.log_utils import get_auth_logger
from mosaia.auth.models import AuthType, MosaiaConfig, SessionState
from mosaia.client import APIResponse, RawAPIClient
from mosaia.config import ConfigurationManager, SessionProvider

_LOG = logging.getLogger("mosaia.auth.service")

SIGNIN_PATH = "/auth/signin"
SIGNOUT_PATH = "/auth/signout"
TOKEN_PATH = "/auth/token"


def _error_message(error: ApiError | None) -> str:
    # ApiError falls back to UNKNOWN_ERROR when the body carried no message
    if error is not None and error.message and error.message != UNKNOWN_ERROR:
        return error.message
    return UNKNOWN_ERROR_OCCURRED


def post_token_form(
    url: str, payload: Mapping[str, str], *, timeout: Any
) -> Mapping[str, Any]:
    """POST form-encoded *payload* to an OAuth token endpoint.

    Returns the decoded body on 2xx, raises :class:`OAuthError` with the raw
    provider body otherwise and :class:`TransportError` when the endpoint
    cannot be reached or answers with something that is not JSON.
    """
    try:
        resp = requests.post(
            url,
            data=dict(payload),
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise TransportError(f"Token request failed: {exc}") from exc

    try:
        body = resp.json()
    except ValueError as exc:
        if resp.ok:
            raise TransportError("Token endpoint returned a non-JSON body") from exc
        body = {"error": "invalid_response", "error_description": (resp.text or "")[:200]}

    if not resp.ok:
        raise OAuthError.from_body(body, resp.status_code)
    if not isinstance(body, Mapping) or not body.get("access_token"):
        raise OAuthError(
            "invalid_response",
            error_description="Token response missing access_token",
            status_code=resp.status_code,
        )
    return body


class AuthService:
    """Performs the password, client, refresh and OAuth-refresh grants.

    Args:
        config: Configuration to authenticate against.  Defaults to the
            manager's current configuration.
        config_manager: Store reset by :meth:`sign_out`; defaults to the
            process-wide instance.
        session: ``requests.Session`` shared with the internal client.
    """

    def __init__(
        self,
        config: MosaiaConfig | None = None,
        *,
        config_manager: SessionProvider | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.config_manager = config_manager or ConfigurationManager.get_instance()
        self.config = config or self.config_manager.get_config()
        self.client = RawAPIClient(
            self.config, config_manager=self.config_manager, session=session
        )

    # ------------------------------------------------------------------ #
    # JSON grants                                                        #
    # ------------------------------------------------------------------ #
    def _sign_in(self, request: dict[str, Any], auth_type: AuthType) -> MosaiaConfig:
        log = get_auth_logger(
            base_logger_name="mosaia.auth.service",
            auth_type=auth_type,
            client_id=request.get("client_id"),
        )
        response: APIResponse = self.client.post(SIGNIN_PATH, request)
        if response.error is not None:
            log.warning("Sign-in failed status=%s code=%s", response.error.status, response.error.code)
            raise AuthenticationError(_error_message(response.error))

        payload = response.data
        if not isinstance(payload, Mapping) or not payload.get("access_token"):
            log.warning("Sign-in response missing access_token")
            raise AuthenticationError(UNKNOWN_ERROR_OCCURRED)

        session = SessionState.from_token_payload(payload, auth_type)
        log.info("Signed in (expires=%s)", session.exp or "-")
        return self.config.with_session(session)

    def sign_in_with_password(
        self, email: str, password: str, client_id: str | None = None
    ) -> MosaiaConfig:
        """Authenticate a user with email and password."""
        client_id = client_id or self.config.client_id
        if not client_id:
            raise ValueError("clientId is required and not found in config")
        return self._sign_in(
            {
                "grant_type": AuthType.PASSWORD.value,
                "email": email,
                "password": password,
                "client_id": client_id,
            },
            AuthType.PASSWORD,
        )

    def sign_in_with_client(self, client_id: str, client_secret: str) -> MosaiaConfig:
        """Authenticate an application with client credentials."""
        return self._sign_in(
            {
                "grant_type": AuthType.CLIENT.value,
                "client_id": client_id,
                "client_secret": client_secret,
            },
            AuthType.CLIENT,
        )

    def refresh_token(self, token: str | None = None) -> MosaiaConfig:
        """Exchange *token* (or the stored refresh token) for a new session."""
        session = self.config.session
        refresh_token = token or (session.refresh_token if session else None)
        if not refresh_token:
            raise MissingRefreshTokenError()
        return self._sign_in(
            {"grant_type": AuthType.REFRESH.value, "refresh_token": refresh_token},
            AuthType.REFRESH,
        )

    # ------------------------------------------------------------------ #
    # OAuth refresh                                                      #
    # ------------------------------------------------------------------ #
    def refresh_oauth_token(self, refresh_token: str) -> MosaiaConfig:
        """Refresh an OAuth session; provider errors surface as :class:`OAuthError`."""
        if not refresh_token:
            raise MissingRefreshTokenError()
        payload = {"grant_type": "refresh_token", "refresh_token": refresh_token}
        if self.config.client_id:
            payload["client_id"] = self.config.client_id

        log = get_auth_logger(
            base_logger_name="mosaia.auth.service",
            auth_type=AuthType.OAUTH,
            client_id=self.config.client_id,
        )
        try:
            body = post_token_form(
                f"{self.config.api_base_url}{TOKEN_PATH}", payload, timeout=self.config.timeout
            )
        except OAuthError as exc:
            log.warning("OAuth refresh rejected error=%s", exc.error)
            raise

        session = SessionState.from_token_payload(body, AuthType.OAUTH)
        log.info("Refreshed OAuth session (expires=%s)", session.exp or "-")
        return self.config.with_session(session)

    # ------------------------------------------------------------------ #
    # Session lifecycle                                                  #
    # ------------------------------------------------------------------ #
    def sign_out(self, api_key: str | None = None) -> None:
        """Invalidate the token server-side and reset the configuration store."""
        token = api_key or self.config.api_key
        if not token:
            raise MissingApiKeyError()
        response = self.client.delete(SIGNOUT_PATH, {"token": token})
        if response.error is not None:
            raise AuthenticationError(_error_message(response.error))
        self.config_manager.reset()
        _LOG.info("Signed out")

    def refresh(self) -> MosaiaConfig:
        """Refresh the stored session using the flow that created it."""
        session = self.config.session
        if session is None:
            raise NoSessionError()
        if not session.refresh_token:
            raise MissingRefreshTokenError("No refresh token found in config")
        if session.auth_type is AuthType.OAUTH:
            return self.refresh_oauth_token(session.refresh_token)
        return self.refresh_token(session.refresh_token)
