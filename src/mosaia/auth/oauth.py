"""OAuth2 Authorization-Code flow with PKCE (RFC 7636).

Two steps, both stateless on this side:

1. :meth:`OAuth.get_authorization_url_and_code_verifier` returns the URL the
   user is sent to and the verifier the caller must keep until the redirect.
2. :meth:`OAuth.authenticate_with_code_and_verifier` exchanges the returned
   ``code`` for a session.

Provider errors are raised as :class:`~mosaia.auth.errors.OAuthError` with the
body exactly as the token endpoint sent it.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Iterable
from urllib.parse import urlencode

from mosaia.auth.errors import OAuthError
from mosaia.auth.log_utils import get_auth_logger
from mosaia.auth.models import (
    AuthorizationRequest,
    AuthType,
    MosaiaConfig,
    OAuthConfig,
    SessionState,
)
from mosaia.auth.pkce import generate_pkce_pair
from mosaia.auth.service import TOKEN_PATH, post_token_form
from mosaia.config import (
    DEFAULT_API_URL,
    DEFAULT_API_VERSION,
    DEFAULT_APP_URL,
    ConfigurationManager,
    SessionProvider,
    merge_with_defaults,
)
from mosaia.utils.logging import mask_sensitive

_LOG = logging.getLogger("mosaia.auth.oauth")

AUTHORIZE_PATH = "/oauth"


def _scopes(value: Iterable[str] | str | None) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    return tuple(value)


class OAuth:
    """Builds authorization URLs and exchanges codes for sessions.

    Each field of :class:`OAuthConfig` is resolved as: explicit value, then
    the manager's configuration (when initialized), then the built-in default.
    """

    def __init__(
        self,
        config: OAuthConfig | None = None,
        *,
        config_manager: SessionProvider | None = None,
        **fields: Any,
    ) -> None:
        self.config_manager = config_manager or ConfigurationManager.get_instance()
        base = dataclasses.replace(config or OAuthConfig(), **fields)
        base = dataclasses.replace(base, scopes=_scopes(base.scopes))

        stored: MosaiaConfig | None = (
            self.config_manager.get_config() if self.config_manager.is_initialized() else None
        )
        if stored is not None:
            base = dataclasses.replace(
                base,
                client_id=base.client_id or stored.client_id,
                api_url=base.api_url or stored.api_url,
                api_version=base.api_version or stored.version,
                app_url=base.app_url or stored.app_url,
            )
        base = dataclasses.replace(
            base,
            app_url=base.app_url or DEFAULT_APP_URL,
            api_url=base.api_url or DEFAULT_API_URL,
            api_version=str(base.api_version or DEFAULT_API_VERSION),
        )

        if not base.client_id:
            raise ValueError("clientId is required in OAuth config")
        self.config = base

    def with_state(self, state: str | None) -> "OAuth":
        """Return a copy that sends *state* with the authorization request."""
        return OAuth(
            dataclasses.replace(self.config, state=state),
            config_manager=self.config_manager,
        )

    @property
    def token_url(self) -> str:
        return f"{self.config.api_url.rstrip('/')}/v{self.config.api_version}{TOKEN_PATH}"

    # ------------------------------------------------------------------ #
    # Step 1 – authorization URL                                         #
    # ------------------------------------------------------------------ #
    def get_authorization_url_and_code_verifier(self) -> AuthorizationRequest:
        """Return the authorization URL plus a freshly generated verifier."""
        cfg = self.config
        if not cfg.scopes:
            raise ValueError(
                "scopes are required in OAuth config to generate authorization url and code verifier"
            )
        if not cfg.redirect_uri:
            raise ValueError(
                "redirectUri is required in OAuth config to generate authorization url and code verifier"
            )

        verifier, challenge = generate_pkce_pair()
        query: dict[str, str] = {
            "client_id": cfg.client_id,
            "redirect_uri": cfg.redirect_uri,
            "response_type": "code",
            "code_challenge": challenge,
            "code_challenge_method": "S256",
            "scope": ",".join(cfg.scopes),
        }
        if cfg.state:
            query["state"] = cfg.state

        url = f"{cfg.app_url.rstrip('/')}{AUTHORIZE_PATH}?{urlencode(query)}"
        _LOG.debug(
            "Built authorization URL client_id=%s state=%s",
            mask_sensitive(cfg.client_id, 6),
            mask_sensitive(cfg.state, 6) or "-",
        )
        return AuthorizationRequest(url, verifier, challenge)

    # ------------------------------------------------------------------ #
    # Step 2 – code exchange                                             #
    # ------------------------------------------------------------------ #
    def authenticate_with_code_and_verifier(self, code: str, code_verifier: str) -> MosaiaConfig:
        """Exchange *code* for a session and return the authenticated config.

        The result is **not** stored; pass it to
        ``ConfigurationManager.initialize`` to make it current.
        """
        cfg = self.config
        if not cfg.redirect_uri:
            raise ValueError(
                "redirectUri is required in OAuth config to authenticate with code and verifier"
            )
        payload = {
            "client_id": cfg.client_id,
            "redirect_uri": cfg.redirect_uri,
            "code": code,
            "code_verifier": code_verifier,
            "grant_type": "authorization_code",
        }
        log = get_auth_logger(
            base_logger_name="mosaia.auth.oauth",
            auth_type=AuthType.OAUTH,
            client_id=cfg.client_id,
        )

        base = self._base_config()
        try:
            body = post_token_form(self.token_url, payload, timeout=base.timeout)
        except OAuthError as exc:
            log.warning("Code exchange rejected error=%s", exc.error)
            raise

        session = SessionState.from_token_payload(body, AuthType.OAUTH)
        log.info("Exchanged authorization code (expires=%s)", session.exp or "-")
        return base.with_session(session)

    def _base_config(self) -> MosaiaConfig:
        cfg = self.config
        if self.config_manager.is_initialized():
            stored = self.config_manager.get_config()
            return dataclasses.replace(
                stored,
                client_id=cfg.client_id,
                api_url=cfg.api_url,
                version=cfg.api_version,
                app_url=cfg.app_url,
            )
        return merge_with_defaults(
            client_id=cfg.client_id,
            api_url=cfg.api_url,
            version=cfg.api_version,
            app_url=cfg.app_url,
        )
