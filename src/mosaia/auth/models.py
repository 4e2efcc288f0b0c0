"""Typed, immutable records used by the session layer."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass
from typing import Any, Mapping, NamedTuple

from mosaia.auth.clock import Clock, default_clock
from mosaia.auth.expiry import is_expired


class AuthType(str, enum.Enum):
    """Grant flow that produced a session; decides how it is refreshed."""

    PASSWORD = "password"
    CLIENT = "client"
    REFRESH = "refresh"
    OAUTH = "oauth"


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True, slots=True)
class SessionState:
    """Snapshot of the credential currently held by the client.

    ``iat`` and ``exp`` are epoch-millisecond values kept as strings, exactly
    as the API reports them.
    """

    access_token: str
    refresh_token: str | None = None
    auth_type: AuthType = AuthType.PASSWORD
    sub: str | None = None
    iat: str | None = None
    exp: str | None = None

    @classmethod
    def from_token_payload(
        cls, payload: Mapping[str, Any], auth_type: AuthType | str
    ) -> "SessionState":
        """Build a session from a token endpoint body."""
        return cls(
            access_token=str(payload.get("access_token") or ""),
            refresh_token=_optional_str(payload.get("refresh_token")),
            auth_type=AuthType(auth_type),
            sub=_optional_str(payload.get("sub")),
            iat=_optional_str(payload.get("iat")),
            exp=_optional_str(payload.get("exp")),
        )

    def is_expired(self, *, clock: Clock = default_clock) -> bool:
        """Return *True* if ``exp`` is a valid timestamp in the past."""
        return is_expired(self.exp, clock=clock)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable payload **without secrets**."""
        return {
            "auth_type": self.auth_type.value,
            "sub": self.sub,
            "iat": self.iat,
            "exp": self.exp,
            "has_refresh_token": self.refresh_token is not None,
        }


@dataclass(frozen=True, slots=True)
class MosaiaConfig:
    """Immutable-until-replaced client configuration."""

    api_key: str | None = None
    api_url: str | None = None
    version: str | None = None
    app_url: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    verbose: bool = False
    session: SessionState | None = None
    # (connect, read) seconds, passed straight to requests
    timeout: float | tuple[float, float] = (5, 30)

    @property
    def api_base_url(self) -> str:
        """``{api_url}/v{version}`` – prefix of every API path."""
        return f"{(self.api_url or '').rstrip('/')}/v{self.version}"

    def with_session(self, session: SessionState) -> "MosaiaConfig":
        """Return a copy authenticated with *session*."""
        return dataclasses.replace(self, api_key=session.access_token, session=session)


CONFIG_FIELDS: frozenset[str] = frozenset(f.name for f in dataclasses.fields(MosaiaConfig))


@dataclass(frozen=True, slots=True)
class OAuthConfig:
    """Settings for the Authorization-Code + PKCE flow."""

    client_id: str | None = None
    redirect_uri: str | None = None
    app_url: str | None = None
    api_url: str | None = None
    api_version: str | None = None
    scopes: tuple[str, ...] | None = None
    state: str | None = None


class AuthorizationRequest(NamedTuple):
    """Result of building an authorization URL."""

    url: str
    code_verifier: str
    code_challenge: str
