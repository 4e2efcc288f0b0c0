"""Session-layer building blocks.

Sub-modules
-----------
clock
    Test-friendly time abstraction.
expiry
    Fail-open expiry check on epoch-millisecond timestamps.
models
    Immutable session / configuration records.
errors
    Exception taxonomy.
pkce
    Proof-Key for Code Exchange helpers.
state
    Signed ``state`` values for the callback server.
log_utils
    Structured logging helpers (thin wrapper around :pymod:`logging`).
service
    :class:`AuthService` – password, client and refresh grants.
oauth
    :class:`OAuth` – Authorization-Code + PKCE flow.

Only the HTTP-free modules are re-exported here; import ``service`` and
``oauth`` directly (or from the top-level ``mosaia`` package).
"""

from __future__ import annotations

from .clock import Clock, default_clock, now_ms  # noqa: F401
from .expiry import is_expired  # noqa: F401
from .models import (  # noqa: F401
    AuthorizationRequest,
    AuthType,
    MosaiaConfig,
    OAuthConfig,
    SessionState,
)
from .errors import (  # noqa: F401
    ApiError,
    AuthenticationError,
    MissingApiKeyError,
    MissingRefreshTokenError,
    MosaiaError,
    NoSessionError,
    NotInitializedError,
    OAuthError,
    TransportError,
)
from .pkce import code_challenge_s256, generate_code_verifier, generate_pkce_pair  # noqa: F401
from .state import InvalidStateError, build_state, parse_state  # noqa: F401
from .log_utils import get_auth_logger  # noqa: F401

__all__ = [
    # clock
    "Clock",
    "default_clock",
    "now_ms",
    # expiry
    "is_expired",
    # models
    "AuthorizationRequest",
    "AuthType",
    "MosaiaConfig",
    "OAuthConfig",
    "SessionState",
    # errors
    "ApiError",
    "AuthenticationError",
    "MissingApiKeyError",
    "MissingRefreshTokenError",
    "MosaiaError",
    "NoSessionError",
    "NotInitializedError",
    "OAuthError",
    "TransportError",
    # pkce
    "code_challenge_s256",
    "generate_code_verifier",
    "generate_pkce_pair",
    # state
    "InvalidStateError",
    "build_state",
    "parse_state",
    # logging helpers
    "get_auth_logger",
]
