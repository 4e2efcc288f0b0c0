"""Mosaia API client: configuration, authentication and session handling."""

from __future__ import annotations

from .config import (  # noqa: F401
    DEFAULT_API_URL,
    DEFAULT_API_VERSION,
    DEFAULT_APP_URL,
    ConfigurationManager,
    SessionProvider,
)
from .client import APIClient, APIResponse, RawAPIClient  # noqa: F401
from .auth.models import AuthType, MosaiaConfig, OAuthConfig, SessionState  # noqa: F401
from .auth.errors import (  # noqa: F401
    ApiError,
    AuthenticationError,
    MosaiaError,
    NotInitializedError,
    OAuthError,
    TransportError,
)
from .auth.service import AuthService  # noqa: F401
from .auth.oauth import OAuth  # noqa: F401
from .collections.base import BaseCollection  # noqa: F401
from .sdk import Mosaia  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_API_URL",
    "DEFAULT_API_VERSION",
    "DEFAULT_APP_URL",
    "ConfigurationManager",
    "SessionProvider",
    "APIClient",
    "APIResponse",
    "RawAPIClient",
    "AuthType",
    "MosaiaConfig",
    "OAuthConfig",
    "SessionState",
    "ApiError",
    "AuthenticationError",
    "MosaiaError",
    "NotInitializedError",
    "OAuthError",
    "TransportError",
    "AuthService",
    "OAuth",
    "BaseCollection",
    "Mosaia",
]
