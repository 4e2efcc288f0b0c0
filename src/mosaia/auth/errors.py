"""Exception types raised by the Mosaia session layer.

Only lightweight, **data-carrying** exceptions live here so that callers can
tell apart "the API told me no" (:class:`ApiError`, :class:`OAuthError`) from
"I could not reach the API" (:class:`TransportError`) and from local
preconditions that were never met.

:class:`OAuthError` is deliberately *not* unified with :class:`ApiError`:
OAuth callers need the provider's original ``error`` / ``error_description``
/ ``error_uri`` field names intact.
"""

from __future__ import annotations

from typing import Any, Mapping

UNKNOWN_ERROR = "Unknown Error"
UNKNOWN_ERROR_OCCURRED = "Unknown error occurred"
DEFAULT_ERROR_CODE = "UNKNOWN_ERROR"
DEFAULT_STATUS_CODE = 400


class MosaiaError(Exception):
    """Base class for every error raised by this package."""


class NotInitializedError(MosaiaError):
    """Raised when the configuration store is read before ``initialize``."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "Configuration not initialized. Call initialize() first.")


class NoSessionError(MosaiaError):
    """Raised when a refresh is requested but no session is stored."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "No session found in config")


class MissingRefreshTokenError(MosaiaError):
    """Raised when a refresh is attempted without any refresh token."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "Refresh token is required and not found in config")


class MissingApiKeyError(MosaiaError):
    """Raised when signing out without a resolvable API key."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "apiKey is required and not found in config")


class AuthenticationError(MosaiaError):
    """Normalised failure of the password / client / refresh grants."""


class TransportError(MosaiaError):
    """Network or decoding failure – no HTTP error envelope is available."""


class ApiError(MosaiaError):
    """Structured ``{message, code, status}`` error returned by the API."""

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message or UNKNOWN_ERROR)
        self.message: str = message or UNKNOWN_ERROR
        self.code: str = code or DEFAULT_ERROR_CODE
        self.status: int = status or DEFAULT_STATUS_CODE

    @classmethod
    def from_body(cls, body: Any, status: int | None = None) -> "ApiError":
        """Build an error from a response body, tolerating missing fields."""
        envelope: Mapping[str, Any] = {}
        if isinstance(body, Mapping):
            nested = body.get("error")
            envelope = nested if isinstance(nested, Mapping) else body
            if isinstance(nested, str) and not body.get("message"):
                envelope = {"message": nested}
        message = envelope.get("message")
        code = envelope.get("code")
        status_value = envelope.get("status")
        if not isinstance(status_value, int):
            status_value = status
        return cls(
            str(message) if message else None,
            code=str(code) if code else None,
            status=status_value,
        )

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-serialisable ``{message, code, status}`` payload."""
        return {"message": self.message, "code": self.code, "status": self.status}


class OAuthError(MosaiaError):
    """Raw OAuth provider error (RFC 6749 §5.2 shape)."""

    def __init__(
        self,
        error: str,
        *,
        error_description: str | None = None,
        error_uri: str | None = None,
        status_code: int | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(f"{error}: {error_description}" if error_description else error)
        self.error: str = error
        self.error_description: str | None = error_description
        self.error_uri: str | None = error_uri
        self.status_code: int | None = status_code
        self.payload: dict[str, Any] = dict(payload) if payload is not None else {"error": error}

    @classmethod
    def from_body(cls, body: Any, status_code: int | None = None) -> "OAuthError":
        """Wrap the provider body without renaming or dropping its fields."""
        if not isinstance(body, Mapping):
            return cls("invalid_response", error_description=str(body) if body else None, status_code=status_code)
        return cls(
            str(body.get("error") or "unknown_error"),
            error_description=body.get("error_description"),
            error_uri=body.get("error_uri"),
            status_code=status_code,
            payload=body,
        )

    def to_payload(self) -> dict[str, Any]:
        """Return the provider body exactly as received."""
        return dict(self.payload)
