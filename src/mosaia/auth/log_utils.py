"""Context-carrying loggers for grant flows.

Log records emitted while a grant is in flight are tagged with a small,
fixed set of attributes so that operators can correlate them without ever
seeing credentials:

- ``auth_type``      – grant flow (``password``, ``client``, ``refresh``, ``oauth``)
- ``sub``            – subject identifier, first 8 characters only
- ``client_id``      – application identifier, first 8 characters only
- ``correlation_id`` – optional caller-supplied request id

Any other key passed in is dropped.

>>> log = get_auth_logger(auth_type="oauth", client_id="abcdef0123456789")
>>> log.info("Exchanging authorization code")  # client_id=abcdef01
"""

from __future__ import annotations

import logging
from typing import Any, Final, Mapping, MutableMapping

ALLOWED_KEYS: Final[tuple[str, ...]] = ("auth_type", "sub", "client_id", "correlation_id")
_TRUNCATE: Final[dict[str, int]] = {"sub": 8, "client_id": 8}


def _clean_context(context: Mapping[str, Any] | None) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    for key in ALLOWED_KEYS:
        value = (context or {}).get(key)
        if value is None:
            continue
        # enums (AuthType) are logged by value
        value = getattr(value, "value", value)
        limit = _TRUNCATE.get(key)
        cleaned[key] = str(value)[:limit] if limit else value
    return cleaned


class AuthContextAdapter(logging.LoggerAdapter):
    """LoggerAdapter that attaches whitelisted auth context to every record."""

    def __init__(self, logger: logging.Logger, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(logger, _clean_context(context))

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        # call-site extras win over the bound context
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def get_auth_logger(
    *,
    base_logger_name: str = "mosaia.auth",
    auth_type: Any = None,
    sub: str | None = None,
    client_id: str | None = None,
    correlation_id: str | None = None,
) -> AuthContextAdapter:
    """Return an adapter over *base_logger_name* bound to the given context."""
    return AuthContextAdapter(
        logging.getLogger(base_logger_name),
        dict(auth_type=auth_type, sub=sub, client_id=client_id, correlation_id=correlation_id),
    )
