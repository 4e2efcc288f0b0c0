"""Signed ``state`` parameter helpers for the OAuth callback server.

Callers of :class:`~mosaia.auth.oauth.OAuth` may pass any opaque ``state``;
it is round-tripped unchanged.  The bundled callback app instead mints its own
state so it can find the pending code verifier again and reject forged or
stale callbacks.  Three values are encoded in a compact, URL-safe string:

1. ``flow_id`` – random identifier of the pending authorization
2. ``ts`` – UNIX timestamp produced by an injected clock (see :mod:`mosaia.auth.clock`)
3. ``sig`` – HMAC-SHA256 signature of the first two fields

Format (plain text before base64-url encoding)::

    <flow_id>:<ts>:<sig>

Only the (truncated) ``flow_id`` is ever logged.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import logging
from hashlib import sha256
from typing import Final

from mosaia.auth.clock import Clock, default_clock
from mosaia.auth.errors import MosaiaError

_LOG = logging.getLogger("mosaia.auth.state")

_SIG_LEN: Final[int] = 16  # characters kept from hex digest


def _b64e(data: str) -> str:
    """Base64-URL encode *without* padding."""
    return base64.urlsafe_b64encode(data.encode("utf-8")).rstrip(b"=").decode("ascii")


def _b64d(data: str) -> str:
    """Decode base64-URL data that may lack padding."""
    pad_len = (-len(data)) % 4
    return base64.urlsafe_b64decode(data + "=" * pad_len).decode("utf-8")


def _sign(message: str, secret: str) -> str:
    digest = hmac.new(secret.encode(), msg=message.encode(), digestmod=sha256).hexdigest()
    return digest[:_SIG_LEN]


class InvalidStateError(MosaiaError):
    """Raised when an incoming state is missing, stale or its signature fails."""


def build_state(flow_id: str, secret: str, *, clock: Clock = default_clock) -> str:
    """Build the signed state string for an authorization request."""
    if ":" in flow_id:
        raise ValueError("flow_id must not contain ':'")
    payload = f"{flow_id}:{int(clock())}"
    encoded = _b64e(f"{payload}:{_sign(payload, secret)}")
    _LOG.debug("Built state for flow_id=%s****", flow_id[:6])
    return encoded


def parse_state(
    state: str,
    secret: str,
    *,
    max_age: int | None = None,
    clock: Clock = default_clock,
) -> tuple[str, int]:
    """Validate and decode a state received in the OAuth callback.

    Returns
    -------
    Tuple[str, int]
        ``(flow_id, ts)`` on success.

    Raises
    ------
    InvalidStateError
        If the state is malformed, too old, or the signature does not validate.
    """
    try:
        parts = _b64d(state).split(":")
    except (ValueError, binascii.Error):
        raise InvalidStateError("state cannot be decoded") from None

    if len(parts) != 3:
        raise InvalidStateError("state has an unexpected format")

    flow_id, ts_str, sig = parts
    if not flow_id or not ts_str.isdigit():
        raise InvalidStateError("state missing fields")

    expected_sig = _sign(f"{flow_id}:{ts_str}", secret)
    if not hmac.compare_digest(sig, expected_sig):
        raise InvalidStateError("state signature mismatch")

    ts = int(ts_str)
    if max_age is not None and (clock() - ts) > max_age:
        raise InvalidStateError("state expired")

    _LOG.debug("Parsed state for flow_id=%s****", flow_id[:6])
    return flow_id, ts
