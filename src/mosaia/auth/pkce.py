"""Proof Key for Code Exchange (RFC 7636) for the Authorization-Code flow.

A verifier is raw random bytes encoded as base64url without padding, so its
alphabet is ``[A-Za-z0-9_-]``.  96 bytes give exactly 128 characters, the
largest verifier the RFC allows, and that is the default.  The challenge sent
with the authorization request is the S256 transform of the verifier; plain
challenges are not supported.

Verifiers and challenges are never logged.
"""

from __future__ import annotations

import base64
import secrets
from hashlib import sha256
from typing import Final

# 32 bytes -> 43 chars, 96 bytes -> 128 chars
MIN_VERIFIER_BYTES: Final[int] = 32
MAX_VERIFIER_BYTES: Final[int] = 96


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_code_verifier(num_bytes: int = MAX_VERIFIER_BYTES) -> str:
    """Return a fresh verifier built from *num_bytes* of randomness.

    Raises ``ValueError`` outside ``MIN_VERIFIER_BYTES..MAX_VERIFIER_BYTES``,
    where the encoded length would fall outside the RFC's 43..128 range.
    """
    if not MIN_VERIFIER_BYTES <= num_bytes <= MAX_VERIFIER_BYTES:
        raise ValueError(
            f"code verifier entropy must be {MIN_VERIFIER_BYTES}-{MAX_VERIFIER_BYTES} bytes"
        )
    return _b64url(secrets.token_bytes(num_bytes))


def code_challenge_s256(verifier: str) -> str:
    """``base64url(sha256(verifier))`` without padding."""
    return _b64url(sha256(verifier.encode("ascii")).digest())


def generate_pkce_pair() -> tuple[str, str]:
    """Return a fresh ``(code_verifier, code_challenge)`` pair."""
    verifier = generate_code_verifier()
    return verifier, code_challenge_s256(verifier)
