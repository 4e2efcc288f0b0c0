"""Logging helpers shared across the package."""

from __future__ import annotations

import logging
import sys
from typing import Mapping

_SENSITIVE_HEADERS = ("authorization", "cookie", "x-api-key")


def mask_sensitive(value: str | None, keep_chars: int = 4) -> str:
    """Return *value* with everything after the first *keep_chars* masked."""
    if not value:
        return ""
    if len(value) <= keep_chars:
        return "*" * len(value)
    return value[:keep_chars] + "*" * (len(value) - keep_chars)


def mask_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return a copy of *headers* safe to log."""
    masked: dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() not in _SENSITIVE_HEADERS:
            masked[key] = value
        elif " " in value:
            scheme, _, credential = value.partition(" ")
            masked[key] = f"{scheme} {mask_sensitive(credential)}"
        else:
            masked[key] = mask_sensitive(value)
    return masked


def setup_logging(verbose: bool = False, stream=None) -> logging.Logger:
    """Attach a stream handler to the ``mosaia`` logger.

    Safe to call more than once; only the level changes on repeat calls.
    """
    logger = logging.getLogger("mosaia")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(getattr(h, "_mosaia_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        handler._mosaia_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
