"""Session expiry check.

The API reports ``exp`` as an epoch-millisecond value serialised as a string.
Anything that cannot be read as a plain integer is treated as *not expired*:
a malformed timestamp must never block a request or force a refresh.
"""

from __future__ import annotations

import math
import re
from typing import Final

from mosaia.auth.clock import Clock, default_clock, now_ms

_INTEGER_RE: Final = re.compile(r"^[+-]?\d+$")


def _parse_ms(timestamp: object) -> int | None:
    if timestamp is None or isinstance(timestamp, bool):
        return None
    if isinstance(timestamp, int):
        return timestamp
    if isinstance(timestamp, float):
        return int(timestamp) if math.isfinite(timestamp) else None
    if not isinstance(timestamp, str):
        return None
    text = timestamp.strip()
    if not text or not _INTEGER_RE.match(text):
        return None
    return int(text)


def is_expired(timestamp: str | int | float | None, *, clock: Clock = default_clock) -> bool:
    """Return *True* if *timestamp* (epoch ms) lies strictly in the past.

    Empty, whitespace-only, non-numeric or missing values return *False*.
    Never raises.
    """
    parsed = _parse_ms(timestamp)
    if parsed is None:
        return False
    return parsed < now_ms(clock)
