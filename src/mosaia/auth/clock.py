"""Injectable time source.

A clock is any zero-argument callable returning epoch seconds; tests pass a
lambda.  Session ``iat`` / ``exp`` values are epoch milliseconds, so expiry
checks compare against :func:`now_ms`.
"""

from __future__ import annotations

import time
from typing import Callable

Clock = Callable[[], float]

default_clock: Clock = time.time


def now_ms(clock: Clock = default_clock) -> int:
    """Return *clock*'s current time in epoch milliseconds.

    >>> now_ms(lambda: 1.5)
    1500
    """
    return int(clock() * 1000)
