"""Time source used for expiry computation.

All timestamps in the cache are integer milliseconds since the epoch so
that the persisted blob stays compact and language-neutral.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current time in epoch milliseconds."""

    def now_ms(self) -> int: ...


class SystemClock:
    """Wall-clock implementation backed by :func:`time.time`."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)
