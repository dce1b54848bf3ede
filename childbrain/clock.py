"""
Wall-clock sources.

Every component takes a ``clock`` callable returning epoch milliseconds,
so time-dependent behavior (energy drain, loneliness, synapse decay,
temporal patterns) can be replayed exactly.
"""

import time
from typing import Callable

Clock = Callable[[], int]

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


def system_clock() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


class ManualClock:
    """
    A clock that only moves when told to.

    Used by tests and by offline replays of recorded stimulus logs.
    """

    def __init__(self, start_ms: int = 0):
        self.now_ms = int(start_ms)

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: float) -> int:
        self.now_ms += int(ms)
        return self.now_ms

    def advance_seconds(self, seconds: float) -> int:
        return self.advance(seconds * SECOND_MS)

    def set(self, now_ms: int) -> None:
        self.now_ms = int(now_ms)
