"""Wall-clock budget for one analysis run."""

from __future__ import annotations

import time
from collections.abc import Callable


class Budget:
    """Tracks elapsed time against a fixed ceiling.

    The clock is injectable so tests can advance time deterministically.
    """

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._seconds = seconds
        self._clock = clock
        self._started = clock()

    @property
    def seconds(self) -> float:
        return self._seconds

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started

    @property
    def remaining(self) -> float:
        return max(0.0, self._seconds - self.elapsed)

    def exhausted(self) -> bool:
        return self.elapsed >= self._seconds
