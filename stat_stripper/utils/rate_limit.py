"""Request pacing for Alma's per-second API threshold."""

from __future__ import annotations

import random
import time
from typing import Callable, Optional

from .. import config


class Throttle:
    """Spaces calls ``1 / requests_per_second`` apart, plus up to ``jitter`` seconds.

    ``requests_per_second=None`` disables the spacing; jitter still applies.
    Not shared between threads: the run makes one call at a time.
    """

    def __init__(
        self,
        requests_per_second: Optional[float] = config.REQUESTS_PER_SECOND,
        *,
        jitter: float = config.THROTTLE_JITTER,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        random_source: Callable[[], float] = random.random,
    ) -> None:
        if requests_per_second is not None and requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        if jitter < 0:
            raise ValueError("jitter must not be negative")
        self.interval = 1 / requests_per_second if requests_per_second else 0.0
        self.jitter = jitter
        self._clock = clock
        self._sleep = sleep
        self._random = random_source
        self._next_slot: Optional[float] = None

    def wait(self) -> float:
        """Block until the next call may go out; returns the seconds slept."""
        now = self._clock()
        delay = 0.0 if self._next_slot is None else max(0.0, self._next_slot - now)
        delay += self.jitter * self._random()
        if delay > 0:
            self._sleep(delay)
        self._next_slot = now + delay + self.interval
        return delay
