"""Token-bucket rate limiter shared by every request of a run."""

import threading
import time

from skillpulse.utils.context import RunContext


class TokenBucket:
    """
    Classic token bucket.

    Starts full with `capacity` units and refills continuously at
    `refill_rate` units per second. Each request consumes one unit.
    """

    def __init__(self, capacity: int, refill_rate: float, clock=time.monotonic):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if refill_rate <= 0:
            raise ValueError("refill_rate must be positive")
        self.capacity = capacity
        self.refill_rate = refill_rate
        self._clock = clock
        self._tokens = float(capacity)
        self._updated = clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(self.capacity, self._tokens + (now - self._updated) * self.refill_rate)
        self._updated = now

    def try_acquire(self) -> float:
        """
        Take one unit if available.

        Returns:
            0.0 on success, otherwise the number of seconds until a unit is free
        """
        with self._lock:
            self._refill()
            if self._tokens >= 1:
                self._tokens -= 1
                return 0.0
            return (1 - self._tokens) / self.refill_rate

    def acquire(self, ctx: RunContext) -> None:
        """Block until one unit is admitted. Raises Cancelled if ctx is cancelled while waiting."""
        while True:
            ctx.raise_if_cancelled()
            wait = self.try_acquire()
            if wait == 0.0:
                return
            ctx.sleep(wait)
