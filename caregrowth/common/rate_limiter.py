"""Token-bucket rate limiter for language model calls."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


class RateLimiter:
    """Blocking token bucket refilled at ``requests_per_minute``.

    A burst of search requests drains the bucket and later callers wait for
    a refill, keeping model calls within the provider's per-minute quota.
    ``None`` or a non-positive rate disables limiting.

    Args:
        requests_per_minute: Bucket capacity and refill rate.
        clock: Monotonic time source, injectable for tests.
        sleep: Sleep function, injectable for tests.
    """

    def __init__(
        self,
        requests_per_minute: int | None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.capacity = (
            requests_per_minute if requests_per_minute and requests_per_minute > 0 else None
        )
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self.tokens = float(self.capacity or 0)
        self.last_refill = clock()

    @property
    def enabled(self) -> bool:
        return self.capacity is not None

    @property
    def refill_interval(self) -> float:
        """Seconds needed to earn one token."""
        return 60.0 / self.capacity if self.capacity else 0.0

    def _refill(self) -> None:
        earned = int((self._clock() - self.last_refill) // self.refill_interval)
        if earned > 0:
            self.tokens = min(float(self.capacity or 0), self.tokens + earned)
            self.last_refill += earned * self.refill_interval

    def _wait_time(self) -> float:
        """Seconds until the next token, or 0.0 after taking one."""
        with self._lock:
            self._refill()
            if self.tokens >= 1:
                self.tokens -= 1
                return 0.0
            elapsed = self._clock() - self.last_refill
            return max(self.refill_interval - elapsed, 0.0) or self.refill_interval

    def acquire(self) -> None:
        """Block until a token is available or limiting is disabled."""
        if not self.enabled:
            return

        while True:
            wait = self._wait_time()
            if wait == 0.0:
                return
            # Sleep outside the lock so other threads can refill
            self._sleep(wait)
