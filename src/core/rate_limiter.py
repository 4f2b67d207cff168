import threading
import time
from typing import Callable


class RateLimiter:
    """Token bucket of size one, refilled every 1/rate seconds.

    The first token becomes available one interval after the first call.
    """

    def __init__(self, rate_per_second: float, clock: Callable[[], float] = time.monotonic):
        if rate_per_second <= 0:
            raise ValueError("rate_per_second must be positive")
        self.interval = 1.0 / rate_per_second
        self._clock = clock
        self._next_release = None
        self._lock = threading.Lock()

    def wait(self, cancel_event: threading.Event) -> bool:
        """Block until the next token; False if cancelled first"""
        with self._lock:
            now = self._clock()
            if self._next_release is None:
                self._next_release = now + self.interval
            release = max(now, self._next_release)
            self._next_release = release + self.interval

        delay = release - now
        if delay > 0:
            return not cancel_event.wait(delay)
        return not cancel_event.is_set()
