"""
Request pacing and cancellation for batch resolution.

RateLimiter enforces a minimum interval between paced calls. The clock and
sleep functions are injectable so tests can run without real delays.

CancellationToken lets another thread (or a signal handler) stop a running
batch between tracks.
"""

import threading
import time
from typing import Callable


class RateLimiter:
    """
    Minimum-interval limiter (a leaky bucket with capacity one).

    The first acquire() returns immediately; every later one sleeps until
    at least `interval` seconds have passed since the previous acquire.

    Attributes:
        interval: Minimum seconds between acquisitions.

    Example:
        limiter = RateLimiter(0.1)
        for item in items:
            limiter.acquire()
            call_api(item)
    """

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        if interval < 0:
            raise ValueError(f"interval must be >= 0, got {interval}")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_milliseconds(cls, delay_ms: int, **kwargs) -> "RateLimiter":
        return cls(delay_ms / 1000.0, **kwargs)

    def acquire(self) -> float:
        """
        Wait until the next call is allowed.

        Returns:
            Seconds spent sleeping (0.0 when no wait was needed).
        """
        with self._lock:
            waited = 0.0
            now = self._clock()

            if self._last is not None:
                remaining = self._last + self.interval - now
                if remaining > 0:
                    self._sleep(remaining)
                    waited = remaining
                    now = self._clock()

            self._last = now
            return waited

    def reset(self) -> None:
        """Forget the previous call so the next acquire() is immediate."""
        with self._lock:
            self._last = None


class CancellationToken:
    """
    Cooperative stop signal checked between pipeline steps.

    Example:
        token = CancellationToken()
        signal.signal(signal.SIGINT, lambda *_: token.cancel())
        pipeline.resolve_all(queries, cancel_token=token)
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
