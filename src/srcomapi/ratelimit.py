"""Sliding-window rate limiter shared by every clone of a client handle.

The speedrun.com API allows :data:`~srcomapi.models.RATE_LIMIT_NUM_REQUESTS`
requests per :data:`~srcomapi.models.RATE_LIMIT_INTERVAL` seconds.
:class:`RateLimiter` remembers the start time of the most recent requests in
a deque capped at the quota, and tells a caller how long to wait before the
oldest of them leaves the window.  Expired timestamps are dropped lazily on
the next check; nothing runs in the background.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Optional

from srcomapi.clock import Clock, SystemClock
from srcomapi.exceptions import ConfigError
from srcomapi.models import RATE_LIMIT_INTERVAL, RATE_LIMIT_NUM_REQUESTS, RateLimitConfig

logger = logging.getLogger(__name__)


class RateLimiter:
    """At most ``num_requests`` request starts within any ``interval`` seconds.

    Args:
        num_requests: Quota per window.
        interval: Window length in seconds.
        clock: Time source used by :meth:`acquire`.

    Raises:
        ConfigError: If either limit is not positive.
    """

    def __init__(
        self,
        num_requests: int = RATE_LIMIT_NUM_REQUESTS,
        interval: float = RATE_LIMIT_INTERVAL,
        clock: Optional[Clock] = None,
    ) -> None:
        if num_requests < 1:
            raise ConfigError(f"num_requests must be at least 1, got {num_requests}")
        if interval <= 0:
            raise ConfigError(f"interval must be positive, got {interval}")
        self._num_requests = num_requests
        self._interval = interval
        self._clock = clock or SystemClock()
        self._times: deque[float] = deque(maxlen=num_requests)
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: RateLimitConfig, clock: Optional[Clock] = None) -> RateLimiter:
        return cls(config.num_requests, config.interval, clock)

    @property
    def num_requests(self) -> int:
        return self._num_requests

    @property
    def interval(self) -> float:
        return self._interval

    def __len__(self) -> int:
        with self._lock:
            return len(self._times)

    def check(self, now: Optional[float] = None) -> Optional[float]:
        """Return ``None`` if a request may start now, else the seconds to wait.

        The wait is ``interval - age(oldest tracked request)``, always in
        ``(0, interval]``.
        """
        if now is None:
            now = self._clock.now()
        with self._lock:
            return self._wait_time(now)

    def record(self, timestamp: float) -> None:
        """Remember that a request started at *timestamp*."""
        with self._lock:
            self._times.append(timestamp)

    def try_acquire(self, now: Optional[float] = None) -> Optional[float]:
        """Check and record in one step.

        Returns:
            ``None`` when a slot was reserved for a request starting at
            *now*, otherwise the seconds to wait before trying again.
        """
        if now is None:
            now = self._clock.now()
        with self._lock:
            wait = self._wait_time(now)
            if wait is None:
                self._times.append(now)
            return wait

    def acquire(self) -> None:
        """Block until a slot is free, then reserve it.

        The wait is re-evaluated after every sleep: another thread may have
        taken the slot in the meantime.
        """
        while True:
            wait = self.try_acquire()
            if wait is None:
                return
            logger.info("Rate limit reached, waiting %.2fs", wait)
            self._clock.sleep(wait)

    def _wait_time(self, now: float) -> Optional[float]:
        cutoff = now - self._interval
        while self._times and self._times[0] <= cutoff:
            self._times.popleft()
        if len(self._times) < self._num_requests:
            return None
        return self._interval - (now - self._times[0])
