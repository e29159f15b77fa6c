"""Tests for the sliding-window rate limiter."""

from __future__ import annotations

import pytest

from srcomapi.exceptions import ConfigError
from srcomapi.models import RateLimitConfig
from srcomapi.ratelimit import RateLimiter


class TestCheck:
    def test_free_until_quota_reached(self, clock) -> None:
        limiter = RateLimiter(3, 60, clock)
        for _ in range(3):
            assert limiter.try_acquire() is None
        assert len(limiter) == 3

    def test_wait_measured_from_oldest_request(self, clock) -> None:
        limiter = RateLimiter(2, 60, clock)
        limiter.record(clock.now())
        clock.advance(10)
        limiter.record(clock.now())
        clock.advance(5)
        assert limiter.check() == pytest.approx(45)

    def test_slot_frees_exactly_at_interval(self, clock) -> None:
        limiter = RateLimiter(1, 60, clock)
        limiter.record(clock.now())
        clock.advance(59.5)
        assert limiter.check() == pytest.approx(0.5)
        clock.advance(0.5)
        assert limiter.check() is None

    def test_check_does_not_record(self, clock) -> None:
        limiter = RateLimiter(1, 60, clock)
        assert limiter.check() is None
        assert limiter.check() is None
        assert len(limiter) == 0

    def test_refused_acquire_does_not_record(self, clock) -> None:
        limiter = RateLimiter(1, 60, clock)
        limiter.try_acquire()
        assert limiter.try_acquire() is not None
        assert len(limiter) == 1

    def test_explicit_timestamps(self) -> None:
        limiter = RateLimiter(2, 10)
        assert limiter.try_acquire(now=100.0) is None
        assert limiter.try_acquire(now=101.0) is None
        assert limiter.try_acquire(now=105.0) == pytest.approx(5)
        assert limiter.try_acquire(now=110.0) is None


class TestAcquire:
    def test_sleeps_until_slot_is_free(self, clock) -> None:
        limiter = RateLimiter(2, 60, clock)
        start = clock.now()
        limiter.acquire()
        clock.advance(1)
        limiter.acquire()
        limiter.acquire()
        assert clock.sleeps == [pytest.approx(59)]
        assert clock.now() == pytest.approx(start + 60)

    def test_never_exceeds_quota_in_any_window(self, clock) -> None:
        limiter = RateLimiter(5, 60, clock)
        starts = []
        for _ in range(23):
            limiter.acquire()
            starts.append(clock.now())
            clock.advance(0.25)
        for i, start in enumerate(starts):
            in_window = [s for s in starts[i:] if s < start + 60]
            assert len(in_window) <= 5


class TestConfig:
    def test_defaults_match_api_quota(self) -> None:
        limiter = RateLimiter()
        assert limiter.num_requests == 100
        assert limiter.interval == 60

    def test_from_config(self, clock) -> None:
        limiter = RateLimiter.from_config(RateLimitConfig(num_requests=7, interval=5), clock)
        assert (limiter.num_requests, limiter.interval) == (7, 5)

    @pytest.mark.parametrize("num, interval", [(0, 60), (10, 0), (10, -1)])
    def test_rejects_non_positive(self, num: int, interval: float) -> None:
        with pytest.raises(ConfigError):
            RateLimiter(num, interval)
