"""Tests for the per-subject one-minute rate limiter."""

from __future__ import annotations

import threading

from chatmeter.services.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


def test_admits_up_to_limit_then_denies() -> None:
    limiter = RateLimiter(clock=FakeClock())

    results = [limiter.admit("alice", 5) for _ in range(6)]

    assert results == [True, True, True, True, True, False]


def test_window_rolls_over_after_sixty_seconds() -> None:
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)
    for _ in range(3):
        limiter.admit("alice", 2)
    assert limiter.admit("alice", 2) is False

    clock.now += 59.9
    assert limiter.admit("alice", 2) is False

    clock.now += 0.1
    assert limiter.admit("alice", 2) is True
    assert limiter.admit("alice", 2) is True
    assert limiter.admit("alice", 2) is False


def test_non_positive_limit_always_denies() -> None:
    limiter = RateLimiter(clock=FakeClock())

    assert limiter.admit("alice", 0) is False
    assert limiter.admit("alice", -3) is False
    assert len(limiter) == 0


def test_subjects_are_independent() -> None:
    limiter = RateLimiter(clock=FakeClock())

    assert limiter.admit("alice", 1) is True
    assert limiter.admit("alice", 1) is False
    assert limiter.admit("bob", 1) is True


def test_evict_stale_drops_expired_windows() -> None:
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)
    limiter.admit("alice", 5)
    clock.now += 30
    limiter.admit("bob", 5)

    clock.now += 30
    assert limiter.evict_stale() == 1
    assert len(limiter) == 1


def test_concurrent_admissions_never_exceed_limit() -> None:
    limiter = RateLimiter(clock=FakeClock())
    limit = 50
    admitted: list[bool] = []
    lock = threading.Lock()
    barrier = threading.Barrier(8)

    def worker() -> None:
        barrier.wait()
        local = [limiter.admit("shared", limit) for _ in range(25)]
        with lock:
            admitted.extend(local)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(admitted) == 200
    assert sum(admitted) == limit
