# tests/test_rate_limiter.py

"""
Tests for the per-user sliding-window email rate limiter.
"""

import threading
from datetime import datetime, timezone

from core.config import Settings
from core.rate_limiter import EmailRateLimiter


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_limiter(clock, **limits):
    return EmailRateLimiter(
        per_minute=limits.get("per_minute", 2),
        per_hour=limits.get("per_hour", 5),
        per_day=limits.get("per_day", 10),
        clock=clock,
    )


def test_check_does_not_consume():
    limiter = make_limiter(FakeClock())

    for _ in range(5):
        status = limiter.check("u1")

    assert status.allowed is True
    assert status.remaining == 2


def test_minute_window_blocks_then_slides():
    clock = FakeClock()
    limiter = make_limiter(clock)

    limiter.reserve("u1")
    clock.advance(10)
    status, _ = limiter.reserve("u1")

    assert status.remaining == 0
    assert limiter.check("u1").allowed is False

    # First send leaves the minute window 60s after it was made
    expected_reset = datetime.fromtimestamp(clock.now - 10 + 60, tz=timezone.utc)
    assert limiter.check("u1").reset_at == expected_reset

    clock.advance(51)
    status = limiter.check("u1")
    assert status.allowed is True
    assert status.remaining == 1


def test_hour_window_applies_after_minutes_pass():
    clock = FakeClock()
    limiter = make_limiter(clock, per_minute=10, per_hour=3)

    for _ in range(3):
        limiter.reserve("u1")
        clock.advance(120)

    status = limiter.check("u1")
    assert status.allowed is False
    assert status.remaining == 0

    clock.advance(3600)
    assert limiter.check("u1").allowed is True


def test_reserve_refuses_when_full():
    limiter = make_limiter(FakeClock(), per_minute=1)

    status, ticket = limiter.reserve("u1")
    assert status.allowed is True
    assert status.remaining == 0
    assert ticket is not None

    status, ticket = limiter.reserve("u1")
    assert status.allowed is False
    assert ticket is None


def test_release_returns_the_slot():
    limiter = make_limiter(FakeClock(), per_minute=1)

    _, ticket = limiter.reserve("u1")
    limiter.release("u1", ticket)

    assert limiter.check("u1").remaining == 1
    limiter.release("u1", None)
    assert limiter.check("u1").remaining == 1


def test_concurrent_reservations_never_exceed_limit():
    limiter = make_limiter(FakeClock(), per_minute=5, per_hour=100, per_day=100)
    start = threading.Barrier(20)
    granted = []

    def send():
        start.wait()
        status, ticket = limiter.reserve("u1")
        if ticket is not None:
            granted.append(status)

    threads = [threading.Thread(target=send) for _ in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(granted) == 5
    assert sorted(status.remaining for status in granted) == [0, 1, 2, 3, 4]


def test_users_are_independent():
    limiter = make_limiter(FakeClock(), per_minute=1)

    limiter.reserve("u1")

    assert limiter.check("u1").allowed is False
    assert limiter.check("u2").allowed is True


def test_disabled_limiter_always_allows():
    limiter = EmailRateLimiter(per_minute=1, enabled=False, clock=FakeClock())

    for _ in range(5):
        limiter.reserve("u1")

    status = limiter.check("u1")
    assert status.allowed is True
    assert status.remaining == 1


def test_clear():
    limiter = make_limiter(FakeClock(), per_minute=1)
    limiter.reserve("u1")

    limiter.clear()

    assert limiter.check("u1").allowed is True


def test_from_settings():
    limiter = EmailRateLimiter.from_settings(Settings(
        EMAIL_RATE_LIMIT_PER_MINUTE=4,
        EMAIL_RATE_LIMIT_PER_HOUR=40,
        EMAIL_RATE_LIMIT_PER_DAY=400,
        EMAIL_RATE_LIMIT_ENABLED=False,
    ))

    assert limiter.windows == [(60, 4), (3600, 40), (86400, 400)]
    assert limiter.enabled is False
