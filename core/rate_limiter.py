# core/rate_limiter.py

from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass
from datetime import datetime, timezone
from collections import defaultdict
from threading import Lock
import time

from core.config import Settings


MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR


@dataclass
class RateLimitStatus:
    allowed: bool
    remaining: int
    reset_at: datetime


class EmailRateLimiter:
    """
    Per-user sliding-window limits on outgoing email.

    Timestamps live in process memory, so each worker process counts
    independently. For a shared limit across workers, back this with Redis.

    ``check`` never consumes a slot. ``reserve`` takes one atomically and
    ``release`` returns it when the send fails.
    """

    def __init__(
        self,
        per_minute: int = 10,
        per_hour: int = 100,
        per_day: int = 500,
        enabled: bool = True,
        clock=time.time,
    ):
        self.windows: List[Tuple[int, int]] = [
            (MINUTE, per_minute),
            (HOUR, per_hour),
            (DAY, per_day),
        ]
        self.enabled = enabled
        self._clock = clock
        self._sends: Dict[str, List[float]] = defaultdict(list)
        self._lock = Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailRateLimiter":
        return cls(
            per_minute=settings.EMAIL_RATE_LIMIT_PER_MINUTE,
            per_hour=settings.EMAIL_RATE_LIMIT_PER_HOUR,
            per_day=settings.EMAIL_RATE_LIMIT_PER_DAY,
            enabled=settings.EMAIL_RATE_LIMIT_ENABLED,
        )

    def _key(self, user_id: str) -> str:
        return f"user:{user_id}"

    def _prune(self, key: str, now: float) -> List[float]:
        # Anything older than the longest window can never count again
        oldest_allowed = now - max(seconds for seconds, _ in self.windows)
        sends = [ts for ts in self._sends[key] if ts > oldest_allowed]
        self._sends[key] = sends
        return sends

    def _status(self, sends: List[float], now: float) -> RateLimitStatus:
        # The tightest window decides both remaining and reset time;
        # on ties the longer window wins since it frees up last.
        remaining: Optional[int] = None
        reset_ts = now + MINUTE

        for seconds, limit in self.windows:
            in_window = [ts for ts in sends if ts > now - seconds]
            left = max(limit - len(in_window), 0)

            if remaining is None or left <= remaining:
                remaining = left
                reset_ts = (min(in_window) + seconds) if in_window else now + seconds

        return RateLimitStatus(
            allowed=remaining > 0,
            remaining=remaining,
            reset_at=datetime.fromtimestamp(reset_ts, tz=timezone.utc),
        )

    def check(self, user_id: str) -> RateLimitStatus:
        now = self._clock()

        if not self.enabled:
            minute_limit = self.windows[0][1]
            return RateLimitStatus(
                allowed=True,
                remaining=minute_limit,
                reset_at=datetime.fromtimestamp(now + MINUTE, tz=timezone.utc),
            )

        with self._lock:
            sends = self._prune(self._key(user_id), now)
            return self._status(sends, now)

    def reserve(self, user_id: str) -> Tuple[RateLimitStatus, Optional[float]]:
        """
        Check and take a slot under one lock.

        Returns the status after the reservation and a ticket to hand to
        ``release`` if the send does not go out. The ticket is None when
        the send is refused or limiting is disabled.
        """
        now = self._clock()

        if not self.enabled:
            return self.check(user_id), None

        with self._lock:
            sends = self._prune(self._key(user_id), now)
            status = self._status(sends, now)
            if not status.allowed:
                return status, None
            sends.append(now)
            return self._status(sends, now), now

    def release(self, user_id: str, ticket: Optional[float]):
        """Give back a slot taken by ``reserve``."""
        if ticket is None:
            return

        with self._lock:
            sends = self._sends.get(self._key(user_id))
            if sends and ticket in sends:
                sends.remove(ticket)

    def clear(self):
        with self._lock:
            self._sends.clear()


# Process-wide limiter shared by all requests in this worker
_limiter: Optional[EmailRateLimiter] = None
_limiter_lock = Lock()


def get_rate_limiter() -> EmailRateLimiter:
    """FastAPI dependency returning the worker's limiter."""
    global _limiter
    with _limiter_lock:
        if _limiter is None:
            _limiter = EmailRateLimiter.from_settings(Settings())
        return _limiter
