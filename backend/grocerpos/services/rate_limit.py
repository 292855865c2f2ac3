"""
Fixed-window request rate limiter.

Constructed once per application in create_app() and stored on
app.extensions["rate_limiter"]; nothing lives at module level. Counters are
in-process (per worker) and reset with the process. Expired windows are
evicted lazily on access, so there is no background sweeper.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitRule:
    max_requests: int
    window_seconds: int


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    def retry_after(self, now: float) -> int:
        return max(1, int(self.reset_at - now + 0.999))


class RateLimiter:
    # Evict expired windows once this many keys are tracked
    SWEEP_THRESHOLD = 1024

    def __init__(self, rules: dict[str, RateLimitRule], clock=time.monotonic):
        self._rules = dict(rules)
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: dict[str, tuple[int, float]] = {}

    def check(self, bucket: str, identifier: str) -> RateLimitResult:
        """Count one request for (bucket, identifier) and say whether it is allowed."""
        rule = self._rules[bucket]
        key = f"{bucket}:{identifier}"
        now = self._clock()

        with self._lock:
            if len(self._windows) >= self.SWEEP_THRESHOLD:
                self._sweep(now)

            count, reset_at = self._windows.get(key, (0, 0.0))
            if now >= reset_at:
                count, reset_at = 0, now + rule.window_seconds

            if count >= rule.max_requests:
                return RateLimitResult(False, rule.max_requests, 0, reset_at)

            count += 1
            self._windows[key] = (count, reset_at)
            return RateLimitResult(True, rule.max_requests, rule.max_requests - count, reset_at)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, reset_at) in self._windows.items() if now >= reset_at]
        for k in expired:
            del self._windows[k]

    def now(self) -> float:
        return self._clock()
