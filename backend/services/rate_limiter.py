"""Sliding-window request gate. One instance per app, kept on app.state."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after_seconds: float = 0.0

    @property
    def retry_after_minutes(self) -> int:
        return math.ceil(self.retry_after_seconds / 60)


class RateLimiter:
    """
    Allow at most ``max_requests`` accepted requests inside any rolling
    ``window_seconds`` window. Timestamps are plain floats (time.time()).
    """

    def __init__(self, *, window_seconds: float = 60 * 60, max_requests: int = 3) -> None:
        self._window = window_seconds
        self._max_requests = max_requests
        self._history: list[float] = []

    def try_acquire(self, now: float) -> RateLimitDecision:
        self._history = [t for t in self._history if now - t < self._window]

        if len(self._history) >= self._max_requests:
            reset_at = min(self._history) + self._window
            return RateLimitDecision(allowed=False, retry_after_seconds=reset_at - now)

        self._history.append(now)
        return RateLimitDecision(allowed=True)

    def reset(self) -> None:
        self._history.clear()
