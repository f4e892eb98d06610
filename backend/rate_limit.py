"""Fixed-window per-client rate limiter for the relay endpoint.

Counters live in process memory and reset lazily: the first request after
a window expires starts a new window. Nothing is swept in the background.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from fantasy_quiz.clock import Clock, SystemClock

WINDOW_SECONDS = 60.0
MAX_REQUESTS = 5


@dataclass
class _Window:
    count: int
    reset_at: float


def client_id(request: Request) -> str:
    """Identify the caller by proxy headers, falling back to "unknown"."""
    return (
        request.headers.get("x-forwarded-for")
        or request.headers.get("x-real-ip")
        or "unknown"
    )


class RateLimiter:
    def __init__(
        self,
        window: float = WINDOW_SECONDS,
        max_requests: int = MAX_REQUESTS,
        clock: Clock | None = None,
    ) -> None:
        self._window = window
        self._max_requests = max_requests
        self._clock = clock or SystemClock()
        self._windows: dict[str, _Window] = {}

    def check(self, client: str) -> bool:
        """Count one request for `client`. Returns False when over the limit."""
        now = self._clock.now()
        current = self._windows.get(client)
        if current is None or now > current.reset_at:
            self._windows[client] = _Window(count=1, reset_at=now + self._window)
            return True
        if current.count >= self._max_requests:
            return False
        current.count += 1
        return True

    def reset(self) -> None:
        self._windows.clear()
