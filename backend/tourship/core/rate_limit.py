"""
Fixed-window, per-IP request limiting for /api routes
"""

import time

from fastapi import Request
from fastapi.responses import JSONResponse

from tourship.core.config import RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_SECONDS
from tourship.core.errors import error_body


class RateLimiter:
    def __init__(self, max_requests: int, window_seconds: int, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._windows: dict[str, tuple[float, int]] = {}
        self._last_prune = clock()

    def hit(self, key: str) -> bool:
        """Count a request for `key`; False once the window's budget is spent."""
        now = self.clock()
        if now - self._last_prune >= self.window_seconds:
            self._prune(now)

        started, count = self._windows.get(key, (now, 0))
        if now - started >= self.window_seconds:
            started, count = now, 0
        count += 1
        self._windows[key] = (started, count)
        return count <= self.max_requests

    def _prune(self, now: float) -> None:
        # Called at most once per window
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window_seconds]
        for key in expired:
            del self._windows[key]
        self._last_prune = now

    def tracked(self) -> int:
        return len(self._windows)

    def reset(self) -> None:
        self._windows.clear()
        self._last_prune = self.clock()


limiter = RateLimiter(RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_SECONDS)


async def rate_limit_middleware(request: Request, call_next):
    if request.url.path.startswith("/api"):
        client = request.client.host if request.client else "unknown"
        if not limiter.hit(client):
            print(f"[rate_limit] {client} exceeded {limiter.max_requests} requests")
            return JSONResponse(
                status_code=429,
                content=error_body("Too many requests from this IP, please try again later."),
            )
    return await call_next(request)
