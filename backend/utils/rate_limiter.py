"""In-memory sliding-window rate limiting, used as a FastAPI dependency."""

import time
from collections import defaultdict
from typing import Dict, List

from fastapi import Request, HTTPException, status


class RateLimiter:
    """
    Allow at most requests_limit calls per time_window seconds.

    Calls are counted per client IP. With per_path=True the count is kept
    separately for each request path, so one limiter can guard several
    resources (e.g. reminders for different trips) independently.
    """

    def __init__(self, requests_limit: int, time_window: int, per_path: bool = False):
        self.requests_limit = requests_limit
        self.time_window = time_window  # in seconds
        self.per_path = per_path
        self.requests: Dict[str, List[float]] = defaultdict(list)
        self.cleanup_interval = 600
        self.last_cleanup = time.time()

    def _client_key(self, request: Request) -> str:
        # X-Forwarded-For: <client>, <proxy1>, <proxy2>
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            client = forwarded_for.split(",")[0].strip()
        else:
            client = request.client.host if request.client else "127.0.0.1"

        if self.per_path:
            return f"{client}:{request.url.path}"
        return client

    async def __call__(self, request: Request):
        key = self._client_key(request)
        now = time.time()

        if now - self.last_cleanup > self.cleanup_interval:
            self._cleanup(now)
            self.last_cleanup = now

        recent = [t for t in self.requests[key] if now - t < self.time_window]
        if len(recent) >= self.requests_limit:
            self.requests[key] = recent
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later."
            )

        recent.append(now)
        self.requests[key] = recent
        return True

    def _cleanup(self, now: float):
        """Drop keys whose newest call is outside the window."""
        stale = [
            key for key, timestamps in self.requests.items()
            if not timestamps or now - timestamps[-1] > self.time_window
        ]
        for key in stale:
            del self.requests[key]

    def reset(self):
        self.requests.clear()


# 5 requests per minute for login and registration
auth_rate_limiter = RateLimiter(requests_limit=5, time_window=60)

# 3 reminders per hour per trip (prevent spam)
reminder_rate_limiter = RateLimiter(requests_limit=3, time_window=3600, per_path=True)
