# motorbike_service/rate_limiter.py
import time
from typing import Dict, List

from fastapi import HTTPException, Request, status

# Sliding-window rate limiter: N submissions / WINDOW seconds per IP+path
WINDOW_SECONDS = 60


class SubmissionRateLimiter:
    """
    In-memory sliding-window limiter keyed by client IP and path.

    A limit of 0 disables the check.
    """

    def __init__(self, max_requests: int, window_seconds: int = WINDOW_SECONDS):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._request_log: Dict[str, List[float]] = {}

    def hit(self, key: str) -> bool:
        """
        Record a request for ``key``. Returns False if the window is full.
        """
        if self.max_requests <= 0:
            return True

        now = time.time()
        window_start = now - self.window_seconds

        self._prune(window_start)

        timestamps = self._request_log.get(key, [])
        if len(timestamps) >= self.max_requests:
            return False

        timestamps.append(now)
        self._request_log[key] = timestamps
        return True

    def _prune(self, window_start: float) -> None:
        """Drop timestamps outside the window and keys left with none."""
        for key in list(self._request_log):
            # keep only timestamps inside the window
            timestamps = [ts for ts in self._request_log[key] if ts >= window_start]
            if timestamps:
                self._request_log[key] = timestamps
            else:
                del self._request_log[key]


def submission_rate_limiter(request: Request):
    """
    Rate limit booking submissions per client IP.

    Used for:
    - POST /api/bookings
    """
    limiter: SubmissionRateLimiter = request.app.state.rate_limiter
    client_ip = request.client.host if request.client else "unknown"
    key = f"{client_ip}:{request.url.path}"

    if not limiter.hit(key):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many booking requests from this IP, please slow down",
        )
