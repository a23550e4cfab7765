# ===== app/api/middleware/rate_limit_middleware.py =====
from collections import defaultdict, deque
from typing import Deque, Dict
import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-client sliding window limit on the public booking routes.

    Booking links are shared publicly, so every client IP gets
    ``requests_per_minute`` calls across all of them.
    """

    def __init__(self, app, requests_per_minute: int = 60, path_prefix: str = "/api/v1/public/booking"):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.path_prefix = path_prefix
        self.window_seconds = 60.0
        self.request_times: Dict[str, Deque[float]] = defaultdict(deque)  # per process
        self.last_sweep = time.monotonic()

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        client_id = request.client.host if request.client else "unknown"
        current_time = time.monotonic()
        if current_time - self.last_sweep >= self.window_seconds:
            self.evict_idle_clients(current_time)

        timestamps = self.request_times[client_id]

        while timestamps and current_time - timestamps[0] >= self.window_seconds:
            timestamps.popleft()

        if len(timestamps) >= self.requests_per_minute:
            retry_after = max(1, int(self.window_seconds - (current_time - timestamps[0])))
            logger.warning(f"Rate limit exceeded for {client_id} on {request.url.path}")
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limited",
                    "detail": "Too many requests, please slow down.",
                    "retry_after": retry_after
                },
                headers={"Retry-After": str(retry_after)}
            )

        timestamps.append(current_time)
        return await call_next(request)

    def evict_idle_clients(self, current_time: float) -> None:
        """Forget clients whose last call is older than the window"""
        idle = [
            client_id for client_id, timestamps in self.request_times.items()
            if not timestamps or current_time - timestamps[-1] >= self.window_seconds
        ]
        for client_id in idle:
            del self.request_times[client_id]
        self.last_sweep = current_time
