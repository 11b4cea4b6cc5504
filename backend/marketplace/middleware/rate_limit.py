"""
Marketplace Backend: Rate Limiting Middleware
=============================================

What:  Per-client sliding-window rate limiter.
How:   Each client key keeps a deque of request timestamps. On every request
       timestamps older than the window are dropped; if the remaining count
       has reached the budget the request is answered with 429 and a
       Retry-After header saying when the oldest request leaves the window.

Client key:
    The socket peer address, or the first X-Forwarded-For hop when
    `trust_forwarded_for` is enabled (only behind a proxy that overwrites the
    header, otherwise clients can pick their own key).

State lives in process memory, so each worker enforces its own budget.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from marketplace.config import settings
from marketplace.exceptions import RateLimitExceededError
from marketplace.middleware.request_id import REQUEST_ID_HEADER, request_id_for

logger = logging.getLogger(__name__)

CLEANUP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
        trust_forwarded_for: Optional[bool] = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self.trust_forwarded_for = (
            settings.trust_forwarded_for if trust_forwarded_for is None else trust_forwarded_for
        )
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._seen = 0

    def client_key(self, request: Request) -> str:
        if self.trust_forwarded_for:
            forwarded = request.headers.get("X-Forwarded-For", "")
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop
        return request.client.host if request.client else "unknown"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        key = self.client_key(request)
        now = time.monotonic()
        window_start = now - self.window_seconds

        timestamps = self._requests[key]
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if len(timestamps) >= self.max_requests:
            retry_after = int(timestamps[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                key,
                len(timestamps),
                self.window_seconds,
            )
            error = RateLimitExceededError(retry_after=retry_after)
            # Runs before RequestIDMiddleware, so the id is settled here
            rid = request_id_for(request)
            return JSONResponse(
                status_code=error.status_code,
                content={
                    "error": error.error_code,
                    "message": error.message,
                    "details": {"retryAfter": retry_after},
                    "requestId": rid,
                },
                headers={"Retry-After": str(retry_after), REQUEST_ID_HEADER: rid},
            )

        timestamps.append(now)

        self._seen += 1
        if self._seen % CLEANUP_EVERY == 0:
            self._forget_idle_clients(window_start)

        return await call_next(request)

    def _forget_idle_clients(self, window_start: float) -> None:
        idle = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for key in idle:
            del self._requests[key]
        if idle:
            logger.debug("Dropped rate-limit state for %d idle clients", len(idle))
