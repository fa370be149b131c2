"""
API Middleware

- Request logging with a request id bound into the structlog context
- In-memory rate limiting per client address
- Security headers
"""

import time
import uuid
from collections import defaultdict
from typing import Callable, Dict, Iterable
import asyncio

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

logger = structlog.get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all requests with timing information"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            logger.info(
                "Request started",
                method=request.method,
                path=request.url.path,
                client=request.client.host if request.client else None,
            )

            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000

            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        response.headers["X-Request-ID"] = request_id
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding-window rate limiter kept in process memory.

    Limits are per worker process; health probes are never limited.
    """

    def __init__(
        self,
        app,
        max_requests: int = 100,
        window_seconds: int = 60,
        exempt_paths: Iterable[str] = ("/api/v1/health",),
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.exempt_paths = tuple(exempt_paths)
        self._requests: Dict[str, list] = defaultdict(list)
        self._lock = asyncio.Lock()
        self._last_sweep = 0.0

    def _evict_idle(self, current_time: float) -> None:
        """Drop clients with no request inside the window, at most once per window."""
        if current_time - self._last_sweep < self.window_seconds:
            return
        idle = [
            client for client, times in self._requests.items()
            if not times or current_time - times[-1] >= self.window_seconds
        ]
        for client in idle:
            del self._requests[client]
        self._last_sweep = current_time

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path.startswith(self.exempt_paths):
            return await call_next(request)

        client_id = request.client.host if request.client else "unknown"
        current_time = time.time()

        async with self._lock:
            self._evict_idle(current_time)
            recent = [
                t for t in self._requests[client_id]
                if current_time - t < self.window_seconds
            ]

            if len(recent) >= self.max_requests:
                self._requests[client_id] = recent
                logger.warning("Rate limit exceeded", client=client_id, requests=len(recent))
                return Response(
                    content='{"detail": "Rate limit exceeded"}',
                    status_code=429,
                    media_type="application/json",
                    headers={
                        "Retry-After": str(self.window_seconds),
                        "X-RateLimit-Limit": str(self.max_requests),
                        "X-RateLimit-Remaining": "0",
                    },
                )

            recent.append(current_time)
            self._requests[client_id] = recent
            remaining = self.max_requests - len(recent)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response
