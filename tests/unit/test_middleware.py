"""
Unit tests for the rate limiting middleware
"""
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.serving.api.middleware import RateLimitMiddleware


class TestRateLimit:
    """Tests for the in-memory rate limiter"""

    async def test_requests_over_limit_are_rejected(self):
        app = FastAPI()
        app.add_middleware(RateLimitMiddleware, max_requests=2, window_seconds=60)

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            statuses = [(await client.get("/ping")).status_code for _ in range(3)]

        assert statuses == [200, 200, 429]

    def test_idle_clients_are_evicted(self):
        limiter = RateLimitMiddleware(FastAPI(), window_seconds=60)
        limiter._requests["10.0.0.1"] = [10.0, 20.0]
        limiter._requests["10.0.0.2"] = [100.0]

        limiter._evict_idle(130.0)

        assert list(limiter._requests) == ["10.0.0.2"]

    def test_sweep_runs_once_per_window(self):
        limiter = RateLimitMiddleware(FastAPI(), window_seconds=60)
        limiter._evict_idle(100.0)
        limiter._requests["10.0.0.1"] = [10.0]

        limiter._evict_idle(130.0)

        assert "10.0.0.1" in limiter._requests
