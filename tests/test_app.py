"""
iCanGrow API — Application Shell Tests
========================================

What:  Tests for /health, the error envelope on unrouted paths, request ids
       and the per-IP rate limiter.

What we test:
    ✅ /health answers OK with the database connected
    ✅ Unknown routes get the standard error envelope
    ✅ X-Request-ID is generated, or reused when the caller sends one
    ✅ Third request in a 2-per-window budget → 429 with Retry-After
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from icangrow.middleware.rate_limit import RateLimitMiddleware


class TestHealth:
    @pytest.mark.asyncio
    async def test_health_reports_database(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "OK"
        assert data["database"] == "connected"
        assert data["environment"] == "test"


class TestEnvelope:
    @pytest.mark.asyncio
    async def test_unknown_route_is_enveloped(self, client):
        response = await client.get("/api/v1/not-a-route")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Not Found"
        assert body["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_request_id_is_reused(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "trace-abc123"})
        assert response.headers["X-Request-ID"] == "trace-abc123"

    @pytest.mark.asyncio
    async def test_request_id_is_generated(self, client):
        response = await client.get("/health")
        assert len(response.headers["X-Request-ID"]) == 12


class TestRateLimit:
    @pytest.fixture
    def limited_app(self):
        app = FastAPI()
        app.add_middleware(RateLimitMiddleware, max_requests=2, window_seconds=60)

        @app.get("/ping")
        async def ping():
            return {"pong": True}

        @app.get("/health")
        async def health():
            return {"status": "OK"}

        return app

    @pytest.mark.asyncio
    async def test_third_request_is_throttled(self, limited_app):
        transport = ASGITransport(app=limited_app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            assert (await ac.get("/ping")).status_code == 200
            assert (await ac.get("/ping")).status_code == 200

            throttled = await ac.get("/ping", headers={"X-Request-ID": "burst-1"})

            assert throttled.status_code == 429
            assert 0 < int(throttled.headers["Retry-After"]) <= 61
            body = throttled.json()
            assert body["success"] is False
            assert body["request_id"] == "burst-1"
            assert body["details"]["retry_after"] == int(throttled.headers["Retry-After"])

            # Probes are never counted
            assert (await ac.get("/health")).status_code == 200
