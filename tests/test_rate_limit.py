"""Tests for the per-IP rate limiter and its middleware."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.errors import register_exception_handlers
from app.middleware.rate_limit import RateLimiter, RateLimitMiddleware


class TestRateLimiter:
    def test_allows_up_to_max(self):
        limiter = RateLimiter(max_requests=3, window_seconds=60)
        assert [limiter.is_limited("1.2.3.4") for _ in range(4)] == [False, False, False, True]

    def test_limits_per_ip(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        assert limiter.is_limited("a") is False
        assert limiter.is_limited("b") is False
        assert limiter.is_limited("a") is True

    def test_remaining(self):
        limiter = RateLimiter(max_requests=5, window_seconds=60)
        limiter.is_limited("a")
        limiter.is_limited("a")
        assert limiter.remaining("a") == 3
        assert limiter.remaining("b") == 5

    def test_window_expiry(self, monkeypatch):
        now = [1000.0]
        monkeypatch.setattr("app.middleware.rate_limit.time.monotonic", lambda: now[0])
        limiter = RateLimiter(max_requests=1, window_seconds=10)
        assert limiter.is_limited("a") is False
        assert limiter.is_limited("a") is True
        assert limiter.retry_after("a") == 10
        now[0] += 11
        assert limiter.is_limited("a") is False

    def test_idle_ips_are_forgotten(self, monkeypatch):
        now = [1000.0]
        monkeypatch.setattr("app.middleware.rate_limit.time.monotonic", lambda: now[0])
        limiter = RateLimiter(max_requests=5, window_seconds=10)
        for i in range(50):
            limiter.is_limited(f"10.0.0.{i}")
        assert len(limiter._hits) == 50

        now[0] += 11
        for i in range(50):
            limiter.remaining(f"10.0.0.{i}")
        assert limiter._hits == {}

    def test_unseen_ip_leaves_no_entry(self):
        limiter = RateLimiter(max_requests=5, window_seconds=60)
        assert limiter.remaining("a") == 5
        assert limiter.retry_after("a") == 0
        assert "a" not in limiter._hits


def build_app(trust_forwarded: bool = False) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        RateLimitMiddleware,
        limiter=RateLimiter(max_requests=2, window_seconds=60),
        trust_forwarded=trust_forwarded,
    )
    register_exception_handlers(app)

    @app.get("/api/ping")
    async def ping():
        return {"ok": True}

    @app.get("/actuator/health")
    async def health():
        return {"status": "UP"}

    return app


@pytest.fixture
async def limited_client():
    transport = ASGITransport(app=build_app())
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def proxied_client():
    transport = ASGITransport(app=build_app(trust_forwarded=True))
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestRateLimitMiddleware:
    @pytest.mark.asyncio
    async def test_api_requests_limited(self, limited_client):
        codes = [(await limited_client.get("/api/ping")).status_code for _ in range(3)]
        assert codes == [200, 200, 429]

    @pytest.mark.asyncio
    async def test_429_body_and_headers(self, limited_client):
        for _ in range(2):
            ok = await limited_client.get("/api/ping")
        assert ok.headers["RateLimit-Limit"] == "2"
        assert ok.headers["RateLimit-Remaining"] == "0"

        resp = await limited_client.get("/api/ping")
        assert resp.status_code == 429
        assert resp.json()["message"] == "Too many requests from this IP, please try again later"
        assert int(resp.headers["Retry-After"]) >= 1

    @pytest.mark.asyncio
    async def test_spoofed_forwarded_for_does_not_reset_limit(self, limited_client):
        codes = [
            (await limited_client.get("/api/ping", headers={"x-forwarded-for": f"10.0.0.{i}"})).status_code
            for i in range(5)
        ]
        assert codes == [200, 200, 429, 429, 429]

    @pytest.mark.asyncio
    async def test_trusted_proxy_forwarded_for_identifies_client(self, proxied_client):
        for _ in range(2):
            await proxied_client.get("/api/ping", headers={"x-forwarded-for": "10.0.0.1"})
        limited = await proxied_client.get("/api/ping", headers={"x-forwarded-for": "10.0.0.1"})
        assert limited.status_code == 429

        resp = await proxied_client.get("/api/ping", headers={"x-forwarded-for": "10.0.0.2, 10.0.0.1"})
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_actuator_not_limited(self, limited_client):
        codes = [(await limited_client.get("/actuator/health")).status_code for _ in range(5)]
        assert codes == [200] * 5
