"""Rate limiting of public routes and the health endpoints"""
import time

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from app.api.middleware.rate_limit_middleware import RateLimitMiddleware
from app.config.database import get_db
from app.core import monitoring
from app.main import create_app


def _limited_app(limit):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, requests_per_minute=limit)

    @app.get("/api/v1/public/booking/{token}")
    async def page(token: str):
        return {"token": token}

    @app.get("/api/v1/dashboard/ping")
    async def ping():
        return {"ok": True}

    return app


class TestRateLimitMiddleware:

    def test_public_calls_over_limit_are_rejected(self):
        client = TestClient(_limited_app(2))

        assert client.get("/api/v1/public/booking/a").status_code == 200
        assert client.get("/api/v1/public/booking/b").status_code == 200
        response = client.get("/api/v1/public/booking/c")

        assert response.status_code == 429
        assert response.json()["error"] == "rate_limited"
        assert int(response.headers["Retry-After"]) >= 1

    def test_other_routes_are_not_limited(self):
        client = TestClient(_limited_app(1))

        for _ in range(3):
            assert client.get("/api/v1/dashboard/ping").status_code == 200

    def test_idle_clients_are_forgotten(self):
        limiter = RateLimitMiddleware(FastAPI(), requests_per_minute=5)
        limiter.request_times["10.0.0.1"].extend([100.0, 110.0])
        limiter.request_times["10.0.0.2"].append(150.0)

        limiter.evict_idle_clients(current_time=175.0)

        assert list(limiter.request_times) == ["10.0.0.2"]
        assert limiter.last_sweep == 175.0

    def test_requests_sweep_idle_clients_once_per_window(self):
        limiters = []

        class ShortWindowLimiter(RateLimitMiddleware):
            def __init__(self, app, **kwargs):
                super().__init__(app, **kwargs)
                self.window_seconds = 0.2
                limiters.append(self)

        app = FastAPI()
        app.add_middleware(ShortWindowLimiter, requests_per_minute=5)

        @app.get("/api/v1/public/booking/{token}")
        async def page(token: str):
            return {"token": token}

        client = TestClient(app)
        assert client.get("/api/v1/public/booking/a").status_code == 200
        limiters[0].request_times["10.0.0.9"].append(0.0)

        time.sleep(0.3)
        assert client.get("/api/v1/public/booking/b").status_code == 200

        assert "10.0.0.9" not in limiters[0].request_times
        assert len(limiters[0].request_times["testclient"]) == 1


async def _redis_up():
    return True


async def _redis_down():
    raise RedisConnectionError("connection refused")


class TestHealth:

    @pytest.fixture
    def client(self, db):
        app = create_app()

        def override_get_db():
            yield db

        app.dependency_overrides[get_db] = override_get_db
        return TestClient(app)

    def test_basic_health(self, client):
        assert client.get("/health/").json()["status"] == "healthy"

    def test_detailed_health(self, client, monkeypatch):
        monkeypatch.setattr(monitoring, "ping_broker_host", _redis_up)

        checks = client.get("/health/detailed").json()

        assert checks["database"] == "healthy"
        assert checks["overall"] == "healthy"

    def test_redis_outage_degrades(self, client, monkeypatch):
        monkeypatch.setattr(monitoring, "ping_broker_host", _redis_down)

        checks = client.get("/health/detailed").json()

        assert checks["redis"] == "unhealthy"
        assert checks["overall"] == "degraded"
