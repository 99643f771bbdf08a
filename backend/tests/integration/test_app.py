"""
Integration Tests - Application surface
Health endpoints, error mapping, rate limiting and request ids.
"""
import re

import pytest
from httpx import ASGITransport, AsyncClient
from loguru import logger
from sqlalchemy.exc import OperationalError

from mt5crm.config import settings
from mt5crm.main import create_application
from mt5crm.utils.logger import is_audit


class TestHealth:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "OK"
        assert data["uptime"] >= 0
        assert data["timestamp"]
        assert data["version"] == "1.0.0"

    async def test_api_root(self, client):
        response = await client.get("/api/")
        assert response.status_code == 200
        assert response.json()["status"] == "operational"

    async def test_ready_reports_redis_not_initialized(self, client):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["checks"]["redis"] == "not initialized"

    async def test_metrics(self, client):
        response = await client.get("/metrics")
        assert response.status_code == 200
        assert response.json()["process"]["memory_mb"] > 0


@pytest.fixture
async def failing_client():
    """Client for an app with routes that blow up."""
    app = create_application()

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    @app.get("/db-down")
    async def db_down():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestErrorMapping:

    async def test_unhandled_error_outside_production(self, failing_client):
        response = await failing_client.get("/boom")
        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "INTERNAL_ERROR"
        assert data["message"] == "kaboom"
        assert data["traceback"]

    async def test_unhandled_error_in_production(self, failing_client, monkeypatch):
        monkeypatch.setattr(settings, "APP_ENV", "production")
        response = await failing_client.get("/boom")
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error", "code": "INTERNAL_ERROR"}

    async def test_database_unavailable(self, failing_client):
        response = await failing_client.get("/db-down")
        assert response.status_code == 503
        assert response.json()["code"] == "SERVICE_UNAVAILABLE"


class TestRateLimit:

    async def test_limit_per_ip(self, client, mock_redis, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_MAX_REQUESTS", 3)

        statuses = [(await client.get("/api/account/config")).status_code for _ in range(4)]
        assert statuses == [200, 200, 200, 429]

        response = await client.get("/api/account/config")
        assert response.json() == {
            "detail": "Too many requests from this IP, please try again later.",
            "code": "RATE_LIMIT_EXCEEDED",
        }
        assert response.headers["retry-after"] == str(settings.RATE_LIMIT_WINDOW_SECONDS)

    async def test_forwarded_header_is_ignored_by_default(self, client, mock_redis, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_MAX_REQUESTS", 2)

        statuses = [
            (await client.get("/api/", headers={"X-Forwarded-For": f"10.0.0.{i}"})).status_code
            for i in range(5)
        ]
        assert statuses == [200, 200, 429, 429, 429]

    async def test_trusted_proxy_ips_are_counted_separately(self, client, mock_redis, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_MAX_REQUESTS", 1)
        monkeypatch.setattr(settings, "RATE_LIMIT_TRUST_FORWARDED", True)

        first = await client.get("/api/account/config", headers={"X-Forwarded-For": "10.0.0.1"})
        second = await client.get("/api/account/config", headers={"X-Forwarded-For": "10.0.0.2"})
        again = await client.get("/api/account/config", headers={"X-Forwarded-For": "10.0.0.1"})
        assert (first.status_code, second.status_code, again.status_code) == (200, 200, 429)

    async def test_health_is_not_limited(self, client, mock_redis, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_MAX_REQUESTS", 1)
        statuses = {(await client.get("/health")).status_code for _ in range(3)}
        assert statuses == {200}

    async def test_without_redis_nothing_is_limited(self, client, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_MAX_REQUESTS", 1)
        statuses = {(await client.get("/api/account/config")).status_code for _ in range(3)}
        assert statuses == {200}


class TestRequestId:

    async def test_generated_when_missing(self, client):
        response = await client.get("/health")
        assert re.fullmatch(r"[0-9a-f]{12}", response.headers["x-request-id"])

    async def test_client_id_is_echoed(self, client):
        response = await client.get("/api/", headers={"X-Request-ID": "trace-42"})
        assert response.headers["x-request-id"] == "trace-42"

    async def test_throttled_response_has_id(self, client, mock_redis, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_MAX_REQUESTS", 0)
        response = await client.get("/api/")
        assert response.status_code == 429
        assert response.headers["x-request-id"]

    async def test_admin_action_is_audited_with_id(self, client, admin_headers, regular_user):
        lines = []
        sink_id = logger.add(lines.append, format="{extra[request_id]} {message}", filter=is_audit)
        try:
            response = await client.post(
                f"/api/admin/users/{regular_user.id}/disable",
                headers={**admin_headers, "X-Request-ID": "trace-7"},
            )
        finally:
            logger.remove(sink_id)

        assert response.status_code == 200
        assert any(line.startswith(f"trace-7 User {regular_user.id} disabled by admin") for line in lines)
