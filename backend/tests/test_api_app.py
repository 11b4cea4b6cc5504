"""
Marketplace Backend: Application-Level Tests
============================================

Health, request correlation, the shared error shape, rate limiting and the
stored-file route.
"""

import logging
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from marketplace.database import get_db_session
from marketplace.main import app
from marketplace.middleware.rate_limit import RateLimitMiddleware


class TestHealth:

    @pytest.mark.asyncio
    async def test_healthy(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["storage"] == "writable"
        assert body["version"]
        assert body["uptimeSeconds"] >= 0

    @pytest.mark.asyncio
    async def test_storage_unavailable_is_degraded(self, test_client, monkeypatch):
        from marketplace.services.file_service import file_service

        monkeypatch.setattr(file_service, "is_writable", lambda: False)

        response = await test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["storage"] == "unavailable"

    @pytest.mark.asyncio
    async def test_database_down_is_unhealthy(self, test_client):
        session = AsyncMock()
        session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))

        async def unreachable_db_session():
            yield session

        app.dependency_overrides[get_db_session] = unreachable_db_session

        response = await test_client.get("/health")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["database"] == "disconnected"
        session.rollback.assert_awaited_once()


class TestRequestId:

    @pytest.mark.asyncio
    async def test_generated_when_absent(self, test_client):
        response = await test_client.get("/health")

        rid = response.headers["X-Request-ID"]
        assert len(rid) == 8

    @pytest.mark.asyncio
    async def test_client_id_echoed(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "trace-abc-123"})
        assert response.headers["X-Request-ID"] == "trace-abc-123"

    @pytest.mark.asyncio
    async def test_oversized_client_id_replaced(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "x" * 200})
        assert response.headers["X-Request-ID"] != "x" * 200

    @pytest.mark.asyncio
    async def test_error_body_carries_request_id(self, test_client):
        response = await test_client.get("/api/nowhere", headers={"X-Request-ID": "trace-404"})

        assert response.status_code == 404
        assert response.json() == {
            "error": "not_found",
            "message": "Not Found",
            "requestId": "trace-404",
        }


class TestAccessLog:

    @pytest.mark.asyncio
    async def test_client_error_logged_as_warning(self, test_client, caplog):
        with caplog.at_level(logging.INFO, logger="marketplace.access"):
            await test_client.get("/api/projects/123456", headers={"X-Request-ID": "log-1"})

        records = [r for r in caplog.records if r.name == "marketplace.access"]
        assert len(records) == 1
        assert records[0].levelno == logging.WARNING
        assert records[0].status == 404
        assert records[0].request_id == "log-1"
        assert "123456" in records[0].path

    @pytest.mark.asyncio
    async def test_health_not_logged(self, test_client, caplog):
        with caplog.at_level(logging.INFO, logger="marketplace.access"):
            await test_client.get("/health")

        assert not [r for r in caplog.records if r.name == "marketplace.access"]


class TestErrorShape:

    @pytest.mark.asyncio
    async def test_method_not_allowed(self, test_client):
        response = await test_client.delete("/api/projects")

        assert response.status_code == 405
        assert response.json()["error"] == "method_not_allowed"

    @pytest.mark.asyncio
    async def test_malformed_json_is_400(self, test_client, signup):
        account = await signup(role="client")

        response = await test_client.post(
            "/api/projects",
            content=b"{not json",
            headers={**account.headers, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


def rate_limited_app(max_requests: int = 3, trust_forwarded_for: bool = False) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=max_requests,
        window_seconds=60,
        trust_forwarded_for=trust_forwarded_for,
    )

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_budget_then_429(self):
        transport = ASGITransport(app=rate_limited_app(max_requests=3))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            for _ in range(3):
                assert (await client.get("/ping")).status_code == 200

            response = await client.get("/ping", headers={"X-Request-ID": "rl-1"})

        assert response.status_code == 429
        retry_after = int(response.headers["Retry-After"])
        assert 1 <= retry_after <= 61
        body = response.json()
        assert body["error"] == "rate_limit_exceeded"
        assert body["details"] == {"retryAfter": retry_after}
        assert body["requestId"] == "rl-1"
        assert response.headers["X-Request-ID"] == "rl-1"

    @pytest.mark.asyncio
    async def test_429_generates_request_id_when_absent(self):
        transport = ASGITransport(app=rate_limited_app(max_requests=1))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            await client.get("/ping")
            response = await client.get("/ping")

        assert response.status_code == 429
        rid = response.json()["requestId"]
        assert rid is not None
        assert len(rid) == 8
        assert response.headers["X-Request-ID"] == rid

    @pytest.mark.asyncio
    async def test_health_is_never_limited(self):
        transport = ASGITransport(app=rate_limited_app(max_requests=1))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            await client.get("/ping")
            statuses = [(await client.get("/health")).status_code for _ in range(5)]

        assert statuses == [200] * 5

    @pytest.mark.asyncio
    async def test_forwarded_clients_counted_separately(self):
        transport = ASGITransport(app=rate_limited_app(max_requests=1, trust_forwarded_for=True))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            first = await client.get("/ping", headers={"X-Forwarded-For": "203.0.113.5"})
            other = await client.get("/ping", headers={"X-Forwarded-For": "198.51.100.7, 10.0.0.1"})
            repeat = await client.get("/ping", headers={"X-Forwarded-For": "203.0.113.5"})

        assert first.status_code == 200
        assert other.status_code == 200
        assert repeat.status_code == 429

    @pytest.mark.asyncio
    async def test_forwarded_header_ignored_unless_trusted(self):
        transport = ASGITransport(app=rate_limited_app(max_requests=1))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            await client.get("/ping", headers={"X-Forwarded-For": "203.0.113.5"})
            response = await client.get("/ping", headers={"X-Forwarded-For": "198.51.100.7"})

        assert response.status_code == 429


class TestFiles:

    @pytest.mark.asyncio
    async def test_missing_file(self, test_client):
        response = await test_client.get("/api/files/avatars/nobody/avatar.png")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_nul_byte_in_path_rejected(self, test_client):
        response = await test_client.get("/api/files/avatars%00x")

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert response.json()["details"]["field"] == "path"

    @pytest.mark.asyncio
    async def test_cache_header_on_served_avatar(self, test_client, signup, make_image):
        account = await signup()
        uploaded = await test_client.post(
            "/api/users/avatar",
            files={"file": ("me.jpg", make_image("JPEG"), "image/jpeg")},
            headers=account.headers,
        )
        path = uploaded.json()["profileImageUrl"].split("?")[0]

        response = await test_client.get(path)

        assert response.status_code == 200
        assert response.headers["cache-control"] == "public, max-age=86400"
        assert response.headers["content-type"] == "image/jpeg"
