"""
ChatSphere Backend: Health, Landing Page and Fallback Handler Tests
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from chatsphere import __version__
from chatsphere.database import get_db_session
from chatsphere.main import app
from chatsphere.services.cloudinary_service import CircuitBreaker


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_without_image_host_credentials(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["database"] == "connected"
        assert body["imageHost"] == "not_configured"
        assert body["status"] == "degraded"
        assert body["message"] == "Server is degraded"
        assert body["version"] == __version__
        assert body["uptimeSeconds"] >= 0
        assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_health_when_everything_is_up(self, test_client):
        with patch("chatsphere.routes.health.settings") as mock_settings, \
             patch("chatsphere.routes.health.cloudinary_service") as mock_host:
            mock_settings.cloudinary_configured = True
            mock_host.circuit_breaker.state = CircuitBreaker.CLOSED

            async def ping():
                return True
            mock_host.health_check = ping

            response = await test_client.get("/health")

        body = response.json()
        assert body["status"] == "healthy"
        assert body["message"] == "Server is healthy"
        assert body["imageHost"] == "available"

    @pytest.mark.asyncio
    async def test_health_reports_open_circuit(self, test_client):
        with patch("chatsphere.routes.health.settings") as mock_settings, \
             patch("chatsphere.routes.health.cloudinary_service") as mock_host:
            mock_settings.cloudinary_configured = True
            mock_host.circuit_breaker.state = CircuitBreaker.OPEN

            response = await test_client.get("/health")

        assert response.json()["imageHost"] == "circuit_open"

    @pytest.mark.asyncio
    async def test_database_failure_is_unhealthy(self, test_client, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("down"))

        async def broken_session():
            yield mock_db_session

        app.dependency_overrides[get_db_session] = broken_session
        response = await test_client.get("/health")

        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["database"] == "disconnected"
        assert body["message"] == "Server is unhealthy"

    @pytest.mark.asyncio
    async def test_health_carries_request_id(self, test_client):
        response = await test_client.get("/health")
        assert "X-Request-ID" in response.headers


class TestLandingPage:

    @pytest.mark.asyncio
    async def test_lists_api_areas(self, test_client):
        response = await test_client.get("/")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        for area in ("/api/auth", "/api/users", "/api/contacts", "/api/messages", "/health"):
            assert area in response.text


class TestUnknownRoute:

    @pytest.mark.asyncio
    async def test_unknown_route_envelope(self, test_client):
        response = await test_client.get("/api/does-not-exist")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Cannot GET /api/does-not-exist"
        assert body["error"] == "Route not found"
