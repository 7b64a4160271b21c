"""
ChatSphere Backend: Rate Limit Middleware Tests
===============================================

What:  The 429 envelope as a browser client sees it.
How:   The limit is lowered to one request for the duration of a test; the
       middleware instance is shared, so the second request is always over.
"""

from unittest.mock import patch

import pytest

from chatsphere.config import settings

ORIGIN = settings.cors_origins_list[0]


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_limited_response_carries_request_id_and_cors(self, test_client):
        headers = {"Origin": ORIGIN, "X-Request-ID": "limit-check"}

        with patch.object(settings, "rate_limit_requests", 1):
            await test_client.get("/api/auth/me", headers=headers)
            response = await test_client.get("/api/auth/me", headers=headers)

        assert response.status_code == 429
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "rate_limit_exceeded"
        assert body["requestId"] == "limit-check"
        assert response.headers["X-Request-ID"] == "limit-check"
        assert response.headers["access-control-allow-origin"] == ORIGIN
        assert int(response.headers["Retry-After"]) >= 1

    @pytest.mark.asyncio
    async def test_health_is_never_limited(self, test_client):
        with patch.object(settings, "rate_limit_requests", 1):
            for _ in range(3):
                response = await test_client.get("/health")
                assert response.status_code == 200
