"""
ChatSphere Backend: Cloudinary Service Unit Tests (Mocked)
==========================================================

What:  CircuitBreaker state machine and CloudinaryService with the
       Cloudinary SDK patched out.
How:   RETRY_MAX_ATTEMPTS=1 (conftest) keeps failing calls from sleeping.

What we test:
    ✅ Circuit breaker opens at the threshold and recovers via HALF_OPEN
    ✅ Upload returns the secure URL with folder and transformation applied
    ✅ SDK failures become ImageHostError and count as breaker failures
    ✅ Open breaker rejects uploads without touching the SDK
    ✅ Delete tolerates "not found"; public ids derived from URLs
    ❌ Real uploads (need credentials and network)
"""

import time
from unittest.mock import patch

import pytest
from cloudinary.exceptions import (
    AuthorizationRequired,
    BadRequest,
    GeneralError,
    NotFound,
    RateLimited,
)
from cloudinary.exceptions import Error as CloudinaryError

from chatsphere.config import settings
from chatsphere.exceptions import CircuitBreakerOpenError, ImageHostError
from chatsphere.services.cloudinary_service import (
    CircuitBreaker,
    CloudinaryService,
    _is_transient,
)
from chatsphere.services.image_host_base import ImageHostService


class TestCircuitBreaker:

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        assert cb.state == CircuitBreaker.CLOSED
        assert cb.failure_count == 0
        assert cb.can_execute()

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == CircuitBreaker.CLOSED
        cb.can_execute()

    def test_opens_at_threshold_and_rejects(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        for _ in range(3):
            cb.record_failure()
        assert cb.state == CircuitBreaker.OPEN

        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            cb.can_execute()
        assert 0 < exc_info.value.recovery_time <= 60

    def test_half_open_after_recovery_timeout(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)

        assert cb.can_execute()
        assert cb.state == CircuitBreaker.HALF_OPEN

    def test_half_open_failure_reopens(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)
        cb.can_execute()

        cb.record_failure()
        assert cb.state == CircuitBreaker.OPEN

    def test_half_open_success_closes(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)
        cb.can_execute()

        cb.record_success()
        assert cb.state == CircuitBreaker.CLOSED
        assert cb.failure_count == 0


class TestCloudinaryServiceMocked:

    def setup_method(self):
        self.service = CloudinaryService()

    @pytest.mark.asyncio
    async def test_upload_returns_secure_url(self):
        with patch("cloudinary.uploader.upload") as mock_upload:
            mock_upload.return_value = {
                "secure_url": "https://res.cloudinary.com/demo/image/upload/v1/chatsphere/avatars/abc.jpg",
                "url": "http://res.cloudinary.com/demo/image/upload/v1/chatsphere/avatars/abc.jpg",
            }

            url = await self.service.upload_image("/tmp/avatar.jpg")

        assert url.startswith("https://")
        args, kwargs = mock_upload.call_args
        assert args[0] == "/tmp/avatar.jpg"
        assert kwargs["folder"] == self.service.folder
        assert kwargs["transformation"] == CloudinaryService.AVATAR_TRANSFORMATION
        assert self.service.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_upload_failure_raises_image_host_error(self):
        with patch("cloudinary.uploader.upload", side_effect=CloudinaryError("boom")):
            with pytest.raises(ImageHostError) as exc_info:
                await self.service.upload_image("/tmp/avatar.jpg")

        assert exc_info.value.retry_after == self.service.circuit_breaker.recovery_timeout
        assert self.service.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_upload_without_url_is_an_error(self):
        with patch("cloudinary.uploader.upload", return_value={}):
            with pytest.raises(ImageHostError, match="no URL"):
                await self.service.upload_image("/tmp/avatar.jpg")
        assert self.service.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_open_circuit_skips_sdk(self):
        for _ in range(self.service.circuit_breaker.failure_threshold):
            self.service.circuit_breaker.record_failure()

        with patch("cloudinary.uploader.upload") as mock_upload:
            with pytest.raises(CircuitBreakerOpenError):
                await self.service.upload_image("/tmp/avatar.jpg")
            mock_upload.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("outcome", ["ok", "not found"])
    async def test_delete_accepts_ok_and_not_found(self, outcome):
        with patch("cloudinary.uploader.destroy", return_value={"result": outcome}) as mock_destroy:
            await self.service.delete_file("chatsphere/abc")
        mock_destroy.assert_called_once_with("chatsphere/abc", resource_type="image")

    @pytest.mark.asyncio
    async def test_delete_failure_raises_image_host_error(self):
        with patch("cloudinary.uploader.destroy", side_effect=ConnectionError("down")):
            with pytest.raises(ImageHostError):
                await self.service.delete_file("chatsphere/abc")

    @pytest.mark.asyncio
    async def test_health_check_false_without_credentials(self):
        with patch("cloudinary.api.ping") as mock_ping:
            assert await self.service.health_check() is False
            mock_ping.assert_not_called()


class TestPublicIdFromUrl:

    @pytest.mark.parametrize(
        "url, public_id",
        [
            ("https://res.cloudinary.com/demo/image/upload/v17/avatars/abc123.jpg", "avatars/abc123"),
            ("https://res.cloudinary.com/demo/image/upload/v17/avatars/abc123", "avatars/abc123"),
            ("https://res.cloudinary.com/demo/image/upload/v17/abc123.png", "abc123"),
            (
                "https://res.cloudinary.com/demo/image/upload/c_limit,w_500/v17/a/b/c/abc123.webp",
                "a/b/c/abc123",
            ),
            ("abc123.png", "abc123"),
        ],
    )
    def test_path_after_version_without_extension(self, url, public_id):
        assert ImageHostService.public_id_from_url(url) == public_id

    def test_configured_folder_is_kept(self):
        url = f"https://res.cloudinary.com/demo/image/upload/v17/{settings.cloudinary_folder}/abc123.jpg"
        assert settings.cloudinary_folder.count("/") >= 1
        assert ImageHostService.public_id_from_url(url) == f"{settings.cloudinary_folder}/abc123"


class TestRetryPolicy:

    @pytest.mark.parametrize(
        "error",
        [
            ConnectionError("reset"),
            TimeoutError("slow"),
            GeneralError("Server returned unexpected status code - 502"),
            RateLimited("slow down"),
            CloudinaryError("Socket error: timed out"),
            CloudinaryError("Unexpected error - HTTPSConnectionPool"),
        ],
    )
    def test_transient_errors_are_retried(self, error):
        assert _is_transient(error)

    @pytest.mark.parametrize(
        "error",
        [
            BadRequest("Invalid image file"),
            AuthorizationRequired("Invalid Signature"),
            NotFound("Resource not found"),
            CloudinaryError("Invalid image file"),
            ValueError("bad path"),
        ],
    )
    def test_permanent_errors_fail_at_once(self, error):
        assert not _is_transient(error)
