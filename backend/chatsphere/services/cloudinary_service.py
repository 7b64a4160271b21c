"""
ChatSphere Backend: Cloudinary Image Host Implementation
========================================================

What:  Concrete image host service using the Cloudinary SDK for avatars.
How:   Runs the blocking SDK calls in a worker thread, with retry logic,
       a circuit breaker and timing logs.
Who:   Instantiated once at import; called by UserService.
When:  Avatar upload, avatar replacement and account deletion.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transient failures
    2. Circuit breaker so a Cloudinary outage fails fast instead of stalling
       every avatar request for the full retry budget
    3. Detailed logging for debugging and latency monitoring
"""

import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Optional

import cloudinary
import cloudinary.api
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from cloudinary.exceptions import GeneralError, RateLimited
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential_jitter,
    retry_if_exception,
    before_sleep_log,
)

from chatsphere.config import settings
from chatsphere.exceptions import ImageHostError, CircuitBreakerOpenError
from chatsphere.services.image_host_base import ImageHostService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Implements the circuit breaker pattern to prevent cascade failures.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Thread Safety:
        Plain counters; safe under a single-process asyncio server.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Check if a call is allowed through the circuit breaker.

        Raises:
            CircuitBreakerOpenError if OPEN and the recovery timeout
            hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# Transient errors worth another attempt. Bad requests, auth failures and
# missing assets are raised as other Error subclasses and fail at once.
RETRYABLE_ERRORS = (ConnectionError, TimeoutError, GeneralError, RateLimited)

# Older SDK releases raise the base Error for network and 5xx failures
TRANSIENT_MESSAGE_PREFIXES = ("socket error", "unexpected error", "server returned unexpected status")


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, RETRYABLE_ERRORS):
        return True
    if type(exc) is CloudinaryError:
        return str(exc).lower().startswith(TRANSIENT_MESSAGE_PREFIXES)
    return False


# ══════════════════════════════════════════════════════════════════════════
# Cloudinary Service
# ══════════════════════════════════════════════════════════════════════════

class CloudinaryService(ImageHostService):
    """
    Cloudinary implementation of the image host.

    Error Handling Chain:
        SDK call fails → tenacity retries (backoff + jitter)
        → All retries fail → record circuit breaker failure → ImageHostError
        → Threshold reached → future calls rejected instantly
        → Recovery timeout → one test call (HALF_OPEN)
    """

    # Avatars are downscaled on upload; originals are never needed
    AVATAR_TRANSFORMATION = [{"width": 500, "height": 500, "crop": "limit"}]

    def __init__(self):
        if settings.cloudinary_configured:
            cloudinary.config(
                cloud_name=settings.cloudinary_cloud_name,
                api_key=settings.cloudinary_api_key,
                api_secret=settings.cloudinary_api_secret,
                secure=True,
            )
        else:
            logger.warning("Cloudinary credentials missing; avatar uploads will fail")

        self.folder = settings.cloudinary_folder
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "CloudinaryService initialized with folder=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            self.folder,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def upload_image(self, file_path: str) -> str:
        """
        Upload an avatar file and return its HTTPS URL.

        Flow:
            1. Check circuit breaker → may raise CircuitBreakerOpenError
            2. Upload with retry logic
            3. Record success/failure in circuit breaker
        """
        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        logger.info("[%s] Uploading avatar %s", request_id, Path(file_path).name)

        try:
            url = await self._upload_with_retry(file_path, request_id)
            self.circuit_breaker.record_success()
            return url
        except ImageHostError:
            self.circuit_breaker.record_failure()
            raise
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Cloudinary upload error: %s",
                request_id,
                str(e),
                exc_info=True,
            )
            raise ImageHostError(
                message="Failed to upload avatar. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"request_id": request_id, "error_type": type(e).__name__},
            )

    async def delete_file(self, public_id: str) -> None:
        """Delete an asset; a missing asset ("not found") is not an error."""
        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        try:
            result = await self._destroy_with_retry(public_id, request_id)
            self.circuit_breaker.record_success()
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Cloudinary delete of %s failed: %s", request_id, public_id, str(e))
            raise ImageHostError(
                message="Failed to delete image from the image host.",
                context={"request_id": request_id, "public_id": public_id},
            )

        outcome = (result or {}).get("result")
        if outcome == "not found":
            logger.warning("[%s] Asset %s was already gone from Cloudinary", request_id, public_id)
        elif outcome != "ok":
            logger.warning("[%s] Unexpected destroy result for %s: %s", request_id, public_id, outcome)

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _upload_with_retry(self, file_path: str, request_id: str) -> str:
        """
        Internal method: the actual SDK upload, wrapped by tenacity.

        Kept separate from upload_image() so that only the network call is
        retried, never the circuit breaker check.
        """
        start_time = time.time()
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                file_path,
                folder=self.folder,
                resource_type="image",
                transformation=self.AVATAR_TRANSFORMATION,
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "[%s] Cloudinary upload failed after %.0fms: %s",
                request_id,
                duration_ms,
                str(e),
            )
            raise

        url = result.get("secure_url") or result.get("url")
        if not url:
            raise ImageHostError(
                message="Image host returned no URL for the uploaded file.",
                context={"request_id": request_id},
            )

        logger.info(
            "[%s] Cloudinary upload completed in %.0fms",
            request_id,
            (time.time() - start_time) * 1000,
        )
        return url

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _destroy_with_retry(self, public_id: str, request_id: str) -> dict:
        logger.info("[%s] Deleting Cloudinary asset %s", request_id, public_id)
        return await asyncio.to_thread(
            cloudinary.uploader.destroy,
            public_id,
            resource_type="image",
        )

    async def health_check(self) -> bool:
        """Pings the Admin API; False on any failure or without credentials."""
        if not settings.cloudinary_configured:
            return False
        try:
            result = await asyncio.to_thread(cloudinary.api.ping)
            return (result or {}).get("status") == "ok"
        except Exception as e:
            logger.warning("Cloudinary health check failed: %s", str(e))
            return False


# ── Singleton Instance ────────────────────────────────────────────────────
# The circuit breaker state must be shared across all requests
cloudinary_service = CloudinaryService()
