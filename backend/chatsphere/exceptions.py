"""
ChatSphere Backend: Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for the different error scenarios.
How:   Each exception class carries a user-facing message, an optional
       context dict, an HTTP status code and a machine-readable error code.
       Global exception handlers (registered in main.py) catch these and
       return the JSON error envelope.
Who:   Raised by services, dependencies and middleware; caught by handlers.

Exception Hierarchy:
    ChatSphereError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── PermissionDeniedError    → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── FileStorageError         → 500 Internal Server Error
    ├── DatabaseError            → 500 Internal Server Error
    ├── ImageHostError           → 503 Service Unavailable (retry later)
    └── CircuitBreakerOpenError  → 503 Service Unavailable (circuit open)
"""

from typing import Any, Dict, Optional


class ChatSphereError(Exception):
    """
    Base exception for all ChatSphere application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; returned only where a handler
                  explicitly exposes it as `details`)
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ChatSphereError):
    """
    Raised when client input fails a business rule.

    When:    Missing fields, too-short names or passwords, duplicate requests,
             unsupported avatar types.
    HTTP:    400 Bad Request

    Example response:
        {
            "success": false,
            "error": "validation_error",
            "message": "Name must be at least 2 characters long",
            "details": {"field": "name"}
        }
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(ChatSphereError):
    """
    Raised when the caller cannot be authenticated.

    When:    Missing/invalid/expired token, wrong credentials, wrong current
             password on password change.
    HTTP:    401 Unauthorized
    """

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(ChatSphereError):
    """
    Raised when an authenticated user acts on something that is not theirs.

    When:    Accepting a request addressed to someone else, deleting another
             user's message, messaging a non-contact.
    HTTP:    403 Forbidden
    """

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(ChatSphereError):
    """
    Raised when a requested resource does not exist.

    HTTP:    404 Not Found

    SQLAlchemy returns None for missing rows; services convert that into
    this exception so the handler can answer 404. The identifier is kept in
    the context, the message stays short ("User not found").
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message or f"{resource} not found", context=ctx)


class RateLimitExceededError(ChatSphereError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with a Retry-After header.
    """

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many requests. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class FileStorageError(ChatSphereError):
    """
    Raised when staging an uploaded file on local disk fails.

    When:    Disk full, permission denied, directory not writable.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(ChatSphereError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; the context
    (operation, original error type) is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ImageHostError(ChatSphereError):
    """
    Raised when the image host (Cloudinary) fails after all retries.

    HTTP:    503 Service Unavailable

    retry_after is the circuit breaker recovery timeout, suggested to the
    client through the Retry-After header.
    """

    status_code = 503
    error_code = "image_host_error"

    def __init__(
        self,
        message: str = "Image upload service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(ChatSphereError):
    """
    Raised when the image host circuit breaker is OPEN.

    HTTP:    503 Service Unavailable

    How the circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for the recovery timeout)
        → After the timeout → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED
        → If test fails → OPEN again
    """

    status_code = 503
    error_code = "service_unavailable"

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Image upload service is temporarily unavailable due to repeated failures. "
            f"Please retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
