"""
ChatSphere Backend: FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routers;
       uvicorn serves the module-level `app` (uvicorn chatsphere.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  CORS → Req ID → Logging → Rate Limit → GZip│
    │                                                          │
    │  Routers:                                                │
    │   /api/auth   /api/users   /api/contacts   /api/messages │
    │   /health     /  (landing page)                          │
    │                                                          │
    │  Exception Handlers:                                     │
    │   ChatSphereError subclasses → envelope with their status│
    │   request schema errors → 400, unknown route → 404       │
    │   anything else → 500 (stack in development only)        │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, upload staging directory,
              optional schema creation (DB_CREATE_TABLES)
    Shutdown: dispose the database engine
"""

import logging
import sys
import traceback
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chatsphere import __version__
from chatsphere.config import settings
from chatsphere.database import create_tables, dispose_engine
from chatsphere.exceptions import (
    ChatSphereError,
    CircuitBreakerOpenError,
    DatabaseError,
    FileStorageError,
    ImageHostError,
    RateLimitExceededError,
    ValidationError,
)
from chatsphere.middleware.logging import RequestLoggingMiddleware
from chatsphere.middleware.rate_limit import RateLimitMiddleware
from chatsphere.middleware.request_id import RequestIDMiddleware, request_id_var
from chatsphere.routes import auth, contacts, health, messages, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, at startup.

    Format: 2024-01-15T12:00:00 [INFO] chatsphere.access: GET /api/contacts ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "cloudinary", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("ChatSphere Backend %s starting up (%s)", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health checks and non-avatar routes still work
        logger.error("Configuration error: %s", str(e))

    staging = Path(settings.upload_tmp_dir)
    staging.mkdir(parents=True, exist_ok=True)
    logger.info("Upload staging directory: %s", staging.resolve())

    if settings.db_create_tables:
        await create_tables()
        logger.info("Database tables ensured")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("ChatSphere Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {
        "success": False,
        "error": error,
        "message": message,
        "requestId": request_id_var.get(""),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the error envelope.

    Handler hierarchy:
        ValidationError         → 400 (details: offending field)
        RateLimitExceededError  → 429 + Retry-After
        CircuitBreakerOpenError → 503 + Retry-After
        ImageHostError          → 503 (+ Retry-After when known)
        DatabaseError           → 500, generic message
        FileStorageError        → 500
        ChatSphereError (base)  → the subclass's status_code (401, 403, 404)
        RequestValidationError  → 400
        HTTPException           → 404 "Cannot METHOD path" or the given status
        Exception (fallback)    → 500
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, exc.error_code, exc.message, details=exc.context)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(
            429,
            exc.error_code,
            exc.message,
            details={"retryAfter": exc.retry_after},
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return _error_response(
            503,
            exc.error_code,
            exc.message,
            details={"recoveryTime": exc.recovery_time},
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(ImageHostError)
    async def handle_image_host_error(request: Request, exc: ImageHostError):
        logger.error("[%s] Image host error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return _error_response(503, exc.error_code, exc.message, headers=headers)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(
            500, exc.error_code, "An internal error occurred. Please try again later."
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error("[%s] File storage error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, exc.error_code, exc.message)

    @app.exception_handler(ChatSphereError)
    async def handle_chatsphere_error(request: Request, exc: ChatSphereError):
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s", request_id_var.get(""), type(exc).__name__, exc.message)
        else:
            logger.info("[%s] %s: %s", request_id_var.get(""), type(exc).__name__, exc.message)
        return _error_response(exc.status_code, exc.error_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Schema errors (bad JSON, wrong types, malformed ids) → 400 with the first field."""
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path", "header")]
        field = ".".join(loc)
        msg = first.get("msg", "Invalid request")
        message = f"{field}: {msg}" if field else msg
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), message)
        return _error_response(
            400,
            ValidationError.error_code,
            message,
            details={"field": field or None, "errorCount": len(errors)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            return JSONResponse(
                status_code=404,
                content={
                    "success": False,
                    "message": f"Cannot {request.method} {request.url.path}",
                    "error": "Route not found",
                    "requestId": request_id_var.get(""),
                },
            )
        return _error_response(
            exc.status_code,
            "http_error",
            str(exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        details = None
        if settings.is_development:
            details = {"stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))}
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
            details=details,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="ChatSphere API",
        description=(
            "Messaging backend: accounts, profiles with avatars, contact requests "
            "and direct messages between contacts."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware runs in reverse order of addition:
    # CORS → RequestID → Logging → RateLimit → GZip
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(contacts.router)
    app.include_router(messages.router)
    app.include_router(health.router)

    return app


app = create_app()
