"""
ChatSphere Backend: Health Check and Landing Page
=================================================

What:  GET /health for monitors and load balancers; GET / serves a small
       HTML page listing the API areas.
How:   The database is probed with SELECT 1 through the request's session;
       the image host is reported from the circuit breaker state, then from
       a ping.

Status levels:
    - healthy:   database and image host fine
    - degraded:  image host down, open or not configured (avatars fail,
                 everything else works)
    - unhealthy: database unreachable
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from chatsphere import __version__
from chatsphere.config import settings
from chatsphere.database import get_db_session
from chatsphere.schemas.common import HealthResponse
from chatsphere.services.cloudinary_service import CircuitBreaker, cloudinary_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()

API_AREAS = [
    ("/api/auth", "Register, login, logout"),
    ("/api/users", "Profiles, avatars, passwords"),
    ("/api/contacts", "Contact requests and contact list"),
    ("/api/messages", "Direct messages and conversations"),
    ("/health", "Service health"),
]


def _uptime() -> float:
    return round(time.time() - _start_time, 2)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(db: AsyncSession = Depends(get_db_session)) -> HealthResponse:
    db_status = "connected"
    image_host_status = "available"
    overall = "healthy"

    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if not settings.cloudinary_configured:
        image_host_status = "not_configured"
    elif cloudinary_service.circuit_breaker.state == CircuitBreaker.OPEN:
        image_host_status = "circuit_open"
    elif not await cloudinary_service.health_check():
        image_host_status = "unavailable"

    if image_host_status != "available" and overall == "healthy":
        overall = "degraded"

    return HealthResponse(
        message="Server is healthy" if overall == "healthy" else f"Server is {overall}",
        timestamp=datetime.now(timezone.utc),
        status=overall,
        version=__version__,
        database=db_status,
        image_host=image_host_status,
        uptime_seconds=_uptime(),
    )


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def landing_page() -> HTMLResponse:
    rows = "\n".join(
        f"        <li><code>{path}</code> {label}</li>" for path, label in API_AREAS
    )
    html = f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <title>ChatSphere API</title>
    <style>
        body {{ font-family: system-ui, sans-serif; max-width: 40rem; margin: 3rem auto; color: #1f2937; }}
        code {{ background: #f3f4f6; padding: 0.1rem 0.3rem; border-radius: 4px; }}
        .meta {{ color: #6b7280; font-size: 0.9rem; }}
    </style>
</head>
<body>
    <h1>ChatSphere API</h1>
    <p>Version {__version__}. The server is running.</p>
    <ul>
{rows}
    </ul>
    <p class="meta">Environment: {settings.environment} &middot;
       Uptime: {_uptime():.0f}s &middot;
       Server time: {datetime.now(timezone.utc).isoformat(timespec='seconds')}</p>
</body>
</html>
"""
    return HTMLResponse(content=html)
