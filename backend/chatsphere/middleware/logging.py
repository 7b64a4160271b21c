"""
ChatSphere Backend: Request Logging Middleware
==============================================

What:  One access log line per HTTP request.
How:   Measures the time spent below this middleware and logs method, path,
       status, duration, request ID and client IP. The level follows the
       status class: 5xx ERROR, 4xx WARNING, everything else INFO.

Log line:
    POST /api/messages 201 12.3ms [a1b2c3d4] from 10.0.0.7

Not logged: request bodies (messages, passwords) and the Authorization
header.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from chatsphere.middleware.request_id import request_id_var

logger = logging.getLogger("chatsphere.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request after the response is produced.

    /health is skipped; load balancers poll it every few seconds.
    """

    SKIP_PATHS = {"/health"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.SKIP_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        rid = request_id_var.get("")
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
