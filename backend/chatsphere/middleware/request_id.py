"""
ChatSphere Backend: Request ID Middleware
=========================================

What:  Assigns a correlation ID to each request and returns it in the
       X-Request-ID response header.
How:   Uses the client's X-Request-ID header when present, otherwise an
       8-character id; the value lives in a ContextVar so loggers and
       exception handlers can read it without the request object.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one thread each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Take X-Request-ID from the client (frontend-generated ids make
           tracing from UI action to log line possible)
        2. Otherwise generate a short id
        3. Store it in the ContextVar and in request.state
        4. Echo it back in the response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
