# Middleware package init
"""
ChatSphere Backend: Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [CORS] → [Request ID] → [Logging] → [Rate Limit] → [GZip] → Route

    1. CORS outermost: preflights are answered and every response,
       429s included, carries the CORS headers
    2. Request ID: correlation id stored in a ContextVar
    3. Logging: one access line per request, tagged with the request ID
    4. Rate limit: abusive clients are rejected before any route work

    Responses travel back in reverse order, so the X-Request-ID header is
    added to every response.
"""
