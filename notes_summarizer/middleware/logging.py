"""
Notes Summarizer - Request Logging Middleware
===============================================

What:  One access-log line per HTTP request with status and duration.
How:   Times the downstream call and logs on the "notes_summarizer.access"
       logger, choosing the level from the status class.

What we log vs what we don't (privacy):
    Log:        method, path, status, duration, client IP, request ID
    Don't log:  request bodies, uploaded files, Authorization headers, cookies
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from notes_summarizer.middleware.request_id import current_request_id

logger = logging.getLogger("notes_summarizer.access")

# Probes hit these every few seconds.
QUIET_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, status and duration for each request.

    Typical durations:
        GET /api/history:      10-50ms
        POST /api/summarize:   2-8s (Gemini call dominates)
        POST /api/notes/upload with OCR: 5-20s
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = current_request_id(request)
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
