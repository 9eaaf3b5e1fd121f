"""
Notes Summarizer - Request ID Middleware
==========================================

What:  Assigns a correlation ID to each request and returns it in X-Request-ID.
How:   Reuses a client-supplied X-Request-ID or generates a short UUID, stores it
       in a ContextVar (for loggers and the response formatter) and on
       request.state (for exception handlers), then echoes it back.
When:  Outermost application middleware, so everything downstream can see it.
"""

import uuid
from typing import Optional
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one thread each see their own ID.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

MAX_CLIENT_ID_LENGTH = 64


def current_request_id(request: Optional[Request] = None) -> str:
    """Returns the request ID from request.state if available, else the ContextVar."""
    if request is not None:
        rid = getattr(request.state, "request_id", None)
        if rid:
            return rid
    return request_id_var.get("")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a unique ID to each request for tracing."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "").strip()[:MAX_CLIENT_ID_LENGTH]
        if not rid:
            rid = str(uuid.uuid4())[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
