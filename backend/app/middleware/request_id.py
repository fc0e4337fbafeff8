"""
Circles Backend — Request ID Middleware
=========================================

What:  Assigns every request a correlation ID and echoes it back.
How:   Uses the client's X-Request-ID header when present, otherwise a short
       UUID. The ID is stored in a ContextVar (for loggers and exception
       handlers) and on request.state (for route handlers).

Error envelopes carry the same ID as `requestId`, so a client-reported
failure can be matched to the server log line.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one thread each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to the context, request state and response headers."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
