"""
WriteUp Backend: Request ID Middleware
======================================

What:  Tags every request with a short correlation ID.
How:   Reuses the shell's X-Request-ID header when present, otherwise makes
       one up. The ID is kept in a ContextVar (so the exception handlers can
       put it in the ErrorEnvelope) and echoed back in the response header.

The popup shows the ID next to provider errors, so a user's bug report can
be matched to the server log line for that exact fallback run.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Coroutine-local: concurrent requests share a thread but not this value
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        token = request_id_var.set(rid)
        request.state.request_id = rid

        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
