"""
Marketplace Backend: Request ID Middleware
==========================================

What:  Gives every request a correlation id and returns it as X-Request-ID.
How:   A client-supplied X-Request-ID is reused so a browser-side error report
       can be matched with server logs; otherwise a short random id is made.
       The id is kept in a ContextVar (for loggers and exception handlers)
       and on `request.state` (for route handlers).
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def request_id_for(request: Request) -> str:
    """The client's X-Request-ID when it is usable, otherwise a fresh id."""
    rid = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if not rid or len(rid) > MAX_REQUEST_ID_LENGTH:
        rid = new_request_id()
    return rid


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request_id_for(request)
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
