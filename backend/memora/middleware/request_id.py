"""
Memora Backend — Request ID Middleware
=======================================

What:  Assigns a correlation id to each request and echoes it on the response.
How:   Reuses a client-supplied X-Request-ID when it looks sane, otherwise
       generates a short one. The id lives in a ContextVar so loggers and
       exception handlers can read it without access to the request.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Client ids end up in log lines; keep them short and printable
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

# Coroutine-local: concurrent requests on one thread each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Take X-Request-ID from the client if present and well-formed
        2. Otherwise generate an 8-character id
        3. Store it in `request_id_var` and `request.state.request_id`
        4. Add it to the response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get(REQUEST_ID_HEADER, "")
        rid = supplied if _VALID_REQUEST_ID.match(supplied) else new_request_id()

        # Not reset after call_next: the outermost 500 handler runs after this
        # dispatch returns and still needs the id
        request_id_var.set(rid)
        request.state.request_id = rid
        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
