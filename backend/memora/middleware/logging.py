"""
Memora Backend — Request Logging Middleware
============================================

What:  One access log line per HTTP request, plus a warning for slow ones.
Who:   Runs inside RequestIDMiddleware, so the correlation id is available.

Log line:
    POST /api/notes/<id>/attachments 201 84.3ms [a1b2c3d4] from 10.0.0.7

Level by status class: 5xx → ERROR, 4xx → WARNING, otherwise INFO.
Requests slower than `slow_request_threshold_ms` get an extra WARNING on the
`memora.performance` logger.

Never logged: request bodies (file payloads, passwords) and the
Authorization header.
"""

import logging
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from memora.config import settings
from memora.middleware.request_id import request_id_var

logger = logging.getLogger("memora.access")
performance_logger = logging.getLogger("memora.performance")

QUIET_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, slow_request_threshold_ms: Optional[int] = None):
        super().__init__(app)
        self._slow_request_threshold_ms = slow_request_threshold_ms

    @property
    def slow_request_threshold_ms(self) -> int:
        if self._slow_request_threshold_ms is not None:
            return self._slow_request_threshold_ms
        return settings.slow_request_threshold_ms

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()
        path = request.url.path

        # Health probes run every few seconds
        if path in QUIET_PATHS:
            return await call_next(request)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        method = request.method
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

        if duration_ms > self.slow_request_threshold_ms:
            performance_logger.warning(
                "Slow request: %s %s took %.0fms (threshold %dms) [%s]",
                method,
                path,
                duration_ms,
                self.slow_request_threshold_ms,
                rid,
            )

        return response
