"""
Newsletter Backend: Request Logging Middleware
==============================================

What:  One access log line for every HTTP request.
How:   Measures time around `call_next`, picks the log level from the
       status class (5xx ERROR, 4xx WARNING, else INFO).
When:  Runs inside RequestIDMiddleware so the request ID is already set.

Logged: method, path, status, duration, request ID, client IP.
Not logged: request bodies (they hold emails, names and passwords) and
Authorization headers.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from newsletter.middleware.request_id import request_id_var

logger = logging.getLogger("newsletter.access")

# Probed every few seconds by orchestrators
UNLOGGED_PATHS = {"/health_check"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in UNLOGGED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        path = request.url.path

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms from %s",
            method,
            path,
            status,
            duration_ms,
            client_ip,
            extra={
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
