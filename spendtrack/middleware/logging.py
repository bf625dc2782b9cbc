"""
SpendTrack Backend — Request Logging Middleware
=================================================

What:  One access-log line per request on the "spendtrack.access" logger.
How:   Wraps the downstream app, times it, and logs once the response is
       ready. Listing responses also report their X-Total-Count.

Logged:      method, path, status, duration, client IP, request ID
Never logged: request bodies (passwords, scanned receipt contents)
"""

import logging
import time
from typing import Any, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("spendtrack.access")

# Load balancer health checks would drown everything else
QUIET_PATHS = frozenset({"/health"})

TOTAL_COUNT_HEADER = "X-Total-Count"


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        fields: Dict[str, Any] = {
            # Set by RequestIDMiddleware, which wraps this one
            "request_id": getattr(request.state, "request_id", ""),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": elapsed_ms,
            "client_ip": request.client.host if request.client else "unknown",
        }
        total = response.headers.get(TOTAL_COUNT_HEADER)
        if total is not None:
            fields["total"] = int(total)

        logger.log(
            level_for_status(response.status_code),
            "[%(request_id)s] %(method)s %(path)s -> %(status)d in %(duration_ms).1fms",
            fields,
            extra=fields,
        )
        return response
