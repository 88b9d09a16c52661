"""
thruster: Request Logging Middleware
======================================

What:  One access-log line per request on the ``thruster.access`` logger.
Who:   Added to the default engine of every Server unless
       ``THRUSTER_ACCESS_LOG=false``.

Line format:
    GET /users/5 200 1.4ms [a1b2c3d4] show user=admin from 127.0.0.1

``show`` is the handler (or resource action) that served the request, ``-``
when no route matched. ``user`` is the principal accepted by the Basic-Auth
gate, ``-`` on ungated routes and on rejected requests.

Level by status:
    5xx → ERROR, 4xx → WARNING (includes 401 from the auth gate), else INFO.

Request bodies and Authorization headers are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from thruster.middleware.request_id import request_id_var

logger = logging.getLogger("thruster.access")


def level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


def handler_name(request: Request) -> str:
    endpoint = request.scope.get("endpoint")
    return getattr(endpoint, "__name__", "-")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs who was served by which handler, with status and duration."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        record = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "handler": handler_name(request),
            # Set by the auth gate only when credentials were accepted.
            "user": getattr(request.state, "user", "-"),
            "client_ip": request.client.host if request.client else "unknown",
        }
        logger.log(
            level_for(response.status_code),
            "%s %s %d %.1fms [%s] %s user=%s from %s",
            record["method"],
            record["path"],
            record["status"],
            duration_ms,
            record["request_id"],
            record["handler"],
            record["user"],
            record["client_ip"],
            extra=record,
        )
        return response
