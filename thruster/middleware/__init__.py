"""
thruster: Request Middleware
==============================

Applied to every request of a Server built with the default engine.

Middleware Chain:
    Request → [Request ID] → [Logging] → Route Group (auth) → Handler

    RequestIDMiddleware is added last so it runs first; the logging middleware
    and the auth gate can then tag their log lines with the request id.
"""

from thruster.middleware.logging import RequestLoggingMiddleware
from thruster.middleware.request_id import RequestIDMiddleware, request_id_var

__all__ = ["RequestIDMiddleware", "RequestLoggingMiddleware", "request_id_var"]
