"""
thruster: Exception Hierarchy
===============================

What:  Application-specific exceptions for handler, setup and listener failures.
How:   Each exception carries a message, an optional context dict and an
       ``ErrorKind``. The response translator (``thruster.responses``) reads the
       kind to pick a status code; setup and listener errors are raised out of
       ``Server.run()`` to the caller.

Exception Hierarchy:
    ThrusterError (base, kind=GENERIC)
    ├── NotFoundError           → 404 Not Found (kind=NOT_FOUND)
    ├── HandlerError            → 500 Internal Server Error
    ├── ConfigError             → fatal, raised before a listener starts
    ├── BindError               → fatal, raised from Server.run()
    ├── UnsupportedMethodError  → raised at registration time
    ├── ResourceError           → raised at registration time
    └── ServerStateError        → raised when registering on a running server

Any exception that is not a ThrusterError is treated as GENERIC (500).
"""

import enum
from typing import Any, Dict, Optional


class ErrorKind(enum.Enum):
    """Closed set of error kinds the response translator understands."""

    NOT_FOUND = "not_found"
    GENERIC = "generic"


class ThrusterError(Exception):
    """
    Base exception for all thruster errors.

    Attributes:
        message:  Human-readable description, returned as ``{"error": message}``
                  when raised from a JSON handler.
        context:  Additional debug info (logged, never returned to the client).
        kind:     ``ErrorKind`` used for status-code translation.
    """

    kind = ErrorKind.GENERIC

    def __init__(
        self,
        message: str = "an unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class NotFoundError(ThrusterError):
    """
    Raised by a JSON handler when the requested item does not exist.

    HTTP:  404 Not Found

    Compared by kind, not identity: every NotFoundError instance (and any
    exception whose ``kind`` is ``ErrorKind.NOT_FOUND``) translates to 404.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        message: str = "not found",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class HandlerError(ThrusterError):
    """Generic application error raised by a handler. HTTP: 500."""


class ConfigError(ThrusterError):
    """
    Raised when configuration cannot be loaded or TLS material cannot be
    materialized.

    Fatal: ``Server.run()`` raises it before any listener is started.
    """

    def __init__(
        self,
        message: str = "invalid configuration",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class BindError(ThrusterError):
    """Raised when the listener cannot bind its address or fails to start."""

    def __init__(
        self,
        address: str,
        reason: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"cannot listen on {address}"
        if reason:
            message = f"{message}: {reason}"
        ctx = context or {}
        ctx["address"] = address
        super().__init__(message=message, context=ctx)
        self.address = address


class UnsupportedMethodError(ThrusterError, ValueError):
    """Raised when a route is registered with a verb other than GET/POST/PUT/DELETE."""

    def __init__(self, method: str):
        super().__init__(
            message=f"unsupported HTTP method '{method}'",
            context={"method": method},
        )
        self.method = method


class ResourceError(ThrusterError, TypeError):
    """Raised when a controller does not provide all five CRUD actions."""

    def __init__(self, controller: Any, missing: tuple):
        name = type(controller).__name__
        super().__init__(
            message=f"{name} is missing resource action(s): {', '.join(missing)}",
            context={"controller": name, "missing": list(missing)},
        )
        self.missing = missing


class ServerStateError(ThrusterError, RuntimeError):
    """Raised when routes are added to (or run() is called on) a running server."""


# ``raise ERR_NOT_FOUND`` builds a fresh NotFoundError on every raise.
ERR_NOT_FOUND = NotFoundError


def error_kind(exc: BaseException) -> ErrorKind:
    """Return the kind of ``exc``; foreign exceptions are GENERIC."""
    kind = getattr(exc, "kind", ErrorKind.GENERIC)
    if isinstance(kind, ErrorKind):
        return kind
    return ErrorKind.GENERIC
