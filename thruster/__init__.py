"""
thruster: REST resources over FastAPI
=======================================

A thin layer over FastAPI/uvicorn:

    ┌─────────────────────────────────────┐
    │   Server (registration + run)       │  ← add_handler / add_json_resource
    ├─────────────────────────────────────┤
    │   Resource binder / Translator      │  ← CRUD routes, JSON + status codes
    ├─────────────────────────────────────┤
    │   Route group (Basic Auth)          │  ← one per Server, built eagerly
    ├─────────────────────────────────────┤
    │   Config / TLS materialization      │  ← YAML, path or inline PEM
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"

from thruster.config import (  # noqa: E402
    CertificateSource,
    Config,
    HTTPAuth,
    Settings,
    load_config,
    new_http_auth,
)
from thruster.controller import Controller, JSONController  # noqa: E402
from thruster.exceptions import (  # noqa: E402
    ERR_NOT_FOUND,
    BindError,
    ConfigError,
    ErrorKind,
    HandlerError,
    NotFoundError,
    ResourceError,
    ServerStateError,
    ThrusterError,
    UnsupportedMethodError,
)
from thruster.routing import DELETE, GET, POST, PUT  # noqa: E402
from thruster.server import Server, ServerState, new_server, new_server_with_engine  # noqa: E402

__all__ = [
    "BindError",
    "CertificateSource",
    "Config",
    "ConfigError",
    "Controller",
    "DELETE",
    "ERR_NOT_FOUND",
    "ErrorKind",
    "GET",
    "HTTPAuth",
    "HandlerError",
    "JSONController",
    "NotFoundError",
    "POST",
    "PUT",
    "ResourceError",
    "Server",
    "ServerState",
    "ServerStateError",
    "Settings",
    "ThrusterError",
    "UnsupportedMethodError",
    "load_config",
    "new_http_auth",
    "new_server",
    "new_server_with_engine",
]
