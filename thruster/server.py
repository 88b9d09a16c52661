"""
thruster: Server
==================

What:  Composition root: owns the Config, the FastAPI engine, the auth-gated
       route group and the uvicorn listener.
How:   Two states. In SETUP, routes are registered through the route group.
       ``run()`` moves to RUNNING (terminal): TLS material is materialized,
       the address is bound and uvicorn serves until shutdown or failure.

Lifecycle:
    server = Server(load_config("thruster.yaml"))
    server.add_json_resource("/users", UsersController())
    server.add_handler("GET", "/ping", ping)
    server.run()                  # blocks; raises ConfigError / BindError

Registration is single-threaded and must finish before ``run()``; adding a
route afterwards raises ServerStateError.
"""

import enum
import logging
import socket
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI

from thruster import __version__
from thruster.auth import basic_auth
from thruster.config import Config, Settings, settings as default_settings
from thruster.controller import Controller, JSONController, require_actions, resource_routes
from thruster.exceptions import BindError, ServerStateError
from thruster.log import setup_logging
from thruster.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from thruster.responses import json_endpoint, raw_endpoint
from thruster.routing import Handler, RouteGroup, normalize_method
from thruster.tls import TLSMaterial, materialize

logger = logging.getLogger(__name__)


class ServerState(enum.Enum):
    SETUP = "setup"
    RUNNING = "running"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log listener startup and shutdown."""
    logger.info("thruster %s accepting requests", __version__)
    yield
    logger.info("thruster shutting down")


def create_engine(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the default engine.

    Docs and OpenAPI routes are disabled so every route on the engine is one
    registered through the (possibly auth-gated) route group.

    Middleware executes in reverse order of addition: RequestID runs first,
    then request logging.
    """
    app_settings = app_settings or default_settings
    app = FastAPI(
        title="thruster",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    if app_settings.access_log:
        app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware, header_name=app_settings.request_id_header)

    return app


class Server:
    """
    Routes CRUD resources and handlers onto a FastAPI engine and serves them.

    Args:
        config:   Immutable server configuration.
        engine:   FastAPI app to register routes on. Defaults to
                  ``create_engine()``; a caller-supplied engine gets no
                  middleware added.
        settings: Process settings (logging, request ids).
    """

    def __init__(
        self,
        config: Config,
        engine: Optional[FastAPI] = None,
        settings: Optional[Settings] = None,
    ):
        self.config = config
        self.settings = settings or default_settings
        self.engine = engine if engine is not None else create_engine(self.settings)
        self.group = RouteGroup(self.engine, basic_auth(config.http_auth))
        self.state = ServerState.SETUP
        self._listener: Optional[uvicorn.Server] = None
        self._stop_requested = False

    # ── Registration ──────────────────────────────────────────────────────

    def _ensure_setup(self) -> None:
        if self.state is not ServerState.SETUP:
            raise ServerStateError(
                message="routes cannot be added once the server is running",
                context={"address": self.config.address},
            )

    def add_handler(self, method: str, path: str, handler: Handler) -> None:
        """Register a raw handler: it receives the Request and builds the response."""
        self._ensure_setup()
        self.group.add(method, path, raw_endpoint(handler))

    def add_json_handler(self, method: str, path: str, handler: Handler) -> None:
        """Register a handler whose return value is sent as JSON (201 on POST)."""
        self._ensure_setup()
        method = normalize_method(method)
        self.group.add(method, path, json_endpoint(method, handler))

    def add_resource(self, path: str, controller: Controller) -> None:
        """Register the five CRUD routes of a raw controller."""
        self._ensure_setup()
        require_actions(controller)
        for route in resource_routes(path):
            self.group.add(
                route.method,
                route.path,
                raw_endpoint(getattr(controller, route.action)),
                name=f"{route.action} {path}",
            )

    def add_json_resource(self, path: str, controller: JSONController) -> None:
        """Register the five CRUD routes of a JSON controller."""
        self._ensure_setup()
        require_actions(controller)
        for route in resource_routes(path):
            self.group.add(
                route.method,
                route.path,
                json_endpoint(route.method, getattr(controller, route.action)),
                name=f"{route.action} {path}",
            )

    # ── Serving ───────────────────────────────────────────────────────────

    @property
    def started(self) -> bool:
        """True once the listener is accepting connections."""
        return self._listener is not None and self._listener.started

    def _bind(self) -> socket.socket:
        host = self.config.hostname
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, self.config.port))
        except OSError as e:
            sock.close()
            raise BindError(self.config.address, e.strerror or str(e)) from e
        sock.set_inheritable(True)
        return sock

    def _listener_config(self, material: Optional[TLSMaterial]) -> uvicorn.Config:
        kwargs = {
            "host": self.config.hostname,
            "port": self.config.port,
            "log_config": None,
            "access_log": False,
            "lifespan": "on",
        }
        if material is not None:
            kwargs.update({
                "ssl_certfile": material.certfile,
                "ssl_keyfile": material.keyfile,
            })
        return uvicorn.Config(self.engine, **kwargs)

    def run(self) -> None:
        """
        Serve until ``shutdown()`` is called or the listener fails.

        Raises:
            ServerStateError: run() was already called.
            ConfigError:      TLS material could not be materialized.
            BindError:        the address cannot be bound, or the listener
                              fails to start (e.g. unreadable certificate).
        """
        if self.state is not ServerState.SETUP:
            raise ServerStateError(message="server is already running")
        self.state = ServerState.RUNNING

        if self.settings.configure_logging:
            setup_logging(self.settings.log_level)

        material = materialize(self.config) if self.config.tls else None
        try:
            sock = self._bind()
            try:
                self._listener = uvicorn.Server(self._listener_config(material))
                # shutdown() may have run before the listener existed.
                if self._stop_requested:
                    self._listener.should_exit = True
                logger.info(
                    "Listening on %s://%s%s",
                    "https" if material else "http",
                    self.config.address,
                    " (basic auth)" if self.group.gated else "",
                )
                self._listener.run(sockets=[sock])
            except OSError as e:
                raise BindError(self.config.address, str(e)) from e
            finally:
                sock.close()
        finally:
            if material is not None:
                material.cleanup()

    def shutdown(self) -> None:
        """
        Ask the listener to stop; ``run()`` returns once it has.

        Safe to call before ``run()``: the listener then stops as soon as it
        has started.
        """
        self._stop_requested = True
        if self._listener is not None:
            self._listener.should_exit = True


def new_server(config: Config) -> Server:
    return Server(config)


def new_server_with_engine(config: Config, engine: FastAPI) -> Server:
    return Server(config, engine=engine)
