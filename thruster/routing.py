"""
thruster: Route Registrar
===========================

What:  Binds method + path + handler onto the FastAPI engine through a
       ``RouteGroup`` that carries the group's dependencies (the auth gate).
How:   Methods are uppercased and checked against the four supported verbs;
       gin-style ``:name`` path segments become FastAPI ``{name}`` placeholders.
       Every handler receives the Starlette ``Request``. Sync handlers run in
       the threadpool, async handlers are awaited.
"""

import inspect
import logging
import re
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Union

from fastapi import FastAPI, Request
from starlette.concurrency import run_in_threadpool

from thruster.exceptions import UnsupportedMethodError

logger = logging.getLogger(__name__)

GET = "GET"
POST = "POST"
PUT = "PUT"
DELETE = "DELETE"

SUPPORTED_METHODS = (GET, POST, PUT, DELETE)

Handler = Callable[[Request], Union[Any, Awaitable[Any]]]
Endpoint = Callable[[Request], Awaitable[Any]]

_PARAM = re.compile(r"(?<=/):([A-Za-z_][A-Za-z0-9_]*)")


def normalize_method(method: str) -> str:
    """Uppercase ``method``; raise UnsupportedMethodError unless it is GET/POST/PUT/DELETE."""
    upper = method.upper()
    if upper not in SUPPORTED_METHODS:
        raise UnsupportedMethodError(method)
    return upper


def to_route_path(path: str) -> str:
    """Convert ``/users/:id`` into ``/users/{id}``; ``{id}`` paths pass through."""
    if not path.startswith("/"):
        path = "/" + path
    return _PARAM.sub(r"{\1}", path)


def member_path(path: str) -> str:
    """Path of a single item of the collection at ``path``."""
    return path.rstrip("/") + "/:id"


async def call_handler(handler: Handler, request: Request) -> Any:
    """Invoke ``handler`` with the request, off the event loop when it is synchronous."""
    if inspect.iscoroutinefunction(handler):
        return await handler(request)
    result = await run_in_threadpool(handler, request)
    if inspect.isawaitable(result):
        result = await result
    return result


class RouteGroup:
    """
    A set of routes on one engine sharing the same dependencies.

    Built once per Server; every registration goes through it so the auth gate
    applies to every route regardless of registration order.
    """

    def __init__(self, engine: FastAPI, dependencies: Optional[Sequence] = None):
        self.engine = engine
        self.dependencies: List = list(dependencies or [])

    @property
    def gated(self) -> bool:
        return bool(self.dependencies)

    def add(
        self,
        method: str,
        path: str,
        endpoint: Endpoint,
        name: Optional[str] = None,
    ) -> str:
        """Register ``endpoint`` for ``method`` on ``path``; returns the normalized route path."""
        method = normalize_method(method)
        route_path = to_route_path(path)
        self.engine.add_api_route(
            route_path,
            endpoint,
            methods=[method],
            dependencies=self.dependencies,
            name=name or f"{method.lower()} {route_path}",
        )
        logger.debug(
            "Registered %s %s%s", method, route_path, " (auth)" if self.gated else "",
        )
        return route_path
