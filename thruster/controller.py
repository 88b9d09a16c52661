"""
thruster: Resource Controllers
================================

A resource is five CRUD actions mapped onto conventional routes:

    Action   Method  Path
    index    GET     path
    show     GET     path/:id
    create   POST    path
    update   PUT     path/:id
    destroy  DELETE  path/:id

Two capability sets exist, picked by the registration call rather than by
inspecting the controller:

    JSONController  actions return a payload (or raise)  -> add_json_resource
    Controller      actions build the Response           -> add_resource

The item id is available to show/update/destroy as
``request.path_params["id"]``.
"""

from typing import Any, List, NamedTuple, Protocol

from starlette.requests import Request
from starlette.responses import Response

from thruster.exceptions import ResourceError
from thruster.routing import DELETE, GET, POST, PUT, member_path

CRUD_ACTIONS = ("index", "show", "create", "update", "destroy")


class JSONController(Protocol):
    def index(self, request: Request) -> Any: ...

    def show(self, request: Request) -> Any: ...

    def create(self, request: Request) -> Any: ...

    def update(self, request: Request) -> Any: ...

    def destroy(self, request: Request) -> Any: ...


class Controller(Protocol):
    def index(self, request: Request) -> Response: ...

    def show(self, request: Request) -> Response: ...

    def create(self, request: Request) -> Response: ...

    def update(self, request: Request) -> Response: ...

    def destroy(self, request: Request) -> Response: ...


class ResourceRoute(NamedTuple):
    action: str
    method: str
    path: str


def resource_routes(path: str) -> List[ResourceRoute]:
    """The five routes of the resource mounted at ``path``."""
    item = member_path(path)
    return [
        ResourceRoute("index", GET, path),
        ResourceRoute("show", GET, item),
        ResourceRoute("create", POST, path),
        ResourceRoute("update", PUT, item),
        ResourceRoute("destroy", DELETE, item),
    ]


def require_actions(controller: Any) -> None:
    """Raise ResourceError unless ``controller`` has all five actions as callables."""
    missing = tuple(
        action for action in CRUD_ACTIONS
        if not callable(getattr(controller, action, None))
    )
    if missing:
        raise ResourceError(controller, missing)
