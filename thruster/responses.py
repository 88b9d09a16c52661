"""
thruster: Response Translator
===============================

What:  Turns handler results into HTTP responses.
How:   Two conventions, chosen by the registration call:

    raw   handler(request) -> Response     no postprocessing
    JSON  handler(request) -> payload      payload serialized as the JSON body
          handler raises  -> error         {"error": "<message>"}

Status codes (JSON convention):
    success         201 for POST, 200 for GET / PUT / DELETE
    NOT_FOUND kind  404
    any other error 500

This module is the only place handler errors become status codes; both
``Server.add_json_handler`` and ``Server.add_json_resource`` go through
``json_endpoint``.
"""

import logging
from typing import Dict

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from thruster.exceptions import ErrorKind, error_kind
from thruster.middleware.request_id import request_id_var
from thruster.routing import POST, Endpoint, Handler, call_handler

logger = logging.getLogger(__name__)


def status_for_success(method: str) -> int:
    if method.upper() == POST:
        return status.HTTP_201_CREATED
    return status.HTTP_200_OK


def status_for_error(exc: BaseException) -> int:
    if error_kind(exc) is ErrorKind.NOT_FOUND:
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(exc: BaseException) -> Dict[str, str]:
    return {"error": str(exc)}


def json_endpoint(method: str, handler: Handler) -> Endpoint:
    """
    Wrap a JSON handler into an engine endpoint.

    Errors raised by the handler, or while encoding its payload, never escape:
    they are logged and answered with ``{"error": str(exc)}`` and the status
    from ``status_for_error``.
    """
    ok_status = status_for_success(method)

    async def endpoint(request: Request) -> JSONResponse:
        try:
            payload = await call_handler(handler, request)
            return JSONResponse(status_code=ok_status, content=jsonable_encoder(payload))
        except Exception as exc:
            code = status_for_error(exc)
            rid = request_id_var.get("")
            if code >= 500:
                logger.error(
                    "[%s] %s %s failed: %s",
                    rid, request.method, request.url.path, exc,
                    exc_info=True,
                )
            else:
                logger.info("[%s] %s %s: %s", rid, request.method, request.url.path, exc)
            return JSONResponse(status_code=code, content=error_body(exc))

    endpoint.__name__ = getattr(handler, "__name__", "json_endpoint")
    return endpoint


def raw_endpoint(handler: Handler) -> Endpoint:
    """Wrap a raw handler; whatever it returns is the response."""

    async def endpoint(request: Request):
        return await call_handler(handler, request)

    endpoint.__name__ = getattr(handler, "__name__", "raw_endpoint")
    return endpoint
