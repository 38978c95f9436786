"""Central error handling.

Every error escaping a route handler, middleware or asset mount is turned into
a JSON response of the shape ``{"message": "..."}`` with a status code taken
from the error itself (``status`` or ``status_code``) or 500.  Tracebacks are
logged, never sent to the client.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("apiserver.errors")

DEFAULT_STATUS = 500
DEFAULT_MESSAGE = "Internal Server Error"


class HTTPError(Exception):
    """Error carrying an HTTP status, for use in route handlers."""

    def __init__(self, status: int, message: str | None = None) -> None:
        super().__init__(message or "")
        self.status = status
        self.message = message


def _valid_status(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 100 <= value <= 599


def resolve_status(exc: BaseException) -> int:
    """Pick the error's declared status (``status`` first, then ``status_code``)."""
    for attr in ("status", "status_code"):
        value = getattr(exc, attr, None)
        if _valid_status(value):
            return value
    return DEFAULT_STATUS


def resolve_message(exc: BaseException) -> str:
    for attr in ("message", "detail"):
        value = getattr(exc, attr, None)
        if isinstance(value, str) and value:
            return value
    return str(exc) or DEFAULT_MESSAGE


def error_response(exc: BaseException) -> JSONResponse:
    return JSONResponse({"message": resolve_message(exc)}, status_code=resolve_status(exc))


class ErrorHandlerMiddleware:
    """Terminal handler for anything the routes did not handle themselves.

    Must sit inside the request logger so failed requests are still logged.
    It never re-raises: if the response already started, the error is only
    logged.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            logger.exception("Unhandled error on %s %s", scope.get("method"), scope.get("path"))
            if response_started:
                return
            response = error_response(exc)
            await response(scope, receive, send)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) and exc.detail else DEFAULT_MESSAGE
    return JSONResponse(
        {"message": message},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        {"message": "Validation failed", "errors": jsonable_errors(exc)},
        status_code=422,
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


def register_error_handlers(app: FastAPI) -> None:
    """Install the JSON error shape for framework errors and the catch-all middleware."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_middleware(ErrorHandlerMiddleware)
