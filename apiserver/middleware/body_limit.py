"""Request body size limit middleware.

The limit applies to the bytes actually received, so chunked uploads without
a Content-Length are cut off as soon as they go over.
"""

from __future__ import annotations

from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send


class RequestEntityTooLarge(StarletteHTTPException):
    """Raised from ``receive`` once the body grows past the limit."""

    def __init__(self) -> None:
        super().__init__(status_code=413, detail="Request entity too large")


class BodySizeLimitMiddleware:
    """Reject request bodies larger than *max_bytes* with a 413.

    Usage:
        app.add_middleware(BodySizeLimitMiddleware, max_bytes=50 * 1024 * 1024)
    """

    def __init__(self, app: ASGIApp, max_bytes: int = 50 * 1024 * 1024) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared is not None:
            try:
                length = int(declared)
            except ValueError:
                response = JSONResponse({"message": "Invalid Content-Length"}, status_code=400)
                await response(scope, receive, send)
                return
            if length > self.max_bytes:
                await self._reject(scope, receive, send)
                return

        received = 0
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise RequestEntityTooLarge()
            return message

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, send_wrapper)
        except RequestEntityTooLarge:
            if not response_started:
                await self._reject(scope, receive, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = JSONResponse({"message": "Request entity too large"}, status_code=413)
        await response(scope, receive, send)
