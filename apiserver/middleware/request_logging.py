"""Request logging middleware for API routes.

Emits one line per finished request whose path starts with the API prefix:

    GET /api/items 200 in 12ms :: {"items":[]}

The JSON body is observed by wrapping the downstream ``send`` callable, so the
response bytes reach the client untouched.  Lines longer than the configured
limit are cut and end with a single ellipsis character.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("apiserver")

ELLIPSIS = "…"


@dataclass
class RequestLogRecord:
    """Transient per-request data, rendered once the response finishes."""

    method: str
    path: str
    status_code: int = 0
    duration_ms: int = 0
    body: Any = None

    def render(self, limit: int = 80) -> str:
        line = f"{self.method} {self.path} {self.status_code} in {self.duration_ms}ms"
        if self.body is not None:
            line += f" :: {json.dumps(self.body, separators=(',', ':'), ensure_ascii=False)}"
        return truncate_line(line, limit)


def truncate_line(line: str, limit: int = 80) -> str:
    """Cut *line* to ``limit - 1`` characters plus an ellipsis when it is too long.

    Length is counted in characters (code points), not bytes.
    """
    if len(line) > limit:
        return line[: limit - 1] + ELLIPSIS
    return line


def _is_json(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


class RequestLoggingMiddleware:
    """Log method, path, status, latency and JSON payload of API requests.

    Usage:
        app.add_middleware(RequestLoggingMiddleware, api_prefix="/api")
    """

    def __init__(self, app: ASGIApp, api_prefix: str = "/api", line_limit: int = 80) -> None:
        self.app = app
        self.api_prefix = api_prefix
        self.line_limit = line_limit

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        record = RequestLogRecord(method=scope["method"], path=scope["path"])
        chunks: list[bytes] = []
        capture = False

        async def send_wrapper(message: Message) -> None:
            nonlocal capture
            if message["type"] == "http.response.start":
                record.status_code = message["status"]
                capture = _is_json(Headers(raw=message.get("headers", [])).get("content-type", ""))
            elif message["type"] == "http.response.body" and capture:
                chunks.append(message.get("body", b""))

            await send(message)

            if message["type"] == "http.response.body" and not message.get("more_body", False):
                record.duration_ms = int((time.perf_counter() - start) * 1000)
                if capture:
                    record.body = self._decode(b"".join(chunks))
                self._emit(record)

        await self.app(scope, receive, send_wrapper)

    def _decode(self, raw: bytes) -> Any:
        if not raw:
            return None
        try:
            return json.loads(raw)
        except (ValueError, RecursionError):
            return None

    def _emit(self, record: RequestLogRecord) -> None:
        if not record.path.startswith(self.api_prefix):
            return
        try:
            line = record.render(self.line_limit)
        except (TypeError, ValueError, RecursionError):
            record.body = None
            line = record.render(self.line_limit)
        logger.info(line)
