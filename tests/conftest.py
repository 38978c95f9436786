"""Shared pytest fixtures – an app built in development mode with test routes."""

from __future__ import annotations

import logging

import pytest
import pytest_asyncio
from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse, StreamingResponse
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from apiserver.app import create_app
from apiserver.config import Settings
from apiserver.errors import HTTPError


class TeapotError(Exception):
    status_code = 418


class WeirdStatusError(Exception):
    status = 1000
    message = "odd"


class EchoBody(BaseModel):
    name: str


def register_test_routes(app: FastAPI) -> None:
    @app.get("/api/items")
    async def items():
        return {"items": [1, 2, 3]}

    @app.get("/api/long")
    async def long_payload():
        return {"data": "x" * 200}

    @app.get("/api/text", response_class=PlainTextResponse)
    async def text():
        return "not json"

    @app.get("/api/missing")
    async def missing():
        raise HTTPError(404, "Not found")

    @app.get("/api/boom")
    async def boom():
        raise RuntimeError()

    @app.get("/api/teapot")
    async def teapot():
        raise TeapotError()

    @app.get("/api/weird")
    async def weird():
        raise WeirdStatusError()

    @app.post("/api/echo")
    async def echo(body: EchoBody):
        return {"name": body.name}

    @app.get("/api/deep")
    async def deep():
        return Response(content=b"[" * 100000 + b"]" * 100000, media_type="application/json")

    @app.get("/api/stream")
    async def stream():
        async def chunks():
            yield b'{"parts":'
            yield b'[1,2]}'

        return StreamingResponse(chunks(), media_type="application/json")

    @app.post("/api/raw")
    async def raw(request: Request):
        body = await request.body()
        return {"len": len(body)}

    @app.get("/plain")
    async def plain():
        return {"ok": True}


def make_settings(**overrides) -> Settings:
    values = {"app_env": "development", "_env_file": None}
    values.update(overrides)
    return Settings(**values)


@pytest_asyncio.fixture
async def app():
    ctx = await create_app(make_settings(), registrar=register_test_routes)
    return ctx.app


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def request_lines(caplog):
    """Return a callable listing the lines emitted so far by the request logger."""
    caplog.set_level(logging.INFO, logger="apiserver")

    def lines() -> list[str]:
        return [
            r.getMessage()
            for r in caplog.records
            if r.name == "apiserver" and r.levelno == logging.INFO
        ]

    return lines


@pytest.fixture
def build_app():
    """Async factory building an AppContext with the test routes and *overrides*."""

    async def build(**overrides):
        return await create_app(make_settings(**overrides), registrar=register_test_routes)

    return build
