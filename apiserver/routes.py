"""Route registrar contract and the default registrar.

A registrar receives the application and attaches business endpoints to it.
It may be a plain function or a coroutine function; its return value is
ignored.  Business routes live outside this package, this module only ships
a health endpoint so the bootstrap can run on its own.
"""

from __future__ import annotations

import importlib
from typing import Awaitable, Callable, Union

from fastapi import APIRouter, FastAPI

from apiserver import __version__

RouteRegistrar = Callable[[FastAPI], Union[Awaitable[None], None]]

router = APIRouter(prefix="/api")


@router.get("/health")
async def health():
    return {"status": "ok", "version": __version__}


def register_routes(app: FastAPI) -> None:
    app.include_router(router)


def load_registrar(path: str) -> RouteRegistrar:
    """Resolve a ``"package.module:function"`` reference to a registrar."""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Registrar must look like 'module:function', got {path!r}")
    module = importlib.import_module(module_name)
    return getattr(module, attr)
