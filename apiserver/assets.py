"""Front-end asset wiring.

Production serves the built single-page app from ``static_dir`` with an
``index.html`` fallback for client-side routes.  Development leaves assets to
the external dev pipeline.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

logger = logging.getLogger("apiserver.assets")


class AssetDirectoryError(FileNotFoundError):
    """The production build directory does not exist."""


class SPAStaticFiles(StaticFiles):
    """Static files that answer unknown non-API paths with ``index.html``."""

    def __init__(self, *, directory: str | Path, api_prefix: str = "/api") -> None:
        super().__init__(directory=directory, html=True)
        self.api_prefix = api_prefix

    async def get_response(self, path: str, scope: Scope):
        try:
            return await super().get_response(path, scope)
        except StarletteHTTPException as exc:
            if exc.status_code != 404 or scope["path"].startswith(self.api_prefix):
                raise
            return await super().get_response("index.html", scope)


def serve_static(app: FastAPI, directory: str | Path, api_prefix: str = "/api") -> None:
    """Mount the built client at ``/``.  Must run after all routes are registered."""
    dist = Path(directory).resolve()
    if not dist.is_dir():
        raise AssetDirectoryError(
            f"Could not find the build directory: {dist}, make sure to build the client first"
        )
    app.mount("/", SPAStaticFiles(directory=dist, api_prefix=api_prefix), name="static")
    logger.info("Serving static assets from %s", dist)


def setup_dev_assets(app: FastAPI, dev_asset_url: str) -> None:
    """Development hook: the dev pipeline serves assets itself, nothing is mounted."""
    app.state.dev_asset_url = dev_asset_url
    logger.info("Development mode: front-end assets served by %s", dev_asset_url)
