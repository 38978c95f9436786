"""Application factory.

Builds the FastAPI instance in the order the server needs it: request logger,
business routes, central error handler, then assets.  Everything is passed
explicitly; nothing here touches module-level app state.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass

from fastapi import FastAPI

from apiserver import __version__
from apiserver.assets import serve_static, setup_dev_assets
from apiserver.config import Settings
from apiserver.errors import register_error_handlers
from apiserver.middleware.body_limit import BodySizeLimitMiddleware
from apiserver.middleware.request_logging import RequestLoggingMiddleware
from apiserver.routes import RouteRegistrar, load_registrar

logger = logging.getLogger("apiserver.app")


@dataclass
class AppContext:
    """The built application together with the settings it was built from."""

    app: FastAPI
    settings: Settings


async def create_app(settings: Settings, registrar: RouteRegistrar | None = None) -> AppContext:
    """Build the application.

    Exceptions from the registrar or the asset setup propagate to the caller,
    which treats them as a failed startup.
    """
    app = FastAPI(
        title="API Server",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    registrar = registrar or load_registrar(settings.route_registrar)
    result = registrar(app)
    if inspect.isawaitable(result):
        await result

    # add_middleware wraps the current stack, so the last one added runs first:
    # logger -> body limit -> error handler -> routes.
    register_error_handlers(app)
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)
    app.add_middleware(
        RequestLoggingMiddleware,
        api_prefix=settings.api_prefix,
        line_limit=settings.log_line_limit,
    )

    if settings.is_development:
        setup_dev_assets(app, settings.dev_asset_url)
    else:
        serve_static(app, settings.static_dir, api_prefix=settings.api_prefix)

    return AppContext(app=app, settings=settings)
