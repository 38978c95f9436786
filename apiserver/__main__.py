"""Process entry-point: ``python -m apiserver``.

Configuration comes from the environment and ``.env``; there are no flags.
"""

from __future__ import annotations

import asyncio
import logging

from apiserver.app import create_app
from apiserver.config import Settings, describe_environment, settings
from apiserver.startup import idle_forever, serve

logger = logging.getLogger("apiserver")


async def run(config: Settings, idle=idle_forever) -> None:
    """Build the app and start serving.  Startup failures are logged, not raised."""
    try:
        ctx = await create_app(config)
    except Exception:
        logger.exception("❌ Failed to start server")
        await idle()
        return
    await serve(ctx, idle=idle)


def main() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Loaded environment variables: %s", describe_environment(settings))
    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
