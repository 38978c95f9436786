"""Bare smoke-test server – answers ``GET /`` on port 5000.

Used to check that the machine can serve HTTP at all, without the
request logger, error handler or any business routes.

Run with:
    python -m apiserver.dev.hello_server
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

logger = logging.getLogger("apiserver.dev.hello_server")

HELLO_PORT = 5000

app = FastAPI(title="Test server", docs_url=None, redoc_url=None, openapi_url=None)


@app.get("/", response_class=PlainTextResponse)
async def hello():
    return "🚀 Hello from test server!"


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level="INFO",
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("✅ Test server running at http://localhost:%s", HELLO_PORT)
    uvicorn.run(app, host="0.0.0.0", port=HELLO_PORT)
