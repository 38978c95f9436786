"""Startup sequencing: bind the listening socket, with one fallback port.

States:

    STARTING(port) --bind ok--------------------------> LISTENING(port)
    STARTING(port) --address in use--> STARTING(3000) --bind ok--> LISTENING(3000)
    any other failure ------------------------------------------> FAILED

There is exactly one fallback attempt and no backoff.  A failed startup is
logged and the process is kept alive, idle, so an operator can inspect it.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

import uvicorn

from apiserver.app import AppContext
from apiserver.config import FALLBACK_PORT

logger = logging.getLogger("apiserver")


class BindFailure(str, Enum):
    ADDRESS_IN_USE = "address_in_use"
    PERMISSION_DENIED = "permission_denied"
    OTHER = "other"


class StartupState(str, Enum):
    STARTING = "starting"
    LISTENING = "listening"
    FAILED = "failed"


class BindError(Exception):
    """Binding a listening socket failed for *reason*."""

    def __init__(self, port: int, reason: BindFailure, cause: OSError) -> None:
        super().__init__(f"Cannot listen on port {port}: {cause.strerror or cause}")
        self.port = port
        self.reason = reason
        self.cause = cause


def classify_bind_error(exc: OSError) -> BindFailure:
    if exc.errno == errno.EADDRINUSE:
        return BindFailure.ADDRESS_IN_USE
    if exc.errno in (errno.EACCES, errno.EPERM):
        return BindFailure.PERMISSION_DENIED
    return BindFailure.OTHER


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind and listen on ``host:port``; raise :class:`BindError` on failure."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(2048)
    except OSError as exc:
        sock.close()
        raise BindError(port, classify_bind_error(exc), exc) from exc
    sock.set_inheritable(True)
    return sock


@dataclass
class StartupOutcome:
    state: StartupState
    port: int | None = None
    used_fallback: bool = False
    failure: BindFailure | None = None
    sock: socket.socket | None = None


class StartupSequencer:
    """Try the primary port, then the fallback port once on address-in-use."""

    def __init__(
        self,
        host: str,
        port: int,
        fallback_port: int = FALLBACK_PORT,
        binder: Callable[[str, int], socket.socket] = bind_socket,
    ) -> None:
        self.host = host
        self.port = port
        self.fallback_port = fallback_port
        self.binder = binder
        self.state = StartupState.STARTING

    def bind(self) -> StartupOutcome:
        try:
            sock = self.binder(self.host, self.port)
        except BindError as exc:
            if exc.reason is not BindFailure.ADDRESS_IN_USE:
                return self._fail(exc)
            logger.warning(
                "⚠️ Port %s is in use. Trying fallback port %s...", self.port, self.fallback_port
            )
        else:
            self.state = StartupState.LISTENING
            logger.info("✅ Server running at http://localhost:%s", self.port)
            return StartupOutcome(self.state, port=self.port, sock=sock)

        try:
            sock = self.binder(self.host, self.fallback_port)
        except BindError as exc:
            return self._fail(exc, used_fallback=True)
        self.state = StartupState.LISTENING
        logger.info("✅ Server running on fallback port http://localhost:%s", self.fallback_port)
        return StartupOutcome(self.state, port=self.fallback_port, used_fallback=True, sock=sock)

    def _fail(self, exc: BindError, used_fallback: bool = False) -> StartupOutcome:
        self.state = StartupState.FAILED
        logger.error("❌ Server error: %s (%s)", exc, exc.reason.value)
        return StartupOutcome(self.state, used_fallback=used_fallback, failure=exc.reason)


async def idle_forever() -> None:
    """Keep the process alive without serving anything until interrupted."""
    await asyncio.Event().wait()


async def serve(
    ctx: AppContext,
    idle: Callable[[], Awaitable[None]] = idle_forever,
) -> StartupOutcome:
    """Bind per the startup sequence and hand the socket to uvicorn."""
    settings = ctx.settings
    sequencer = StartupSequencer(settings.host, settings.port, settings.fallback_port)
    outcome = sequencer.bind()
    if outcome.state is not StartupState.LISTENING:
        await idle()
        return outcome

    config = uvicorn.Config(
        ctx.app,
        log_config=None,
        log_level=settings.log_level.lower(),
        access_log=False,
    )
    server = uvicorn.Server(config)
    try:
        await server.serve(sockets=[outcome.sock])
    finally:
        outcome.sock.close()
    return outcome
