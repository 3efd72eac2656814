"""FastAPI application factory.

``create_app`` wires the runtime, the WebSocket channels, the request API
routes and the error envelope.  The lifespan seeds the product catalog,
runs the expiry sweeper and closes the stores on shutdown.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kiosk_handoff import __version__
from kiosk_handoff.config import HandoffSettings
from kiosk_handoff.errors import (
    ConfigurationError,
    HandoffError,
    InvalidPayloadError,
    InvalidStatusTransition,
    NotFoundError,
    StoreUnavailableError,
    TokenNotFoundError,
)
from kiosk_handoff.registry.connections import Channel
from kiosk_handoff.runtime import HandoffRuntime, build_runtime
from kiosk_handoff.server.routes import router as api_router
from kiosk_handoff.server.sockets import WebSocketChannel
from kiosk_handoff.server.sockets import router as socket_router

logger = logging.getLogger(__name__)


def status_for(exc: HandoffError) -> int:
    """Return the HTTP status code for a domain error."""
    if isinstance(exc, (InvalidPayloadError, TokenNotFoundError)):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, InvalidStatusTransition):
        return 409
    if isinstance(exc, (StoreUnavailableError, ConfigurationError)):
        return 503
    return 500


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def handoff_error_handler(request: Request, exc: HandoffError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error(status_code, exc.message)


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error(400, "Invalid request body")


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error(500, "Internal server error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    runtime: HandoffRuntime = app.state.runtime
    seeded = await runtime.seed_catalog()
    if seeded:
        logger.info("Seeded %d products from %s", seeded, runtime.settings.catalog_path)
    runtime.sweeper.start()
    try:
        yield
    finally:
        await runtime.close()


def create_app(
    settings: HandoffSettings | None = None,
    runtime: HandoffRuntime | None = None,
) -> FastAPI:
    """Create the handoff server application.

    Parameters
    ----------
    settings:
        Configuration; loaded from the environment when neither it nor
        ``runtime`` is given.
    runtime:
        A pre-built runtime (tests).  Its coordinator's channels are
        replaced with this app's WebSocket channels.
    """
    channels = {
        Channel.MOBILE: WebSocketChannel(Channel.MOBILE),
        Channel.KIOSK: WebSocketChannel(Channel.KIOSK),
    }
    if runtime is None:
        runtime = build_runtime(
            settings, mobile=channels[Channel.MOBILE], kiosk=channels[Channel.KIOSK]
        )
    else:
        for channel, transport in channels.items():
            runtime.coordinator.attach_channel(channel, transport)

    app = FastAPI(title="Kiosk Handoff", version=__version__, lifespan=lifespan)
    app.state.runtime = runtime
    app.state.channels = channels

    app.add_middleware(
        CORSMiddleware,
        allow_origins=runtime.settings.cors_origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
    )

    app.add_exception_handler(HandoffError, handoff_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.include_router(api_router)
    app.include_router(socket_router)
    return app


__all__ = ["create_app", "lifespan", "status_for"]
