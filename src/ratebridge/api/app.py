"""FastAPI application factory and JSON error envelopes."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ratebridge.api.deps import AppState, build_app_state
from ratebridge.api.routes import router
from ratebridge.api.schemas import ErrorResponse, RootResponse
from ratebridge.core.config import RateBridgeConfig, load_config
from ratebridge.core.exceptions import (
    AllProvidersFailedError,
    ComposerError,
    RateBridgeError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_MAP: dict[type[RateBridgeError], int] = {
    ValidationError: 400,
    AllProvidersFailedError: 503,
    ComposerError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build or adopt the AppState, run the sweeper, release the client."""
    injected: AppState | None = app.state._pending_state
    if injected is not None:
        state = injected
    else:
        state = build_app_state(app.state._pending_config or load_config())
    app.state.app_state = state
    state.sweeper.start()

    yield

    await state.sweeper.stop()
    if injected is None and state.client is not None:
        await state.client.aclose()


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content=ErrorResponse(message=message).model_dump())


def create_app(
    config: RateBridgeConfig | None = None,
    state: AppState | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``state`` replaces the wiring done at startup (tests inject fake
    providers this way); it is not closed on shutdown.
    """
    import ratebridge

    config = state.config if state is not None else config
    origins = config.api.allowed_origins if config else RateBridgeConfig().api.allowed_origins
    service_name = config.api.service_name if config else RateBridgeConfig().api.service_name

    app = FastAPI(
        title="ratebridge API",
        description="Fiat and crypto conversion over fallback provider chains",
        version=ratebridge.__version__,
        lifespan=lifespan,
    )

    # Stash config/state so lifespan can retrieve them
    app.state._pending_config = config
    app.state._pending_state = state

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.get("/", response_model=RootResponse)
    async def root():
        return RootResponse(status="ok", service=service_name)

    app.include_router(router, prefix="/api")

    # Exception handlers

    @app.exception_handler(RateBridgeError)
    async def ratebridge_exception_handler(request: Request, exc: RateBridgeError):
        status = next(
            (code for cls, code in _STATUS_MAP.items() if isinstance(exc, cls)),
            500,
        )
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return _error(status, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][1:])}: {err['msg']}" for err in exc.errors()
        )
        return _error(400, details or "Invalid request")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal Server Error")

    return app
