"""
Safespace Backend: Main Application

FastAPI service for the chat-request queue, specialist directory and profiles.
"""
import traceback
from contextlib import asynccontextmanager

import sentry_sdk
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from safespace import __version__
from safespace.api import profile_router, requests_router, specialists_router
from safespace.config import settings
from safespace.database import close_db, init_db
from safespace.exceptions import (
    AlreadyClaimedError,
    AuthenticationError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    PersistenceError,
    SafespaceError,
    StorageError,
    ValidationError,
)
from safespace.logging_config import get_logger, setup_logging
from safespace.schemas.schemas import HealthResponse
from safespace.services.events import RequestEventBroker
from safespace.services.object_store import create_object_store

# --- Logging ---
setup_logging(log_level=settings.log_level, debug=settings.debug, log_file=settings.log_file)
logger = get_logger(__name__)

# --- Sentry ---
if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        traces_sample_rate=0.1,
        environment="development" if settings.debug else "production",
    )
    logger.info("sentry_initialized")

# Checked in order; first match wins
ERROR_STATUS_CODES: list[tuple[type[SafespaceError], int]] = [
    (AuthenticationError, 401),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (AlreadyClaimedError, 409),
    (InvalidTransitionError, 409),
    (ValidationError, 422),
    (StorageError, 502),
    (PersistenceError, 503),
]


def status_code_for(exc: SafespaceError) -> int:
    for exc_type, code in ERROR_STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return 400


# --- Lifespan: create tables and open the storage client on startup ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("application_starting", debug=settings.debug)
    await init_db()
    app.state.object_store = create_object_store()
    logger.info("application_started")
    yield
    logger.info("application_shutting_down")
    await app.state.object_store.aclose()
    await close_db()
    logger.info("application_shutdown_complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Safespace API",
        description="Chat requests between users and specialists",
        version=__version__,
        lifespan=lifespan,
    )

    # Per-application collaborators
    app.state.events = RequestEventBroker(queue_size=settings.event_queue_size)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next):
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(method=request.method, path=request.url.path)
        return await call_next(request)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle all unhandled exceptions with full traceback."""
        tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        logger.error(
            "unhandled_exception",
            traceback=tb_str,
            path=str(request.url.path),
            method=request.method,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": type(exc).__name__},
        )

    @app.exception_handler(SafespaceError)
    async def safespace_exception_handler(request: Request, exc: SafespaceError):
        """Map domain errors to HTTP responses; the message is shown to the user as-is."""
        status_code = status_code_for(exc)
        log = logger.error if status_code >= 500 else logger.warning
        log(
            "safespace_error",
            error_type=type(exc).__name__,
            message=exc.message,
            details=exc.details,
            path=str(request.url.path),
        )
        headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
        return JSONResponse(
            status_code=status_code,
            content={
                "detail": exc.message,
                "error_type": type(exc).__name__,
                "details": exc.details,
            },
            headers=headers,
        )

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health():
        return HealthResponse(status="ok", version=__version__)

    app.include_router(requests_router)
    app.include_router(specialists_router)
    app.include_router(profile_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "safespace.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
