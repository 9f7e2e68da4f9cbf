"""FastAPI application factory"""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from twitch_eye.core.config import get_settings
from twitch_eye.core.dependencies import close_twitch_api, get_session_codec
from twitch_eye.core.errors import (
    AuthFailure,
    ConfigurationError,
    TwitchEyeError,
    UpstreamAPIError,
)
from twitch_eye.core.logging import LogBuffer, for_user, setup_logging
from twitch_eye.routers import auth_router, channels_router, moderation_router
from twitch_eye.services import SESSION_COOKIE

logger = logging.getLogger(__name__)

VERSION = "1.0.0"

_start_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle startup and shutdown"""
    global _start_time
    _start_time = time.time()

    settings = get_settings()
    logger.info("Starting twitch-eye API server")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"App base URL: {settings.app_base_url or '(not set)'}")

    yield

    logger.info("Shutting down twitch-eye API server")
    try:
        await close_twitch_api()
    except Exception as e:
        logger.exception(f"Error during shutdown: {e}")


def _validation_message(exc: RequestValidationError) -> str:
    """Most specific message from a request validation failure."""
    errors = exc.errors()
    if not errors:
        return "Invalid request."
    first = errors[0]
    ctx_error = (first.get("ctx") or {}).get("error")
    if ctx_error is not None:
        return str(ctx_error)
    loc = list(first.get("loc", ()))
    if loc and loc[0] in ("body", "query", "header", "cookie"):
        loc = loc[1:]
    field = ".".join(str(part) for part in loc)
    if first.get("type") == "missing" and field:
        return f"Missing required field: {field}."
    return f"{field}: {first.get('msg')}" if field else str(first.get("msg"))


def _log_extra(request: Request) -> dict[str, str]:
    """Attribute a log line to the session user, when the request has one."""
    token = request.cookies.get(SESSION_COOKIE)
    session = get_session_codec().verify(token) if token else None
    return for_user(session.user_id) if session else {}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthFailure)
    async def auth_failure_handler(request: Request, exc: AuthFailure) -> JSONResponse:
        response = JSONResponse({"error": exc.message}, status_code=exc.status_code)
        if exc.clear_cookie:
            get_session_codec().clear_cookie(response)
        return response

    @app.exception_handler(UpstreamAPIError)
    async def upstream_error_handler(request: Request, exc: UpstreamAPIError) -> JSONResponse:
        logger.error(
            f"{request.method} {request.url.path} failed upstream: {exc}",
            extra=_log_extra(request),
        )
        return JSONResponse(
            {"error": exc.message, "status": exc.status_code}, status_code=exc.status_code
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        logger.error(f"Configuration error on {request.url.path}: {exc.message}")
        return JSONResponse({"error": exc.message}, status_code=500)

    @app.exception_handler(TwitchEyeError)
    async def app_error_handler(request: Request, exc: TwitchEyeError) -> JSONResponse:
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        message = _validation_message(exc)
        logger.warning(
            f"Rejected {request.method} {request.url.path}: {message}",
            extra=_log_extra(request),
        )
        return JSONResponse({"error": message}, status_code=400)


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Raises:
        ConfigurationError: when client id/secret or the session secret is missing.
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        missing = ", ".join(str(err["loc"][0]).upper() for err in e.errors())
        raise ConfigurationError(f"Missing or invalid configuration: {missing}") from e

    # Fail at startup rather than on the first login
    get_session_codec()

    log_buffer = LogBuffer(capacity=settings.log_buffer_size)
    setup_logging(settings, log_buffer)

    app = FastAPI(
        title="twitch-eye API",
        description="Followed-streams dashboard and moderation gateway for Twitch",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.log_buffer = log_buffer

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth_router.router)
    app.include_router(channels_router.router)
    app.include_router(moderation_router.router)

    # Liveness check, never touches Twitch
    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "version": VERSION,
            "uptime_seconds": int(time.time() - _start_time) if _start_time else 0,
        }

    logger.info("FastAPI application configured")

    return app
