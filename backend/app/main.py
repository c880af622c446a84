"""
Tubely API - FastAPI Application Entry Point.

Wires the media ingestion service together:

- Lifespan: logging setup, MongoDB connect/disconnect, local assets directory
- CORS and request timing middleware
- v1 routers under /api/v1
- Exception handlers turning pipeline errors into ``{"error": "<message>"}``
- Static file mount at /assets when delivering locally

Usage:
    uvicorn app.main:app --host 0.0.0.0 --port 8091 --reload

    python -m app.main
"""

import logging
import time

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import uvicorn

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api.v1 import api_router
from app.config import DeliveryMode, get_settings
from app.core.auth import AuthenticationError
from app.core.database import close_db, init_db
from app.services.delivery_service import LOCAL_ASSETS_PATH
from app.services.upload_service import (
    AuthError,
    PipelineError,
    UploadServiceError,
    ValidationError,
)
from app.utils.logger import setup_logging


# Configure module logger
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Status codes >= this are logged at WARNING by the timing middleware
HTTP_ERROR_THRESHOLD = 400

ERROR_STATUS_CODES: dict[type[UploadServiceError], int] = {
    ValidationError: 400,
    AuthError: 401,
    PipelineError: 500,
}


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Startup: configure logging, connect MongoDB, prepare the local assets dir.
    Shutdown: close MongoDB.
    """
    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    logger.info(
        "Tubely API starting: env=%s delivery=%s host=%s:%d",
        settings.app_env,
        settings.delivery_mode.value,
        settings.host,
        settings.port,
    )

    if settings.delivery_mode == DeliveryMode.LOCAL:
        Path(settings.assets_root).mkdir(parents=True, exist_ok=True)
        logger.info("Serving local assets from %s", settings.assets_root)

    try:
        await init_db(settings)
    except RuntimeError:
        logger.exception("Failed to initialize MongoDB")
        raise

    logger.info("Tubely API ready to accept requests")

    yield

    logger.info("Tubely API shutting down")
    await close_db()
    logger.info("Tubely API shutdown complete")


_settings = get_settings()

app = FastAPI(
    title="Tubely API",
    description=(
        "Media ingestion for Tubely: attaches thumbnails and fast-start MP4 "
        "videos to existing video records."
    ),
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=_settings.debug,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next) -> Response:
    """Time each request and tag the response with X-Request-ID/X-Process-Time."""
    request_id = f"{time.time_ns()}"
    start_time = time.perf_counter()

    response = await call_next(request)

    process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["X-Process-Time"] = f"{process_time_ms}ms"
    response.headers["X-Request-ID"] = request_id

    log_level = logging.DEBUG if response.status_code < HTTP_ERROR_THRESHOLD else logging.WARNING
    logger.log(
        log_level,
        "Request completed: %s %s [Status: %d] [Time: %sms] [Request-ID: %s]",
        request.method,
        request.url.path,
        response.status_code,
        process_time_ms,
        request_id,
    )
    return response


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(UploadServiceError)
async def upload_error_handler(request: Request, exc: UploadServiceError) -> JSONResponse:
    """Render pipeline errors as ``{"error": message}`` with their mapped status."""
    status_code = next(
        (code for cls, code in ERROR_STATUS_CODES.items() if isinstance(exc, cls)), 500
    )
    if status_code >= 500:
        logger.error(
            "Upload failed on %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(
    _request: Request, exc: AuthenticationError
) -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": str(exc)})


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected errors and return a generic 500 without internals."""
    logger.error(
        "Internal server error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc
    )
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


# =============================================================================
# Routes
# =============================================================================

app.include_router(api_router, prefix="/api/v1")

if _settings.delivery_mode == DeliveryMode.LOCAL:
    app.mount(
        f"/{LOCAL_ASSETS_PATH}",
        StaticFiles(directory=_settings.assets_root, check_dir=False),
        name=LOCAL_ASSETS_PATH,
    )


@app.get("/", tags=["root"], summary="API Root")
async def root() -> dict[str, Any]:
    return {
        "name": _settings.app_name,
        "version": API_VERSION,
        "documentation": {"swagger": "/docs", "redoc": "/redoc", "openapi": "/openapi.json"},
        "api_prefix": "/api/v1",
    }


@app.get("/health", tags=["health"], summary="Health Check")
async def health_check() -> dict[str, Any]:
    """Liveness probe with current server time."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": API_VERSION,
        "service": "Tubely API",
    }


app.add_api_route("/api/v1/health", health_check, methods=["GET"], tags=["health"])


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level,
        access_log=settings.debug,
    )
