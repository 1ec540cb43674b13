"""
FastAPI application factory for the Ortomat backup server.

This module creates the FastAPI app with:
- CORS configuration for the admin frontend
- Store initialization on startup
- Admin backup/restore routes
- Mapping of server errors to JSON error responses

Usage:
    python -m ortomat_server.main
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..backup import BackupExporter, BackupRestorer
from ..config import ServerConfig
from ..errors import (
    AuthError,
    ForbiddenError,
    OrtomatError,
    RateLimitedError,
    SnapshotFormatError,
    StorageError,
)
from ..store import OrtomatStore
from .routes import router
from .throttle import RateLimiter

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[OrtomatError], int] = {
    SnapshotFormatError: 400,
    AuthError: 401,
    ForbiddenError: 403,
    RateLimitedError: 429,
    StorageError: 500,
}


def _status_for(error: OrtomatError) -> int:
    for error_type, status in STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return status
    return 500


def create_store(config: ServerConfig) -> OrtomatStore:
    return OrtomatStore(
        config.storage.data_dir,
        db_filename=config.storage.db_filename,
        wal_mode=config.storage.wal_mode,
        busy_timeout_ms=config.storage.busy_timeout_ms,
    )


def create_app(
    config: ServerConfig | None = None,
    store: OrtomatStore | None = None,
) -> FastAPI:
    """Create the backup server FastAPI app.

    Args:
        config: Server configuration (loaded from env if not provided)
        store: Store instance (built from config if not provided)
    """
    config = config or ServerConfig.from_env()
    store = store or create_store(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Make sure the schema exists before serving requests."""
        await store.initialize()
        config.log_config()
        yield

    app = FastAPI(
        title="Ortomat Backup Server",
        description="Admin-only export and restore of the Ortomat database.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.store = store
    app.state.exporter = BackupExporter(store, log_limit=config.backup.log_limit)
    app.state.restorer = BackupRestorer(
        store,
        default_password=config.backup.default_password,
        bcrypt_rounds=config.backup.bcrypt_rounds,
    )
    app.state.limiter = RateLimiter(window_seconds=config.throttle.window_seconds)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.http.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    @app.exception_handler(OrtomatError)
    async def ortomat_error_handler(request: Request, exc: OrtomatError) -> JSONResponse:
        status = _status_for(exc)
        if status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        headers = None
        if isinstance(exc, RateLimitedError):
            headers = {"Retry-After": str(exc.retry_after)}
        return JSONResponse(
            {"error": exc.message, "error_code": exc.code, "details": exc.details},
            status_code=status,
            headers=headers,
        )

    app.include_router(router, prefix="/api/v1")

    @app.get("/health")
    async def health():
        return {"status": "healthy", "service": "ortomat-backup"}

    return app
