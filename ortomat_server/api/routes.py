"""
Admin API routes for backup and restore.

Endpoints:
    GET  /admin/backup   - Download a snapshot of the whole store
    POST /admin/restore  - Replace the whole store with an uploaded snapshot

Both require an admin bearer token and are rate limited per caller.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..auth import Principal, require_admin
from ..backup import BackupExporter, BackupRestorer, backup_filename
from ..config import ServerConfig
from ..errors import OrtomatError, SnapshotFormatError
from .throttle import RateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin Backup"])


# =============================================================================
# Response Models
# =============================================================================


class RestoreResponse(BaseModel):
    """Acknowledgement of a completed restore."""

    success: bool
    message: str
    restored: dict[str, int] = Field(default_factory=dict)
    accounts_reset: int = 0
    duration_ms: int = 0


# =============================================================================
# Dependencies
# =============================================================================


def get_config(request: Request) -> ServerConfig:
    """Get server configuration from app state."""
    return request.app.state.config


def get_exporter(request: Request) -> BackupExporter:
    return request.app.state.exporter


def get_restorer(request: Request) -> BackupRestorer:
    return request.app.state.restorer


def get_limiter(request: Request) -> RateLimiter:
    return request.app.state.limiter


def admin_principal(
    config: ServerConfig = Depends(get_config),
    authorization: str | None = Header(None),
) -> Principal:
    """Authenticate the caller and require the admin role."""
    return require_admin(config.auth, authorization)


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/admin/backup")
async def export_backup(
    principal: Principal = Depends(admin_principal),
    config: ServerConfig = Depends(get_config),
    exporter: BackupExporter = Depends(get_exporter),
    limiter: RateLimiter = Depends(get_limiter),
) -> JSONResponse:
    """Export every entity kind as a downloadable JSON snapshot."""
    limiter.check("backup", principal.subject, config.throttle.backup_limit)

    now = datetime.now(timezone.utc)
    try:
        snapshot = await exporter.export(now=now)
    except OrtomatError as e:
        logger.error(f"Backup creation failed: {e}", exc_info=True)
        raise OrtomatError(f"Backup creation failed: {e.message}", code=e.code) from e
    except Exception as e:
        logger.error(f"Backup creation failed: {e}", exc_info=True)
        raise OrtomatError(f"Backup creation failed: {e}") from e

    filename = backup_filename(now, config.backup.filename_prefix)
    logger.info(
        "Backup downloaded",
        extra={"actor": principal.subject, "backup_filename": filename},
    )
    return JSONResponse(
        content=snapshot.to_document(),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/admin/restore", response_model=RestoreResponse)
async def restore_backup(
    request: Request,
    principal: Principal = Depends(admin_principal),
    config: ServerConfig = Depends(get_config),
    restorer: BackupRestorer = Depends(get_restorer),
    limiter: RateLimiter = Depends(get_limiter),
) -> RestoreResponse:
    """Replace all data with the uploaded snapshot."""
    limiter.check("restore", principal.subject, config.throttle.restore_limit)

    try:
        document: Any = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SnapshotFormatError("Invalid backup format: body is not valid JSON") from e

    logger.warning("Restore requested", extra={"actor": principal.subject})
    try:
        result = await restorer.restore(document)
    except SnapshotFormatError:
        raise
    except OrtomatError as e:
        raise OrtomatError(f"Restore failed: {e.message}", code=e.code) from e
    except Exception as e:
        logger.error(f"Restore failed: {e}", exc_info=True)
        raise OrtomatError(f"Restore failed: {e}") from e

    return RestoreResponse(
        success=True,
        message="Data restored from backup",
        restored=result.restored,
        accounts_reset=result.accounts_reset,
        duration_ms=result.duration_ms,
    )
