"""
Snapshot document format.

A snapshot is a single JSON document:

    {
        "timestamp": "2026-10-19T06:15:00.000Z",
        "version": "1.0",
        "data": {
            "users": [...],
            "ortomats": [...],
            ...
        }
    }

Keys of "data" are entity-kind names from the registry; each value is a
list of flat record objects. There is no compression or checksum; the
document is untrusted input on restore and is validated by
validate_snapshot() before any storage access.

Kind keys and record fields are snake_case (doctor_ortomats,
courier_ortomats, created_at, ...). Backups written by the earlier
NestJS admin service use camelCase keys (doctorOrtomats,
courierOrtomats, createdAt) and are rejected as unknown kinds; they
cannot be restored here without converting them first.

How to change safely:
    - Bump SNAPSHOT_VERSION on any incompatible change and keep accepting
      the previous version until a migration exists
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..errors import SnapshotFormatError
from .registry import KIND_NAMES

SNAPSHOT_VERSION = "1.0"
SUPPORTED_VERSIONS = frozenset({SNAPSHOT_VERSION})


class Snapshot(BaseModel):
    """Validated snapshot document."""

    timestamp: str | None = Field(None, description="Export start time (ISO-8601)")
    version: str = Field(..., description="Snapshot format version")
    data: dict[str, list[dict[str, Any]]] = Field(..., description="Records per entity kind")

    def records(self, kind: str) -> list[dict[str, Any]]:
        return self.data.get(kind) or []

    def to_document(self) -> dict[str, Any]:
        return self.model_dump()


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def backup_filename(moment: datetime, prefix: str = "ortomat-backup") -> str:
    """Download filename for a snapshot taken at `moment`.

    Colons and periods are replaced so the name is safe on every filesystem,
    e.g. ortomat-backup-2026-10-19T06-15-00.json
    """
    stamp = re.sub(r"[:.]", "-", format_timestamp(moment))[:19]
    return f"{prefix}-{stamp}.json"


def validate_snapshot(document: Any) -> Snapshot:
    """Validate an untrusted snapshot document.

    Args:
        document: Parsed JSON value

    Returns:
        Snapshot model

    Raises:
        SnapshotFormatError: If the document cannot be restored
    """
    if not isinstance(document, dict):
        raise SnapshotFormatError("Invalid backup format: expected a JSON object")

    data = document.get("data")
    if data is None:
        raise SnapshotFormatError("Invalid backup format: missing data")
    if not isinstance(data, dict):
        raise SnapshotFormatError("Invalid backup format: data must be an object")

    version = document.get("version")
    if not isinstance(version, str) or version not in SUPPORTED_VERSIONS:
        raise SnapshotFormatError(
            f"Unsupported backup version: {version!r}",
            errors=[f"supported versions: {', '.join(sorted(SUPPORTED_VERSIONS))}"],
        )

    unknown = sorted(set(data) - KIND_NAMES)
    if unknown:
        raise SnapshotFormatError(
            f"Unknown entity kinds in backup: {', '.join(unknown)}",
            errors=[f"unknown kind: {name}" for name in unknown],
        )

    normalized = dict(document)
    normalized["data"] = {name: records for name, records in data.items() if records is not None}

    try:
        return Snapshot.model_validate(normalized)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        raise SnapshotFormatError("Invalid backup format", errors=errors) from e
