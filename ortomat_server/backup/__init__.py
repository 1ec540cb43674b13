"""
Backup module for Ortomat.

This module handles JSON snapshots of the whole store for:
- Disaster recovery
- Migration between environments

Invariants:
    - Snapshots never contain credential hashes
    - Restore is all-or-nothing (single transaction)
    - Exporter and restorer share one entity-kind registry
"""

from .exporter import BackupExporter
from .registry import ENTITY_KINDS, EntityKind, deletion_order, insertion_order
from .restorer import BackupRestorer, RestoreResult
from .snapshot import (
    SNAPSHOT_VERSION,
    SUPPORTED_VERSIONS,
    Snapshot,
    backup_filename,
    validate_snapshot,
)

__all__ = [
    "BackupExporter",
    "BackupRestorer",
    "RestoreResult",
    "ENTITY_KINDS",
    "EntityKind",
    "deletion_order",
    "insertion_order",
    "SNAPSHOT_VERSION",
    "SUPPORTED_VERSIONS",
    "Snapshot",
    "backup_filename",
    "validate_snapshot",
]
