"""
Backup restorer.

Replaces the whole content of the store with a snapshot:
1. Validate the document (nothing is touched if this fails)
2. Hash the default credential once for all restored accounts
3. Delete every kind, children first
4. Insert every kind present in the snapshot, parents first

Steps 3 and 4 run in a single write transaction. If any delete or insert
fails the transaction is rolled back and the store keeps its pre-restore
content.

Invariants:
    - Credential hashes from the snapshot are never written
    - Every restored account gets the same freshly computed hash
    - Delete and insert follow the registry order exactly, one kind at a time

How to change safely:
    - Never reorder the registry without re-running the dependency tests
    - Keep validation ahead of the transaction
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from ..auth.passwords import DEFAULT_ROUNDS, hash_password
from ..errors import StorageError
from ..store import OrtomatStore
from .registry import EntityKind, deletion_order, insertion_order
from .snapshot import Snapshot, validate_snapshot

logger = logging.getLogger(__name__)

DEFAULT_RESTORE_PASSWORD = "password123"


@dataclass
class RestoreResult:
    """Result of a restore.

    Attributes:
        restored: Records inserted per entity kind
        deleted: Records removed per entity kind
        accounts_reset: Accounts now holding the temporary credential
        snapshot_timestamp: Timestamp recorded in the snapshot
        duration_ms: Total restore duration
    """

    restored: dict[str, int] = field(default_factory=dict)
    deleted: dict[str, int] = field(default_factory=dict)
    accounts_reset: int = 0
    snapshot_timestamp: str | None = None
    duration_ms: int = 0


class BackupRestorer:
    """Restores snapshots produced by BackupExporter.

    Example:
        >>> restorer = BackupRestorer(store)
        >>> result = await restorer.restore(document)
        >>> result.restored["users"]
        3
    """

    def __init__(
        self,
        store: OrtomatStore,
        default_password: str = DEFAULT_RESTORE_PASSWORD,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
    ) -> None:
        """Initialize the restorer.

        Args:
            store: Store to replace
            default_password: Plaintext credential given to every restored account
            bcrypt_rounds: bcrypt cost factor for that credential
        """
        self.store = store
        self.default_password = default_password
        self.bcrypt_rounds = bcrypt_rounds

    async def restore(self, document: Any) -> RestoreResult:
        """Replace all stored data with the snapshot's content.

        Args:
            document: Parsed snapshot document (untrusted)

        Returns:
            RestoreResult with per-kind counts

        Raises:
            SnapshotFormatError: If the document is malformed (store untouched)
            StorageError: If a delete or insert fails (store rolled back)
        """
        snapshot = validate_snapshot(document)
        start = time.monotonic()
        logger.info("Starting database restore", extra={"snapshot_timestamp": snapshot.timestamp})

        shared_hash = await asyncio.get_running_loop().run_in_executor(
            None, hash_password, self.default_password, self.bcrypt_rounds
        )

        result = RestoreResult(snapshot_timestamp=snapshot.timestamp)
        try:
            async with self.store.transaction() as session:
                logger.warning("Clearing existing data")
                for kind in deletion_order():
                    result.deleted[kind.name] = await session.delete_all(kind.table)

                for kind in insertion_order():
                    records = self._prepare(kind, snapshot, shared_hash)
                    if not records:
                        continue
                    result.restored[kind.name] = await session.create_many(kind.table, records)
                    logger.info(
                        f"Restored {kind.name}: {len(records)}",
                        extra={"kind": kind.name, "count": len(records)},
                    )
        except StorageError as e:
            logger.error(f"Restore failed, changes rolled back: {e}", exc_info=True)
            raise

        result.accounts_reset = result.restored.get("users", 0)
        result.duration_ms = int((time.monotonic() - start) * 1000)

        logger.info("Database restore completed", extra={"restored": result.restored})
        if result.accounts_reset:
            logger.warning(
                f"{result.accounts_reset} accounts now use the temporary restore password "
                "and must change it",
                extra={"accounts_reset": result.accounts_reset},
            )

        return result

    @staticmethod
    def _prepare(kind: EntityKind, snapshot: Snapshot, shared_hash: str) -> list[dict[str, Any]]:
        records = snapshot.records(kind.name)
        if kind.credential_field is None:
            return records
        return [{**record, kind.credential_field: shared_hash} for record in records]
