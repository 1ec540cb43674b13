"""
SQLite store for Ortomat data.

This module manages the single SQLite database holding every entity kind
of the platform. It exposes the small set of primitives the backup
subsystem relies on:
    - find_all: read every row of a table, optionally ordered and limited
    - delete_all: remove every row of a table
    - create_many: bulk-insert records
    - count: number of rows in a table

Each primitive is available directly on OrtomatStore (one transaction per
call) and on a StoreSession obtained from transaction() or
read_transaction(), where all calls share one connection and one
transaction.

Invariants:
    - PRAGMA foreign_keys = ON for every connection
    - Records are validated against the table's column spec before insert
    - sqlite3 errors never escape; they are wrapped in StorageError
    - A failed transaction() block is rolled back in full

How to change safely:
    - Column changes belong in schema.py, not here
    - Keep table and column names out of user-controlled SQL; only names
      from the schema specs are interpolated
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import Any

from ..errors import StorageError
from .schema import TABLES, TableSpec, schema_script

logger = logging.getLogger(__name__)

Record = dict[str, Any]


def _table_spec(table: str) -> TableSpec:
    spec = TABLES.get(table)
    if spec is None:
        raise StorageError(f"Unknown table: {table}", table=table)
    return spec


def _encode_value(spec: TableSpec, key: str, value: Any) -> Any:
    column = spec.column(key)
    if column is None:
        raise StorageError(
            f"Unknown column '{key}' for table {spec.name}",
            table=spec.name,
            operation="create",
        )
    if value is None:
        return None
    if column.type == "json":
        return json.dumps(value)
    if column.type == "bool":
        if not isinstance(value, bool):
            raise StorageError(
                f"Column '{key}' of table {spec.name} expects a boolean, got {value!r}",
                table=spec.name,
                operation="create",
            )
        return int(value)
    return value


def _decode_row(spec: TableSpec, row: sqlite3.Row) -> Record:
    record = dict(row)
    for column in spec.columns:
        value = record.get(column.name)
        if value is None:
            continue
        if column.type == "json":
            record[column.name] = json.loads(value)
        elif column.type == "bool":
            record[column.name] = bool(value)
    return record


class StoreSession:
    """Store primitives bound to one connection and its open transaction.

    Obtained from OrtomatStore.transaction() or read_transaction(); never
    constructed directly.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    async def find_all(
        self,
        table: str,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Record]:
        """Read rows of a table.

        Args:
            table: Table name
            order_by: Column to order by (storage order when omitted)
            descending: Reverse the ordering
            limit: Maximum rows to return

        Returns:
            Decoded records
        """
        spec = _table_spec(table)
        order_column = order_by or "rowid"
        if order_column != "rowid" and order_column not in spec.column_names:
            raise StorageError(
                f"Cannot order {table} by unknown column '{order_column}'",
                table=table,
                operation="find",
            )

        sql = f"SELECT * FROM {spec.name} ORDER BY {order_column}"
        if descending:
            sql += " DESC"
        params: tuple[Any, ...] = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)

        try:
            cursor = self._conn.execute(sql, params)
            return [_decode_row(spec, row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read {table}: {e}", table=table, operation="find") from e

    async def delete_all(self, table: str) -> int:
        """Delete every row of a table. Returns the number of rows removed."""
        spec = _table_spec(table)
        try:
            cursor = self._conn.execute(f"DELETE FROM {spec.name}")
            return cursor.rowcount
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to clear {table}: {e}", table=table, operation="delete"
            ) from e

    async def create_many(self, table: str, records: list[Record]) -> int:
        """Insert records into a table. Returns the number inserted."""
        spec = _table_spec(table)
        statements: dict[tuple[str, ...], str] = {}

        for record in records:
            columns = tuple(record.keys())
            values = tuple(_encode_value(spec, key, record[key]) for key in columns)

            sql = statements.get(columns)
            if sql is None:
                placeholders = ", ".join("?" for _ in columns)
                sql = f"INSERT INTO {spec.name} ({', '.join(columns)}) VALUES ({placeholders})"
                statements[columns] = sql

            try:
                self._conn.execute(sql, values)
            except sqlite3.Error as e:
                raise StorageError(
                    f"Failed to insert into {table} (id={record.get('id')}): {e}",
                    table=table,
                    operation="create",
                ) from e

        return len(records)

    async def count(self, table: str) -> int:
        spec = _table_spec(table)
        try:
            return self._conn.execute(f"SELECT COUNT(*) FROM {spec.name}").fetchone()[0]
        except sqlite3.Error as e:
            raise StorageError(f"Failed to count {table}: {e}", table=table, operation="count") from e


class OrtomatStore:
    """SQLite-backed store for all Ortomat entity kinds.

    Thread safety:
        Each transaction opens its own connection.
        Writers are serialized by BEGIN IMMEDIATE and an asyncio lock.

    Example:
        >>> store = OrtomatStore("/var/lib/ortomat")
        >>> await store.initialize()
        >>> async with store.transaction() as session:
        ...     await session.create_many("ortomats", [{"id": "o1", ...}])
    """

    def __init__(
        self,
        data_dir: str,
        db_filename: str = "ortomat.db",
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        """Initialize the store.

        Args:
            data_dir: Directory holding the database file
            db_filename: Database file name
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
        """
        self.data_dir = Path(data_dir)
        self.db_filename = db_filename
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self._write_lock = asyncio.Lock()

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_filename

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Open a configured connection to the database."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

        try:
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=self.busy_timeout_ms / 1000.0,
                isolation_level=None,  # Autocommit by default, explicit transactions
            )
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row

        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            if self.wal_mode:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            conn.execute("PRAGMA foreign_keys = ON")

            yield conn
        finally:
            conn.close()

    async def initialize(self) -> None:
        """Create the database file and schema if they don't exist."""
        async with self._write_lock:
            with self._get_connection() as conn:
                try:
                    conn.executescript(schema_script())
                except sqlite3.Error as e:
                    raise StorageError(f"Failed to create schema: {e}") from e
        logger.info("Initialized store", extra={"db_path": str(self.db_path)})

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreSession]:
        """Open a write transaction.

        Everything done through the yielded session commits together, or
        is rolled back if the block raises.
        """
        async with self._write_lock:
            with self._get_connection() as conn:
                try:
                    conn.execute("BEGIN IMMEDIATE")
                except sqlite3.Error as e:
                    raise StorageError(f"Cannot start write transaction: {e}") from e
                try:
                    yield StoreSession(conn)
                except BaseException:
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise
                try:
                    conn.execute("COMMIT")
                except sqlite3.Error as e:
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise StorageError(f"Commit failed: {e}", operation="commit") from e

    @asynccontextmanager
    async def read_transaction(self) -> AsyncIterator[StoreSession]:
        """Open a read transaction giving a consistent view across tables."""
        with self._get_connection() as conn:
            try:
                conn.execute("BEGIN")
            except sqlite3.Error as e:
                raise StorageError(f"Cannot start read transaction: {e}") from e
            try:
                yield StoreSession(conn)
            finally:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")

    async def find_all(
        self,
        table: str,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Record]:
        async with self.read_transaction() as session:
            return await session.find_all(table, order_by, descending, limit)

    async def delete_all(self, table: str) -> int:
        async with self.transaction() as session:
            return await session.delete_all(table)

    async def create_many(self, table: str, records: list[Record]) -> int:
        async with self.transaction() as session:
            return await session.create_many(table, records)

    async def count(self, table: str) -> int:
        async with self.read_transaction() as session:
            return await session.count(table)

    async def counts(self) -> dict[str, int]:
        """Row count of every table."""
        async with self.read_transaction() as session:
            return {table: await session.count(table) for table in TABLES}
