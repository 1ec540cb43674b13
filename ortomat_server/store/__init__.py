"""
Store module for Ortomat - relational persistence of platform data.

This module handles:
- The SQLite schema for every entity kind (accounts, machines, cells, ...)
- Foreign-key enforcement between kinds
- Bulk read, delete and insert primitives used by backup and restore

Invariants:
    - Foreign keys are enforced on every connection
    - Multi-table changes go through one transaction
"""

from .schema import TABLES, Column, TableSpec
from .sqlite_store import OrtomatStore, StoreSession

__all__ = [
    "TABLES",
    "Column",
    "TableSpec",
    "OrtomatStore",
    "StoreSession",
]
