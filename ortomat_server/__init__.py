"""
Ortomat Backup Server - snapshot export and full restore of the Ortomat database.

Ortomat manages vending machines for orthopedic products. This package
owns the part of the platform that backs its relational store up to a
single JSON document and restores it:

    ┌──────────────┐      ┌──────────────┐      ┌──────────────┐
    │ Admin client │─────▶│  FastAPI     │─────▶│  Exporter /  │
    │  (JWT ADMIN) │      │  /admin/*    │      │  Restorer    │
    └──────────────┘      └──────────────┘      └──────┬───────┘
                                                       │
                                                       ▼
                                                ┌──────────────┐
                                                │ SQLite store │
                                                │ (FK enforced)│
                                                └──────────────┘

Invariants:
    - Snapshots never contain password hashes
    - Restore replaces all eleven entity kinds in one transaction
    - Every restored account gets the same temporary password
    - Exporter and restorer iterate one shared entity registry

How to change safely:
    - New tables must be added to the schema and the registry together
    - Bump the snapshot version on incompatible format changes
"""

from ._version import __version__

__all__ = ["__version__"]
