"""
Ortomat Backup Server Test Suite.

This package contains:
- unit/: Unit tests (registry, snapshot format, store, auth, throttle, config)
- integration/: Integration tests (SQLite round trips, HTTP API, CLI)
"""
