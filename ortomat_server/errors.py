"""
Error types for the Ortomat backup server.

- OrtomatError: Base exception
- SnapshotFormatError: Snapshot document rejected before any storage access
- StorageError: Failure reported by the SQLite store
- AuthError / ForbiddenError: Admin guard failures
- RateLimitedError: Caller exceeded a throttle window

Invariants:
    - All errors inherit from OrtomatError
    - Errors carry a stable code for the HTTP layer
    - Messages never include credential material
"""

from __future__ import annotations

from typing import Any


class OrtomatError(Exception):
    """Base exception for all Ortomat server errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "ORTOMAT_ERROR"
        self.details = details or {}


class SnapshotFormatError(OrtomatError):
    """Snapshot document is malformed.

    Raised when:
    - The "data" section is missing or not an object
    - The version is not supported
    - An entity kind is unknown or its records are not a list of objects
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(
            message,
            code="SNAPSHOT_FORMAT_ERROR",
            details={"errors": errors or []},
        )
        self.errors = errors or []


class StorageError(OrtomatError):
    """The store failed to read, delete or insert.

    Raised when:
    - SQLite reports an error (constraint violation, locked database, ...)
    - A record carries a column the table does not have
    """

    def __init__(
        self,
        message: str,
        table: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(
            message,
            code="STORAGE_ERROR",
            details={"table": table, "operation": operation},
        )
        self.table = table
        self.operation = operation


class AuthError(OrtomatError):
    """Missing or invalid bearer token."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, code="UNAUTHENTICATED")


class ForbiddenError(OrtomatError):
    """Authenticated caller lacks the required role."""

    def __init__(self, message: str = "Admin role required", role: str | None = None) -> None:
        super().__init__(message, code="FORBIDDEN", details={"role": role})
        self.role = role


class RateLimitedError(OrtomatError):
    """Too many requests within the throttle window."""

    def __init__(self, action: str, retry_after: int) -> None:
        super().__init__(
            f"Rate limit exceeded for {action}; retry in {retry_after}s",
            code="RATE_LIMITED",
            details={"action": action, "retry_after": retry_after},
        )
        self.action = action
        self.retry_after = retry_after
