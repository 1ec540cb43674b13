"""
Configuration management for the Ortomat backup server.

All configuration is done via environment variables - no config files inside containers.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - Production deployments MUST set JWT_SECRET and RESTORE_DEFAULT_PASSWORD
    - Secrets are never logged or exposed in error messages

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Deprecate settings by logging warnings but continuing to support them
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEV_JWT_SECRET = "ortomat-dev-secret"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class StorageConfig:
    """Local storage configuration.

    Attributes:
        data_dir: Directory for the SQLite database
        db_filename: Database file name
        wal_mode: SQLite WAL mode enabled
        busy_timeout_ms: SQLite busy timeout in milliseconds
    """

    data_dir: str = "./data"
    db_filename: str = "ortomat.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000

    @classmethod
    def from_env(cls) -> StorageConfig:
        """Load configuration from environment variables."""
        return cls(
            data_dir=os.getenv("DATA_DIR", "./data"),
            db_filename=os.getenv("DB_FILENAME", "ortomat.db"),
            wal_mode=_env_bool("SQLITE_WAL_MODE", "true"),
            busy_timeout_ms=int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "5000")),
        )


@dataclass(frozen=True)
class BackupConfig:
    """Backup and restore configuration.

    Attributes:
        log_limit: Maximum activity-log records written to a snapshot
        default_password: Plaintext credential given to every restored account
        bcrypt_rounds: bcrypt cost factor for the restored credential
        filename_prefix: Prefix of the suggested download filename
    """

    log_limit: int = 1000
    default_password: str = "password123"
    bcrypt_rounds: int = 10
    filename_prefix: str = "ortomat-backup"

    @classmethod
    def from_env(cls) -> BackupConfig:
        """Load configuration from environment variables."""
        return cls(
            log_limit=int(os.getenv("BACKUP_LOG_LIMIT", "1000")),
            default_password=os.getenv("RESTORE_DEFAULT_PASSWORD", "password123"),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "10")),
            filename_prefix=os.getenv("BACKUP_FILENAME_PREFIX", "ortomat-backup"),
        )


@dataclass(frozen=True)
class HttpConfig:
    """HTTP server configuration.

    Attributes:
        host: Host to bind to
        port: Port to listen on
        cors_origins: Allowed CORS origins
    """

    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)

    @classmethod
    def from_env(cls) -> HttpConfig:
        """Load configuration from environment variables."""
        origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")
        return cls(
            host=os.getenv("HTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTP_PORT", "8000")),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        )


@dataclass(frozen=True)
class AuthConfig:
    """Bearer token configuration.

    Attributes:
        jwt_secret: HMAC secret for signing/verifying tokens
        jwt_algorithm: JWT signing algorithm
        expire_minutes: Lifetime of tokens issued by the CLI
        admin_role: Role claim required for backup endpoints
    """

    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    expire_minutes: int = 60
    admin_role: str = "ADMIN"

    @classmethod
    def from_env(cls) -> AuthConfig:
        """Load configuration from environment variables."""
        return cls(
            jwt_secret=os.getenv("JWT_SECRET", DEV_JWT_SECRET),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            expire_minutes=int(os.getenv("JWT_EXPIRE_MINUTES", "60")),
            admin_role=os.getenv("ADMIN_ROLE", "ADMIN"),
        )


@dataclass(frozen=True)
class ThrottleConfig:
    """Rate limits for the backup endpoints.

    Attributes:
        backup_limit: Exports allowed per caller per window
        restore_limit: Restores allowed per caller per window
        window_seconds: Length of the throttle window
    """

    backup_limit: int = 2
    restore_limit: int = 1
    window_seconds: int = 3600

    @classmethod
    def from_env(cls) -> ThrottleConfig:
        """Load configuration from environment variables."""
        return cls(
            backup_limit=int(os.getenv("BACKUP_RATE_LIMIT", "2")),
            restore_limit=int(os.getenv("RESTORE_RATE_LIMIT", "1")),
            window_seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "3600")),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass
class ServerConfig:
    """Complete server configuration.

    Attributes:
        environment: Deployment environment (development, production)
        storage: Local storage configuration
        backup: Backup/restore configuration
        http: HTTP server configuration
        auth: Bearer token configuration
        throttle: Rate limit configuration
        observability: Logging configuration
    """

    environment: str = "development"
    storage: StorageConfig = field(default_factory=StorageConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Load complete configuration from environment variables.

        Returns:
            ServerConfig with all sections populated from environment.

        Raises:
            ValueError: If required configuration is missing or invalid.
        """
        config = cls(
            environment=os.getenv("ORTOMAT_ENV", "development").lower(),
            storage=StorageConfig.from_env(),
            backup=BackupConfig.from_env(),
            http=HttpConfig.from_env(),
            auth=AuthConfig.from_env(),
            throttle=ThrottleConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.backup.log_limit < 0:
            raise ValueError("BACKUP_LOG_LIMIT must be >= 0")
        if not 4 <= self.backup.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        if not self.backup.default_password:
            raise ValueError("RESTORE_DEFAULT_PASSWORD must not be empty")
        if len(self.backup.default_password.encode("utf-8")) > 72:
            raise ValueError("RESTORE_DEFAULT_PASSWORD must be at most 72 bytes")
        if self.throttle.window_seconds <= 0:
            raise ValueError("RATE_LIMIT_WINDOW_SECONDS must be positive")

        if self.is_production and self.auth.jwt_secret == DEV_JWT_SECRET:
            raise ValueError("JWT_SECRET is required when ORTOMAT_ENV=production")

        if not os.path.exists(self.storage.data_dir):
            logger.warning(
                f"Data directory does not exist: {self.storage.data_dir}. "
                "It will be created on first write."
            )

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Server configuration loaded",
            extra={
                "environment": self.environment,
                "data_dir": self.storage.data_dir,
                "db_filename": self.storage.db_filename,
                "http_bind": f"{self.http.host}:{self.http.port}",
                "backup_log_limit": self.backup.log_limit,
                "backup_rate_limit": self.throttle.backup_limit,
                "restore_rate_limit": self.throttle.restore_limit,
                "jwt_algorithm": self.auth.jwt_algorithm,
                "log_level": self.observability.log_level,
            },
        )
