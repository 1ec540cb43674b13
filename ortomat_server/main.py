"""
Ortomat backup server - Main entry point.

Starts the admin HTTP API (FastAPI under uvicorn) serving:
- GET  /api/v1/admin/backup
- POST /api/v1/admin/restore
- GET  /health

Usage:
    python -m ortomat_server.main

Configuration is entirely via environment variables.
See config.py for all available settings.

Invariants:
    - The schema exists before the first request is served
    - Restores assume a maintenance window; nothing else should write
      to the database while one runs
"""

from __future__ import annotations

import logging

import json_log_formatter
import uvicorn

from .api import create_app
from .config import ServerConfig

logger = logging.getLogger(__name__)


def setup_logging(config: ServerConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Server configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def main() -> None:
    """Run the backup server."""
    config = ServerConfig.from_env()
    setup_logging(config)

    app = create_app(config)
    logger.info(f"HTTP server starting on http://{config.http.host}:{config.http.port}")
    uvicorn.run(app, host=config.http.host, port=config.http.port, log_config=None)


if __name__ == "__main__":
    main()
