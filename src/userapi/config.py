"""
=============================================================================
SERVICE CONFIGURATION
=============================================================================

All settings live in one dataclass, filled from (highest priority first):

    1. Command-line arguments   python -m userapi --port 3000
    2. Environment variables    USERAPI_PORT=3000 python -m userapi
    3. Defaults below

The database URL has no default. A service without one refuses to start.

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    DATABASE_URL        Database URL (required)
    USERAPI_HOST        Bind address         (default: 0.0.0.0)
    USERAPI_PORT        Listen port          (default: 8080)
    USERAPI_WORKERS     Max worker threads   (default: 16)
    USERAPI_TIMEOUT     Socket timeout, s    (default: 30)
    USERAPI_NAMESPACE   <ns> in /api/<ns>/users (default: v1)
    USERAPI_LOG_LEVEL   Logging level        (default: INFO)
=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class ServiceConfig:
    """
    Configuration for the user service.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK     host, port, backlog, buffer_size, timeout, max_request_size
    THREADING   min_workers, max_workers, queue_size
    DATABASE    database_url, pool_size, max_overflow
    API         api_namespace
    LOGGING     log_level
    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    port: int = 8080
    backlog: int = 128

    buffer_size: int = 1024
    """Bytes requested per recv() call."""

    timeout: Optional[float] = 30.0
    """Socket read/write timeout in seconds. None blocks forever."""

    max_request_size: int = 1024 * 1024
    """Largest request (head + body) accepted, in bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    queue_size: int = 100
    """Accepted connections waiting for a worker. A full queue sheds load."""

    # ─────────────────────────────────────────────────────────────────────
    # DATABASE SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    database_url: Optional[str] = None
    pool_size: int = 5
    max_overflow: int = 5

    # ─────────────────────────────────────────────────────────────────────
    # API SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    api_namespace: str = "v1"
    """The <ns> segment: routes live under /api/<ns>/users."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    @property
    def collection_path(self) -> str:
        """Path of the users collection, e.g. "/api/v1/users"."""
        return f"/api/{self.api_namespace}/users"

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Create configuration from environment variables."""
        max_workers = int(os.getenv("USERAPI_WORKERS", "16"))
        return cls(
            host=os.getenv("USERAPI_HOST", "0.0.0.0"),
            port=int(os.getenv("USERAPI_PORT", "8080")),
            # A small worker cap also lowers the number started up front
            min_workers=min(cls.min_workers, max_workers),
            max_workers=max_workers,
            timeout=float(os.getenv("USERAPI_TIMEOUT", "30")),
            database_url=os.getenv("DATABASE_URL"),
            api_namespace=os.getenv("USERAPI_NAMESPACE", "v1"),
            log_level=os.getenv("USERAPI_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at start-up so a bad deployment fails immediately.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not self.database_url or not self.database_url.strip():
            raise ValueError("DATABASE_URL is required")
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")
        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")
        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")
        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        if self.buffer_size < 64:
            raise ValueError("buffer_size must be >= 64")
        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if not self.api_namespace or any(c == "/" or c.isspace() for c in self.api_namespace):
            raise ValueError(f"Invalid api_namespace: {self.api_namespace!r}")
