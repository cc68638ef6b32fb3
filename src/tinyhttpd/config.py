"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the HTTP server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m tinyhttpd --directory /srv/files                 │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_STORAGE_DIR=/srv/files python -m tinyhttpd           │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from .http.access_log import LOG_FORMATS


DEFAULT_PORT = 4221
DEFAULT_STORAGE_DIR = "/tmp/data/codecrafters.io/http-server-tester/"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def default_workers() -> int:
    """One worker per CPU the host reports."""
    return os.cpu_count() or 1


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size

    CONCURRENCY
    - max_workers, shutdown_timeout

    STORAGE
    - storage_dir, preserve_line_endings

    ECHO
    - compress_echo

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """The IP address to bind to. "0.0.0.0" listens on all interfaces."""

    port: int = DEFAULT_PORT
    """The port number to listen on. 0 lets the OS pick a free port."""

    backlog: int = 128
    """
    Maximum number of queued connections.
    While every worker slot is taken, new clients wait in this queue.
    """

    buffer_size: int = 1024
    """Bytes requested per recv() call."""

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    max_workers: int = field(default_factory=default_workers)
    """
    Maximum number of connections handled at the same time.
    Defaults to the number of CPUs.
    """

    shutdown_timeout: float = 30.0
    """Seconds to wait for in-flight connections on shutdown."""

    # ─────────────────────────────────────────────────────────────────────
    # STORAGE
    # ─────────────────────────────────────────────────────────────────────

    storage_dir: str = DEFAULT_STORAGE_DIR
    """Directory backing /files/<name>. It is not created automatically."""

    preserve_line_endings: bool = False
    """
    Serve stored files byte for byte.
    Off by default: GET /files/<name> joins lines with terminators removed.
    """

    # ─────────────────────────────────────────────────────────────────────
    # ECHO
    # ─────────────────────────────────────────────────────────────────────

    compress_echo: bool = False
    """
    Really gzip /echo bodies that are labeled Content-Encoding: gzip.
    Off by default: the header is sent and the body stays as is.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """
    Access log format: 'text' or 'json'.
    JSON is better for log aggregators, text for reading.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST         Server host (default: 0.0.0.0)
        HTTP_PORT         Server port (default: 4221)
        HTTP_WORKERS      Max concurrent connections (default: CPU count)
        HTTP_STORAGE_DIR  Files root (default: /tmp/data/codecrafters.io/...)
        HTTP_LOG_LEVEL    Logging level (default: INFO)
        HTTP_LOG_FORMAT   Access log format (default: text)

        =====================================================================

        Raises:
            ValueError: A numeric variable is not a number.
        """
        workers: Optional[str] = os.getenv("HTTP_WORKERS")
        return cls(
            host=os.getenv("HTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTP_PORT", str(DEFAULT_PORT))),
            max_workers=int(workers) if workers else default_workers(),
            storage_dir=os.getenv("HTTP_STORAGE_DIR", DEFAULT_STORAGE_DIR),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values at startup.

        Raises:
            ValueError: Describing the first invalid setting found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")

        if self.buffer_size < 1:
            raise ValueError(f"buffer_size must be >= 1, got {self.buffer_size}")

        if self.backlog < 0:
            raise ValueError(f"backlog must be >= 0, got {self.backlog}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(
                f"Unknown log_level {self.log_level!r}. Use one of {', '.join(LOG_LEVELS)}."
            )

        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Unknown log_format {self.log_format!r}. Use one of {', '.join(LOG_FORMATS)}."
            )

        if self.shutdown_timeout <= 0:
            raise ValueError(f"shutdown_timeout must be > 0, got {self.shutdown_timeout}")
