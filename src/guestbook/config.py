"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All settings live in one ServerConfig dataclass. Values come from, in
increasing priority:

    1. the defaults below
    2. GUESTBOOK_* environment variables        (ServerConfig.from_env)
    3. command-line arguments                   (see __main__.py)

and are checked once by validate() before anything is opened or bound.

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    GUESTBOOK_HOST           bind host            (default: 127.0.0.1)
    GUESTBOOK_PORT           bind port            (default: 8080)
    GUESTBOOK_WORKERS        worker threads       (default: 4)
    GUESTBOOK_DB             SQLite file          (default: data/entries.db)
    GUESTBOOK_ROOT           static file root     (default: .)
    GUESTBOOK_VISITOR_COUNT  "0"/"false"/"no"/"off" disables the counter
    GUESTBOOK_CORS_ORIGIN    Access-Control-Allow-Origin (default: *)
    GUESTBOOK_LOG_LEVEL      DEBUG/INFO/WARNING/ERROR/CRITICAL (default: INFO)

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
FALSE_VALUES = ("0", "false", "no", "off")


def parse_bind_address(
    address: str,
    default_host: str = DEFAULT_HOST,
    default_port: int = DEFAULT_PORT,
) -> tuple[str, int]:
    """
    Split a ``host:port`` bind address.

        "0.0.0.0:8000"   → ("0.0.0.0", 8000)
        ":9000"          → (default_host, 9000)
        "localhost"      → ("localhost", default_port)

    Raises:
        ValueError: The port is not a number in 0-65535.
    """
    address = address.strip()
    if ":" not in address:
        return address or default_host, default_port

    host, _, port_text = address.rpartition(":")
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"Invalid port in bind address: {address!r}")
    if not 0 <= port < 65536:
        raise ValueError(f"Port out of range in bind address: {address!r}")

    return host or default_host, port


@dataclass
class ServerConfig:
    """
    Configuration for the guestbook server.

    Development:
        ServerConfig(port=8080, log_level="DEBUG")

    Production:
        ServerConfig(host="0.0.0.0", port=80, db_path="/var/lib/guestbook/entries.db")
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    """Port 0 asks the OS for a free port (used by the tests)."""

    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    """Per-connection socket timeout in seconds."""

    max_request_size: int = 1024 * 1024

    # ─────────────────────────────────────────────────────────────────────
    # WORKERS AND SHUTDOWN
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 4
    """Fixed size of the worker pool."""

    queue_size: int = 128
    """Accepted connections allowed to wait for a worker before 503s."""

    shutdown_polls: int = 30
    shutdown_poll_interval: float = 1.0
    """Workers get shutdown_polls × shutdown_poll_interval seconds to stop."""

    # ─────────────────────────────────────────────────────────────────────
    # APPLICATION
    # ─────────────────────────────────────────────────────────────────────

    db_path: str = "data/entries.db"
    static_root: str = "."
    index_file: str = "index.html"
    visitor_count: bool = True
    cors_origin: str = "*"

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING AND IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: 'text' or 'json'."""

    server_name: str = "Guestbook/1.0"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Create a configuration from GUESTBOOK_* environment variables."""
        defaults = cls()
        return cls(
            host=os.getenv("GUESTBOOK_HOST", defaults.host),
            port=int(os.getenv("GUESTBOOK_PORT", str(defaults.port))),
            workers=int(os.getenv("GUESTBOOK_WORKERS", str(defaults.workers))),
            db_path=os.getenv("GUESTBOOK_DB", defaults.db_path),
            static_root=os.getenv("GUESTBOOK_ROOT", defaults.static_root),
            visitor_count=os.getenv("GUESTBOOK_VISITOR_COUNT", "1").strip().lower() not in FALSE_VALUES,
            cors_origin=os.getenv("GUESTBOOK_CORS_ORIGIN", defaults.cors_origin),
            log_level=os.getenv("GUESTBOOK_LOG_LEVEL", defaults.log_level),
        )

    def validate(self) -> None:
        """
        Check every value once, at startup.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.workers < 1:
            raise ValueError("workers must be >= 1")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.shutdown_polls < 1 or self.shutdown_poll_interval <= 0:
            raise ValueError("shutdown_polls and shutdown_poll_interval must be positive")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"Invalid log format: {self.log_format}")

        if not os.path.isdir(self.static_root):
            raise ValueError(f"Static root is not a directory: {self.static_root}")
