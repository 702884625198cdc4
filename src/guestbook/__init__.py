"""
=============================================================================
GUESTBOOK - Multi-Worker Guestbook HTTP Server
=============================================================================

A small HTTP/1.1 server that serves a static front end plus one dynamic
resource: a public guestbook of timestamped entries, and an optional
visitor counter, both kept in a local SQLite file.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    guestbook/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m guestbook)
    ├── server.py            # GuestbookServer: wiring and process lifecycle
    ├── config.py            # ServerConfig dataclass
    ├── forms.py             # Submission body → Entry
    ├── render.py            # Entries → HTML fragment
    ├── core/                # Sockets, workers, shutdown
    │   ├── connection.py    # One client connection
    │   ├── listener.py      # Cancellable request source + TCP acceptor
    │   ├── worker_pool.py   # Fixed pool of worker threads
    │   └── lifecycle.py     # ShutdownCoordinator
    ├── http/                # Protocol pieces, no I/O
    │   ├── request.py       # Request parsing
    │   ├── response.py      # Response building
    │   ├── dispatcher.py    # (method, path) → Action
    │   ├── status_codes.py  # HTTPStatus
    │   └── mime_types.py    # Content types
    ├── handlers/
    │   ├── guestbook.py     # GuestbookApp: executes Actions
    │   └── static.py        # Static files
    ├── middleware/
    │   ├── base.py          # Middleware + pipeline
    │   └── logging.py       # Access log
    └── storage/
        ├── models.py        # Entry, color/domain sanitizing
        └── gateway.py       # Mutex-guarded SQLite access

=============================================================================
QUICK START
=============================================================================

    from guestbook import GuestbookServer, ServerConfig

    server = GuestbookServer(ServerConfig(port=8080, static_root="./public"))
    raise SystemExit(server.run())

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import GuestbookServer
from .storage import Entry, StorageError, StorageGateway

__all__ = [
    "__version__",
    "ServerConfig",
    "GuestbookServer",
    "Entry",
    "StorageError",
    "StorageGateway",
]
