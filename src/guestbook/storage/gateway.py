"""
=============================================================================
STORAGE GATEWAY
=============================================================================

The single owner of the SQLite connection. Every worker thread reads and
writes guestbook state through one StorageGateway instance; nothing else
ever sees the connection.

=============================================================================
CONCURRENCY MODEL
=============================================================================

    ┌──────────┐   insert_entry()        ┌───────────────────────────────┐
    │ Worker-0 │ ──────────────┐         │ StorageGateway                │
    └──────────┘               │         │                               │
    ┌──────────┐   list_...()  ├──────►  │  _lock (threading.Lock)       │
    │ Worker-1 │ ──────────────┤         │     │                         │
    └──────────┘               │         │     ▼                         │
    ┌──────────┐   increment() │         │  sqlite3.Connection           │
    │ Worker-2 │ ──────────────┘         │  (check_same_thread=False)    │
    └──────────┘                         └───────────────────────────────┘

- One connection, shared by all workers, guarded by one mutex.
- The lock is taken per call and held only for the SQL statements of that
  call. Handlers never hold it while reading from or writing to a socket.
- Writes run inside ``with connection:`` so each call is one transaction:
  committed on success, rolled back on error. A reader can never see half
  of a row, and two concurrent inserts can never interleave fields.
- Entry timestamps are taken while the lock is held, so ``time`` is
  non-decreasing in insertion order (as long as the wall clock is).

=============================================================================
SCHEMA
=============================================================================

    entries(name TEXT, domain TEXT, message TEXT, color TEXT,
            time INTEGER, public BOOLEAN)           -- append-only

    visitor_count(id INTEGER PRIMARY KEY,
                  count INTEGER NOT NULL)           -- one row, id = 1

Both are created with IF NOT EXISTS, and the counter row with
INSERT OR IGNORE, so initialize_schema() is idempotent.

=============================================================================
"""

import logging
import sqlite3
import threading
import time
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional, Union

from .models import Entry


logger = logging.getLogger(__name__)


ENTRIES_SCHEMA = """
    CREATE TABLE IF NOT EXISTS entries (
        name TEXT,
        domain TEXT,
        message TEXT,
        color TEXT,
        time INTEGER,
        public BOOLEAN
    )
"""

VISITOR_COUNT_SCHEMA = """
    CREATE TABLE IF NOT EXISTS visitor_count (
        id INTEGER PRIMARY KEY,
        count INTEGER NOT NULL
    )
"""

VISITOR_COUNT_KEY = 1


class StorageError(Exception):
    """
    Raised when the store cannot be opened, initialized, read or written.

    The original sqlite3 error, if any, is chained as ``__cause__``.
    """


class StorageGateway:
    """
    Mutex-guarded access to the guestbook database.

    Usage:
        gateway = StorageGateway("data/entries.db")
        gateway.initialize_schema()       # once, before workers start

        gateway.insert_entry(Entry(name="ada", domain="https://ada.dev",
                                   message="hi", color="#ff0000"))
        entries = gateway.list_public_entries()

        gateway.increment_visitor_count()
        count = gateway.read_visitor_count()

        gateway.close()
    """

    def __init__(
        self,
        path: Union[str, Path],
        visitor_count: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            path: Database file, or ``":memory:"`` for a private in-memory store.
            visitor_count: Whether to create and serve the visitor counter.
            clock: Source of epoch seconds for entry timestamps.
        """
        self.path = str(path)
        self.visitor_count_enabled = visitor_count
        self._clock = clock
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def initialize_schema(self) -> None:
        """
        Open the store and create the tables (idempotent).

        Must run once at startup, before any worker is started.

        Raises:
            StorageError: The file cannot be opened or the schema created.
                          The caller treats this as fatal.
        """
        with self._lock:
            try:
                if self._conn is None:
                    if self.path != ":memory:":
                        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
                    # Workers are different threads from the one that opens
                    # the connection; the gateway lock serializes them instead.
                    self._conn = sqlite3.connect(self.path, check_same_thread=False)

                with self._conn:
                    self._conn.execute(ENTRIES_SCHEMA)
                    if self.visitor_count_enabled:
                        self._conn.execute(VISITOR_COUNT_SCHEMA)
                        self._conn.execute(
                            "INSERT OR IGNORE INTO visitor_count (id, count) VALUES (?, 0)",
                            (VISITOR_COUNT_KEY,),
                        )
            except (sqlite3.Error, OSError) as e:
                raise StorageError(f"Cannot initialize store at {self.path}: {e}") from e

        logger.info(
            f"Storage ready at {self.path} "
            f"(visitor counter {'enabled' if self.visitor_count_enabled else 'disabled'})"
        )

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.debug("Storage connection closed")

    def __enter__(self) -> "StorageGateway":
        self.initialize_schema()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # =========================================================================
    # ENTRIES
    # =========================================================================

    def insert_entry(self, entry: Entry) -> Entry:
        """
        Append one entry and return it as stored (with ``time`` set).

        Raises:
            StorageError: The entry is malformed or the write failed.
        """
        self._check_entry(entry)

        with self._lock:
            conn = self._connection()
            stored = replace(entry, time=int(self._clock()), public=True)
            try:
                with conn:
                    conn.execute(
                        "INSERT INTO entries (name, domain, message, color, time, public) "
                        "VALUES (:name, :domain, :message, :color, :time, :public)",
                        {
                            "name": stored.name,
                            "domain": stored.domain,
                            "message": stored.message,
                            "color": stored.color,
                            "time": stored.time,
                            "public": stored.public,
                        },
                    )
            except sqlite3.Error as e:
                raise StorageError(f"Failed to insert entry: {e}") from e

        logger.debug(f"Inserted entry from {stored.name!r} at {stored.time}")
        return stored

    def list_public_entries(self) -> list[Entry]:
        """
        All public entries, oldest first (insertion order).

        The whole result is fetched while the lock is held, so it is one
        consistent snapshot: an insert that starts after the read begins
        is either fully absent or (if it won the lock) fully present.
        """
        with self._lock:
            conn = self._connection()
            try:
                rows = conn.execute(
                    "SELECT name, domain, message, color, time, public "
                    "FROM entries WHERE public = 1 ORDER BY rowid"
                ).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to list entries: {e}") from e

        return [
            Entry(name=name, domain=domain, message=message, color=color,
                  time=entry_time, public=bool(public))
            for name, domain, message, color, entry_time, public in rows
        ]

    # =========================================================================
    # VISITOR COUNTER
    # =========================================================================

    def increment_visitor_count(self) -> int:
        """Atomically add one to the visitor counter and return the new value."""
        self._check_visitor_count()

        with self._lock:
            conn = self._connection()
            try:
                with conn:
                    conn.execute(
                        "UPDATE visitor_count SET count = count + 1 WHERE id = ?",
                        (VISITOR_COUNT_KEY,),
                    )
                    row = conn.execute(
                        "SELECT count FROM visitor_count WHERE id = ?",
                        (VISITOR_COUNT_KEY,),
                    ).fetchone()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to increment visitor count: {e}") from e

        if row is None:
            raise StorageError("Visitor counter row is missing")
        return row[0]

    def read_visitor_count(self) -> int:
        """Current value of the visitor counter."""
        self._check_visitor_count()

        with self._lock:
            conn = self._connection()
            try:
                row = conn.execute(
                    "SELECT count FROM visitor_count WHERE id = ?",
                    (VISITOR_COUNT_KEY,),
                ).fetchone()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to read visitor count: {e}") from e

        if row is None:
            raise StorageError("Visitor counter row is missing")
        return row[0]

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _connection(self) -> sqlite3.Connection:
        # Caller must hold self._lock.
        if self._conn is None:
            raise StorageError("Store is not open; call initialize_schema() first")
        return self._conn

    def _check_visitor_count(self) -> None:
        if not self.visitor_count_enabled:
            raise StorageError("Visitor counter is disabled")

    @staticmethod
    def _check_entry(entry: Entry) -> None:
        if not isinstance(entry, Entry):
            raise StorageError(f"Expected an Entry, got {type(entry).__name__}")
        for name in ("name", "domain", "message", "color"):
            if not isinstance(getattr(entry, name), str):
                raise StorageError(f"Entry field {name!r} must be a string")
