"""
=============================================================================
REQUEST SOURCE AND LISTENER
=============================================================================

Workers never call accept() themselves. They pull accepted connections
from a RequestSource, which blocks until either a connection is ready or
the source is told to let a waiter go.

    ┌──────────────┐  accept()   ┌────────────────────────┐   next()   ┌──────────┐
    │ TCP socket   │ ──────────► │ pending queue          │ ─────────► │ Worker-N │
    │ (Acceptor)   │             │ [conn, conn, ...]      │            └──────────┘
    └──────────────┘             └────────────────────────┘
                                           ▲
                                unblock()  │  one wake-up marker per call
                                           │
                                 ShutdownCoordinator

=============================================================================
CANCELLABLE BLOCKING PULL
=============================================================================

A worker sleeping in next() must be wakeable without a client connecting,
otherwise shutdown would wait forever on an idle server. unblock() puts a
wake-up marker (None, the classic poison pill) in the queue; the worker
that takes it gets ``None`` back from next() and goes on to check the
shutdown flag.

Markers are never refused, even when the pending queue is at capacity, so
unblock() never blocks (it runs inside a signal handler).

=============================================================================
BACKPRESSURE
=============================================================================

The number of accepted-but-unserved connections is capped at
``queue_size``. Past that the acceptor answers 503 straight away instead
of letting the backlog grow without bound.

=============================================================================
"""

import logging
import queue
import socket
import threading
from typing import Optional

from ..http.response import service_unavailable
from .connection import Connection


logger = logging.getLogger(__name__)


def reject(connection: Connection, message: str, server_name: str = "Guestbook/1.0") -> None:
    """Answer 503 on a connection no worker will serve, then close it."""
    connection.send_response(service_unavailable(message).to_bytes(server_name))
    connection.close()


class RequestSource:
    """
    Blocking, cancellable source of accepted connections.

    Usable on its own (tests feed it with offer()); Listener adds the
    socket side.
    """

    def __init__(self, queue_size: int = 128, server_name: str = "Guestbook/1.0"):
        self.queue_size = queue_size
        self.server_name = server_name
        # Unbounded on purpose: the cap is enforced in offer() so that
        # wake-up markers can always be added.
        self._queue: "queue.Queue[Optional[Connection]]" = queue.Queue()
        self._offer_lock = threading.Lock()
        self._pending = 0

    @property
    def pending(self) -> int:
        """Connections accepted but not yet taken by a worker."""
        return self._pending

    def offer(self, connection: Connection) -> bool:
        """
        Queue a connection for the workers.

        Returns:
            False if ``queue_size`` connections are already waiting.
        """
        with self._offer_lock:
            if self._pending >= self.queue_size:
                return False
            self._pending += 1
            self._queue.put(connection)
            return True

    def next(self) -> Optional[Connection]:
        """
        Block until a connection is available or a waiter is released.

        Returns:
            The next connection, or None if unblock() released this caller.
        """
        item = self._queue.get()
        if item is not None:
            with self._offer_lock:
                self._pending -= 1
        return item

    def unblock(self, count: int = 1) -> None:
        """Release ``count`` callers blocked (now or later) in next()."""
        for _ in range(count):
            self._queue.put(None)

    def drain(self, message: str = "Server is shutting down") -> int:
        """
        Answer 503 to every connection still waiting and close it.

        Called once no worker is left to serve them. Returns how many
        connections were rejected.
        """
        rejected = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is None:
                continue
            with self._offer_lock:
                self._pending -= 1
            reject(item, message, self.server_name)
            rejected += 1

        if rejected:
            logger.warning(f"Rejected {rejected} queued connection(s) during shutdown")
        return rejected


class Listener(RequestSource):
    """
    A RequestSource fed by a listening TCP socket.

    Usage:
        listener = Listener("127.0.0.1", 8080)
        listener.bind()        # raises OSError if the port is taken
        listener.start()       # acceptor thread
        conn = listener.next()
        ...
        listener.close()
        listener.drain()
    """

    def __init__(
        self,
        host: str,
        port: int,
        backlog: int = 128,
        queue_size: int = 128,
        buffer_size: int = 8192,
        timeout: float = 30.0,
        max_request_size: int = 1024 * 1024,
        server_name: str = "Guestbook/1.0",
    ):
        super().__init__(queue_size=queue_size, server_name=server_name)
        self.host = host
        self.port = port
        self.backlog = backlog
        self.buffer_size = buffer_size
        self.timeout = timeout
        self.max_request_size = max_request_size

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._acceptor: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> tuple[str, int]:
        """The bound (host, port); resolves port 0 to the real port."""
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return host, port
        return self.host, self.port

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Allow immediate rebinding after a restart (TIME_WAIT).
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up every second to notice close().
        sock.settimeout(1.0)
        return sock

    def bind(self) -> None:
        """
        Bind and listen.

        Raises:
            OSError: The address is unavailable. The caller treats this
                     as fatal.
        """
        self._socket = self._create_socket()
        try:
            self._socket.bind((self.host, self.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.host}:{self.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.backlog)
        host, port = self.address
        logger.info(f"Listening on {host}:{port}")

    def start(self) -> None:
        """Start the acceptor thread. bind() must have succeeded."""
        if self._socket is None:
            raise RuntimeError("Listener is not bound")
        if self._running:
            return

        self._running = True
        self._acceptor = threading.Thread(target=self._accept_loop, name="Acceptor", daemon=True)
        self._acceptor.start()

    def _accept_loop(self) -> None:
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.buffer_size,
                timeout=self.timeout,
                max_request_size=self.max_request_size,
            )

            if not self.offer(conn):
                logger.warning(f"Request queue full, rejecting {client_address[0]}")
                reject(conn, "Server is overloaded", self.server_name)

    def stop_accepting(self) -> None:
        """
        Tell the acceptor to stop; it notices within its 1s accept timeout.

        Does not block, so it is safe to call from a signal handler.
        """
        self._running = False

    def close(self) -> None:
        """Stop accepting and close the listening socket. Idempotent."""
        self._running = False

        if self._acceptor is not None:
            self._acceptor.join(timeout=2.0)
            self._acceptor = None

        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
            logger.info("Listener closed")
