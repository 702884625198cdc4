"""
=============================================================================
GUESTBOOK SERVER
=============================================================================

Wires the pieces together and owns the process lifecycle.

    ┌────────────┐   ┌────────────────────┐   ┌──────────────────────────┐
    │ Listener   │──►│ WorkerPool (N)     │──►│ LoggingMiddleware        │
    │ (accept,   │   │  serve_connection: │   │   └─► GuestbookApp       │
    │  queue)    │   │  read → parse →    │   │        ├─► StorageGateway│
    └────────────┘   │  handle → respond  │   │        ├─► render        │
          ▲          └────────────────────┘   │        └─► static files  │
          │ unblock            │ stopped      └──────────────────────────┘
          │                    ▼
    ┌─────┴───────────────────────────┐
    │ ShutdownCoordinator             │ ◄── SIGINT / SIGTERM / shutdown()
    └─────────────────────────────────┘

=============================================================================
STARTUP AND SHUTDOWN
=============================================================================

run():
    1. configure logging
    2. open the store and create the schema      (failure → return 1)
    3. bind the listener                         (failure → return 1)
    4. install SIGINT/SIGTERM handlers (main thread only)
    5. start workers, the shutdown supervisor and the acceptor
    6. wait until the coordinator reports every worker stopped
    7. close the listener, answer 503 to anything still queued,
       close the store, restore signal handlers
    8. return 0

If workers do not stop in time, the coordinator ends the process with
status 1 and run() never returns.

=============================================================================
"""

import logging
import os
import signal
import threading
from typing import Callable, Optional

from .config import ServerConfig
from .core import Connection, Listener, ShutdownCoordinator, WorkerPool
from .handlers import GuestbookApp, StaticFileHandler
from .http import HTTPParseError, HTTPStatus, RequestParser, error_response, internal_error
from .middleware import LoggingMiddleware, MiddlewarePipeline
from .storage import StorageError, StorageGateway


logger = logging.getLogger(__name__)


class GuestbookServer:
    """
    The multi-worker guestbook HTTP server.

    Usage:
        server = GuestbookServer(ServerConfig(port=8080))
        exit_code = server.run()        # blocks until shutdown

    From another thread (tests):
        server.wait_until_ready()
        host, port = server.address
        server.shutdown()
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        exit_func: Callable[[int], None] = os._exit,
    ):
        """
        Args:
            config: Server configuration; defaults are used if omitted.
            exit_func: Called with 1 if workers miss the shutdown deadline.

        Raises:
            ValueError: The configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # APPLICATION
        # ─────────────────────────────────────────────────────────────────

        self.storage = StorageGateway(self.config.db_path, visitor_count=self.config.visitor_count)
        self.static = StaticFileHandler(self.config.static_root, index_file=self.config.index_file)
        self.app = GuestbookApp(self.storage, self.static, cors_origin=self.config.cors_origin)

        self._middleware = MiddlewarePipeline()
        self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))
        self._handler = self._middleware.wrap(self.app.handle)

        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        # ─────────────────────────────────────────────────────────────────
        # CONCURRENCY
        # ─────────────────────────────────────────────────────────────────

        self.listener = Listener(
            host=self.config.host,
            port=self.config.port,
            backlog=self.config.backlog,
            queue_size=self.config.queue_size,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
            max_request_size=self.config.max_request_size,
            server_name=self.config.server_name,
        )
        self.coordinator = ShutdownCoordinator(
            worker_count=self.config.workers,
            unblock=self._release_workers,
            poll_interval=self.config.shutdown_poll_interval,
            max_polls=self.config.shutdown_polls,
            exit_func=exit_func,
        )
        self.pool = WorkerPool(
            self.config.workers, self.listener, self.serve_connection, self.coordinator
        )

        self._ready = threading.Event()
        self._original_handlers: dict = {}

    @property
    def address(self) -> tuple[str, int]:
        """The bound (host, port), with port 0 resolved once bound."""
        return self.listener.address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._ready.wait(timeout)

    def shutdown(self, reason: str = "requested") -> None:
        """Begin graceful shutdown. Safe to call from any thread, repeatedly."""
        self.coordinator.request_shutdown(reason)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self) -> int:
        """
        Run until shut down (blocking).

        Returns:
            0 after a clean shutdown, 1 if startup failed.
        """
        self._setup_logging()

        try:
            self.storage.initialize_schema()
        except StorageError as e:
            logger.critical(f"Cannot start: {e}")
            return 1

        try:
            self.listener.bind()
        except OSError as e:
            logger.critical(f"Cannot start: {e}")
            self.storage.close()
            return 1

        self._setup_signals()

        self.pool.start()
        self.coordinator.start()
        self.listener.start()

        host, port = self.address
        logger.info(
            f"{self.config.server_name} serving {os.path.abspath(self.config.static_root)} "
            f"on http://{host}:{port} with {self.config.workers} workers"
        )
        self._ready.set()

        try:
            while not self.coordinator.wait_stopped(0.5):
                pass
        finally:
            self._cleanup()

        logger.info("Server stopped")
        return 0

    def _release_workers(self, count: int) -> None:
        # Runs inside the signal handler: nothing here may block.
        self.listener.stop_accepting()
        self.listener.unblock(count)

    def _cleanup(self) -> None:
        self.listener.close()
        self.listener.drain()
        self.pool.join()
        self.storage.close()
        self._restore_signals()

    def _setup_logging(self) -> None:
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("guestbook").setLevel(level)

    def _setup_signals(self) -> None:
        """
        Route SIGINT (Ctrl+C) and SIGTERM (kill, docker stop) to shutdown().

        Python only allows this from the main thread; a server started in
        a background thread is stopped with shutdown() instead.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            self.shutdown(signal.Signals(signum).name)

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self) -> None:
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # REQUEST HANDLING (runs on worker threads)
    # =========================================================================

    def serve_connection(self, conn: Connection) -> None:
        """
        Serve the single request on ``conn`` and close it.

        Every request that arrives gets exactly one response: parse errors
        get their status, handler exceptions get 500.
        """
        with conn:
            try:
                raw_request = conn.read_request()
            except TimeoutError:
                self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                return
            except ValueError as e:
                self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                return

            if raw_request is None:
                return

            try:
                request = self._parser.parse(raw_request, conn.address)
            except HTTPParseError as e:
                logger.info(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                self._send_error(conn, e.status_code, str(e))
                return

            try:
                response = self._handler(request)
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error: {e}")
                response = internal_error()

            response.headers["Connection"] = "close"
            conn.send_response(response.to_bytes(self.config.server_name))

    def _send_error(self, conn: Connection, status: int, message: str) -> None:
        response = error_response(status, message)
        response.headers["Connection"] = "close"
        conn.send_response(response.to_bytes(self.config.server_name))
