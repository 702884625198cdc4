"""
=============================================================================
WORKER POOL
=============================================================================

A fixed number of long-lived threads, all pulling from the same
RequestSource. The count never changes while the server runs: no scaling
up, no retiring idle workers.

    ┌──────────────────────────────────────────────────────────────────┐
    │                         Worker Loop                              │
    ├──────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   1. conn = source.next()          (blocks)                      │
    │          │                                                       │
    │          ├── None → woken by shutdown, nothing to serve          │
    │          └── conn → serve(conn): read, dispatch, respond         │
    │                     (exceptions are logged, never fatal)         │
    │                                                                  │
    │   2. shutdown requested?                                         │
    │          ├── No  → back to 1                                     │
    │          └── Yes → leave the loop                                │
    │                                                                  │
    │   3. report worker_stopped() to the coordinator, exactly once    │
    │      (in a finally block, so even an unexpected error counts)    │
    │                                                                  │
    └──────────────────────────────────────────────────────────────────┘

A request that was already being served when shutdown began is finished
before the worker exits.

=============================================================================
"""

import logging
import threading
import time
from enum import Enum
from typing import Callable

from .connection import Connection
from .lifecycle import ShutdownCoordinator
from .listener import RequestSource


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"        # Waiting on the request source
    BUSY = "busy"        # Serving a connection
    STOPPED = "stopped"  # Left the loop


class Worker(threading.Thread):
    """One worker thread. See the module docstring for the loop."""

    def __init__(
        self,
        worker_id: int,
        source: RequestSource,
        serve: Callable[[Connection], None],
        coordinator: ShutdownCoordinator,
    ):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.worker_id = worker_id
        self.source = source
        self.serve = serve
        self.coordinator = coordinator

        self.state = WorkerState.IDLE
        self.requests_served = 0
        self.requests_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")
        try:
            while True:
                conn = self.source.next()
                if conn is not None:
                    self._serve(conn)
                if self.coordinator.shutdown_requested:
                    break
        finally:
            self.state = WorkerState.STOPPED
            self.coordinator.worker_stopped(self.worker_id)

    def _serve(self, conn: Connection):
        self.state = WorkerState.BUSY
        start_time = time.time()
        try:
            self.serve(conn)
            self.requests_served += 1
        except Exception as e:
            # serve() answers errors itself; this only catches bugs in it.
            elapsed = time.time() - start_time
            logger.exception(f"Worker {self.worker_id} failed after {elapsed:.3f}s: {e}")
            self.requests_failed += 1
            conn.close()
        finally:
            self.state = WorkerState.IDLE


class WorkerPool:
    """
    Starts ``size`` workers and reports on them.

    Usage:
        pool = WorkerPool(4, source, serve, coordinator)
        pool.start()
        ...
        coordinator.request_shutdown()
        pool.join()
    """

    def __init__(
        self,
        size: int,
        source: RequestSource,
        serve: Callable[[Connection], None],
        coordinator: ShutdownCoordinator,
    ):
        if size < 1:
            raise ValueError("Worker pool needs at least one worker")
        self.size = size
        self.source = source
        self.serve = serve
        self.coordinator = coordinator
        self._workers: list[Worker] = []
        self._started = False

    @property
    def workers(self) -> list[Worker]:
        return list(self._workers)

    def start(self):
        if self._started:
            return

        logger.info(f"Starting {self.size} workers")
        for worker_id in range(self.size):
            worker = Worker(worker_id, self.source, self.serve, self.coordinator)
            self._workers.append(worker)
            worker.start()
        self._started = True

    def join(self, timeout: float = 2.0):
        """Join each worker, waiting at most ``timeout`` seconds per worker."""
        for worker in self._workers:
            worker.join(timeout=timeout)

    @property
    def active_workers(self) -> int:
        return sum(1 for w in self._workers if w.state != WorkerState.STOPPED)

