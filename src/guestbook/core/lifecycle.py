"""
=============================================================================
SHUTDOWN COORDINATION
=============================================================================

Turns "please stop" (Ctrl+C, SIGTERM, or a call from code) into an orderly
stop of every worker, with a hard deadline.

    RUNNING ──request_shutdown()──► SHUTTING_DOWN ──all workers stopped──► STOPPED
                                          │
                                          └── deadline passed ──► exit(1)

=============================================================================
THE SEQUENCE
=============================================================================

    1. request_shutdown()
         - sets the shutdown flag (idempotent; later calls do nothing)
         - wakes every worker blocked on the request source, one
           unblock per worker
    2. each worker
         - finishes the request it is serving, if any
         - sees the flag, leaves its loop
         - reports worker_stopped() exactly once
    3. the supervisor thread
         - sleeps until the flag is set
         - then checks up to ``max_polls`` times, ``poll_interval`` apart,
           whether every worker has reported
         - all stopped → STOPPED, ``wait_stopped()`` returns True
         - deadline passed → logs CRITICAL and calls ``exit_func(1)``

With the defaults (30 polls × 1s) a worker stuck on a slow client gets
about 30 seconds before the process is forced down.

=============================================================================
"""

import logging
import os
import threading
from enum import Enum
from typing import Callable, Optional


logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class ShutdownCoordinator:
    """
    Shared shutdown flag, stopped-worker counter and deadline supervisor.

    Usage:
        coordinator = ShutdownCoordinator(worker_count=4, unblock=source.unblock)
        coordinator.start()
        ...
        coordinator.request_shutdown("SIGINT")
        coordinator.wait_stopped()
    """

    def __init__(
        self,
        worker_count: int,
        unblock: Optional[Callable[[int], None]] = None,
        poll_interval: float = 1.0,
        max_polls: int = 30,
        exit_func: Callable[[int], None] = os._exit,
    ):
        """
        Args:
            worker_count: Workers that must report before shutdown completes.
            unblock: Called as ``unblock(worker_count)`` to wake idle workers.
            poll_interval: Seconds between checks once shutdown is requested.
            max_polls: Checks before giving up and forcing an exit.
            exit_func: Called with 1 when the deadline passes. The default,
                       os._exit, does not wait for the stuck threads.
        """
        self.worker_count = worker_count
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self._unblock = unblock
        self._exit_func = exit_func

        self._lock = threading.Lock()
        self._claim = threading.Lock()
        self._state = LifecycleState.RUNNING
        self._stopped_workers = 0
        self._reason = ""

        self._requested = threading.Event()
        self._all_workers_stopped = threading.Event()
        self._stopped = threading.Event()
        self._supervisor: Optional[threading.Thread] = None

        if worker_count == 0:
            self._all_workers_stopped.set()

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def shutdown_requested(self) -> bool:
        return self._requested.is_set()

    @property
    def stopped_workers(self) -> int:
        return self._stopped_workers

    @property
    def reason(self) -> str:
        return self._reason

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def request_shutdown(self, reason: str = "requested") -> bool:
        """
        Begin shutdown. Safe to call from a signal handler and more than once.

        Returns:
            True for the call that actually started the shutdown.
        """
        # May re-enter on the same thread (a second signal mid-handler).
        # The claim is acquired without blocking and never released.
        if not self._claim.acquire(blocking=False):
            logger.debug(f"Shutdown already in progress, ignoring {reason}")
            return False

        self._reason = reason
        self._state = LifecycleState.SHUTTING_DOWN
        self._requested.set()

        logger.info(f"Shutdown requested ({reason}), stopping {self.worker_count} worker(s)")

        if self._unblock is not None:
            self._unblock(self.worker_count)
        return True

    def worker_stopped(self, worker_id: int) -> None:
        """Record that one worker has left its loop. Call exactly once per worker."""
        with self._lock:
            self._stopped_workers += 1
            stopped = self._stopped_workers

        logger.debug(f"Worker {worker_id} stopped ({stopped}/{self.worker_count})")

        if stopped >= self.worker_count:
            self._all_workers_stopped.set()

    def start(self) -> None:
        """Start the supervisor thread."""
        if self._supervisor is not None:
            return
        self._supervisor = threading.Thread(
            target=self._supervise, name="ShutdownSupervisor", daemon=True
        )
        self._supervisor.start()

    def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every worker has stopped after a shutdown request.

        Returns:
            True once STOPPED, False if ``timeout`` elapsed first.
        """
        return self._stopped.wait(timeout)

    # =========================================================================
    # SUPERVISOR
    # =========================================================================

    def _supervise(self) -> None:
        self._requested.wait()

        for poll in range(1, self.max_polls + 1):
            if self._all_workers_stopped.wait(self.poll_interval):
                with self._lock:
                    self._state = LifecycleState.STOPPED
                logger.info("All workers stopped")
                self._stopped.set()
                return
            logger.info(
                f"Waiting for workers: {self._stopped_workers}/{self.worker_count} "
                f"stopped (check {poll}/{self.max_polls})"
            )

        logger.critical(
            f"{self.worker_count - self._stopped_workers} worker(s) still running after "
            f"{self.max_polls * self.poll_interval:.0f}s, forcing exit"
        )
        self._exit_func(1)
