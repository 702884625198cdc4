"""
Networking and concurrency: connections, the request source, the worker
pool and shutdown coordination.
"""

from .connection import Connection, ConnectionState
from .lifecycle import LifecycleState, ShutdownCoordinator
from .listener import Listener, RequestSource
from .worker_pool import Worker, WorkerPool, WorkerState

__all__ = [
    "Connection",
    "ConnectionState",
    "LifecycleState",
    "ShutdownCoordinator",
    "Listener",
    "RequestSource",
    "Worker",
    "WorkerPool",
    "WorkerState",
]
