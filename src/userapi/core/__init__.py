"""
=============================================================================
NETWORK CORE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer   listens, accepts, wraps each client in a Connection │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ submit(handle, conn)
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  ThreadPool     bounded queue + min..max worker threads             │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ handle(conn)
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  Connection     read one request, write one response, close         │
    └─────────────────────────────────────────────────────────────────────┘
=============================================================================
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .thread_pool import ThreadPool, Worker, WorkerState

__all__ = [
    "Connection",
    "ConnectionState",
    "SocketServer",
    "ThreadPool",
    "Worker",
    "WorkerState",
]
