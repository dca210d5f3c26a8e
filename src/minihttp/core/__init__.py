"""
=============================================================================
CORE NETWORKING
=============================================================================

    socket_server.py   Listening socket + accept loop
    connection.py      Per-client buffered I/O and request framing
    thread_pool.py     Bounded workers, one connection per task

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, ReadState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ReadState",
    "ThreadPool",
]
