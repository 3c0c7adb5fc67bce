"""
Transport core: listening socket, client connections and the worker pool.

    SocketServer ──accept──► Connection ──submit──► ThreadPool
"""

from .connection import Connection, ConnectionState, RequestTooLarge
from .socket_server import SocketServer
from .thread_pool import ThreadPool

__all__ = [
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "SocketServer",
    "ThreadPool",
]
