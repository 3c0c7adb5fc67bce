"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Owns the listening socket: bind, listen, accept, close.

=============================================================================
TWO-PHASE START
=============================================================================

Binding and serving are separate calls so the caller can learn the bind
result before the accept loop starts blocking:

    listener thread                         GameStateServer.start()
    ───────────────                         ───────────────────────
    address = server.bind()  ─── ok ───►    ready.set()   → return True
        │                    ─ BindFailure► ready.set()   → return False
        ▼
    server.serve(handler)    (blocks until shutdown())

=============================================================================
ACCEPT LOOP
=============================================================================

accept() runs with a short timeout (accept_poll_interval). Every time it
expires the loop re-checks the shutdown event, so shutdown() called from
another thread takes effect within one interval. Signal handling belongs
to the process embedding the server, never to this class.

=============================================================================
"""

import logging
import os
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from ..errors import BindFailure
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP listener.

    Usage:
        server = SocketServer(config)
        host, port = server.bind()        # raises BindFailure
        server.serve(handle_connection)   # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._address: Optional[Tuple[str, int]] = None
        self._shutdown_event = threading.Event()

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Actually bound (host, port); None before bind()."""
        return self._address

    def _create_socket(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.config.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)

        # On Windows SO_REUSEADDR would let a second listener steal the port.
        if os.name != "nt":
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(self.config.accept_poll_interval)
        return sock

    def bind(self) -> Tuple[str, int]:
        """
        Create, bind and listen.

        Returns:
            The bound (host, port). With port 0 this is the OS-chosen port.

        Raises:
            BindFailure: If the address cannot be bound.
            RuntimeError: If already bound.
        """
        if self._socket is not None:
            raise RuntimeError("Socket server is already bound")

        host, port = self.config.host, self.config.port
        sock = self._create_socket()

        try:
            sock.bind((host, port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            raise BindFailure(host, port, str(e)) from e

        self._socket = sock
        self._address = sock.getsockname()[:2]
        self._shutdown_event.clear()

        logger.debug(f"Listening on {self._address[0]}:{self._address[1]}")
        return self._address

    def serve(self, connection_handler: Callable[[Connection], None]) -> None:
        """
        Accept connections until shutdown() is called.

        Each accepted socket is wrapped in a Connection and passed to
        connection_handler on this thread; the handler is expected to hand
        it off quickly (the HTTP layer queues it on the thread pool).

        The listening socket is closed when this returns.
        """
        if self._socket is None:
            raise RuntimeError("bind() must be called before serve()")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while not self._shutdown_event.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._shutdown_event.is_set():
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address[:2],
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self) -> None:
        """Ask the accept loop to exit. Idempotent and thread-safe."""
        self._shutdown_event.set()

    def close(self) -> None:
        """Release the listening socket without serving."""
        self._shutdown_event.set()
        self._cleanup()

    def _cleanup(self):
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
