"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps an accepted client socket with request framing, timeouts and a
clean close sequence.

TCP delivers bytes in arbitrary chunks, so read_request() buffers until
it has a full header block (\\r\\n\\r\\n) plus Content-Length body bytes.
Anything read past that stays in the buffer for the next request on a
keep-alive connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection States                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   NEW ──► READING ──► PROCESSING ──► WRITING ──┬──► CLOSING ──► CLOSED│
    │              ▲                                 │                     │
    │              └────────── KEEP_ALIVE ◄──────────┘                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestTooLarge(ValueError):
    """Buffered request bytes exceeded max_request_size."""


@dataclass(eq=False)
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Peer (ip, port).
        id: Short identifier used as a log prefix.
        state: Where the connection is in its lifecycle.
        requests_handled: Requests fully read on this connection.
    """

    socket: socket.socket
    address: Tuple[str, int]
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 10.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 64 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request.

        Subsequent requests on the same connection use the shorter
        keep_alive_timeout; running into it just ends the connection.

        Returns:
            The request bytes, or None if the peer closed the connection
            or an idle keep-alive connection timed out.

        Raises:
            TimeoutError: If the first request does not arrive in time.
            RequestTooLarge: If the request exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            # ─────────────────────────────────────────────────────────────
            # HEADERS
            # ─────────────────────────────────────────────────────────────
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                self._check_size()

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            # ─────────────────────────────────────────────────────────────
            # BODY
            # ─────────────────────────────────────────────────────────────
            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break
                self._buffer += chunk
                self._check_size()

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            if self.state is not ConnectionState.CLOSED:
                self.socket.settimeout(self.timeout)

    def _check_size(self):
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    @staticmethod
    def _parse_content_length(headers: bytes) -> int:
        """
        Content-Length from raw header bytes, 0 when absent or invalid.

        The real header parse happens later in RequestParser; this only
        tells us how many body bytes to wait for.
        """
        header_str = headers.decode("latin-1").lower()
        for line in header_str.split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(int(line.split(":", 1)[1].strip()), 0)
                except ValueError:
                    return 0
        return 0

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes with sendall().

        Returns:
            False if the peer went away.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    def abort(self):
        """
        Unblock a worker waiting in recv() from another thread.

        The worker sees end-of-stream and closes the connection itself.
        """
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass

    def close(self, drain_timeout: float = 0.5):
        """
        Close the connection.

        shutdown(SHUT_WR) sends FIN, a short drain reads whatever the
        client still had in flight, then the descriptor is released.
        Safe to call more than once.

        Args:
            drain_timeout: How long the drain may wait for client bytes.
                           0 reads only what has already arrived, so the
                           listener thread can close without blocking.
        """
        if self.state is ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # peer already gone

        try:
            self.socket.settimeout(drain_timeout)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
