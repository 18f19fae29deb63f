"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps an accepted client socket with the line-oriented API the request
pipeline needs: read one CRLF-terminated line at a time, write all bytes
or fail, and hand a file straight to the kernel for zero-copy transfer.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does not preserve message boundaries. A request line may arrive split
across several recv() calls, or glued to the headers after it:

    First recv():  "GET /home.ht"
    Second recv(): "ml HTTP/1.0\r\nHost: x\r\n\r\n"

So reads go through a buffer, and a "line" is whatever sits in front of
the next b"\n". Anything read past that stays buffered for the next call.

=============================================================================
DEADLINES
=============================================================================

With a timeout configured every recv()/send() is bounded; a silent client
raises TimeoutError instead of pinning the server forever. Dynamic
handlers write to the socket descriptor directly from another process,
which needs a plain blocking descriptor, so `blocking()` lifts the
deadline for that window.

=============================================================================
"""

import logging
import socket
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Iterator, Optional, Tuple


logger = logging.getLogger(__name__)


class LineTooLongError(ConnectionError):
    """A request or header line exceeded the configured maximum length."""


class ConnectionState(Enum):
    """Lifecycle of a single client connection."""

    READING = "reading"
    WRITING = "writing"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    One accepted client connection.

    ┌─────────────────────────────────────────────────────────────────┐
    │                     Connection Lifecycle                         │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   accept() ──► READING ──► WRITING ──► CLOSING ──► CLOSED       │
    │                  │                        ▲                      │
    │                  └── error / timeout ─────┘                      │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

    Use as a context manager so the socket is released on every path:

        with Connection(sock, addr) as conn:
            line = conn.read_line()
            conn.send_all(b"HTTP/1.0 200 OK\\r\\n")
    """

    socket: socket.socket
    address: Tuple[str, int]
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    max_line_length: int = 8192

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.READING
    created_at: float = field(default_factory=time.time)
    bytes_sent: int = 0

    _buffer: bytearray = field(default_factory=bytearray, repr=False)

    def __post_init__(self):
        # settimeout(None) leaves the descriptor in blocking mode.
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    def fileno(self) -> int:
        return self.socket.fileno()

    # =========================================================================
    # READING
    # =========================================================================

    def read_line(self) -> bytes:
        """
        Read one line, terminator included.

        Returns:
            The line as bytes, ending in b"\\n" unless the client closed
            the connection mid-line. An empty result means end of stream.

        Raises:
            TimeoutError: The read deadline expired.
            LineTooLongError: No terminator within max_line_length bytes.
        """
        self.state = ConnectionState.READING

        while True:
            end = self._buffer.find(b"\n")
            if end != -1:
                end += 1
                if end > self.max_line_length:
                    raise LineTooLongError(f"Line longer than {self.max_line_length} bytes")
                line = bytes(self._buffer[:end])
                del self._buffer[:end]
                return line

            if len(self._buffer) >= self.max_line_length:
                raise LineTooLongError(f"Line longer than {self.max_line_length} bytes")

            chunk = self._recv()
            if not chunk:
                # Client closed; hand back whatever partial line is left
                line = bytes(self._buffer)
                self._buffer.clear()
                return line
            self._buffer += chunk

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except socket.timeout:
            raise TimeoutError(f"[{self.id}] Read timed out after {self.timeout}s") from None
        except ConnectionResetError:
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_all(self, data: bytes) -> None:
        """
        Send every byte of `data` or raise.

        Raises:
            ConnectionError: The client went away (reset, broken pipe).
            TimeoutError: The write deadline expired.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except socket.timeout:
            raise TimeoutError(f"[{self.id}] Write timed out after {self.timeout}s") from None
        self.bytes_sent += len(data)

    def send_file(self, file: BinaryIO, count: int) -> int:
        """
        Transfer `count` bytes of an open file to the client.

        socket.sendfile() uses os.sendfile() where the platform has it,
        so file pages go from the page cache to the socket without a
        round trip through Python.

        Returns:
            Number of bytes actually sent (less than `count` only if the
            file shrank underneath us).
        """
        self.state = ConnectionState.WRITING
        if count == 0:
            return 0
        try:
            sent = self.socket.sendfile(file, offset=0, count=count)
        except socket.timeout:
            raise TimeoutError(f"[{self.id}] Write timed out after {self.timeout}s") from None
        self.bytes_sent += sent
        return sent

    @contextmanager
    def blocking(self) -> Iterator[int]:
        """
        Temporarily put the socket in plain blocking mode.

        A socket with a timeout has O_NONBLOCK set on its descriptor, and a
        child process writing to it would see EAGAIN. Yields the descriptor.
        """
        self.state = ConnectionState.WRITING
        self.socket.settimeout(None)
        try:
            yield self.socket.fileno()
        finally:
            if self.state is not ConnectionState.CLOSED:
                self.socket.settimeout(self.timeout)

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection.

        shutdown(SHUT_WR) first so the client sees a FIN right after the
        last response byte (HTTP/1.0 bodies without Content-length end at
        connection close), then release the descriptor.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING
        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s, {self.bytes_sent} bytes sent")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
