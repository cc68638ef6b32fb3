"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one accepted client socket with the small stream API
the request parser needs (readline / read) plus single-call response
sending and an unconditional close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

TCP does NOT preserve message boundaries. A client that sends

    POST /files/a HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello

may be received as any split of those bytes:

    recv() → "POST /files/a HT"
    recv() → "TP/1.1\r\nContent-Length: 5\r\n\r\nhel"
    recv() → "lo"

So the Connection keeps a buffer. readline() pulls chunks until it has
seen a line break; read(n) pulls chunks until it has n bytes. Whatever
was received past that point stays in the buffer for the next call.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

One request per connection. Every arrow can also fail, and every
failure goes straight to CLOSED:

    ACCEPTED ──► LINE_READ ──► HEADERS_READ ──┬──► BODY_READ ──┐
        │            │              │         │  (POST only)   │
        │            │              │         ▼                ▼
        │            │              │       ROUTED ◄───────────┘
        │            │              │         │
        │            │              │         ▼
        │            │              │   RESPONSE_WRITTEN
        │            │              │         │
        └────────────┴──────────────┴─────────┴──────────► CLOSED

A parse failure (LINE_READ, HEADERS_READ, BODY_READ) closes without
writing anything. There is no keep-alive: after RESPONSE_WRITTEN the
connection always closes.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    Tracked for logging and for tests; nothing branches on them.
    """
    ACCEPTED = "accepted"                  # Socket accepted, nothing read yet
    LINE_READ = "line_read"                # Request line parsed
    HEADERS_READ = "headers_read"          # Header block parsed
    BODY_READ = "body_read"                # POST body read
    ROUTED = "routed"                      # Handler produced a result
    RESPONSE_WRITTEN = "response_written"  # Response sent
    CLOSED = "closed"                      # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BUFFERED READING                                                 │
    │     └── readline(): up to and including the next "\n"               │
    │     └── read(n): exactly n bytes, fewer only at end of stream       │
    │                                                                      │
    │  2. SINGLE-CALL WRITES                                               │
    │     └── send_response() hands the whole response to sendall()       │
    │                                                                      │
    │  3. STATE TRACKING                                                   │
    │     └── Which step of the state machine we reached                  │
    │                                                                      │
    │  4. CLOSE                                                            │
    │     └── Idempotent; used as a context manager so it always runs     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Unique connection identifier (for logging).
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.ACCEPTED
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 1024

    # Internal state (not shown in repr for cleaner logs)
    _buffer: bytes = field(default=b"", repr=False)
    _eof: bool = field(default=False, repr=False)

    def __post_init__(self):
        # Accepted sockets inherit the listener's poll timeout; reads
        # here block until the peer sends or closes.
        self.socket.settimeout(None)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else ""

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def readline(self) -> bytes:
        """
        Read up to and including the next b"\\n".

        Returns:
            The line with its terminator. At end of stream, whatever was
            left (possibly b"") WITHOUT a terminator.

        Raises:
            OSError: The socket failed (other than a reset by the peer).
        """
        while b"\n" not in self._buffer:
            chunk = self._recv()
            if not chunk:
                line, self._buffer = self._buffer, b""
                return line
            self._buffer += chunk

        end = self._buffer.index(b"\n") + 1
        line, self._buffer = self._buffer[:end], self._buffer[end:]
        return line

    def read(self, size: int) -> bytes:
        """
        Read exactly `size` bytes, or fewer if the peer closes first.

        Raises:
            OSError: The socket failed (other than a reset by the peer).
        """
        while len(self._buffer) < size:
            chunk = self._recv()
            if not chunk:
                break
            self._buffer += chunk

        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def _recv(self) -> bytes:
        """
        Receive one chunk from the socket.

        Returns b"" once the peer has closed or reset the connection.
        """
        if self._eof:
            return b""
        try:
            data = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            data = b""
        if not data:
            self._eof = True
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send a complete response in one call.

        sendall() blocks until every byte is handed to the kernel or the
        socket fails. A failure is not retried.

        Returns:
            True if the send succeeded, False if it failed.
        """
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection. Safe to call more than once.

        1. shutdown(SHUT_WR) sends FIN so the client sees end of response
        2. briefly drain unread input so the kernel does not answer the
           client's leftover bytes with a RST (which can destroy the
           response before the client reads it)
        3. close() releases the descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
