"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

This module turns the raw byte stream of one connection into an
HTTPRequest: method, path, recognized headers and an optional body.

=============================================================================
WHAT WE READ, IN ORDER
=============================================================================

    ┌─────────────────────────────────────────────────────────────────┐
    │  REQUEST LINE                                                    │
    │  POST /files/notes.txt HTTP/1.1\r\n                              │
    │  └──┘ └──────────────┘                                           │
    │  Method     Path          (the version token is not used)        │
    ├─────────────────────────────────────────────────────────────────┤
    │  HEADERS (one line at a time, until an empty line or EOF)        │
    │  Host: localhost:4221\r\n                                        │
    │  Content-Length: 5\r\n          ← only read for POST             │
    │  \r\n                                                            │
    ├─────────────────────────────────────────────────────────────────┤
    │  BODY (POST with Content-Length only)                            │
    │  hello                          ← exactly Content-Length bytes   │
    └─────────────────────────────────────────────────────────────────┘

The parser works directly on a readable stream rather than on a
pre-buffered blob of bytes. Anything with readline() and read(n) works:
a Connection in production, io.BytesIO in tests.

The three reads are exposed as separate steps (read_request_line,
read_headers, read_body) so the connection worker can record its
progress through the connection state machine between them. parse()
runs all three.

=============================================================================
FAILURE MODES
=============================================================================

    FramingError        The stream closed before a full request line,
                        a header read hit an I/O error, or the
                        Content-Length value is negative.

    BodyUnderrunError   Content-Length promised more bytes than the
                        peer sent before closing.

Both abort the connection. No response is written for either.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Protocol

from .headers import WHITESPACE, HeaderSet


# Wire bytes are decoded one byte per character so that re-encoding a
# path segment reproduces the exact bytes the client sent.
WIRE_ENCODING = "iso-8859-1"


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the HTTP status a lenient server would have answered with.
    This server never answers a malformed request; the code is only
    used in log messages.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class FramingError(HTTPParseError):
    """The request line or headers could not be read as an HTTP message."""


class BodyUnderrunError(FramingError):
    """The stream ended before Content-Length body bytes arrived."""

    def __init__(self, expected: int, received: int):
        super().__init__(
            f"Incomplete body: expected {expected} bytes, got {received}"
        )
        self.expected = expected
        self.received = received


class ByteStream(Protocol):
    """The two read operations the parser needs."""

    def readline(self) -> bytes: ...

    def read(self, size: int) -> bytes: ...


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed HTTP request.

    Created once per connection by RequestParser and never modified.

    Attributes:
        method:  Request method token as sent ("GET", "POST", ...).
        path:    Second token of the request line, verbatim. Empty when
                 the request line had fewer than two tokens.
        headers: The recognized headers (see headers.py).
        body:    Raw body bytes, or None when no body was read.
    """

    method: str
    path: str
    headers: HeaderSet = field(default_factory=HeaderSet)
    body: Optional[bytes] = None

    @property
    def user_agent(self) -> str:
        return self.headers.user_agent

    @property
    def has_body(self) -> bool:
        return self.body is not None


class RequestParser:
    """
    Reads one request from a byte stream.

    ==========================================================================
    PARSER STEPS
    ==========================================================================

        stream
          │
          ▼
        read_request_line()  ──► (method, path)
          │                       no complete line? → FramingError
          ▼
        read_headers()       ──► HeaderSet
          │                       I/O error?        → FramingError
          ▼
        read_body()          ──► bytes | None       (POST only)
          │                       short read?       → BodyUnderrunError
          ▼
        HTTPRequest

    ==========================================================================
    """

    def parse(self, stream: ByteStream) -> HTTPRequest:
        """
        Parse a complete request from the stream.

        Args:
            stream: Readable byte stream positioned at the request line.

        Returns:
            The parsed HTTPRequest.

        Raises:
            FramingError: Malformed or truncated request line or headers.
            BodyUnderrunError: Body shorter than its Content-Length.
        """
        method, path = self.read_request_line(stream)
        headers = self.read_headers(stream)
        body = self.read_body(stream, method, headers)
        return HTTPRequest(method=method, path=path, headers=headers, body=body)

    def read_request_line(self, stream: ByteStream) -> tuple[str, str]:
        """
        Read the request line and split out method and path.

        The line is trimmed and split on single spaces. Fewer than two
        tokens is not an error here: the path comes back empty and the
        router answers 404.

        Raises:
            FramingError: The stream closed (or failed) before a full line.
        """
        try:
            raw = stream.readline()
        except OSError as e:
            raise FramingError(f"Failed to read request line: {e}") from e

        if not raw.endswith(b"\n"):
            raise FramingError("Connection closed before a complete request line")

        parts = raw.decode(WIRE_ENCODING).strip(WHITESPACE).split(" ")
        method = parts[0]
        path = parts[1] if len(parts) >= 2 else ""
        return method, path

    def read_headers(self, stream: ByteStream) -> HeaderSet:
        """
        Read header lines until an empty line or end of stream.

        Each line is split at the first ":" and both sides are trimmed.
        Lines without a colon and unrecognized names are skipped. A last
        line cut off by EOF (no line break) is treated as end of stream.

        Raises:
            FramingError: A header read failed with an I/O error.
        """
        pairs: list[tuple[str, str]] = []

        while True:
            try:
                raw = stream.readline()
            except OSError as e:
                raise FramingError(f"Failed to read header line: {e}") from e

            if not raw.endswith(b"\n"):
                # Clean end of stream
                break

            line = raw.decode(WIRE_ENCODING).strip(WHITESPACE)
            if not line:
                break

            name, sep, value = line.partition(":")
            if not sep:
                continue
            pairs.append((name.strip(WHITESPACE), value.strip(WHITESPACE)))

        return HeaderSet.from_pairs(pairs)

    def read_body(
        self,
        stream: ByteStream,
        method: str,
        headers: HeaderSet,
    ) -> Optional[bytes]:
        """
        Read exactly Content-Length body bytes for a POST request.

        Returns None for other methods and for a POST without a
        Content-Length header. A value that is not a number counts as 0.

        Raises:
            FramingError: Content-Length is negative, or the body read
                          failed with an I/O error.
            BodyUnderrunError: The stream ended early.
        """
        if method != "POST":
            return None

        raw_length = headers.content_length
        if raw_length is None:
            return None

        length = _content_length(raw_length)

        chunks = []
        received = 0
        try:
            while received < length:
                chunk = stream.read(length - received)
                if not chunk:
                    break
                chunks.append(chunk)
                received += len(chunk)
        except OSError as e:
            raise FramingError(f"Failed to read request body: {e}") from e

        if received < length:
            raise BodyUnderrunError(length, received)

        return b"".join(chunks)


def _is_digits(value: str) -> bool:
    return value.isascii() and value.isdigit()


def _content_length(raw_length: str) -> int:
    """
    Interpret a Content-Length value.

        "12"   → 12
        "abc"  → 0      (so are "", "1.5", "1_0")
        "-1"   → FramingError
    """
    if _is_digits(raw_length):
        return int(raw_length)
    if raw_length.startswith("-") and _is_digits(raw_length[1:]):
        raise FramingError(f"Negative Content-Length: {raw_length!r}")
    return 0


def parse_request(stream: ByteStream) -> HTTPRequest:
    """
    Convenience function to parse one request with a fresh parser.

    The parser holds no state, so this is equivalent to
    RequestParser().parse(stream).
    """
    return RequestParser().parse(stream)
