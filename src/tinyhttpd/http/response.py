"""
=============================================================================
HTTP RESPONSE WRITING
=============================================================================

Handlers do not build full HTTP messages. They return a RouteResult:

    RouteResult(
        status=HTTPStatus.OK,                 → "200 OK"
        tail=b"Content-Type: text/plain\r\n"  ┐
             b"Content-Length: 3\r\n"         │ everything after the
             b"\r\n"                          │ status line, already
             b"abc",                          ┘ serialized
    )

The ResponseWriter glues the status line on the front and sends the whole
thing in one write:

    HTTP/1.1 200 OK\r\n          ← "HTTP/1.1 " + status_text + CRLF
    Content-Type: text/plain\r\n ┐
    Content-Length: 3\r\n        │ tail
    \r\n                         │
    abc                          ┘

=============================================================================
THE TAIL INVARIANT
=============================================================================

Every tail contains the empty line that ends the header block, even when
there are no headers and no body. The smallest valid tail is b"\r\n".
build_tail() and empty_result() are the only ways handlers create tails,
so the invariant holds everywhere.

No Date, Server or Connection headers are added. A response carries
exactly the headers its handler chose.

=============================================================================
"""

from dataclasses import dataclass
import logging
from typing import Iterable, Protocol, Tuple, Union

from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)

CRLF = b"\r\n"
HTTP_VERSION = "HTTP/1.1"

HeaderPairs = Iterable[Tuple[str, Union[str, int]]]


@dataclass(frozen=True)
class RouteResult:
    """
    What a handler produces: a status and the serialized response tail.

    Attributes:
        status: Response status; rendered as e.g. "200 OK".
        tail:   Header lines, the blank separator line, then the body.
    """

    status: HTTPStatus
    tail: bytes = CRLF

    @property
    def status_text(self) -> str:
        return self.status.status_text

    @property
    def body(self) -> bytes:
        """The body part of the tail (everything after the blank line)."""
        if self.tail.startswith(CRLF):
            return self.tail[len(CRLF):]
        _, _, body = self.tail.partition(CRLF + CRLF)
        return body


def build_tail(headers: HeaderPairs = (), body: bytes = b"") -> bytes:
    """
    Serialize response headers and body into a tail.

        build_tail([("Content-Length", 0)])
        → b"Content-Length: 0\r\n\r\n"

    Args:
        headers: (name, value) pairs in the order they should be sent.
        body: Response body bytes.

    Returns:
        Header lines, blank line, body.
    """
    lines = [f"{name}: {value}".encode("iso-8859-1") + CRLF for name, value in headers]
    return b"".join(lines) + CRLF + body


def empty_result(status: HTTPStatus) -> RouteResult:
    """A result with no headers and no body (tail is just the blank line)."""
    return RouteResult(status=status, tail=CRLF)


def serialize(result: RouteResult) -> bytes:
    """
    Produce the full response bytes for a RouteResult.

    Format: "HTTP/1.1 " + status + CRLF + tail
    """
    status_line = f"{HTTP_VERSION} {result.status_text}".encode("ascii")
    return status_line + CRLF + result.tail


class ResponseSink(Protocol):
    """Anything that can send a complete response in one call."""

    def send_response(self, data: bytes) -> bool: ...


class ResponseWriter:
    """
    Writes RouteResults to a connection.

    A failed write is logged and reported; there is no retry and no
    attempt to resume a partial write. The caller closes the connection
    either way.
    """

    def write(self, sink: ResponseSink, result: RouteResult) -> bool:
        """
        Serialize the result and send it in a single write.

        Args:
            sink: The connection to write to.
            result: Handler output.

        Returns:
            True if the whole response was sent.
        """
        data = serialize(result)
        sent = sink.send_response(data)
        if not sent:
            logger.warning(f"Failed to write {result.status_text} response ({len(data)} bytes)")
        return sent
