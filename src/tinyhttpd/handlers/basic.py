"""
Root, Echo and User-Agent handlers.

All three answer with plain text built from the request itself and
never touch storage.

    GET /                   200, empty tail
    GET /echo/<text>        200, body = <text>
    GET /user-agent         200, body = User-Agent header value
"""

import gzip

from ..http.request import WIRE_ENCODING
from ..http.response import RouteResult, build_tail, empty_result
from ..http.router import RouteContext
from ..http.status_codes import HTTPStatus


def root(context: RouteContext) -> RouteResult:
    """GET / - nothing to say, just 200."""
    return empty_result(HTTPStatus.OK)


class EchoHandler:
    """
    GET /echo/<text> - send <text> straight back.

    =========================================================================
    CONTENT-ENCODING
    =========================================================================

    If the request's Accept-Encoding is EXACTLY "gzip" the response
    carries "Content-Encoding: gzip". There is no list negotiation:
    "gzip, deflate" does not count.

    By default the body is NOT compressed; the header is advertised
    only. With compress=True the body really is gzip-compressed and
    Content-Length is the compressed size.

        EchoHandler()                  # header only
        EchoHandler(compress=True)     # header + gzip.compress(body)

    =========================================================================
    """

    ENCODING = "gzip"

    def __init__(self, compress: bool = False, level: int = 6):
        """
        Args:
            compress: Actually gzip the body when advertising gzip.
            level: gzip compression level (1-9), used when compress is on.
        """
        self.compress = compress
        self.level = level

    def handle(self, context: RouteContext) -> RouteResult:
        text = context.segment
        if not text:
            return RouteResult(
                HTTPStatus.OK,
                build_tail([("Content-Type", "text/plain"), ("Content-Length", 0)]),
            )

        body = text.encode(WIRE_ENCODING)
        headers = [("Content-Type", "text/plain")]

        if context.headers.accept_encoding == self.ENCODING:
            headers.append(("Content-Encoding", self.ENCODING))
            if self.compress:
                body = gzip.compress(body, compresslevel=self.level)

        headers.append(("Content-Length", len(body)))
        return RouteResult(HTTPStatus.OK, build_tail(headers, body))


def user_agent(context: RouteContext) -> RouteResult:
    """GET /user-agent - echo the User-Agent header (empty if absent)."""
    body = context.headers.user_agent.encode(WIRE_ENCODING)
    return RouteResult(
        HTTPStatus.OK,
        build_tail(
            [("Content-Type", "text/plain"), ("Content-Length", len(body))],
            body,
        ),
    )
