"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows what HTTP/1.1 bytes look like:

    headers.py       The six recognized request headers (HeaderSet)
    request.py       Stream → HTTPRequest (RequestParser), parse errors
    router.py        (method, path) → handler, tagged route table
    response.py      RouteResult, tail building, ResponseWriter
    status_codes.py  The statuses this server emits
    access_log.py    One log record per routed request

=============================================================================
ONE REQUEST, ONE RESPONSE
=============================================================================

    GET /echo/abc HTTP/1.1\r\n          HTTP/1.1 200 OK\r\n
    Host: localhost:4221\r\n      ──►   Content-Type: text/plain\r\n
    \r\n                                Content-Length: 3\r\n
                                        \r\n
                                        abc

There is no keep-alive: the connection closes after the response.

=============================================================================
"""

from .headers import HeaderName, HeaderSet
from .request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    FramingError,
    BodyUnderrunError,
    parse_request,
)
from .response import RouteResult, ResponseWriter, build_tail, empty_result, serialize
from .router import Router, Route, RouteKind, RouteContext
from .status_codes import HTTPStatus

__all__ = [
    # Headers
    "HeaderName",
    "HeaderSet",

    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "FramingError",
    "BodyUnderrunError",
    "parse_request",

    # Response writing
    "RouteResult",
    "ResponseWriter",
    "build_tail",
    "empty_result",
    "serialize",

    # Routing
    "Router",
    "Route",
    "RouteKind",
    "RouteContext",

    # Status codes
    "HTTPStatus",
]
