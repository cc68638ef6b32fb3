"""
=============================================================================
TINYHTTPD - MINIMAL CONCURRENT HTTP/1.1 SERVER
=============================================================================

A raw-socket HTTP/1.1 server: one request per connection, a handful of
fixed routes, and at most N connections in flight at any moment.

=============================================================================
ROUTES
=============================================================================

    GET  /                  200 OK
    GET  /echo/<text>       200, <text> as a text/plain body
    GET  /user-agent        200, the User-Agent header as the body
    GET  /files/<name>      200 with the stored bytes, or 404
    POST /files/<name>      201, request body stored under <name>

    Other paths → 404. Methods other than GET/POST → 405.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    tinyhttpd/
    ├── __main__.py      CLI (python -m tinyhttpd)
    ├── config.py        ServerConfig
    ├── server.py        HTTPServer, connection state machine
    ├── core/            Acceptor, concurrency gate, Connection
    ├── http/            Headers, parser, router, response writer
    └── handlers/        Root, echo, user-agent, files

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, build_router
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "build_router", "__version__"]
