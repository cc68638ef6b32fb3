"""
=============================================================================
REQUEST HANDLERS
=============================================================================

Handlers take a RouteContext and return a RouteResult. They never see
the socket and never raise for expected failures.

1. basic.py
   - root()          GET /
   - EchoHandler     GET /echo/<text>, optional Content-Encoding: gzip
   - user_agent()    GET /user-agent

2. files.py
   - FileStore       name → bytes under one storage root
   - FilesHandler    GET / POST /files/<name>

=============================================================================
USAGE
=============================================================================

    from tinyhttpd.handlers import EchoHandler, FileStore, FilesHandler

    files = FilesHandler(FileStore("/tmp/data"))
    router.add_route(RouteKind.PREFIX, "/files", files.handle,
                     methods=("GET", "POST"))

=============================================================================
"""

from .basic import root, EchoHandler, user_agent
from .files import FileStore, FilesHandler

__all__ = [
    "root",
    "EchoHandler",
    "user_agent",
    "FileStore",
    "FilesHandler",
]
