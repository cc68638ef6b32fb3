"""
=============================================================================
FILES HANDLER
=============================================================================

Stores and serves named blobs under a single storage root directory.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      /files ROUTES                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET  /files              200, empty body                           │
    │   GET  /files/<name>       200 + content  │  404 if unreadable       │
    │   POST /files              400 Bad Request                           │
    │   POST /files/<name>       201 Created    │  500 if unwritable       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
STORAGE MODEL
=============================================================================

The storage root is treated as a flat name → bytes store. <name> is
appended to the root with leading slashes dropped, so "/files//x" is
"<root>/x". There is no other normalization. Files are never deleted here, and
concurrent writes to the same name are not serialized; the filesystem
decides who wins.

=============================================================================
LINE ENDINGS ON READ
=============================================================================

By default GET reads the stored file line by line and concatenates the
lines with their terminators ("\n", "\r\n") removed:

    stored:   b"alpha\nbeta\r\ngamma"
    served:   b"alphabetagamma"           Content-Length: 14

So a multi-line file does not come back byte for byte. Clients that
depend on this behavior keep working; FileStore(preserve_line_endings=
True) serves the stored bytes unchanged instead.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Union

from ..http.response import RouteResult, build_tail, empty_result
from ..http.router import RouteContext
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


def _strip_terminator(line: bytes) -> bytes:
    """Remove one trailing "\n" and then one trailing "\r"."""
    if line.endswith(b"\n"):
        line = line[:-1]
    if line.endswith(b"\r"):
        line = line[:-1]
    return line


class FileStore:
    """
    Name-addressed blob storage rooted at one directory.

    Every method raises OSError on failure; translating that into an
    HTTP status is the handler's job.
    """

    def __init__(self, root: Union[str, Path], preserve_line_endings: bool = False):
        """
        Args:
            root: Storage root directory. Not created if missing.
            preserve_line_endings: Serve stored bytes verbatim instead of
                                   joining lines without terminators.
        """
        self.root = Path(root)
        self.preserve_line_endings = preserve_line_endings

    def path_for(self, name: str) -> Path:
        # Leading slashes would make Path discard the root
        return self.root / name.lstrip("/")

    def read(self, name: str) -> bytes:
        """
        Read a stored blob.

        Raises:
            OSError: Missing file, directory, permission problem, etc.
        """
        path = self.path_for(name)
        if self.preserve_line_endings:
            return path.read_bytes()

        with open(path, "rb") as f:
            return b"".join(_strip_terminator(line) for line in f)

    def write(self, name: str, data: bytes) -> None:
        """
        Create or overwrite a stored blob.

        Raises:
            OSError: The file could not be written.
        """
        self.path_for(name).write_bytes(data)


class FilesHandler:
    """
    GET and POST /files/<name> against a FileStore.

        store = FileStore("/tmp/data")
        files = FilesHandler(store)
        router.add_route(RouteKind.PREFIX, "/files", files.handle,
                         methods=("GET", "POST"))
    """

    def __init__(self, store: FileStore):
        self.store = store

    def handle(self, context: RouteContext) -> RouteResult:
        if context.method == "POST":
            return self._store(context.segment, context.body)
        return self._serve(context.segment)

    def _serve(self, name: str) -> RouteResult:
        if not name:
            return RouteResult(
                HTTPStatus.OK,
                build_tail([("Content-Type", "text/plain"), ("Content-Length", 0)]),
            )

        try:
            content = self.store.read(name)
        except OSError as e:
            logger.info(f"Cannot read stored file {name!r}: {e}")
            return empty_result(HTTPStatus.NOT_FOUND)

        return RouteResult(
            HTTPStatus.OK,
            build_tail(
                [
                    ("Content-Type", "application/octet-stream"),
                    ("Content-Length", len(content)),
                ],
                content,
            ),
        )

    def _store(self, name: str, body) -> RouteResult:
        if not name:
            return empty_result(HTTPStatus.BAD_REQUEST)

        try:
            self.store.write(name, body or b"")
        except OSError as e:
            logger.error(f"Error writing file {name!r}: {e}")
            return empty_result(HTTPStatus.INTERNAL_SERVER_ERROR)

        logger.debug(f"Stored {len(body or b'')} bytes as {name!r}")
        return empty_result(HTTPStatus.CREATED)
