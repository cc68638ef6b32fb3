"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can answer with, plus their reason phrases.

Every response starts with a status line:

    HTTP/1.1 404 Not Found\r\n
             ─── ─────────
              │      │
              │      └── Reason phrase (human readable)
              └───────── Status code (machine readable)

Handlers never build that text by hand. They return an HTTPStatus member
and the response writer renders "<code> <phrase>" after "HTTP/1.1 ".

=============================================================================
WHICH CODES, AND WHEN
=============================================================================

    200 OK                    GET /, /echo, /user-agent, /files/<name>
    201 Created               POST /files/<name> stored the body
    400 Bad Request           POST /files/ with no file name
    404 Not Found             Unknown path, or the stored file is missing
    405 Method Not Allowed    Anything other than GET or POST
    500 Internal Server Error POST /files/<name> could not be written

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.status_text
        '404 Not Found'
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """Reason phrase that follows the code in the status line."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def status_text(self) -> str:
        """
        The part of the status line after "HTTP/1.1 ".

        Example: HTTPStatus.CREATED.status_text == "201 Created"
        """
        return f"{int(self)} {self.phrase}"

    @property
    def is_success(self) -> bool:
        """Check if this is a success status (2xx)."""
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        """Check if this is a client error status (4xx)."""
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        """Check if this is a server error status (5xx)."""
        return 500 <= self < 600


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
