"""
=============================================================================
ACCESS LOG
=============================================================================

One structured record per routed request, written to the
"tinyhttpd.access" logger so it can be routed and filtered separately
from the server's diagnostic logs:

    logging.getLogger("tinyhttpd.access").setLevel(logging.WARNING)   # mute
    logging.getLogger("tinyhttpd.access").addHandler(file_handler)     # to file

Two formats:

    text   127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /echo/hi" 200 2 0.41ms
    json   {"connection_id": "3f2a9c1d", "method": "GET", "path": "/echo/hi", ...}

=============================================================================
"""

import json
import logging
import time
from dataclasses import asdict, dataclass


logger = logging.getLogger("tinyhttpd.access")

LOG_FORMATS = ("text", "json")


@dataclass
class RequestLog:
    """
    Access log entry for one request.

    Fields:
        connection_id:  Short id of the connection (matches server logs).
        method:         Request method.
        path:           Request path.
        client_ip:      Peer address.
        user_agent:     User-Agent header, "-" when absent.
        status_code:    Response status.
        content_length: Size of the response body in bytes.
        duration_ms:    Time from connection accept to response written.
        timestamp:      When the entry was made.
    """

    connection_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache-style single line."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


def emit(entry: RequestLog, log_format: str = "text", level: int = logging.INFO) -> None:
    """Write an access log entry in the configured format."""
    if log_format == "json":
        logger.log(level, json.dumps(entry.to_dict()))
    else:
        logger.log(level, entry.to_text())


def now_timestamp() -> str:
    return time.strftime("%d/%b/%Y:%H:%M:%S %z")
