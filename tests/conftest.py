"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Dict, Generator, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tinyhttpd import HTTPServer, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /echo/hello HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"X-Request-Id: 42\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    body = b"line one\nline two\n"
    return (
        b"POST /files/notes.txt HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"Content-Type: application/octet-stream\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    """Empty storage root for the files handler."""
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


# ─────────────────────────────────────────────────────────────────────────────
# RAW CLIENT HELPERS
# ─────────────────────────────────────────────────────────────────────────────

def recv_all(sock: socket.socket) -> bytes:
    """Read until the server closes the connection."""
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def parse_response(raw: bytes) -> Tuple[str, Dict[str, str], bytes]:
    """Split a raw response into (status text, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    status = lines[0].split(" ", 1)[1]
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return status, headers, body


class LiveServer:
    """HTTPServer running in a background thread, for tests over real sockets."""

    def __init__(self, config: ServerConfig):
        self.server = HTTPServer(config)
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.address

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_listening(5.0):
            raise RuntimeError("Server failed to start")

    def connect(self, timeout: float = 5.0) -> socket.socket:
        sock = socket.create_connection(self.address, timeout=timeout)
        return sock

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw request bytes and return the full raw response."""
        with self.connect(timeout) as sock:
            sock.sendall(raw)
            return recv_all(sock)

    def get(self, path: str, headers: Optional[Dict[str, str]] = None):
        lines = [f"GET {path} HTTP/1.1", "Host: localhost"]
        lines += [f"{name}: {value}" for name, value in (headers or {}).items()]
        raw = ("\r\n".join(lines) + "\r\n\r\n").encode("iso-8859-1")
        return parse_response(self.request(raw))

    def post(self, path: str, body: bytes):
        raw = (
            f"POST {path} HTTP/1.1\r\n"
            f"Host: localhost\r\n"
            f"Content-Length: {len(body)}\r\n"
            f"\r\n"
        ).encode("iso-8859-1") + body
        return parse_response(self.request(raw))

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


def make_config(storage: Path, **overrides) -> ServerConfig:
    settings = dict(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        max_workers=4,
        storage_dir=str(storage),
        shutdown_timeout=5.0,
    )
    settings.update(overrides)
    return ServerConfig(**settings)


@pytest.fixture(scope="module")
def live_server(tmp_path_factory) -> Generator[LiveServer, None, None]:
    """A running server shared by the tests of one module."""
    storage = tmp_path_factory.mktemp("files")
    srv = LiveServer(make_config(storage))
    srv.start()

    yield srv

    srv.stop()


@pytest.fixture
def start_server(storage_dir: Path):
    """Factory for servers with custom settings; all are stopped afterwards."""
    started = []

    def _start(**overrides) -> LiveServer:
        srv = LiveServer(make_config(storage_dir, **overrides))
        srv.start()
        started.append(srv)
        return srv

    yield _start

    for srv in started:
        srv.stop()
