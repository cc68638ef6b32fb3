"""
=============================================================================
MAIN HTTP SERVER
=============================================================================

The orchestrator that ties the components together.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HTTP SERVER ARCHITECTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        │ (Orchestrator)  │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            │                    │                    │              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │SocketServer  │    │ Concurrency  │    │    Router    │        │
    │    │  (Acceptor)  │───►│    Gate      │    │ (Dispatching)│        │
    │    └──────┬───────┘    └──────────────┘    └──────┬───────┘        │
    │           │                                       │                 │
    │           ▼                                       ▼                 │
    │    ┌──────────────┐                       ┌──────────────┐         │
    │    │  Connection  │                       │   Handlers   │         │
    │    │   Worker     │                       │ echo, files  │         │
    │    └──────────────┘                       └──────────────┘         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE (one request per connection)
=============================================================================

    1. ACCEPT
       └── Acceptor takes a gate slot, then accepts the TCP connection

    2. READ REQUEST LINE                     state: LINE_READ
    3. READ HEADERS                          state: HEADERS_READ
    4. READ BODY (POST with Content-Length)  state: BODY_READ
       └── Any failure in 2-4: log, close, no response

    5. ROUTE                                 state: ROUTED
       └── Router picks a handler, handler returns a RouteResult

    6. WRITE                                 state: RESPONSE_WRITTEN
       └── "HTTP/1.1 <status>\\r\\n" + tail in one sendall()

    7. CLOSE                                 state: CLOSED
       └── Always, whichever step we stopped at. The gate slot is
           released when the worker thread exits.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ConcurrencyGate
from .handlers import root, EchoHandler, user_agent, FileStore, FilesHandler
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    ResponseWriter, RouteResult, Router, RouteKind,
)
from .http import access_log


logger = logging.getLogger(__name__)


def build_router(config: ServerConfig) -> Router:
    """
    Create the route table for a configuration.

    Order matters: the first route that claims a request wins.
    """
    echo = EchoHandler(compress=config.compress_echo)
    store = FileStore(config.storage_dir, preserve_line_endings=config.preserve_line_endings)
    files = FilesHandler(store)

    router = Router()
    router.add_route(RouteKind.EXACT, "/", root, name="root")
    router.add_route(RouteKind.PREFIX, "/echo", echo.handle, name="echo")
    router.add_route(RouteKind.EXACT, "/user-agent", user_agent, name="user-agent")
    router.add_route(RouteKind.PREFIX, "/files", files.handle, methods=("GET", "POST"), name="files")
    return router


class HTTPServer:
    """
    Concurrent HTTP/1.1 server, one request per connection.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(port=4221, storage_dir="/tmp/data"))
        server.run()    # Blocks until SIGINT / SIGTERM / shutdown()

    Running in the background (tests):

        server = HTTPServer(ServerConfig(host="127.0.0.1", port=0))
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_listening(5.0)
        host, port = server.address
        ...
        server.shutdown()
        thread.join()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        """
        Args:
            config: Server configuration. Uses defaults if not provided.
            router: Route table. Built from config if not provided.

        Raises:
            ValueError: Invalid configuration.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self._gate = ConcurrencyGate(self.config.max_workers)
        self._socket_server = SocketServer(self.config, self._gate)

        # ─────────────────────────────────────────────────────────────────
        # REQUEST PIPELINE
        # ─────────────────────────────────────────────────────────────────

        self._parser = RequestParser()
        self._router = router or build_router(self.config)
        self._writer = ResponseWriter()

    @property
    def router(self) -> Router:
        return self._router

    @property
    def gate(self) -> ConcurrencyGate:
        return self._gate

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port) once listening, the configured one before."""
        return self._socket_server.address

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_listening(timeout)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Raises:
            OSError: The listening socket could not be bound.
        """
        self._setup_logging()
        self._check_storage()

        for line in self._router.describe():
            logger.debug(f"Route: {line}")

        try:
            self._socket_server.start(self._process_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask a running server to stop. Returns immediately."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("tinyhttpd").setLevel(level)

    def _check_storage(self):
        if not Path(self.config.storage_dir).is_dir():
            logger.warning(
                f"Storage directory {self.config.storage_dir} does not exist; "
                f"/files requests will fail until it is created"
            )

    def _shutdown(self):
        """
        Graceful shutdown.

        =====================================================================
        GRACEFUL SHUTDOWN PROCESS
        =====================================================================

        1. Accept loop has stopped and the listening socket is closed
        2. Wait for in-flight connections to finish (with timeout)
        3. Log anything left behind

        Workers are daemon threads: any still running after the timeout
        die with the process.

        =====================================================================
        """
        self._socket_server.shutdown()

        active = self._gate.active
        if active:
            logger.info(
                f"Waiting up to {self.config.shutdown_timeout:.0f}s "
                f"for {active} active connection(s)"
            )

        if not self._gate.wait_idle(self.config.shutdown_timeout):
            logger.warning(
                f"Shutdown timeout reached with {self._gate.active} connection(s) still active"
            )

        stats = self._gate.stats
        logger.info(
            f"Server stopped ({stats['admitted']} connections served, "
            f"peak concurrency {stats['peak']})"
        )

    # =========================================================================
    # CONNECTION HANDLING (runs in a ConnectionWorker thread)
    # =========================================================================

    def _process_connection(self, conn: Connection):
        """
        Run one connection through the state machine.

        The `with` block closes the connection on every exit path,
        including exceptions, which ConnectionWorker then logs.
        """
        with conn:
            try:
                method, path = self._parser.read_request_line(conn)
                conn.state = ConnectionState.LINE_READ

                headers = self._parser.read_headers(conn)
                conn.state = ConnectionState.HEADERS_READ

                body = self._parser.read_body(conn, method, headers)
                if method == "POST":
                    conn.state = ConnectionState.BODY_READ
            except HTTPParseError as e:
                logger.warning(
                    f"[{conn.id}] Aborting connection from {conn.client_ip} "
                    f"in state {conn.state.value}: {e}"
                )
                return

            request = HTTPRequest(method=method, path=path, headers=headers, body=body)

            result = self._router.handle(request)
            conn.state = ConnectionState.ROUTED

            if self._writer.write(conn, result):
                conn.state = ConnectionState.RESPONSE_WRITTEN

            self._log_access(conn, request, result)

    def _log_access(self, conn: Connection, request: HTTPRequest, result: RouteResult):
        entry = access_log.RequestLog(
            connection_id=conn.id,
            method=request.method,
            path=request.path,
            client_ip=conn.client_ip,
            user_agent=request.user_agent or "-",
            status_code=int(result.status),
            content_length=len(result.body),
            duration_ms=conn.age * 1000,
            timestamp=access_log.now_timestamp(),
        )
        level = logging.WARNING if result.status.is_server_error else logging.INFO
        access_log.emit(entry, self.config.log_format, level)
