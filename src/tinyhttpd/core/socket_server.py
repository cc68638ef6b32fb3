"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER (ACCEPTOR)
=============================================================================

Owns the listening socket and the accept loop. Every accepted client is
wrapped in a Connection and handed to its own ConnectionWorker thread,
but only after the concurrency gate has granted a slot.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create the TCP socket
    2. bind()      Reserve IP:PORT
    3. listen()    Let the kernel queue incoming connections (backlog)
    4. accept()    Take one queued connection → a NEW client socket
    5. close()     Release the listening socket on shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    └───────────┬───────────┘     Never sends/receives data
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Worker 1  │         │ Worker 2  │   ...   │ Worker N  │
    └───────────┘         └───────────┘         └───────────┘
          At most N at once: the gate is acquired BEFORE accept()

=============================================================================
BACKPRESSURE
=============================================================================

When N workers are busy the loop waits in gate.acquire() instead of
calling accept(). New clients stay queued by the kernel until a slot
frees. They are delayed, never refused by us.

Both waits (gate and accept) use a 1 second timeout so the loop notices
shutdown promptly:

    while running:
        acquire slot (1s) ── timeout? ─► loop
        accept (1s) ──────── timeout? ─► give slot back, loop
                     ─────── error?   ─► log, give slot back, loop
        start ConnectionWorker(conn)

A failing accept() never ends the loop. Only shutdown() does.

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd) trigger shutdown()
instead of killing the process mid-response. Handlers can only be
installed from the main thread; when the server runs in another thread
(tests, embedding) signals are left alone.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection
from .gate import ConcurrencyGate, ConnectionWorker


logger = logging.getLogger(__name__)

POLL_INTERVAL = 1.0


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(handler)                                                    │
    │        ├──► _create_socket()   socket + SO_REUSEADDR + TCP_NODELAY  │
    │        ├──► bind() / listen()                                        │
    │        ├──► _setup_signals()   SIGTERM / SIGINT → shutdown()        │
    │        └──► _accept_loop()     blocks until shutdown                │
    │                                                                      │
    │    shutdown()                  stop the loop (any thread)           │
    │    _cleanup()                  restore signals, close socket        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config, ConcurrencyGate(config.max_workers))
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig, gate: ConcurrencyGate):
        """
        Args:
            config: Host, port, backlog and per-connection settings.
            gate: Concurrency gate limiting active workers.
        """
        self.config = config
        self.gate = gate

        self._socket: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None

        self._running = False
        self._listening = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The (host, port) being listened on.

        Before start() this is the configured address; afterwards it is
        the real one (so port 0 resolves to the OS-assigned port).
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until listen() has been called. Returns False on timeout."""
        return self._listening.wait(timeout)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Rebind immediately after a restart instead of waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Responses go out in one write; don't let Nagle hold them back
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # Bounded accept() so the loop can notice shutdown
        sock.settimeout(POLL_INTERVAL)

        return sock

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop.

        This method BLOCKS until shutdown() is called.

        Args:
            connection_handler: Runs on a worker thread for each admitted
                                connection. It must close the connection.

        Raises:
            OSError: The address could not be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]

        self._running = True
        self._setup_signals()
        self._listening.set()

        host, port = self._bound_address
        logger.info(f"Listening on {host}:{port} (max {self.gate.limit} concurrent connections)")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Admit connections until shutdown.

        Each iteration holds a gate slot from acquire() until either a
        worker takes ownership of it or the slot is given back.
        """
        while self._running:
            if not self.gate.acquire(timeout=POLL_INTERVAL):
                continue  # Gate full; check running flag and wait again

            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                self.gate.release()
                continue
            except OSError as e:
                self.gate.release()
                if not self._running:
                    break  # Listening socket closed by shutdown
                logger.error(f"Error accepting connection: {e}")
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
            )
            self._dispatch(conn, connection_handler)

    def _dispatch(self, conn: Connection, connection_handler: Callable[[Connection], None]):
        """Hand a connection (and its gate slot) to a new worker thread."""
        worker = ConnectionWorker(self.gate, connection_handler, args=(conn,))
        try:
            worker.start()
        except RuntimeError as e:
            # Thread never ran, so its finally never will either
            logger.error(f"[{conn.id}] Could not start worker: {e}")
            self.gate.release()
            conn.close()

    def shutdown(self):
        """
        Stop accepting connections.

        Safe to call from any thread, and more than once. The accept
        loop exits within one poll interval.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._listening.clear()
        logger.info("Socket server stopped")
