"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing under the HTTP layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Creates, binds and listens on the TCP socket                     │
    │  • Runs the accept() loop, one gate slot per accept                 │
    │  • Handles graceful shutdown via signals (SIGTERM, SIGINT)         │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ acquire slot, then accept
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                  CONCURRENCY GATE + WORKERS                          │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • At most N connections in flight                                  │
    │  • One ConnectionWorker thread per admitted connection              │
    │  • Slot released when the worker exits, however it exits            │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ worker owns the connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Buffered readline() / read(n) over the client socket            │
    │  • One sendall() per response                                       │
    │  • Lifecycle state (ACCEPTED → ... → CLOSED)                        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .gate import ConcurrencyGate, ConnectionWorker, WorkerState

__all__ = [
    "SocketServer",      # Listening socket + gated accept loop
    "Connection",        # Wrapper for client socket - handles I/O
    "ConnectionState",   # Enum for connection lifecycle states
    "ConcurrencyGate",   # Bounded admission of connection workers
    "ConnectionWorker",  # Thread serving one connection
    "WorkerState",
]
