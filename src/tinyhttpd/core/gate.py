"""
=============================================================================
CONCURRENCY GATE AND CONNECTION WORKERS
=============================================================================

The server runs one worker thread per connection, but never more than N
of them at once. The gate is the counter that enforces N.

=============================================================================
WHY A GATE AND NOT A QUEUE?
=============================================================================

A task queue in front of a fixed pool would accept every connection and
park the extras in memory. The gate instead pushes back on the accept
loop itself:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       ADMISSION FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Acceptor                    Gate (limit=N)          Workers        │
    │      │                             │                                 │
    │      │── acquire() ──────────────► │  active < N ?                   │
    │      │                             │    yes → active += 1            │
    │      │◄──────────── slot ──────────│    no  → BLOCK until release    │
    │      │                             │                                 │
    │      │── accept() ──► socket                                         │
    │      │── start ConnectionWorker ──────────────────────► run()        │
    │      │                             │                      │          │
    │      │                             │◄──── release() ──────┘          │
    │      │                             │   (finally, on every exit)      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

While all N slots are taken the acceptor is not calling accept(), so
new clients wait in the kernel's listen backlog. Nobody is rejected and
nothing is queued in the process.

=============================================================================
SHARED STATE
=============================================================================

The gate's counter is the only state shared between workers. It is
guarded by one threading.Condition:

    acquire()     waits on the condition while active == limit
    release()     decrements and notifies one waiter (and idle waiters)
    wait_idle()   waits until active == 0 (graceful shutdown)

Only the acceptor ever blocks in acquire(). Workers only release.

=============================================================================
"""

import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional


logger = logging.getLogger(__name__)


class ConcurrencyGate:
    """
    Counting admission control for connection workers.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ConcurrencyGate Usage                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   gate = ConcurrencyGate(limit=4)                                   │
    │                                                                      │
    │   # Scoped: released on every exit path                             │
    │   with gate:                                                         │
    │       handle(conn)                                                   │
    │                                                                      │
    │   # Split: acquire in one thread, release in another                │
    │   if gate.acquire(timeout=1.0):                                     │
    │       start_worker(release=gate.release)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, limit: int):
        """
        Args:
            limit: Maximum number of simultaneously held slots (>= 1).
        """
        if limit < 1:
            raise ValueError(f"Gate limit must be >= 1, got {limit}")

        self._limit = limit
        self._active = 0
        self._peak = 0
        self._admitted = 0
        self._cond = threading.Condition()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def active(self) -> int:
        """Slots currently held."""
        with self._cond:
            return self._active

    @property
    def available(self) -> int:
        with self._cond:
            return self._limit - self._active

    @property
    def peak(self) -> int:
        """Highest number of slots ever held at the same time."""
        with self._cond:
            return self._peak

    @property
    def admitted(self) -> int:
        """Total number of successful acquires."""
        with self._cond:
            return self._admitted

    def acquire(self, timeout: Optional[float] = None) -> bool:
        """
        Take a slot, blocking while the gate is full.

        Args:
            timeout: Seconds to wait. None waits forever.

        Returns:
            True if a slot was taken, False on timeout.
        """
        with self._cond:
            acquired = self._cond.wait_for(
                lambda: self._active < self._limit, timeout=timeout
            )
            if not acquired:
                return False

            self._active += 1
            self._admitted += 1
            self._peak = max(self._peak, self._active)
            return True

    def release(self) -> None:
        """
        Give a slot back.

        Raises:
            RuntimeError: More releases than acquires.
        """
        with self._cond:
            if self._active == 0:
                raise RuntimeError("ConcurrencyGate released too many times")
            self._active -= 1
            # notify_all: one acquirer plus any wait_idle() callers
            self._cond.notify_all()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until no slots are held.

        Returns:
            True if the gate drained, False on timeout.
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._active == 0, timeout=timeout)

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False

    @property
    def stats(self) -> dict:
        with self._cond:
            return {
                "limit": self._limit,
                "active": self._active,
                "peak": self._peak,
                "admitted": self._admitted,
            }


class WorkerState(Enum):
    """Connection worker states, for monitoring."""
    STARTING = "starting"
    BUSY = "busy"
    STOPPED = "stopped"


class ConnectionWorker(threading.Thread):
    """
    Thread that serves exactly one connection, then releases its slot.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Worker Lifecycle                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Acceptor acquires a gate slot, accepts, starts the worker      │
    │   2. run(): target(conn)                                            │
    │          ├── Returns normally → done                                │
    │          └── Raises          → logged, worker still ends cleanly    │
    │   3. finally: gate.release()                                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    The worker never retries and never outlives its connection.
    """

    _ids = 0
    _ids_lock = threading.Lock()

    def __init__(
        self,
        gate: ConcurrencyGate,
        target: Callable[..., None],
        args: tuple = (),
    ):
        """
        Args:
            gate: Gate whose slot this worker already holds.
            target: Function to run (the connection state machine).
            args: Positional arguments for target.
        """
        with ConnectionWorker._ids_lock:
            ConnectionWorker._ids += 1
            worker_id = ConnectionWorker._ids

        # daemon=True: a stalled peer must not keep the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.worker_id = worker_id
        self.gate = gate
        self._target_func = target
        self._target_args = args
        self.state = WorkerState.STARTING
        self.failed = False

    def run(self):
        self.state = WorkerState.BUSY
        start_time = time.time()
        try:
            self._target_func(*self._target_args)
        except Exception as e:
            self.failed = True
            logger.exception(f"Worker {self.worker_id} failed: {e}")
        finally:
            self.gate.release()
            self.state = WorkerState.STOPPED
            elapsed = time.time() - start_time
            logger.debug(f"Worker {self.worker_id} finished in {elapsed:.3f}s")
