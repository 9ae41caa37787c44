"""Server lifecycle state machine and client connection tracking."""

import logging
import socket
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from json_server.domain.correlation_id import CorrelationLoggerAdapter, get_logger

LIFECYCLE_LOGGER = get_logger("lifecycle.state")


class LifecycleState(Enum):
    """States of the server process."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"
    ERRORED = "errored"


_TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.IDLE: frozenset({LifecycleState.STARTING}),
    LifecycleState.STARTING: frozenset(
        {LifecycleState.RUNNING, LifecycleState.ERRORED}
    ),
    LifecycleState.RUNNING: frozenset(
        {LifecycleState.DRAINING, LifecycleState.ERRORED}
    ),
    LifecycleState.DRAINING: frozenset({LifecycleState.STOPPED}),
    LifecycleState.STOPPED: frozenset(),
    LifecycleState.ERRORED: frozenset(),
}


@dataclass(eq=False)
class ClientConnection:
    """A client socket owned by one worker thread."""

    client_socket: socket.socket
    address: str
    thread: Optional[threading.Thread] = None
    busy: bool = False
    closed: bool = False


class ServerLifecycle:
    """Tracks the lifecycle state and the open client connections."""

    def __init__(
        self,
        logger: Optional[Union[logging.Logger, CorrelationLoggerAdapter]] = None,
    ) -> None:
        self._logger = logger or LIFECYCLE_LOGGER
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._draining_event = threading.Event()
        self._connections: set[ClientConnection] = set()
        self._state = LifecycleState.IDLE
        self._history: list[LifecycleState] = [LifecycleState.IDLE]

    @property
    def state(self) -> LifecycleState:
        """The current lifecycle state."""
        with self._lock:
            return self._state

    @property
    def history(self) -> list[LifecycleState]:
        """Every state entered so far, in order."""
        with self._lock:
            return list(self._history)

    def transition(self, new_state: LifecycleState) -> None:
        """Move to ``new_state``, rejecting transitions the state machine forbids."""
        with self._lock:
            previous = self._state
            if new_state not in _TRANSITIONS[previous]:
                raise ValueError(
                    f"illegal lifecycle transition {previous.value} -> {new_state.value}"
                )
            self._state = new_state
            self._history.append(new_state)
        self._logger.info(
            "Lifecycle state changed",
            extra={
                "event": "lifecycle_transition",
                "previous_state": previous.value,
                "state": new_state.value,
            },
        )

    def should_stop(self) -> bool:
        """Check if the server should stop accepting new connections."""
        return self._stop_event.is_set()

    def is_draining(self) -> bool:
        """Check if the server is in draining mode."""
        return self._draining_event.is_set()

    def request_stop(self) -> None:
        """Ask the accept loop to exit without entering the draining mode."""
        self._stop_event.set()

    def register_connection(self, connection: ClientConnection) -> None:
        """Register a client connection for tracking."""
        with self._lock:
            self._connections.add(connection)

    def cleanup_connection(self, connection: ClientConnection) -> None:
        """Remove a client connection from tracking."""
        with self._lock:
            self._connections.discard(connection)

    def active_connection_count(self) -> int:
        """Return the number of currently tracked connections."""
        with self._lock:
            return len(self._connections)

    def mark_busy(self, connection: ClientConnection) -> bool:
        """Flag the connection as serving a request.

        Returns False when the connection was already closed by a drain, in
        which case the caller must drop the request.
        """
        with self._lock:
            if connection.closed:
                return False
            connection.busy = True
            return True

    def mark_idle(self, connection: ClientConnection) -> None:
        """Flag the connection as waiting for its next request."""
        with self._lock:
            connection.busy = False

    def begin_draining(self) -> int:
        """Stop accepting connections and close the idle ones.

        Returns the number of idle connections that were closed.
        """
        self._draining_event.set()
        self._stop_event.set()
        with self._lock:
            idle = [c for c in self._connections if not c.busy and not c.closed]
            for connection in idle:
                connection.closed = True
        for connection in idle:
            _shutdown_socket(connection.client_socket)
        self._logger.info(
            "Beginning graceful shutdown",
            extra={"event": "drain_started", "remaining_connections": len(idle)},
        )
        return len(idle)

    def wait_for_connections(self, timeout: float) -> bool:
        """Wait for all tracked connections to finish within the timeout."""
        deadline = time.monotonic() + timeout
        while True:
            with self._lock:
                self._connections = {
                    c
                    for c in self._connections
                    if c.thread is None or c.thread.is_alive()
                }
                active = list(self._connections)
            if not active:
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._logger.warning(
                    "Shutdown timeout exceeded",
                    extra={
                        "event": "drain_timeout",
                        "remaining_connections": len(active),
                    },
                )
                return False
            for connection in active:
                if connection.thread is not None:
                    connection.thread.join(timeout=min(0.1, remaining))
                else:
                    time.sleep(min(0.01, remaining))
                if time.monotonic() >= deadline:
                    break

    def force_close_connections(self) -> int:
        """Terminate every tracked connection and return how many there were."""
        with self._lock:
            remaining = list(self._connections)
            for connection in remaining:
                connection.closed = True
        for connection in remaining:
            _shutdown_socket(connection.client_socket)
        return len(remaining)


def _shutdown_socket(client_socket: socket.socket) -> None:
    try:
        client_socket.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
