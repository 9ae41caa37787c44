"""Server lifecycle controller: start, wait for signal or error, drain."""

import logging
import queue
import signal
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, wait
from typing import NoReturn, Optional, Union

from json_server.bootstrap.config import (
    ACCEPT_POLL_SECONDS,
    DEFAULT_HOST,
    IDLE_TIMEOUT_SECONDS,
)
from json_server.bootstrap.socket_factory import create_server_socket
from json_server.config.model import Config
from json_server.domain.correlation_id import CorrelationLoggerAdapter, get_logger
from json_server.domain.http_types import RequestHandler
from json_server.lifecycle.errors import ServerError
from json_server.lifecycle.state import LifecycleState, ServerLifecycle
from json_server.transport.accept_loop import run_accept_loop
from json_server.transport.context import WorkerContext

CONTROLLER_LOGGER = get_logger("lifecycle.controller")

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class LifecycleController:
    """Runs one listener for a resolved configuration until shutdown.

    :meth:`serve` binds and runs the accept loop on a background thread, then
    waits for whichever comes first: a fatal listener error or a shutdown
    signal. An error is re-raised without draining; a signal starts a drain
    bounded by ``shutdown_timeout``. A controller serves once.
    """

    def __init__(
        self,
        config: Config,
        handler: RequestHandler,
        host: str = DEFAULT_HOST,
        logger: Optional[Union[logging.Logger, CorrelationLoggerAdapter]] = None,
        install_signal_handlers: bool = True,
        idle_timeout: float = IDLE_TIMEOUT_SECONDS,
    ) -> None:
        self.config = config
        self.host = host
        self._logger = logger or CONTROLLER_LOGGER
        self._install_signal_handlers = install_signal_handlers
        self.lifecycle = ServerLifecycle(self._logger)
        self._context = WorkerContext(
            handler=handler,
            lifecycle=self.lifecycle,
            server_config=config.server,
            idle_timeout=idle_timeout,
        )
        # Single-slot channels filled by the accept thread and the signal relay.
        self._bound_future: Future = Future()
        self._error_future: Future = Future()
        self._signal_future: Future = Future()
        self._signal_queue: queue.SimpleQueue = queue.SimpleQueue()
        self._accept_thread: Optional[threading.Thread] = None
        self.bound_address: Optional[tuple] = None

    @property
    def state(self) -> LifecycleState:
        """The current lifecycle state."""
        return self.lifecycle.state

    def request_shutdown(self, signum: int = signal.SIGTERM) -> None:
        """Deliver a shutdown request as if ``signum`` had been received.

        Safe to call from a signal handler or any thread.
        """
        self._signal_queue.put(signum)

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until the listener is bound; False on timeout or bind failure."""
        done, _ = wait(
            [self._bound_future, self._error_future],
            timeout=timeout,
            return_when=FIRST_COMPLETED,
        )
        return self._bound_future in done

    def _relay_signals(self) -> None:
        signum = self._signal_queue.get()
        if signum is not None and not self._signal_future.done():
            self._signal_future.set_result(signum)

    def _on_signal(self, signum: int, _frame) -> None:
        self.request_shutdown(signum)

    def _install_handlers(self) -> dict:
        previous = {}
        for signum in SHUTDOWN_SIGNALS:
            previous[signum] = signal.signal(signum, self._on_signal)
        return previous

    def _report_error(self, error: ServerError) -> None:
        if not self._error_future.done():
            self._error_future.set_exception(error)

    def _accept_worker(self) -> None:
        try:
            server_socket = create_server_socket(self.host, self.config.server.port)
        except ServerError as error:
            self._report_error(error)
            return
        self.bound_address = server_socket.getsockname()
        self._logger.info(
            "Server listening for connections",
            extra={
                "event": "server_listening",
                "host": self.host or "*",
                "port": self.bound_address[1],
                "read_timeout": self.config.server.read_timeout,
                "write_timeout": self.config.server.write_timeout,
                "shutdown_timeout": self.config.server.shutdown_timeout,
            },
        )
        self._bound_future.set_result(self.bound_address)
        try:
            run_accept_loop(server_socket, self._context)
        except ServerError as error:
            self._report_error(error)

    def serve(self) -> int:
        """Run until shutdown and return the signal number that ended the server.

        Raises :class:`ServerError` when the listener fails to bind or the
        accept loop dies.
        """
        previous_handlers = (
            self._install_handlers() if self._install_signal_handlers else {}
        )
        try:
            threading.Thread(
                target=self._relay_signals, name="signal-relay", daemon=True
            ).start()
            self.lifecycle.transition(LifecycleState.STARTING)
            self._accept_thread = threading.Thread(
                target=self._accept_worker, name="accept-loop", daemon=True
            )
            self._accept_thread.start()

            _wait_first([self._bound_future, self._error_future])
            if self._error_future.done():
                self._fail()
            self.lifecycle.transition(LifecycleState.RUNNING)

            _wait_first([self._error_future, self._signal_future])
            if not self._signal_future.done():
                self._fail()

            signum = self._signal_future.result()
            self._logger.info(
                "Received shutdown signal",
                extra={"event": "shutdown_signal", "signal": _signal_name(signum)},
            )
            self._drain()
            return signum
        finally:
            self._signal_queue.put(None)
            for signum, handler in previous_handlers.items():
                signal.signal(signum, handler)

    def _fail(self) -> NoReturn:
        error = self._error_future.exception()
        self.lifecycle.request_stop()
        self.lifecycle.transition(LifecycleState.ERRORED)
        self._logger.error(
            "Server failed",
            extra={
                "event": "server_failed",
                "error_type": type(error).__name__,
                "error": str(error),
            },
        )
        raise error

    def _drain(self) -> None:
        self.lifecycle.transition(LifecycleState.DRAINING)
        timeout = self.config.server.shutdown_timeout
        deadline = time.monotonic() + timeout
        self.lifecycle.begin_draining()

        if self._accept_thread is not None:
            self._accept_thread.join(timeout=max(0.0, deadline - time.monotonic()))

        remaining = max(0.0, deadline - time.monotonic())
        if not self.lifecycle.wait_for_connections(remaining):
            closed = self.lifecycle.force_close_connections()
            self._logger.warning(
                "Graceful shutdown timed out, forcing connections closed",
                extra={
                    "event": "forced_close",
                    "remaining_connections": closed,
                    "shutdown_timeout": timeout,
                },
            )
        self.lifecycle.transition(LifecycleState.STOPPED)
        self._logger.info("Server shutdown complete", extra={"event": "server_stopped"})


def _wait_first(futures: list[Future]) -> None:
    # Python signal handlers only run on the main thread between bytecodes,
    # so never block it without a timeout.
    while True:
        done, _ = wait(
            futures, timeout=ACCEPT_POLL_SECONDS, return_when=FIRST_COMPLETED
        )
        if done:
            return


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)
