"""Main connection acceptance loop."""

import errno
import logging
import socket
import threading

from json_server.domain.correlation_id import get_logger
from json_server.domain.response_builders import draining_response
from json_server.lifecycle.errors import AcceptFatal
from json_server.lifecycle.state import ClientConnection
from json_server.pipeline.io import send_response
from json_server.transport.context import WorkerContext
from json_server.transport.worker import handle_client

ACCEPT_LOGGER = get_logger("transport.accept")

TRANSIENT_ACCEPT_ERRNOS = frozenset(
    {
        errno.EMFILE,
        errno.ENFILE,
        errno.ENOBUFS,
        errno.ENOMEM,
        errno.ECONNABORTED,
        errno.EINTR,
        errno.EAGAIN,
    }
)


def _reject_while_draining(client_socket: socket.socket, context: WorkerContext) -> None:
    try:
        send_response(
            client_socket,
            draining_response(),
            context.server_config.write_timeout,
        )
    except OSError:
        pass
    finally:
        client_socket.close()


def _handle_accepted_client(
    client_socket: socket.socket,
    client_address: tuple,
    context: WorkerContext,
) -> None:
    """Hand a newly accepted connection to its own worker thread."""
    client_addr_str = f"{client_address[0]}:{client_address[1]}"
    if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ACCEPT_LOGGER.debug(
            "Client connection accepted",
            extra={"event": "client_accepted", "client": client_addr_str},
        )

    connection = ClientConnection(client_socket, client_addr_str)
    thread = threading.Thread(
        target=handle_client,
        args=(connection, context),
        name=f"worker-{client_addr_str}",
        daemon=True,
    )
    connection.thread = thread
    context.lifecycle.register_connection(connection)
    # Draining may have begun after the caller's check but before the
    # registration, in which case the idle sweep never saw this connection.
    if context.lifecycle.is_draining():
        context.lifecycle.cleanup_connection(connection)
        _reject_while_draining(client_socket, context)
        return
    thread.start()


def run_accept_loop(server_socket: socket.socket, context: WorkerContext) -> None:
    """Accept connections until the lifecycle asks to stop.

    Raises :class:`AcceptFatal` when accepting fails for a reason other than
    a transient resource shortage. The listening socket is always closed on
    exit.
    """
    lifecycle = context.lifecycle
    try:
        while True:
            try:
                client_socket, client_address = server_socket.accept()
            except socket.timeout:
                if lifecycle.should_stop():
                    break
                continue
            except OSError as error:
                if lifecycle.should_stop():
                    break
                if error.errno in TRANSIENT_ACCEPT_ERRNOS:
                    ACCEPT_LOGGER.error(
                        "Socket accept failed, retrying",
                        extra={
                            "event": "accept_error",
                            "error_type": type(error).__name__,
                            "errno": error.errno,
                        },
                    )
                    continue
                raise AcceptFatal(f"accept loop failed: {error}") from error

            client_socket.setblocking(True)
            if lifecycle.is_draining():
                _reject_while_draining(client_socket, context)
                continue

            _handle_accepted_client(client_socket, client_address, context)
    finally:
        server_socket.close()
        ACCEPT_LOGGER.info("Listener closed", extra={"event": "listener_closed"})
