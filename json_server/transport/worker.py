"""Worker thread logic for handling individual client connections."""

import logging
import socket

from json_server.domain.correlation_id import (
    clear_correlation_id,
    generate_correlation_id,
    get_logger,
    set_correlation_id,
)
from json_server.domain.http_types import HttpRequest, HttpResponse
from json_server.domain.response_builders import (
    bad_request_response,
    entity_too_large_response,
    internal_error_response,
)
from json_server.lifecycle.state import ClientConnection
from json_server.pipeline.io import RequestEntityTooLarge, receive_request, send_response
from json_server.transport.context import WorkerContext

WORKER_LOGGER = get_logger("transport.worker")


def _dispatch(request: HttpRequest, context: WorkerContext) -> HttpResponse:
    try:
        return context.handler(request)
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Unhandled error in request handler",
            extra={
                "event": "handler_error",
                "method": request.method,
                "route": request.path,
                "error_type": type(error).__name__,
            },
            exc_info=True,
        )
        return internal_error_response()


def _serve_connection(connection: ClientConnection, context: WorkerContext) -> None:
    lifecycle = context.lifecycle
    client_socket = connection.client_socket
    server_config = context.server_config
    buffer = b""

    while True:
        set_correlation_id(generate_correlation_id())
        try:
            request, buffer = receive_request(
                client_socket,
                buffer,
                read_timeout=server_config.read_timeout,
                idle_timeout=context.idle_timeout,
                on_request_start=lambda: lifecycle.mark_busy(connection),
            )
        except RequestEntityTooLarge:
            WORKER_LOGGER.warning(
                "Request exceeded size limit",
                extra={"event": "request_too_large", "client": connection.address},
            )
            send_response(
                client_socket, entity_too_large_response(), server_config.write_timeout
            )
            return
        except (ValueError, UnicodeDecodeError):
            WORKER_LOGGER.warning(
                "Malformed request received",
                extra={"event": "malformed_request", "client": connection.address},
            )
            send_response(
                client_socket, bad_request_response(), server_config.write_timeout
            )
            return

        if request is None:
            if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
                WORKER_LOGGER.debug(
                    "Client connection finished",
                    extra={"event": "client_disconnected", "client": connection.address},
                )
            return

        response = _dispatch(request, context)
        if lifecycle.is_draining():
            response.close_connection = True
        send_response(client_socket, response, server_config.write_timeout)
        lifecycle.mark_idle(connection)
        clear_correlation_id()

        if response.close_connection or lifecycle.is_draining():
            return


def handle_client(connection: ClientConnection, context: WorkerContext) -> None:
    """Process requests on a client socket until the connection is closed."""
    try:
        _serve_connection(connection, context)
    except (ConnectionError, TimeoutError, OSError) as error:
        WORKER_LOGGER.warning(
            "Error handling client connection",
            extra={
                "event": "connection_error",
                "client": connection.address,
                "error_type": type(error).__name__,
            },
        )
    finally:
        context.lifecycle.cleanup_connection(connection)
        try:
            connection.client_socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass
        connection.client_socket.close()
        clear_correlation_id()
