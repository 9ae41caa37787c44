"""Listening socket creation."""

import socket

from json_server.bootstrap.config import ACCEPT_POLL_SECONDS
from json_server.lifecycle.errors import BindError


def create_server_socket(host: str, port: int) -> socket.socket:
    """Bind and listen on ``host:port``, raising :class:`BindError` on failure."""
    try:
        server_socket = socket.create_server((host, port))
    except (OSError, OverflowError) as error:
        raise BindError(host, port, error) from error
    server_socket.settimeout(ACCEPT_POLL_SECONDS)
    return server_socket
