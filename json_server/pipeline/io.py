"""HTTP input/output over client sockets."""

import socket
import time
import urllib.parse
from typing import Callable, Optional, Tuple

from json_server.bootstrap.config import HEADER_DELIMITER, MAX_BODY_BYTES
from json_server.domain.correlation_id import (
    get_correlation_id,
    get_logger,
    set_correlation_id,
)
from json_server.domain.http_types import HttpRequest, HttpResponse

IO_LOGGER = get_logger("pipeline.io")


class RequestEntityTooLarge(Exception):
    """Raised when the request exceeds the accepted body or header size."""


def _recv_with_deadline(client_socket: socket.socket, deadline_ns: int) -> bytes:
    """Receive data from socket with a deadline, raising TimeoutError if exceeded."""
    remaining_ns = deadline_ns - time.monotonic_ns()
    if remaining_ns <= 0:
        raise TimeoutError("Request deadline exceeded")
    timeout_seconds = remaining_ns / 1_000_000_000
    client_socket.settimeout(timeout_seconds)
    return client_socket.recv(4096)


def parse_headers(lines: list[str]) -> dict[str, str]:
    """Convert raw header lines into a lowercase-keyed dictionary."""
    parsed = {}
    for line in lines:
        if ":" in line:
            name, value = line.split(":", 1)
            parsed[name.strip().lower()] = value.strip()
    return parsed


def parse_request_line(request_line: str) -> Tuple[str, str]:
    """Parse the HTTP method and decoded path from the request line."""
    try:
        method, target, version = request_line.split(" ", 2)
    except ValueError as exc:
        raise ValueError("Invalid request line") from exc
    if not method or not version.startswith("HTTP/"):
        raise ValueError("Invalid request line")

    parsed_target = urllib.parse.urlsplit(target)
    path = urllib.parse.unquote(parsed_target.path) or "/"
    return method, path


def determine_content_length(headers: dict[str, str]) -> int:
    """Validate and return the declared Content-Length for the request."""
    header_value = headers.get("content-length")
    if header_value is None:
        return 0
    try:
        content_length = int(header_value)
    except ValueError as exc:
        raise ValueError("Invalid Content-Length") from exc
    if content_length < 0:
        raise ValueError("Negative Content-Length")
    if content_length > MAX_BODY_BYTES:
        raise RequestEntityTooLarge
    return content_length


def receive_request(
    client_socket: socket.socket,
    buffer: bytes,
    read_timeout: float,
    idle_timeout: float,
    on_request_start: Optional[Callable[[], bool]] = None,
) -> Tuple[Optional[HttpRequest], bytes]:
    """Read bytes from the socket until a complete request is available.

    While no bytes of the next request have arrived the socket waits up to
    ``idle_timeout``; once they have, the whole request must arrive within
    ``read_timeout``. ``on_request_start`` is called when the first bytes are
    available and may return False to abandon the connection.
    """
    if not buffer:
        client_socket.settimeout(idle_timeout)
        try:
            chunk = client_socket.recv(4096)
        except OSError:
            return None, b""
        if not chunk:
            return None, b""
        buffer = chunk

    if on_request_start is not None and not on_request_start():
        return None, b""

    deadline_ns = time.monotonic_ns() + int(read_timeout * 1_000_000_000)
    while HEADER_DELIMITER not in buffer:
        if len(buffer) > MAX_BODY_BYTES:
            raise RequestEntityTooLarge
        chunk = _recv_with_deadline(client_socket, deadline_ns)
        if not chunk:
            return None, b""
        buffer += chunk

    header_block, remainder = buffer.split(HEADER_DELIMITER, 1)
    header_lines = header_block.decode("latin-1").split("\r\n")
    method, path = parse_request_line(header_lines[0])
    headers = parse_headers(header_lines[1:])

    incoming_correlation_id = headers.get("x-request-id")
    if incoming_correlation_id:
        set_correlation_id(incoming_correlation_id)

    content_length = determine_content_length(headers)

    while len(remainder) < content_length:
        chunk = _recv_with_deadline(client_socket, deadline_ns)
        if not chunk:
            return None, b""
        remainder += chunk

    body = remainder[:content_length]
    leftover = remainder[content_length:]
    IO_LOGGER.debug(
        "Parsed request",
        extra={"event": "request_parsed", "method": method, "route": path},
    )
    return HttpRequest(method, path, headers, body), leftover


def send_response(
    client_socket: socket.socket,
    response: HttpResponse,
    write_timeout: Optional[float] = None,
) -> None:
    """Serialize and send the HTTP response over the socket."""
    headers = dict(response.headers)

    correlation_id = get_correlation_id()
    if correlation_id:
        headers["X-Request-ID"] = correlation_id

    headers["Content-Length"] = str(len(response.body))
    if response.close_connection:
        headers["Connection"] = "close"
    header_lines = [response.status_line]
    header_lines.extend(f"{name}: {value}" for name, value in headers.items())
    header_block = "\r\n".join(header_lines).encode("latin-1") + HEADER_DELIMITER
    if write_timeout is not None:
        client_socket.settimeout(write_timeout)
    client_socket.sendall(header_block + response.body)
    IO_LOGGER.debug(
        "Sent response",
        extra={"event": "response_sent", "status_code": response.status_code},
    )
