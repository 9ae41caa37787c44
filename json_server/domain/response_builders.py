"""Pure HTTP response builders producing JSON envelopes."""

import json
from typing import Any, Optional

from json_server.domain.http_types import HttpRequest, HttpResponse, should_close

JSON_CONTENT_TYPE = "application/json"

STATUS_SUCCESS = "success"
STATUS_HEALTHY = "healthy"
STATUS_ERROR = "error"


def envelope(
    status: str, message: Optional[str] = None, data: Any = None
) -> dict[str, Any]:
    """Build the response envelope, omitting empty message and data."""
    body: dict[str, Any] = {"status": status}
    if message:
        body["message"] = message
    if data:
        body["data"] = data
    return body


def json_response(
    status_line: str,
    payload: dict[str, Any],
    close_connection: bool,
    headers: Optional[dict[str, str]] = None,
) -> HttpResponse:
    """Serialize ``payload`` into a JSON response."""
    body = (json.dumps(payload) + "\n").encode()
    response_headers = {"Content-Type": JSON_CONTENT_TYPE}
    if headers:
        response_headers.update(headers)
    return HttpResponse(status_line, response_headers, body, close_connection)


def home_response(request: HttpRequest) -> HttpResponse:
    """Return the 200 welcome envelope."""
    payload = envelope(
        STATUS_SUCCESS,
        "Welcome to the HTTP server!",
        {"version": "1.0.0", "service": "http-server"},
    )
    return json_response("HTTP/1.1 200 OK", payload, should_close(request.headers))


def health_response(request: HttpRequest) -> HttpResponse:
    """Return the 200 health envelope."""
    payload = envelope(
        STATUS_HEALTHY,
        "Server is running",
        {"uptime": "running", "status": "ok", "checks": {"server": "healthy"}},
    )
    return json_response("HTTP/1.1 200 OK", payload, should_close(request.headers))


def not_found_response(request: HttpRequest) -> HttpResponse:
    """Return a 404 envelope describing the unmatched request."""
    payload = envelope(
        STATUS_ERROR,
        "The requested resource was not found",
        {"path": request.path, "method": request.method},
    )
    return json_response(
        "HTTP/1.1 404 Not Found", payload, should_close(request.headers)
    )


def bad_request_response() -> HttpResponse:
    """Produce a 400 response that always closes the connection."""
    payload = envelope(STATUS_ERROR, "Malformed request")
    return json_response("HTTP/1.1 400 Bad Request", payload, True)


def entity_too_large_response() -> HttpResponse:
    """Produce a 413 response that always closes the connection."""
    payload = envelope(STATUS_ERROR, "Request body too large")
    return json_response("HTTP/1.1 413 Payload Too Large", payload, True)


def draining_response() -> HttpResponse:
    """Produce a 503 response for connections accepted while shutting down."""
    payload = envelope(STATUS_ERROR, "Server is shutting down")
    return json_response("HTTP/1.1 503 Service Unavailable", payload, True)


def internal_error_response() -> HttpResponse:
    """Produce a 500 response when a handler raises."""
    payload = envelope(STATUS_ERROR, "Internal server error")
    return json_response("HTTP/1.1 500 Internal Server Error", payload, True)
