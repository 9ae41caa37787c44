"""Handlers for the static JSON endpoints."""

import logging

from json_server.domain.correlation_id import get_logger
from json_server.domain.http_types import HttpRequest, HttpResponse
from json_server.domain.response_builders import (
    health_response,
    home_response,
    not_found_response,
)

SYSTEM_LOGGER = get_logger("handlers.system")


def handle_home(request: HttpRequest) -> HttpResponse:
    """Handle ``GET /`` with the welcome envelope."""
    return home_response(request)


def handle_health(request: HttpRequest) -> HttpResponse:
    """Handle ``GET /health`` with the health envelope."""
    if SYSTEM_LOGGER.logger.isEnabledFor(logging.DEBUG):
        SYSTEM_LOGGER.debug("Health check performed", extra={"event": "health_check"})
    return health_response(request)


def handle_not_found(request: HttpRequest) -> HttpResponse:
    """Handle any unmatched path or method."""
    return not_found_response(request)
