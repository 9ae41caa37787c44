"""Request routing and application assembly."""

import logging

from json_server.config.model import Config
from json_server.domain.correlation_id import get_logger
from json_server.domain.http_types import HttpRequest, HttpResponse, RequestHandler
from json_server.handlers.system_handlers import (
    handle_health,
    handle_home,
    handle_not_found,
)
from json_server.pipeline.middleware import chain, request_logger
from json_server.security.cors import CorsConfig, cors_handler

ROUTER_LOGGER = get_logger("pipeline.router")

ROUTES: dict[tuple[str, str], RequestHandler] = {
    ("GET", "/"): handle_home,
    ("GET", "/health"): handle_health,
}


def route_request(request: HttpRequest) -> HttpResponse:
    """Dispatch the request to its handler, or to the 404 handler."""
    handler = ROUTES.get((request.method, request.path))
    if handler is None:
        ROUTER_LOGGER.info(
            "No matching route found",
            extra={
                "event": "route_not_found",
                "route": request.path,
                "method": request.method,
            },
        )
        return handle_not_found(request)
    if ROUTER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ROUTER_LOGGER.debug(
            "Route matched", extra={"event": "route_matched", "route": request.path}
        )
    return handler(request)


def build_application(config: Config) -> RequestHandler:
    """Return the request handler: CORS around request logging around routing."""
    middlewares = chain(request_logger(config.server.enable_logging))
    return cors_handler(middlewares(route_request), CorsConfig.from_config(config))
