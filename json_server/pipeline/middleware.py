"""Handler composition and request logging middleware."""

import logging
import time
from typing import Callable, Optional, Union

from json_server.domain.correlation_id import CorrelationLoggerAdapter, get_logger
from json_server.domain.http_types import HttpRequest, HttpResponse, RequestHandler

Middleware = Callable[[RequestHandler], RequestHandler]

REQUEST_LOGGER = get_logger("pipeline.requests")


def chain(*middlewares: Middleware) -> Middleware:
    """Compose middlewares so the first one given is the outermost wrapper."""

    def wrap(final: RequestHandler) -> RequestHandler:
        for middleware in reversed(middlewares):
            final = middleware(final)
        return final

    return wrap


def request_logger(
    enabled: bool,
    logger: Optional[Union[logging.Logger, CorrelationLoggerAdapter]] = None,
) -> Middleware:
    """Log method, path, status and duration of each request when enabled."""
    log = logger or REQUEST_LOGGER

    def middleware(handler: RequestHandler) -> RequestHandler:
        if not enabled:
            return handler

        def handle(request: HttpRequest) -> HttpResponse:
            start = time.perf_counter()
            response = handler(request)
            log.info(
                f"{request.method} {request.path}",
                extra={
                    "event": "request_handled",
                    "method": request.method,
                    "route": request.path,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 3),
                },
            )
            return response

        return handle

    return middleware
