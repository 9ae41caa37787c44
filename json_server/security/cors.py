"""CORS (Cross-Origin Resource Sharing) support for the JSON server."""

from dataclasses import dataclass
from typing import Optional

from json_server.config.model import Config
from json_server.domain.http_types import (
    HttpRequest,
    HttpResponse,
    RequestHandler,
    should_close,
)


@dataclass(frozen=True)
class CorsConfig:
    """Declarative CORS options."""

    allowed_origins: tuple[str, ...]
    allowed_methods: tuple[str, ...]
    allowed_headers: tuple[str, ...] = ("*",)
    allow_credentials: bool = True
    max_age: int = 0

    @classmethod
    def from_config(cls, config: Config) -> "CorsConfig":
        """Derive CORS options from the resolved server configuration."""
        return cls(
            allowed_origins=config.server.allowed_origins,
            allowed_methods=config.server.allowed_methods,
        )


def is_preflight_request(request: HttpRequest) -> bool:
    """Check if the request is a CORS preflight OPTIONS request."""
    return (
        request.method == "OPTIONS"
        and "access-control-request-method" in request.headers
    )


def determine_allowed_origin(origin: str, cors_config: CorsConfig) -> Optional[str]:
    """Determine the allowed origin based on CORS configuration."""
    if "*" in cors_config.allowed_origins:
        return origin if cors_config.allow_credentials else "*"
    if origin in cors_config.allowed_origins:
        return origin
    return None


def _apply_preflight_headers(
    headers: dict[str, str],
    request: HttpRequest,
    cors_config: CorsConfig,
    allowed_origin: str,
) -> None:
    """Apply CORS preflight-specific headers to the response."""
    headers["Access-Control-Allow-Origin"] = allowed_origin
    if allowed_origin != "*":
        headers["Vary"] = "Origin"
    if cors_config.allow_credentials:
        headers["Access-Control-Allow-Credentials"] = "true"

    headers["Access-Control-Allow-Methods"] = ", ".join(cors_config.allowed_methods)

    requested_headers = request.headers.get("access-control-request-headers", "")
    if requested_headers:
        requested = {h.strip().lower() for h in requested_headers.split(",")}
        allowed = {h.lower() for h in cors_config.allowed_headers}
        if "*" in allowed or requested.issubset(allowed):
            headers["Access-Control-Allow-Headers"] = requested_headers
        else:
            headers["Access-Control-Allow-Headers"] = ", ".join(
                cors_config.allowed_headers
            )

    if cors_config.max_age > 0:
        headers["Access-Control-Max-Age"] = str(cors_config.max_age)


def apply_cors_headers(
    headers: dict[str, str],
    request: HttpRequest,
    cors_config: Optional[CorsConfig],
) -> None:
    """Apply CORS headers to a response based on the request and configuration."""
    if cors_config is None:
        return

    origin = request.headers.get("origin")
    if not origin:
        return

    allowed_origin = determine_allowed_origin(origin, cors_config)

    if allowed_origin:
        headers["Access-Control-Allow-Origin"] = allowed_origin
        if allowed_origin != "*":
            headers.setdefault("Vary", "Origin")
        if cors_config.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"


def preflight_response(
    request: HttpRequest, cors_config: Optional[CorsConfig]
) -> HttpResponse:
    """Create a 204 response for CORS preflight OPTIONS requests."""
    headers: dict[str, str] = {}

    if cors_config is not None:
        origin = request.headers.get("origin")
        requested_method = request.headers.get("access-control-request-method", "")
        allowed_origin = determine_allowed_origin(origin, cors_config) if origin else None
        if allowed_origin and requested_method.upper() in cors_config.allowed_methods:
            _apply_preflight_headers(headers, request, cors_config, allowed_origin)

    return HttpResponse(
        "HTTP/1.1 204 No Content",
        headers,
        b"",
        should_close(request.headers),
    )


def cors_handler(handler: RequestHandler, cors_config: CorsConfig) -> RequestHandler:
    """Wrap ``handler`` so preflights are answered and CORS headers applied."""

    def handle(request: HttpRequest) -> HttpResponse:
        if is_preflight_request(request):
            return preflight_response(request, cors_config)
        response = handler(request)
        apply_cors_headers(response.headers, request, cors_config)
        return response

    return handle
